from __future__ import annotations

from dataclasses import dataclass, field

from groupsync.data.models import GroupView
from groupsync.reconcile.identity import IdentityMapper
from groupsync.reconcile.membership import MembershipStore
from groupsync.reconcile.ownership import OwnerRecord


@dataclass(slots=True)
class GroupState:
    """Every table the reconciler reads and writes, owned in one place."""

    identity: IdentityMapper = field(default_factory=IdentityMapper)
    owners: OwnerRecord = field(default_factory=OwnerRecord)
    membership: MembershipStore = field(default_factory=MembershipStore)
    groups: list[GroupView] = field(default_factory=list)
    local_only: dict[int, GroupView] = field(default_factory=dict)
    demo_mode: bool = False
    synced: bool = False

    def find(self, local_id: int) -> tuple[int, GroupView] | None:
        for index, group in enumerate(self.groups):
            if group.local_id == local_id:
                return index, group
        return None

    def clear(self) -> None:
        self.identity.clear()
        self.owners.clear()
        self.membership.clear()
        self.groups = []
        self.local_only.clear()
        self.demo_mode = False
        self.synced = False


__all__ = ["GroupState"]
