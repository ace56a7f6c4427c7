"""Identity, ownership and membership tables owned by the reconciler."""

from .identity import IdentityMapper, stable_hash
from .membership import MembershipStore
from .normalize import GroupNormalizer, inline_membership
from .ownership import OwnerRecord, OwnershipResolver
from .state import GroupState

__all__ = [
    "IdentityMapper",
    "stable_hash",
    "MembershipStore",
    "GroupNormalizer",
    "inline_membership",
    "OwnerRecord",
    "OwnershipResolver",
    "GroupState",
]
