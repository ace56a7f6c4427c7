from __future__ import annotations

from typing import Mapping


class MembershipStore:
    """Whether the viewer belongs to each group, keyed by ``GroupView.key``."""

    def __init__(self) -> None:
        self._entries: dict[str, bool] = {}

    def get(self, key: str) -> bool | None:
        return self._entries.get(key)

    def is_member(self, key: str) -> bool:
        return bool(self._entries.get(key))

    def set(self, key: str, value: bool) -> None:
        self._entries[key] = bool(value)

    def replace(self, entries: Mapping[str, bool]) -> None:
        self._entries = {key: bool(value) for key, value in entries.items()}

    def discard(self, key: str) -> None:
        self._entries.pop(key, None)

    def snapshot(self) -> dict[str, bool]:
        return dict(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["MembershipStore"]
