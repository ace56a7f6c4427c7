from __future__ import annotations

from groupsync.data.models import GroupPayload
from groupsync.utils import get_logger


logger = get_logger(__name__)


def stable_hash(text: str) -> int:
    """Deterministic non-negative 31-bit string hash (``h * 31 + c`` folded to int32)."""

    value = 0
    for char in text:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


class IdentityMapper:
    """Two-way association between session-local numeric ids and backend ids.

    The first observation of a backend id fixes its local id for the rest of
    the session. Hash collisions are resolved by probing to the next free
    local id, so two backend ids never share a rendering key.
    """

    def __init__(self) -> None:
        self._local_to_backend: dict[int, str] = {}
        self._backend_to_local: dict[str, int] = {}
        self._seed_to_local: dict[str, int] = {}
        self._native_to_local: dict[int, int] = {}
        self._unbacked: set[int] = set()

    def to_local_id(self, payload: GroupPayload, *, seed_timestamp: str = "") -> int:
        backend_id = payload.backend_id
        native = payload.native_local_id

        if backend_id:
            existing = self._backend_to_local.get(backend_id)
            if existing is not None:
                return existing
            candidate = native if native is not None else stable_hash(backend_id)
            local_id = self._claim(candidate, backend_id)
            logger.debug(
                "Registered group identity",
                local_id=local_id,
                backend_id=backend_id,
            )
            return local_id

        if native is not None:
            existing = self._native_to_local.get(native)
            if existing is not None:
                return existing
            local_id = self._next_free(native) if native in self._local_to_backend else native
            if local_id != native:
                logger.warning(
                    "Local id collision resolved",
                    native_id=native,
                    assigned=local_id,
                )
            self._native_to_local[native] = local_id
            self._unbacked.add(local_id)
            return local_id

        created = payload.created_at.isoformat() if payload.created_at else seed_timestamp
        seed = f"{payload.name or ''}|{created}"
        existing = self._seed_to_local.get(seed)
        if existing is not None:
            return existing
        local_id = self._next_free(stable_hash(seed))
        self._seed_to_local[seed] = local_id
        self._unbacked.add(local_id)
        return local_id

    def backend_id_for(self, local_id: int) -> str:
        return self._local_to_backend.get(local_id, "")

    def local_id_for(self, backend_id: str) -> int | None:
        return self._backend_to_local.get(backend_id)

    def associations(self) -> dict[int, str]:
        return dict(self._local_to_backend)

    def __len__(self) -> int:
        return len(self._local_to_backend)

    def clear(self) -> None:
        self._local_to_backend.clear()
        self._backend_to_local.clear()
        self._seed_to_local.clear()
        self._native_to_local.clear()
        self._unbacked.clear()

    def _claim(self, candidate: int, backend_id: str) -> int:
        local_id = self._next_free(candidate)
        if local_id != candidate:
            logger.warning(
                "Local id collision resolved",
                backend_id=backend_id,
                requested=candidate,
                assigned=local_id,
            )
        self._local_to_backend[local_id] = backend_id
        self._backend_to_local[backend_id] = local_id
        return local_id

    def _next_free(self, candidate: int) -> int:
        local_id = candidate or 1
        while local_id in self._local_to_backend or local_id in self._unbacked:
            local_id += 1
        return local_id


__all__ = ["IdentityMapper", "stable_hash"]
