from __future__ import annotations

from groupsync.data import GroupPayload
from groupsync.reconcile import IdentityMapper, stable_hash

from tests.factories import make_group_payload, make_legacy_payload


def _payload(raw: dict) -> GroupPayload:
    return GroupPayload.from_payload(raw)


def test_stable_hash_matches_known_values() -> None:
    assert stable_hash("a") == 97
    assert stable_hash("ab") == 97 * 31 + 98
    assert stable_hash("group-1") == stable_hash("group-1")


def test_stable_hash_folds_to_signed_32_bits() -> None:
    value = stable_hash("a much longer backend identifier that overflows")

    assert 0 <= value <= 2**31


def test_numeric_native_id_is_used_directly() -> None:
    mapper = IdentityMapper()

    assert mapper.to_local_id(_payload(make_legacy_payload(42))) == 42


def test_backend_id_is_memoized_on_first_observation() -> None:
    mapper = IdentityMapper()
    first = mapper.to_local_id(_payload(make_group_payload("abc-123")))

    renamed = make_group_payload("abc-123", name="Renamed", group_id=999)
    second = mapper.to_local_id(_payload(renamed))

    assert first == stable_hash("abc-123")
    assert second == first
    assert mapper.backend_id_for(first) == "abc-123"
    assert mapper.local_id_for("abc-123") == first


def test_native_id_with_backend_id_registers_association() -> None:
    mapper = IdentityMapper()

    local_id = mapper.to_local_id(_payload(make_group_payload("cosmos-7", group_id=7)))

    assert local_id == 7
    assert mapper.associations() == {7: "cosmos-7"}


def test_colliding_candidates_are_probed_to_next_free_id() -> None:
    mapper = IdentityMapper()

    first = mapper.to_local_id(_payload(make_group_payload("a", group_id=5)))
    second = mapper.to_local_id(_payload(make_group_payload("b", group_id=5)))

    assert first == 5
    assert second == 6
    assert mapper.backend_id_for(5) == "a"
    assert mapper.backend_id_for(6) == "b"
    assert len(mapper) == 2


def test_unbacked_group_hashes_name_and_timestamp() -> None:
    mapper = IdentityMapper()
    raw = {"name": "Local only", "createdAt": "2025-03-01T10:00:00+00:00"}

    first = mapper.to_local_id(_payload(raw))
    second = mapper.to_local_id(_payload(raw))

    assert first == second
    assert first != 0
    assert mapper.backend_id_for(first) == ""


def test_unbacked_group_without_timestamp_uses_seed() -> None:
    mapper = IdentityMapper()
    raw = {"name": "Draft"}

    local_id = mapper.to_local_id(_payload(raw), seed_timestamp="2025-03-01T10:00:00")

    assert local_id == stable_hash("Draft|2025-03-01T10:00:00")


def test_backend_ids_never_reuse_an_unbacked_local_id() -> None:
    mapper = IdentityMapper()
    mapper.to_local_id(_payload(make_legacy_payload(3)))

    local_id = mapper.to_local_id(_payload(make_group_payload("server", group_id=3)))

    assert local_id == 4


def test_clear_forgets_every_association() -> None:
    mapper = IdentityMapper()
    mapper.to_local_id(_payload(make_group_payload("abc")))

    mapper.clear()

    assert len(mapper) == 0
    assert mapper.local_id_for("abc") is None


def test_unbacked_native_id_is_probed_past_a_claimed_id() -> None:
    mapper = IdentityMapper()
    mapper.to_local_id(_payload(make_group_payload("x", group_id=3)))
    mapper.to_local_id(_payload(make_group_payload("y", group_id=3)))

    legacy = mapper.to_local_id(_payload(make_legacy_payload(4)))
    again = mapper.to_local_id(_payload(make_legacy_payload(4)))

    assert legacy == 5
    assert again == 5
    assert mapper.backend_id_for(legacy) == ""
