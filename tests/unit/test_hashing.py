from __future__ import annotations

import pytest

from assessment_engine.domain.hashing import (
    cache_key,
    qualification_key_hash,
    roleplay_key_hash,
    skill_key_hash,
    stable_json,
    stable_key,
)


@pytest.mark.unit
def test_stable_key_ignores_object_key_order_at_any_depth() -> None:
    left = {"b": 1, "a": {"y": [1, {"q": 1, "p": 2}], "x": None}}
    right = {"a": {"x": None, "y": [1, {"p": 2, "q": 1}]}, "b": 1}

    assert stable_json(left) == stable_json(right)
    assert stable_key(left) == stable_key(right)
    assert len(stable_key(left)) == 64
    assert stable_key(left) == stable_key(left).lower()


@pytest.mark.unit
def test_stable_json_keeps_list_order_and_is_compact() -> None:
    assert stable_json({"b": [3, 1, 2], "a": "é"}) == '{"a":"é","b":[3,1,2]}'
    assert stable_key([1, 2]) != stable_key([2, 1])


@pytest.mark.unit
def test_stable_json_replaces_cycles_with_null() -> None:
    node: dict[str, object] = {"name": "root"}
    node["self"] = node
    items: list[object] = [1]
    items.append(items)

    assert stable_json(node) == '{"name":"root","self":null}'
    assert stable_json(items) == "[1,null]"


@pytest.mark.unit
def test_shared_non_cyclic_references_are_serialized_in_full() -> None:
    shared = {"k": 1}
    assert stable_json({"a": shared, "b": shared}) == '{"a":{"k":1},"b":{"k":1}}'


@pytest.mark.unit
def test_skill_key_is_identical_for_equivalent_transcripts() -> None:
    first = skill_key_hash(cache_version="1", transcript="Hi\r\n\n\n\nthere  you", seller_id="s", skill_name="A")
    second = skill_key_hash(cache_version="1", transcript="  Hi\n\nthere you ", seller_id="s", skill_name="A")
    assert first == second


@pytest.mark.unit
def test_skill_key_changes_with_every_component() -> None:
    base = {"cache_version": "1", "transcript": "t", "seller_id": "s", "skill_name": "A"}
    reference = skill_key_hash(**base)

    for field, value in (("cache_version", "2"), ("transcript", "u"), ("seller_id", "x"), ("skill_name", "B")):
        assert skill_key_hash(**{**base, field: value}) != reference


@pytest.mark.unit
def test_qualification_and_roleplay_keys_depend_on_their_inputs() -> None:
    q1 = qualification_key_hash(cache_version="1", transcript="t", seller_id="s", all_skills=["A", "B"])
    q2 = qualification_key_hash(cache_version="1", transcript="t", seller_id="s", all_skills=["B", "A"])
    assert q1 != q2

    r1 = roleplay_key_hash(cache_version="1", transcript="t", skills=[{"skill": "A", "score": 2}])
    r2 = roleplay_key_hash(cache_version="1", transcript="t", skills=[{"score": 2, "skill": "A"}])
    r3 = roleplay_key_hash(cache_version="1", transcript="t", skills=[{"skill": "A", "score": 3}])
    assert r1 == r2
    assert r1 != r3


@pytest.mark.unit
def test_cache_key_layout_and_namespace_guard() -> None:
    digest = "a" * 64
    assert cache_key(cache_version="1", namespace="assessment", key_hash=digest) == f"v1:assessment:{digest}"
    assert cache_key(cache_version="3", namespace="coach-roleplay", key_hash=digest).startswith("v3:coach-roleplay:")

    with pytest.raises(ValueError, match="unknown cache namespace"):
        cache_key(cache_version="1", namespace="other", key_hash=digest)  # type: ignore[arg-type]
