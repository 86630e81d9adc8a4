from __future__ import annotations

import pytest

from assessment_engine.domain.llm_output import (
    extract_json_object,
    filter_to_catalog,
    parse_coach_feedback,
    parse_judge,
    parse_qualification,
)


@pytest.mark.unit
def test_extract_json_object_tolerates_prose_and_fences() -> None:
    text = 'Sure! Here it is:\n```json\n{"qualifiedSkills": ["A"]}\n```\nThanks'
    assert extract_json_object(text) == {"qualifiedSkills": ["A"]}


@pytest.mark.unit
@pytest.mark.parametrize("text", [None, "", "no braces", "} backwards {", "{not json}", "[1, 2]"])
def test_extract_json_object_returns_none_instead_of_raising(text: str | None) -> None:
    assert extract_json_object(text) is None


@pytest.mark.unit
def test_parse_qualification_requires_list_of_strings() -> None:
    assert parse_qualification({"qualifiedSkills": ["A", "B"]}) == ["A", "B"]
    assert parse_qualification({"qualifiedSkills": "A"}) is None
    assert parse_qualification({"skills": ["A"]}) is None
    assert parse_qualification(None) is None


@pytest.mark.unit
def test_parse_judge_rejects_non_boolean_met() -> None:
    payload = {
        "level_checks": [
            {"level": 1, "name": "Novice", "checks": [{"characteristic": "c", "polarity": "positive", "met": "true"}]}
        ]
    }
    assert parse_judge(payload) is None


@pytest.mark.unit
def test_parse_judge_reads_legacy_negative_polarity() -> None:
    payload = {
        "level_checks": [
            {"level": 1, "checks": [{"characteristic": "c", "polarity": "negative", "met": True, "evidence": ["q"]}]}
        ]
    }
    groups = parse_judge(payload)
    assert groups is not None
    assert groups[0].checks[0].polarity == "limitation"
    assert groups[0].checks[0].reason == ""


@pytest.mark.unit
def test_parse_judge_requires_level_checks() -> None:
    assert parse_judge({"level_checks": []}) is None
    assert parse_judge({"levels": []}) is None


@pytest.mark.unit
def test_parse_coach_feedback_defaults_missing_fields() -> None:
    feedback = parse_coach_feedback({"strengths": ["Good pacing"], "extra": 1})
    assert feedback is not None
    assert feedback.strengths == ["Good pacing"]
    assert feedback.improvements == []
    assert feedback.coaching_tips == []

    assert parse_coach_feedback({"improvements": "do better"}) is None


@pytest.mark.unit
def test_filter_to_catalog_drops_unknown_and_duplicate_names() -> None:
    accepted, rejected = filter_to_catalog(["B", "Z", "A", "B", "a"], ["A", "B", "C"])
    assert accepted == ["B", "A"]
    assert rejected == ["Z", "a"]
