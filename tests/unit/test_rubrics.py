from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from assessment_engine.domain.errors import RubricSourceError
from assessment_engine.domain.rubrics import MAX_HINT_SKILLS_PER_COMPETENCY, parse_rubric_set
from assessment_engine.repositories.rubrics import FileRubricSource, InMemoryRubricSource, rubric_file_stem
from tests.stage_support import RUBRIC_DOCUMENT


@pytest.mark.unit
def test_parse_rubric_set_sorts_levels_and_coerces_polarity() -> None:
    document = {
        "Qualification": {
            "skills": {
                "Timeline evaluation": {
                    "levels": [
                        {"level": 2, "characteristics": [{"text": "Finds deadline", "polarity": "Negative"}]},
                        {"level": 1, "name": "Novice", "characteristics": ["Asks about timing"]},
                    ]
                }
            }
        }
    }

    rubric_set = parse_rubric_set(document, key="rubrics:test")
    skill = rubric_set.skills()[0]

    assert [level.level for level in skill.levels] == [1, 2]
    assert skill.level(1).characteristics[0].polarity == "positive"
    assert skill.level(2).name == "Level 2"
    assert skill.level(2).characteristics[0].polarity == "limitation"
    assert skill.level(3) is None
    assert skill.competency == "Qualification"


@pytest.mark.unit
@pytest.mark.parametrize(
    "document",
    [
        [],
        {"Qualification": {}},
        {"Qualification": {"skills": {"X": {"levels": "nope"}}}},
        {"Qualification": {"skills": {"X": {"levels": [{"level": 0}]}}}},
        {"Qualification": {"skills": {"X": {"levels": [{"level": 1}, {"level": 1}]}}}},
        {"Qualification": {"skills": {"X": {"levels": [{"level": 1, "characteristics": [{"text": ""}]}]}}}},
        {"Qualification": {"skills": {"X": {"levels": [{"level": 1, "characteristics": [{"text": "a", "polarity": "meh"}]}]}}}},
    ],
)
def test_parse_rubric_set_rejects_malformed_documents(document: object) -> None:
    with pytest.raises(ValueError):
        parse_rubric_set(document, key="rubrics:test")


@pytest.mark.unit
def test_resolve_ignores_case_and_whitespace() -> None:
    rubric_set = parse_rubric_set(RUBRIC_DOCUMENT, key="rubrics:v1")

    assert rubric_set.resolve("  active\tLISTENING ").skill_name == "Active listening"
    assert rubric_set.resolve("Juggling") is None
    assert rubric_set.resolve("   ") is None


@pytest.mark.unit
def test_rubric_prompt_data_is_stable_json_ready() -> None:
    skill = parse_rubric_set(RUBRIC_DOCUMENT, key="rubrics:v1").resolve("Active listening")

    data = skill.to_prompt_data()

    assert [level["level"] for level in data["levels"]] == [1, 2, 3]
    assert data["levels"][0]["characteristics"][1] == {"text": "Talks over the customer", "polarity": "limitation"}


@pytest.mark.unit
def test_packaged_rubric_set_loads_every_competency() -> None:
    source = FileRubricSource()

    rubric_set = asyncio.run(source.load("rubrics:v1"))

    assert len(rubric_set.competencies) == 10
    assert len(rubric_set.skills()) == 50
    for name in ("Identification of Customer Needs", "Timeline evaluation", "Active listening"):
        assert [level.level for level in rubric_set.resolve(name).levels] == [1, 2, 3, 4, 5]
    assert rubric_set.resolve("Discover Pain Points").levels == ()
    assert all(len(hint["skills"]) <= MAX_HINT_SKILLS_PER_COMPETENCY for hint in rubric_set.competency_hints())
    assert asyncio.run(source.load("rubrics:v1")) is rubric_set


@pytest.mark.unit
def test_file_source_reads_json_documents(tmp_path: Path) -> None:
    (tmp_path / "team.v2.json").write_text(json.dumps(RUBRIC_DOCUMENT), encoding="utf-8")

    rubric_set = asyncio.run(FileRubricSource(directory=tmp_path).load("team:v2"))

    assert rubric_set.key == "team:v2"
    assert rubric_set.resolve("Timeline evaluation") is not None


@pytest.mark.unit
def test_file_source_reports_missing_and_invalid_sets(tmp_path: Path) -> None:
    (tmp_path / "broken.v1.yaml").write_text("- just\n- a list\n", encoding="utf-8")
    source = FileRubricSource(directory=tmp_path)

    with pytest.raises(RubricSourceError):
        asyncio.run(source.load("absent:v1"))
    with pytest.raises(RubricSourceError):
        asyncio.run(source.load("broken:v1"))


@pytest.mark.unit
@pytest.mark.parametrize("key", ["../etc/passwd", "rubrics v1", "", "rubrics:"])
def test_rubric_set_keys_cannot_escape_directory(key: str) -> None:
    with pytest.raises(RubricSourceError):
        rubric_file_stem(key)


@pytest.mark.unit
def test_in_memory_source() -> None:
    source = InMemoryRubricSource(documents={"rubrics:v1": RUBRIC_DOCUMENT, "bad:v1": {"X": {}}})

    assert asyncio.run(source.load("rubrics:v1")).resolve("Discover Pain Points") is not None
    with pytest.raises(RubricSourceError):
        asyncio.run(source.load("missing:v1"))
    with pytest.raises(RubricSourceError):
        asyncio.run(source.load("bad:v1"))
