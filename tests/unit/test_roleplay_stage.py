from __future__ import annotations

import asyncio

import pytest

from assessment_engine.clients.stub import ScriptedLLMClient
from assessment_engine.domain.dto import CoachRoleplayCommand, RoleplaySkillScore
from assessment_engine.domain.errors import DomainValidationError
from assessment_engine.domain.use_cases.coach_roleplay import coach_roleplay
from tests.stage_support import TRANSCRIPT, build_stage_deps


def _command(*scores: tuple[str, int]) -> CoachRoleplayCommand:
    return CoachRoleplayCommand(
        transcript=TRANSCRIPT,
        skills=[RoleplaySkillScore(skill=skill, score=score) for skill, score in scores],
    )


def _prompt_for(llm: ScriptedLLMClient, skill: str) -> str:
    return next(request.user_prompt for request in llm.calls_for("coach") if f'"{skill}"' in request.user_prompt)


@pytest.mark.unit
def test_roleplay_coaches_resolved_skills_and_skips_unknown() -> None:
    llm = ScriptedLLMClient()
    deps = build_stage_deps(llm=llm)

    result = asyncio.run(
        coach_roleplay(_command(("Active listening", 2), ("Juggling", 3), ("Timeline evaluation", 5)), deps=deps)
    )

    assert [item.skill for item in result.assessments] == ["Active listening", "Timeline evaluation"]
    assert [item.improvement_title for item in result.assessments] == [
        "Areas for Improvement",
        "Next-Level Opportunities",
    ]
    assert all(item.level_checks == [] for item in result.assessments)
    assert result.kv_hit is False
    assert result.run_id.startswith("run_")
    assert len(llm.calls_for("coach")) == 2


@pytest.mark.unit
def test_roleplay_prompt_targets_next_rubric_level() -> None:
    llm = ScriptedLLMClient()
    deps = build_stage_deps(llm=llm)

    asyncio.run(coach_roleplay(_command(("Active listening", 2), ("Timeline evaluation", 2)), deps=deps))

    listening = _prompt_for(llm, "Active listening")
    assert "Level 3 ('Proficient')" in listening
    assert "Paraphrases key statements" in listening
    assert 'The company is "Turnitin"' in listening
    assert "Focus on general best practices." in _prompt_for(llm, "Timeline evaluation")
    assert all(request.model == deps.settings.coach_model for request in llm.calls_for("coach"))


@pytest.mark.unit
def test_roleplay_result_is_cached_with_original_run_id() -> None:
    llm = ScriptedLLMClient()
    deps = build_stage_deps(llm=llm)
    command = _command(("Active listening", 3))

    first = asyncio.run(coach_roleplay(command, deps=deps))
    second = asyncio.run(coach_roleplay(command, deps=deps))

    assert second.kv_hit is True
    assert second.run_id == first.run_id
    assert second.assessments == first.assessments
    assert len(llm.calls_for("coach")) == 1


@pytest.mark.unit
def test_roleplay_key_depends_on_scores() -> None:
    llm = ScriptedLLMClient()
    deps = build_stage_deps(llm=llm)

    asyncio.run(coach_roleplay(_command(("Active listening", 3)), deps=deps))
    rescored = asyncio.run(coach_roleplay(_command(("Active listening", 4)), deps=deps))

    assert rescored.kv_hit is False
    assert rescored.assessments[0].improvement_title == "Areas for Refinement to Reach Mastery"


@pytest.mark.unit
def test_roleplay_degrades_unusable_feedback() -> None:
    llm = ScriptedLLMClient()
    llm.script("coach", "no json")

    result = asyncio.run(coach_roleplay(_command(("Active listening", 1)), deps=build_stage_deps(llm=llm)))

    assert result.assessments[0].strengths == []
    assert result.assessments[0].rating == 1


@pytest.mark.unit
@pytest.mark.parametrize("scores", [(), (("Active listening", 0),), (("Active listening", 6),), ((" ", 3),)])
def test_roleplay_validates_input(scores: tuple[tuple[str, int], ...]) -> None:
    llm = ScriptedLLMClient()

    with pytest.raises(DomainValidationError):
        asyncio.run(coach_roleplay(_command(*scores), deps=build_stage_deps(llm=llm)))
    assert llm.calls == []
