from __future__ import annotations

import asyncio
import logging
import time

from pydantic import ValidationError

from assessment_engine.domain.dto import CoachRoleplayCommand, RoleplaySkillScore
from assessment_engine.domain.errors import DomainValidationError
from assessment_engine.domain.hashing import roleplay_key_hash, stable_json
from assessment_engine.domain.ids import new_run_id
from assessment_engine.domain.llm_output import extract_json_object, parse_coach_feedback
from assessment_engine.domain.models import Assessment, CoachFeedback, RoleplayResult
from assessment_engine.domain.prompt_contract import render_user_prompt
from assessment_engine.domain.rating import MAX_RATING, MIN_RATING
from assessment_engine.domain.rubrics import SkillRubric
from assessment_engine.domain.use_cases.common import complete_stage, render_business_context, require_transcript
from assessment_engine.domain.use_cases.deps import StageDeps

COMPONENT_ID = "domain.stage.coach_roleplay"

logger = logging.getLogger(__name__)


async def coach_roleplay(cmd: CoachRoleplayCommand, *, deps: StageDeps) -> RoleplayResult:
    """Coach skills that were already scored outside the judge stage."""
    started = time.perf_counter()
    transcript = require_transcript(cmd.transcript)
    if not cmd.skills:
        raise DomainValidationError("Missing 'transcript' or 'skills' array.")
    for item in cmd.skills:
        if not item.skill.strip():
            raise DomainValidationError("'skills[].skill' must be a non-empty string.")
        if not MIN_RATING <= item.score <= MAX_RATING:
            raise DomainValidationError(f"'skills[].score' must be between {MIN_RATING} and {MAX_RATING}.")

    key_hash = roleplay_key_hash(
        cache_version=deps.cache.cache_version,
        transcript=transcript,
        skills=[item.to_key_data() for item in cmd.skills],
    )
    cached = _cached_result(await deps.cache.get_json("coach-roleplay", key_hash), started=started)
    if cached is not None:
        return cached

    run_id = new_run_id()
    rubric_set = await deps.rubrics.load(deps.settings.default_rubric_set)
    targets: list[tuple[RoleplaySkillScore, SkillRubric]] = []
    for item in cmd.skills:
        rubric = rubric_set.resolve(item.skill)
        if rubric is None:
            logger.warning("skipping unresolved roleplay skill", extra={"stage": "coach-roleplay", "skill": item.skill, "run_id": run_id})
            continue
        targets.append((item, rubric))

    assessments = await asyncio.gather(
        *(_coach_one(item, rubric, transcript=transcript, deps=deps) for item, rubric in targets)
    )
    result = RoleplayResult(
        assessments=list(assessments),
        duration_ms=_elapsed_ms(started),
        run_id=run_id,
        kv_hit=False,
    )
    await deps.cache.put_json(
        "coach-roleplay",
        key_hash,
        result.to_payload(),
        ttl_seconds=deps.settings.roleplay_ttl_seconds,
    )
    return result


async def _coach_one(
    item: RoleplaySkillScore,
    rubric: SkillRubric,
    *,
    transcript: str,
    deps: StageDeps,
) -> Assessment:
    tier = deps.prompts.coach_tier(item.score)
    user_prompt = render_user_prompt(
        template=deps.prompts.roleplay.user_template,
        inputs={
            "skill_name": item.skill,
            "rating": item.score,
            "rubric": stable_json(rubric.to_prompt_data()),
            "transcript": transcript,
            "business_context": render_business_context(deps),
            "improvement_focus": improvement_focus(rubric, item.score),
        },
    )
    content = await complete_stage(deps, deps.prompts.roleplay, user_prompt=user_prompt, hint="coach")

    feedback = parse_coach_feedback(extract_json_object(content))
    if feedback is None:
        logger.warning("roleplay coach output unusable, returning empty feedback", extra={"stage": "coach-roleplay", "skill": item.skill})
        feedback = CoachFeedback()
    return Assessment(
        skill=item.skill,
        rating=item.score,
        strengths=feedback.strengths,
        improvements=feedback.improvements,
        coaching_tips=feedback.coaching_tips,
        improvement_title=tier.title,
    )


def improvement_focus(rubric: SkillRubric, rating: int) -> str:
    next_level = rubric.level(rating + 1)
    if next_level is None:
        return "Focus on general best practices."
    return (
        f"Focus on the characteristics from Level {next_level.level} ('{next_level.name}') "
        "as the primary areas for improvement."
    )


def _cached_result(payload: object, *, started: float) -> RoleplayResult | None:
    if not isinstance(payload, dict):
        return None
    meta = payload.get("meta")
    items = payload.get("assessments")
    if not isinstance(meta, dict) or not isinstance(items, list):
        return None
    try:
        assessments = [Assessment.model_validate(item) for item in items]
    except ValidationError:
        logger.warning("cached roleplay result has invalid shape, treating as miss", extra={"stage": "coach-roleplay"})
        return None
    run_id = meta.get("run_id")
    return RoleplayResult(
        assessments=assessments,
        duration_ms=_elapsed_ms(started),
        run_id=run_id if isinstance(run_id, str) else new_run_id(),
        kv_hit=True,
    )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
