from __future__ import annotations

import logging

from assessment_engine.domain.dto import JudgeSkillCommand
from assessment_engine.domain.errors import JudgeParseError, UnresolvedSkillError
from assessment_engine.domain.hashing import skill_key_hash, stable_json
from assessment_engine.domain.llm_output import extract_json_object, parse_judge
from assessment_engine.domain.models import JudgeResult
from assessment_engine.domain.prompt_contract import render_user_prompt
from assessment_engine.domain.rating import compute_highest_demonstrated
from assessment_engine.domain.use_cases.common import (
    complete_stage,
    load_cached_assessment,
    require_text,
    require_transcript,
)
from assessment_engine.domain.use_cases.deps import StageDeps

COMPONENT_ID = "domain.stage.judge"

logger = logging.getLogger(__name__)


async def judge_skill(cmd: JudgeSkillCommand, *, deps: StageDeps) -> JudgeResult:
    """Grade one skill against its rubric, or return the cached assessment."""
    transcript = require_transcript(cmd.transcript)
    skill = require_text(cmd.skill, "skill")
    seller_id = require_text(cmd.seller_id, "sellerId")

    key_hash = skill_key_hash(
        cache_version=deps.cache.cache_version,
        transcript=transcript,
        seller_id=seller_id,
        skill_name=skill,
    )
    cached = await load_cached_assessment(deps, key_hash)
    if cached is not None:
        logger.info("judge served from cache", extra={"stage": "judge", "skill": skill})
        return JudgeResult(
            skill_key_hash=key_hash,
            skill_name=cached.skill,
            rating=cached.rating,
            level_checks=cached.level_checks,
            raw_judge=None,
            kv_hit=True,
            assessment=cached,
        )

    rubric_set = await deps.rubrics.load(deps.settings.default_rubric_set)
    rubric = rubric_set.resolve(skill)
    # Catalog-only entries have no levels to grade against.
    if rubric is None or not rubric.levels:
        raise UnresolvedSkillError(skill)

    user_prompt = render_user_prompt(
        template=deps.prompts.judge.user_template,
        inputs={
            "seller_id": seller_id,
            "transcript": transcript,
            "rubric": stable_json(rubric.to_prompt_data()),
            "reasoning_steps": deps.prompts.rendered_reasoning_steps(),
        },
    )
    content = await complete_stage(deps, deps.prompts.judge, user_prompt=user_prompt, hint="judge")

    payload = extract_json_object(content)
    if payload is None:
        raise JudgeParseError(f"Judge returned invalid or unparsable JSON for {rubric.skill_name}.")
    level_checks = parse_judge(payload)
    if level_checks is None:
        raise JudgeParseError(f"Judge output for {rubric.skill_name} does not match the level_checks schema.")

    rating = compute_highest_demonstrated(level_checks)
    logger.info("judge graded skill at %d", rating, extra={"stage": "judge", "skill": rubric.skill_name})
    return JudgeResult(
        skill_key_hash=key_hash,
        skill_name=rubric.skill_name,
        rating=rating,
        level_checks=level_checks,
        raw_judge=payload,
        kv_hit=False,
    )
