from __future__ import annotations

from collections.abc import Sequence
import logging
import re

from assessment_engine.domain.dto import CoachSkillCommand
from assessment_engine.domain.errors import DomainValidationError
from assessment_engine.domain.hashing import stable_json
from assessment_engine.domain.llm_output import extract_json_object, parse_coach_feedback
from assessment_engine.domain.models import Assessment, CoachFeedback, LevelCheckGroup
from assessment_engine.domain.prompt_contract import render_pretty_json, render_user_prompt
from assessment_engine.domain.rating import MAX_RATING, MIN_RATING, compute_highest_demonstrated
from assessment_engine.domain.use_cases.common import complete_stage, render_business_context, require_text
from assessment_engine.domain.use_cases.deps import StageDeps

COMPONENT_ID = "domain.stage.coach"

logger = logging.getLogger(__name__)

SKILL_KEY_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


async def coach_skill(cmd: CoachSkillCommand, *, deps: StageDeps) -> Assessment:
    """Generate tiered feedback for a graded skill and persist the assessment."""
    skill_name = require_text(cmd.skill_name, "skillName")
    key_hash = require_text(cmd.skill_key_hash, "skillKeyHash")
    if not MIN_RATING <= cmd.rating <= MAX_RATING:
        raise DomainValidationError(f"'rating' must be between {MIN_RATING} and {MAX_RATING}.")
    if not SKILL_KEY_HASH_RE.fullmatch(key_hash):
        raise DomainValidationError("'skillKeyHash' must be a lowercase sha256 hex digest.")
    if cmd.level_checks:
        derived = compute_highest_demonstrated(cmd.level_checks)
        if cmd.rating != derived:
            raise DomainValidationError(f"'rating' {cmd.rating} does not match the level checks, which rate {derived}.")

    tier = deps.prompts.coach_tier(cmd.rating)
    user_prompt = render_user_prompt(
        template=deps.prompts.coach.user_template,
        inputs={
            "skill_name": skill_name,
            "rating": cmd.rating,
            "analysis": stable_json({"level_checks": [group.model_dump(mode="json") for group in cmd.level_checks]}),
            "business_context": render_business_context(deps),
            "improvement_title": tier.title,
            "improvement_instruction": tier.improvement_instruction,
            "tip_instruction": tier.tip_instruction,
            "next_level_focus": describe_next_level(cmd.level_checks, cmd.rating),
        },
    )
    content = await complete_stage(deps, deps.prompts.coach, user_prompt=user_prompt, hint="coach")

    feedback = parse_coach_feedback(extract_json_object(content))
    if feedback is None:
        logger.warning("coach output unusable, returning empty feedback", extra={"stage": "coach", "skill": skill_name})
        feedback = CoachFeedback()

    assessment = Assessment(
        skill=skill_name,
        rating=cmd.rating,
        strengths=feedback.strengths,
        improvements=feedback.improvements,
        coaching_tips=feedback.coaching_tips,
        improvement_title=tier.title,
        level_checks=list(cmd.level_checks),
    )
    await deps.cache.put_json(
        "assessment",
        key_hash,
        assessment.model_dump(mode="json"),
        ttl_seconds=deps.settings.assessment_ttl_seconds,
    )
    return assessment


def describe_next_level(level_checks: Sequence[LevelCheckGroup], rating: int) -> str:
    next_level = rating + 1
    group = next((item for item in level_checks if item.level == next_level), None)
    if group is None:
        return "No higher level was graded; focus on advanced, strategic opportunities."
    unmet = [check.characteristic for check in group.checks if check.met is not True]
    label = f"Level {next_level}" + (f" ('{group.name}')" if group.name else "")
    if not unmet:
        return f"Every {label} characteristic was met; focus on consistency across the call."
    return f"Unmet characteristics at {label}:\n{render_pretty_json(unmet)}"
