from __future__ import annotations

import asyncio
import logging
import time

from assessment_engine.domain.dto import AssessSkillsCommand, CoachSkillCommand, JudgeSkillCommand
from assessment_engine.domain.error_taxonomy import classify_error, error_code_for
from assessment_engine.domain.errors import DomainValidationError
from assessment_engine.domain.ids import new_run_id
from assessment_engine.domain.models import Assessment, JudgeResult, PipelineResult, SkillFailure
from assessment_engine.domain.use_cases.coach import coach_skill
from assessment_engine.domain.use_cases.common import require_skill_names, require_text, require_transcript
from assessment_engine.domain.use_cases.deps import StageDeps
from assessment_engine.domain.use_cases.judge import judge_skill

COMPONENT_ID = "domain.pipeline.assess"

logger = logging.getLogger(__name__)


async def assess_skills(cmd: AssessSkillsCommand, *, deps: StageDeps) -> PipelineResult:
    """Judge every skill, coach the cache misses, and collect per-skill failures.

    One skill failing never discards the others; it is reported in `failures`.
    Assessments come back in the order the skills were requested.
    """
    started = time.perf_counter()
    run_id = cmd.run_id or new_run_id()
    transcript = require_transcript(cmd.transcript)
    seller_id = require_text(cmd.seller_id, "sellerId")
    skills = list(dict.fromkeys(require_skill_names(cmd.skills, "skills")))
    if not skills:
        raise DomainValidationError("Missing 'skills' array.")

    logger.info("assessment run started for %d skills", len(skills), extra={"run_id": run_id, "stage": "assess"})

    judged = await asyncio.gather(
        *(_judge_isolated(skill, transcript=transcript, seller_id=seller_id, deps=deps, run_id=run_id) for skill in skills)
    )

    assessments: dict[str, Assessment] = {}
    failures: list[SkillFailure] = []
    to_coach: list[tuple[str, JudgeResult]] = []
    for skill, outcome in zip(skills, judged):
        if isinstance(outcome, SkillFailure):
            failures.append(outcome)
        elif outcome.kv_hit and outcome.assessment is not None:
            assessments[skill] = outcome.assessment
        else:
            to_coach.append((skill, outcome))
    kv_hits = len(assessments)

    coached = await asyncio.gather(
        *(_coach_isolated(skill, result, deps=deps, run_id=run_id) for skill, result in to_coach)
    )
    for (skill, _), outcome in zip(to_coach, coached):
        if isinstance(outcome, SkillFailure):
            failures.append(outcome)
        else:
            assessments[skill] = outcome

    order = {skill: idx for idx, skill in enumerate(skills)}
    failures.sort(key=lambda item: order[item.skill])
    duration_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        "assessment run finished: %d assessed, %d failed",
        len(assessments),
        len(failures),
        extra={"run_id": run_id, "stage": "assess", "duration_ms": duration_ms},
    )
    return PipelineResult(
        assessments=[assessments[skill] for skill in skills if skill in assessments],
        failures=failures,
        duration_ms=duration_ms,
        run_id=run_id,
        kv_hits=kv_hits,
        kv_misses=len(skills) - kv_hits,
    )


async def _judge_isolated(
    skill: str,
    *,
    transcript: str,
    seller_id: str,
    deps: StageDeps,
    run_id: str,
) -> JudgeResult | SkillFailure:
    try:
        return await judge_skill(JudgeSkillCommand(transcript=transcript, skill=skill, seller_id=seller_id), deps=deps)
    except Exception as exc:
        return _failure(skill, "judge", exc, run_id=run_id)


async def _coach_isolated(skill: str, judged: JudgeResult, *, deps: StageDeps, run_id: str) -> Assessment | SkillFailure:
    try:
        return await coach_skill(
            CoachSkillCommand(
                skill_name=judged.skill_name,
                rating=judged.rating,
                level_checks=judged.level_checks,
                skill_key_hash=judged.skill_key_hash,
            ),
            deps=deps,
        )
    except Exception as exc:
        return _failure(skill, "coach", exc, run_id=run_id)


def _failure(skill: str, stage: str, exc: Exception, *, run_id: str) -> SkillFailure:
    code = error_code_for(exc)
    logger.warning(
        "%s failed for skill (%s): %s",
        stage,
        code,
        exc,
        exc_info=code == "internal_error",
        extra={"run_id": run_id, "stage": stage, "skill": skill},
    )
    return SkillFailure(
        skill=skill,
        stage=stage,  # type: ignore[arg-type]
        error_code=code,
        error=str(exc),
        recoverable=classify_error(code) == "recoverable",
    )
