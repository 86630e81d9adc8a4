from __future__ import annotations

from assessment_engine.api.handlers.deps import ApiDeps
from assessment_engine.api.schemas import CoachRequest
from assessment_engine.domain.dto import CoachSkillCommand
from assessment_engine.domain.models import Assessment
from assessment_engine.domain.use_cases.coach import coach_skill

COMPONENT_ID = "api.coach"


async def coach_handler(*, request: CoachRequest, api_deps: ApiDeps) -> Assessment:
    return await coach_skill(
        CoachSkillCommand(
            skill_name=request.skill_name,
            rating=request.rating,
            level_checks=request.level_checks,
            skill_key_hash=request.skill_key_hash,
        ),
        deps=api_deps.stage,
    )
