from __future__ import annotations

from assessment_engine.api.handlers.deps import ApiDeps
from assessment_engine.api.schemas import CoachRoleplayRequest, CoachRoleplayResponse, RoleplayMeta
from assessment_engine.domain.dto import CoachRoleplayCommand, RoleplaySkillScore
from assessment_engine.domain.use_cases.coach_roleplay import coach_roleplay

COMPONENT_ID = "api.coach_roleplay"


async def coach_roleplay_handler(*, request: CoachRoleplayRequest, api_deps: ApiDeps) -> CoachRoleplayResponse:
    result = await coach_roleplay(
        CoachRoleplayCommand(
            transcript=request.transcript,
            skills=[RoleplaySkillScore(skill=item.skill, score=item.score) for item in request.skills],
        ),
        deps=api_deps.stage,
    )
    return CoachRoleplayResponse(
        assessments=result.assessments,
        meta=RoleplayMeta(duration_ms=result.duration_ms, run_id=result.run_id, kv_hit=result.kv_hit),
    )
