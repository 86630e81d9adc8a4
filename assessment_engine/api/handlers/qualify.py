from __future__ import annotations

from assessment_engine.api.handlers.deps import ApiDeps
from assessment_engine.api.schemas import QualifiedSkillResponse, QualifySkillsRequest, QualifySkillsResponse
from assessment_engine.domain.dto import QualifySkillsCommand
from assessment_engine.domain.use_cases.qualify import qualify_skills

COMPONENT_ID = "api.qualify_skills"


async def qualify_skills_handler(*, request: QualifySkillsRequest, api_deps: ApiDeps) -> QualifySkillsResponse:
    result = await qualify_skills(
        QualifySkillsCommand(
            transcript=request.transcript,
            all_skills=request.all_skills,
            seller_id=request.seller_id,
        ),
        deps=api_deps.stage,
    )
    return QualifySkillsResponse(
        qualified_skills=[QualifiedSkillResponse(skill=item.skill, cached=item.cached) for item in result.qualified_skills],
        seller_identity=result.seller_identity,
    )
