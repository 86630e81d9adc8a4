from __future__ import annotations

from assessment_engine.api.handlers.deps import ApiDeps
from assessment_engine.api.schemas import AssessMeta, AssessRequest, AssessResponse, SkillFailureResponse
from assessment_engine.domain.dto import AssessSkillsCommand
from assessment_engine.domain.use_cases.pipeline import assess_skills

COMPONENT_ID = "api.assess"


async def assess_handler(*, request: AssessRequest, api_deps: ApiDeps) -> AssessResponse:
    """Full judge-then-coach run for a list of skills."""
    result = await assess_skills(
        AssessSkillsCommand(transcript=request.transcript, seller_id=request.seller_id, skills=request.skills),
        deps=api_deps.stage,
    )
    return AssessResponse(
        assessments=result.assessments,
        failures=[
            SkillFailureResponse(
                skill=item.skill,
                stage=item.stage,
                error_code=item.error_code,
                error=item.error,
                recoverable=item.recoverable,
            )
            for item in result.failures
        ],
        meta=AssessMeta(
            duration_ms=result.duration_ms,
            run_id=result.run_id,
            kv_hits=result.kv_hits,
            kv_misses=result.kv_misses,
        ),
    )
