from __future__ import annotations

from assessment_engine.api.handlers.deps import ApiDeps
from assessment_engine.api.schemas import JudgeMeta, JudgeRequest, JudgeResponse
from assessment_engine.domain.dto import JudgeSkillCommand
from assessment_engine.domain.use_cases.judge import judge_skill

COMPONENT_ID = "api.judge"


async def judge_handler(*, request: JudgeRequest, api_deps: ApiDeps) -> JudgeResponse:
    result = await judge_skill(
        JudgeSkillCommand(transcript=request.transcript, skill=request.skill, seller_id=request.seller_id),
        deps=api_deps.stage,
    )
    return JudgeResponse(
        skill_key_hash=result.skill_key_hash,
        skill_name=result.skill_name,
        rating=result.rating,
        level_checks=result.level_checks,
        raw_judge=result.raw_judge,
        meta=JudgeMeta(kv_hit=result.kv_hit),
        assessment=result.assessment,
    )
