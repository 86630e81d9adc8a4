from __future__ import annotations

from assessment_engine.api.handlers.deps import ApiDeps
from assessment_engine.api.schemas import CacheStatusRequest, CacheStatusResponse
from assessment_engine.domain.dto import CacheStatusCommand
from assessment_engine.domain.use_cases.cache_status import check_cache_status

COMPONENT_ID = "api.check_cache_status"


async def check_cache_status_handler(*, request: CacheStatusRequest, api_deps: ApiDeps) -> CacheStatusResponse:
    cached = await check_cache_status(
        CacheStatusCommand(transcript=request.transcript, seller_id=request.seller_id, skills=request.skills),
        deps=api_deps.stage,
    )
    return CacheStatusResponse(cached=cached)
