from __future__ import annotations

import asyncio

from assessment_engine.domain.dto import CacheStatusCommand
from assessment_engine.domain.hashing import skill_key_hash
from assessment_engine.domain.use_cases.common import require_skill_names, require_text, require_transcript
from assessment_engine.domain.use_cases.deps import StageDeps

COMPONENT_ID = "domain.stage.cache_status"


async def check_cache_status(cmd: CacheStatusCommand, *, deps: StageDeps) -> dict[str, bool]:
    """Report which skills already have a cached assessment; never grades."""
    transcript = require_transcript(cmd.transcript)
    seller_id = require_text(cmd.seller_id, "sellerId")
    skills = list(dict.fromkeys(require_skill_names(cmd.skills, "skills")))

    flags = await asyncio.gather(
        *(
            deps.cache.exists(
                "assessment",
                skill_key_hash(
                    cache_version=deps.cache.cache_version,
                    transcript=transcript,
                    seller_id=seller_id,
                    skill_name=skill,
                ),
            )
            for skill in skills
        )
    )
    return dict(zip(skills, flags))
