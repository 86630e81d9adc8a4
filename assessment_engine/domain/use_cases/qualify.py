from __future__ import annotations

import asyncio
import logging

from assessment_engine.domain.dto import QualifySkillsCommand
from assessment_engine.domain.errors import RubricSourceError
from assessment_engine.domain.hashing import qualification_key_hash, skill_key_hash
from assessment_engine.domain.llm_output import extract_json_object, filter_to_catalog, parse_qualification
from assessment_engine.domain.models import QualificationResult, QualifiedSkill
from assessment_engine.domain.prompt_contract import render_pretty_json, render_user_prompt
from assessment_engine.domain.use_cases.common import complete_stage, require_skill_names, require_text, require_transcript
from assessment_engine.domain.use_cases.deps import StageDeps

COMPONENT_ID = "domain.stage.qualify"

logger = logging.getLogger(__name__)


async def qualify_skills(cmd: QualifySkillsCommand, *, deps: StageDeps) -> QualificationResult:
    """Select the catalog skills with enough evidence in the call to be graded.

    A model answer that cannot be parsed degrades to no qualified skills and is
    not cached, so the next request asks the model again.
    """
    transcript = require_transcript(cmd.transcript)
    seller_id = require_text(cmd.seller_id, "sellerId")
    all_skills = require_skill_names(cmd.all_skills, "allSkills")
    cache_version = deps.cache.cache_version

    key_hash = qualification_key_hash(
        cache_version=cache_version,
        transcript=transcript,
        seller_id=seller_id,
        all_skills=all_skills,
    )
    cached = QualificationResult.from_payload(await deps.cache.get_json("qualify", key_hash))
    if cached is not None:
        return cached

    user_prompt = render_user_prompt(
        template=deps.prompts.qualify.user_template,
        inputs={
            "seller_id": seller_id,
            "transcript": transcript,
            "catalog": render_pretty_json(all_skills),
            "competency_hints": await _competency_hints_block(deps),
        },
    )
    content = await complete_stage(deps, deps.prompts.qualify, user_prompt=user_prompt, hint="qualify")

    names = parse_qualification(extract_json_object(content))
    degraded = names is None
    if degraded:
        logger.warning(
            "qualification output unusable, no skills qualified",
            extra={"stage": "qualify", "cache_key": deps.cache.key("qualify", key_hash)},
        )

    accepted, rejected = filter_to_catalog(names or [], all_skills)
    if rejected:
        logger.warning("dropped skills not in catalog: %s", rejected, extra={"stage": "qualify"})

    cached_flags = await asyncio.gather(
        *(
            deps.cache.exists(
                "assessment",
                skill_key_hash(
                    cache_version=cache_version,
                    transcript=transcript,
                    seller_id=seller_id,
                    skill_name=name,
                ),
            )
            for name in accepted
        )
    )
    result = QualificationResult(
        qualified_skills=[QualifiedSkill(skill=name, cached=flag) for name, flag in zip(accepted, cached_flags)],
        seller_identity=seller_id,
    )

    if not degraded:
        await deps.cache.put_json("qualify", key_hash, result.to_payload(), ttl_seconds=deps.settings.qualify_ttl_seconds)
    return result


async def _competency_hints_block(deps: StageDeps) -> str:
    try:
        rubric_set = await deps.rubrics.load(deps.settings.default_rubric_set)
    except RubricSourceError as exc:
        logger.warning("competency hints unavailable: %s", exc, extra={"stage": "qualify"})
        return ""
    hints = rubric_set.competency_hints()
    if not hints:
        return ""
    return "**Competency Hints (for context only, not exhaustive):**\n" + render_pretty_json(hints)
