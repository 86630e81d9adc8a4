from __future__ import annotations

from collections.abc import Sequence
import logging

from pydantic import ValidationError

from assessment_engine.domain.dto import LLMClientRequest
from assessment_engine.domain.errors import DomainValidationError
from assessment_engine.domain.models import Assessment
from assessment_engine.domain.normalization import normalize_transcript
from assessment_engine.domain.prompt_contract import StagePrompt, render_user_prompt
from assessment_engine.domain.use_cases.deps import StageDeps

logger = logging.getLogger(__name__)


def require_transcript(transcript: str | None) -> str:
    normalized = normalize_transcript(transcript)
    if not normalized:
        raise DomainValidationError("Missing 'transcript'.")
    return normalized


def require_text(value: str | None, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise DomainValidationError(f"Missing '{field_name}'.")
    return value


def require_skill_names(values: Sequence[str] | None, field_name: str) -> list[str]:
    if values is None or isinstance(values, str):
        raise DomainValidationError(f"'{field_name}' must be a list of skill names.")
    names: list[str] = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise DomainValidationError(f"'{field_name}' must contain non-empty strings.")
        names.append(value)
    return names


def render_business_context(deps: StageDeps) -> str:
    return render_user_prompt(
        template=deps.prompts.business_context_template,
        inputs=dict(deps.settings.business_context),
    ).strip()


async def complete_stage(deps: StageDeps, prompt: StagePrompt, *, user_prompt: str, hint: str) -> str:
    request = LLMClientRequest(
        model=deps.settings.model_for(prompt.model_role),
        system_prompt=prompt.system,
        user_prompt=user_prompt,
        temperature=prompt.temperature,
        max_tokens=prompt.max_tokens,
    )
    result = await deps.llm.complete(request, hint=hint)
    return result.content


async def load_cached_assessment(deps: StageDeps, key_hash: str) -> Assessment | None:
    cached = await deps.cache.get_json("assessment", key_hash)
    if cached is None:
        return None
    try:
        return Assessment.model_validate(cached)
    except ValidationError as exc:
        logger.warning(
            "cached assessment has invalid shape, treating as miss: %s",
            exc.errors(include_url=False),
            extra={"cache_key": deps.cache.key("assessment", key_hash)},
        )
        return None
