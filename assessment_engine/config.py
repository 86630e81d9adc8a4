from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Literal

from assessment_engine.clients.openai_compatible import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_MS
from assessment_engine.domain.prompt_contract import DEFAULT_CONTRACT_PATH
from assessment_engine.repositories.rubrics import DEFAULT_RUBRICS_DIR

LLMBackend = Literal["openai-compatible", "stub"]
SUPPORTED_LLM_BACKENDS: tuple[LLMBackend, ...] = ("openai-compatible", "stub")

DAY_SECONDS = 60 * 60 * 24


@dataclass(frozen=True)
class BusinessContext:
    company_name: str = "Turnitin"
    market_vertical: str = "EdTech / Education"
    customer_segment: str = "educational institutions (universities, colleges, schools etc.)"

    def to_prompt_inputs(self) -> dict[str, object]:
        return {
            "company_name": self.company_name,
            "market_vertical": self.market_vertical,
            "customer_segment": self.customer_segment,
        }


@dataclass(frozen=True)
class EngineSettings:
    llm_api_key: str = ""
    llm_base_url: str = DEFAULT_BASE_URL
    llm_timeout_ms: int = DEFAULT_TIMEOUT_MS
    llm_retries: int = 2
    llm_backend: LLMBackend = "openai-compatible"
    judge_model: str = "openai/gpt-4o"
    coach_model: str = "openai/gpt-4o-mini"
    cache_version: str = "1"
    qualify_ttl_seconds: int = 7 * DAY_SECONDS
    assessment_ttl_seconds: int = 14 * DAY_SECONDS
    roleplay_ttl_seconds: int = 7 * DAY_SECONDS
    default_rubric_set: str = "rubrics:v1"
    rubrics_dir: Path = DEFAULT_RUBRICS_DIR
    prompt_contract_path: Path = DEFAULT_CONTRACT_PATH
    allow_origin: str = "*"
    database_url: str | None = None
    business: BusinessContext = BusinessContext()


def settings_from_env() -> EngineSettings:
    defaults = EngineSettings()
    backend = os.getenv("LLM_BACKEND", defaults.llm_backend).strip().lower()
    if backend not in SUPPORTED_LLM_BACKENDS:
        supported = ", ".join(SUPPORTED_LLM_BACKENDS)
        raise ValueError(f"unsupported LLM_BACKEND '{backend}', expected one of: {supported}")

    business_defaults = BusinessContext()
    return EngineSettings(
        llm_api_key=os.getenv("LLM_API_KEY") or os.getenv("OPENROUTER_KEY") or "",
        llm_base_url=_env_str("LLM_BASE_URL", defaults.llm_base_url),
        llm_timeout_ms=_env_int("LLM_TIMEOUT_MS", defaults.llm_timeout_ms),
        llm_retries=_env_non_negative_int("LLM_RETRIES", defaults.llm_retries),
        llm_backend=backend,  # type: ignore[arg-type]
        judge_model=_env_str("JUDGE_MODEL", defaults.judge_model),
        coach_model=_env_str("COACH_MODEL", defaults.coach_model),
        cache_version=_env_str("CACHE_VERSION", defaults.cache_version),
        qualify_ttl_seconds=_env_int("QUALIFY_TTL_SECONDS", defaults.qualify_ttl_seconds),
        assessment_ttl_seconds=_env_int("ASSESSMENT_TTL_SECONDS", defaults.assessment_ttl_seconds),
        roleplay_ttl_seconds=_env_int("ROLEPLAY_TTL_SECONDS", defaults.roleplay_ttl_seconds),
        default_rubric_set=_env_str("DEFAULT_RUBRIC_SET", defaults.default_rubric_set),
        rubrics_dir=Path(_env_str("RUBRICS_DIR", str(defaults.rubrics_dir))),
        prompt_contract_path=Path(_env_str("PROMPT_CONTRACT_PATH", str(defaults.prompt_contract_path))),
        allow_origin=_env_str("ALLOW_ORIGIN", defaults.allow_origin),
        database_url=os.getenv("DATABASE_URL") or None,
        business=BusinessContext(
            company_name=_env_str("BUSINESS_COMPANY_NAME", business_defaults.company_name),
            market_vertical=_env_str("BUSINESS_MARKET_VERTICAL", business_defaults.market_vertical),
            customer_segment=_env_str("BUSINESS_CUSTOMER_SEGMENT", business_defaults.customer_segment),
        ),
    )


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default

    try:
        parsed = int(value)
    except ValueError:
        return default

    if parsed <= 0:
        return default
    return parsed


def _env_non_negative_int(name: str, default: int) -> int:
    # Zero is meaningful here (disables retries), unlike sizes and TTLs.
    value = os.getenv(name)
    if value is None:
        return default

    try:
        parsed = int(value)
    except ValueError:
        return default

    if parsed < 0:
        return default
    return parsed
