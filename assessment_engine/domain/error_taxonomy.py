from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from assessment_engine.domain.errors import (
    CacheError,
    DomainValidationError,
    JudgeParseError,
    LLMConfigurationError,
    LLMTimeoutError,
    ParseError,
    RubricSourceError,
    UnresolvedSkillError,
    UpstreamError,
)

# Canonical error vocabulary shared by every stage.
ErrorCode = Literal[
    "validation_error",
    "llm_upstream_failed",
    "llm_timeout",
    "llm_misconfigured",
    "llm_output_unparsable",
    "skill_unresolved",
    "rubric_unavailable",
    "cache_unavailable",
    "internal_error",
]

RetryClassification = Literal["recoverable", "terminal"]

CANONICAL_ERROR_CODES: tuple[ErrorCode, ...] = (
    "validation_error",
    "llm_upstream_failed",
    "llm_timeout",
    "llm_misconfigured",
    "llm_output_unparsable",
    "skill_unresolved",
    "rubric_unavailable",
    "cache_unavailable",
    "internal_error",
)

# A caller may retry the whole stage call for these; the LLM client already
# spent its own retry budget before the error surfaced.
RECOVERABLE_ERROR_CODES: frozenset[ErrorCode] = frozenset(
    {
        "llm_upstream_failed",
        "llm_timeout",
        "llm_output_unparsable",
        "cache_unavailable",
        "internal_error",
    }
)

HTTP_STATUS_BY_CODE: Mapping[ErrorCode, int] = {
    "validation_error": 400,
    "llm_upstream_failed": 500,
    "llm_timeout": 500,
    "llm_misconfigured": 500,
    "llm_output_unparsable": 500,
    "skill_unresolved": 500,
    "rubric_unavailable": 500,
    "cache_unavailable": 500,
    "internal_error": 500,
}

# Ordered: subclasses must come before their bases.
_EXCEPTION_CODES: tuple[tuple[type[Exception], ErrorCode], ...] = (
    (DomainValidationError, "validation_error"),
    (LLMTimeoutError, "llm_timeout"),
    (LLMConfigurationError, "llm_misconfigured"),
    (UpstreamError, "llm_upstream_failed"),
    (JudgeParseError, "llm_output_unparsable"),
    (ParseError, "llm_output_unparsable"),
    (UnresolvedSkillError, "skill_unresolved"),
    (RubricSourceError, "rubric_unavailable"),
    (CacheError, "cache_unavailable"),
)


def is_canonical_error_code(code: str) -> bool:
    return code in CANONICAL_ERROR_CODES


def classify_error(code: ErrorCode) -> RetryClassification:
    if code in RECOVERABLE_ERROR_CODES:
        return "recoverable"
    return "terminal"


def error_code_for(exc: BaseException) -> ErrorCode:
    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(exc, exc_type):
            return code
    return "internal_error"


def http_status_for(code: str) -> int:
    if not is_canonical_error_code(code):
        return 500
    return HTTP_STATUS_BY_CODE[code]  # type: ignore[index]
