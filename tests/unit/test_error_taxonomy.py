import pytest

from assessment_engine.domain.error_taxonomy import (
    classify_error,
    error_code_for,
    http_status_for,
    is_canonical_error_code,
)
from assessment_engine.domain.errors import (
    CacheError,
    DomainValidationError,
    JudgeParseError,
    LLMConfigurationError,
    LLMTimeoutError,
    RubricSourceError,
    UnresolvedSkillError,
    UpstreamError,
)


@pytest.mark.unit
def test_canonical_error_codes_are_enforced() -> None:
    assert is_canonical_error_code("llm_timeout") is True
    assert is_canonical_error_code("unknown_error") is False


@pytest.mark.unit
@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (DomainValidationError("Missing 'transcript'."), "validation_error"),
        (LLMTimeoutError("judge API call timed out after 5ms", timeout_ms=5), "llm_timeout"),
        (LLMConfigurationError("judge missing LLM_API_KEY"), "llm_misconfigured"),
        (UpstreamError("judge 502: bad gateway", status=502), "llm_upstream_failed"),
        (JudgeParseError("bad json"), "llm_output_unparsable"),
        (UnresolvedSkillError("Juggling"), "skill_unresolved"),
        (RubricSourceError("missing file"), "rubric_unavailable"),
        (CacheError("db down"), "cache_unavailable"),
        (RuntimeError("boom"), "internal_error"),
    ],
)
def test_exceptions_map_to_error_codes(exc: Exception, code: str) -> None:
    assert error_code_for(exc) == code


@pytest.mark.unit
def test_only_validation_errors_are_client_errors() -> None:
    assert http_status_for("validation_error") == 400
    assert http_status_for("skill_unresolved") == 500
    assert http_status_for("llm_timeout") == 500
    assert http_status_for("not_a_code") == 500


@pytest.mark.unit
def test_retry_classification_distinguishes_terminal_and_recoverable() -> None:
    assert classify_error("llm_timeout") == "recoverable"
    assert classify_error("llm_upstream_failed") == "recoverable"
    assert classify_error("validation_error") == "terminal"
    assert classify_error("skill_unresolved") == "terminal"


@pytest.mark.unit
def test_unresolved_skill_message_names_the_skill() -> None:
    assert str(UnresolvedSkillError("Juggling")) == "Could not resolve skill: Juggling"
