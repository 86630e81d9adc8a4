from __future__ import annotations


class DomainError(Exception):
    pass


class DomainValidationError(DomainError):
    pass


class DomainDependencyError(DomainError):
    pass


class UpstreamError(DomainDependencyError):
    """Non-success answer (or transport failure) from the LLM provider."""

    def __init__(self, message: str, *, status: int | None = None, body_snippet: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body_snippet = body_snippet


class LLMTimeoutError(DomainDependencyError):
    def __init__(self, message: str, *, timeout_ms: int) -> None:
        super().__init__(message)
        self.timeout_ms = timeout_ms


class LLMConfigurationError(DomainDependencyError):
    pass


class CacheError(DomainDependencyError):
    pass


class RubricSourceError(DomainDependencyError):
    pass


class ParseError(DomainError):
    pass


class JudgeParseError(ParseError):
    pass


class UnresolvedSkillError(DomainError):
    def __init__(self, skill_name: str) -> None:
        super().__init__(f"Could not resolve skill: {skill_name}")
        self.skill_name = skill_name
