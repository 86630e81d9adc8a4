from __future__ import annotations

from typing import Protocol, runtime_checkable

from assessment_engine.domain.dto import LLMClientRequest, LLMClientResult
from assessment_engine.domain.rubrics import RubricSet


@runtime_checkable
class LLMClient(Protocol):
    """One chat completion per call; retries and timeouts live behind this boundary."""

    async def complete(self, request: LLMClientRequest, *, hint: str) -> LLMClientResult: ...


@runtime_checkable
class CacheStore(Protocol):
    """Key/value backend for JSON text with per-entry TTL.

    Writes are last-write-wins upserts. Backend failures surface as CacheError.
    """

    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str, *, ttl_seconds: int, metadata: dict[str, object]) -> None: ...


@runtime_checkable
class RubricSource(Protocol):
    async def load(self, rubric_set: str) -> RubricSet: ...
