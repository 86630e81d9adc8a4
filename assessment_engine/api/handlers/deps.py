from __future__ import annotations

from dataclasses import dataclass

from assessment_engine.domain.use_cases.deps import StageDeps


@dataclass(frozen=True)
class ApiDeps:
    stage: StageDeps
    cache_backend: str
    llm_backend: str
