from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from assessment_engine.domain.cache import JsonCache
from assessment_engine.domain.contracts import LLMClient, RubricSource
from assessment_engine.domain.prompt_contract import ModelRole, PromptContract


@dataclass(frozen=True)
class StageSettings:
    judge_model: str
    coach_model: str
    default_rubric_set: str
    qualify_ttl_seconds: int
    assessment_ttl_seconds: int
    roleplay_ttl_seconds: int
    business_context: Mapping[str, object] = field(default_factory=dict)

    def model_for(self, role: ModelRole) -> str:
        return self.coach_model if role == "coach" else self.judge_model


@dataclass(frozen=True)
class StageDeps:
    llm: LLMClient
    cache: JsonCache
    rubrics: RubricSource
    prompts: PromptContract
    settings: StageSettings
