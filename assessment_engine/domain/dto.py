from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from assessment_engine.domain.models import LevelCheckGroup


@dataclass(frozen=True)
class LLMClientRequest:
    model: str
    system_prompt: str
    user_prompt: str
    temperature: float
    max_tokens: int
    json_mode: bool = True

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": self.user_prompt},
            ],
        }
        if self.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload


@dataclass(frozen=True)
class LLMClientResult:
    content: str
    raw: dict[str, Any]
    latency_ms: int


@dataclass(frozen=True)
class QualifySkillsCommand:
    transcript: str
    all_skills: list[str]
    seller_id: str


@dataclass(frozen=True)
class JudgeSkillCommand:
    transcript: str
    skill: str
    seller_id: str


@dataclass(frozen=True)
class CoachSkillCommand:
    skill_name: str
    rating: int
    level_checks: list[LevelCheckGroup]
    skill_key_hash: str


@dataclass(frozen=True)
class RoleplaySkillScore:
    skill: str
    score: int

    def to_key_data(self) -> dict[str, object]:
        return {"skill": self.skill, "score": self.score}


@dataclass(frozen=True)
class CoachRoleplayCommand:
    transcript: str
    skills: list[RoleplaySkillScore]


@dataclass(frozen=True)
class AssessSkillsCommand:
    transcript: str
    seller_id: str
    skills: list[str]
    run_id: str | None = None


@dataclass(frozen=True)
class CacheStatusCommand:
    transcript: str
    seller_id: str
    skills: list[str] = field(default_factory=list)
