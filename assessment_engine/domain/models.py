from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from assessment_engine.domain.error_taxonomy import ErrorCode

Polarity = Literal["positive", "limitation"]


def coerce_polarity(value: object) -> object:
    # Older rubrics and model outputs spell the avoided-behavior polarity "negative".
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "negative":
            return "limitation"
        return lowered
    return value


class LevelCheck(BaseModel):
    # One characteristic evaluated at one level in one grading run.
    model_config = ConfigDict(extra="ignore")

    characteristic: str
    polarity: Polarity = "positive"
    # Rating depends on met being exactly true, so string "true" is rejected.
    met: StrictBool
    evidence: list[str] = Field(default_factory=list)
    reason: str = ""

    @field_validator("polarity", mode="before")
    @classmethod
    def _normalize_polarity(cls, value: object) -> object:
        return coerce_polarity(value)


class LevelCheckGroup(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: int = Field(ge=0)
    name: str = ""
    checks: list[LevelCheck] = Field(default_factory=list)


class ImprovementExample(BaseModel):
    model_config = ConfigDict(extra="ignore")

    instead_of: str = ""
    try_this: str = ""


class Improvement(BaseModel):
    model_config = ConfigDict(extra="ignore")

    point: str
    example: ImprovementExample = Field(default_factory=ImprovementExample)


class CoachFeedback(BaseModel):
    model_config = ConfigDict(extra="ignore")

    strengths: list[str] = Field(default_factory=list)
    improvements: list[Improvement] = Field(default_factory=list)
    coaching_tips: list[str] = Field(default_factory=list)


class Assessment(BaseModel):
    # Unit persisted under the assessment namespace and returned to callers.
    skill: str
    rating: int = Field(ge=1, le=5)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[Improvement] = Field(default_factory=list)
    coaching_tips: list[str] = Field(default_factory=list)
    improvement_title: str
    level_checks: list[LevelCheckGroup] = Field(default_factory=list)


@dataclass(frozen=True)
class JudgeResult:
    skill_key_hash: str
    skill_name: str
    rating: int
    level_checks: list[LevelCheckGroup]
    raw_judge: dict[str, Any] | None
    kv_hit: bool
    # Present only when the result came from the assessment cache.
    assessment: Assessment | None = None


@dataclass(frozen=True)
class QualifiedSkill:
    skill: str
    cached: bool


@dataclass(frozen=True)
class QualificationResult:
    qualified_skills: list[QualifiedSkill]
    seller_identity: str

    def to_payload(self) -> dict[str, object]:
        return {
            "qualifiedSkills": [{"skill": item.skill, "cached": item.cached} for item in self.qualified_skills],
            "sellerIdentity": self.seller_identity,
        }

    @classmethod
    def from_payload(cls, payload: object) -> QualificationResult | None:
        if not isinstance(payload, dict):
            return None
        items = payload.get("qualifiedSkills")
        seller_identity = payload.get("sellerIdentity")
        if not isinstance(items, list) or not isinstance(seller_identity, str):
            return None
        qualified: list[QualifiedSkill] = []
        for item in items:
            if not isinstance(item, dict) or not isinstance(item.get("skill"), str):
                return None
            qualified.append(QualifiedSkill(skill=item["skill"], cached=item.get("cached") is True))
        return cls(qualified_skills=qualified, seller_identity=seller_identity)


@dataclass(frozen=True)
class SkillFailure:
    skill: str
    stage: Literal["judge", "coach"]
    error_code: ErrorCode
    error: str
    recoverable: bool


@dataclass(frozen=True)
class PipelineResult:
    assessments: list[Assessment]
    failures: list[SkillFailure]
    duration_ms: int
    run_id: str
    kv_hits: int
    kv_misses: int


@dataclass(frozen=True)
class RoleplayResult:
    assessments: list[Assessment]
    duration_ms: int
    run_id: str
    kv_hit: bool

    def to_payload(self) -> dict[str, object]:
        return {
            "assessments": [item.model_dump(mode="json") for item in self.assessments],
            "meta": {"duration_ms": self.duration_ms, "run_id": self.run_id, "kv_hit": self.kv_hit},
        }
