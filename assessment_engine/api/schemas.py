from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

from assessment_engine.domain.error_taxonomy import ErrorCode
from assessment_engine.domain.models import Assessment, LevelCheckGroup


class CamelModel(BaseModel):
    # Wire format of the extension-facing endpoints is camelCase.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    service: str
    cache_backend: str
    llm_backend: str


class QualifySkillsRequest(CamelModel):
    transcript: str = Field(min_length=1)
    all_skills: list[str]
    seller_id: str = Field(min_length=1)


class QualifiedSkillResponse(BaseModel):
    skill: str
    cached: bool


class QualifySkillsResponse(CamelModel):
    qualified_skills: list[QualifiedSkillResponse]
    seller_identity: str


class JudgeRequest(CamelModel):
    transcript: str = Field(min_length=1)
    skill: str = Field(min_length=1)
    seller_id: str = Field(min_length=1)


class JudgeMeta(BaseModel):
    kv_hit: bool


class JudgeResponse(CamelModel):
    skill_key_hash: str
    skill_name: str
    rating: int
    level_checks: list[LevelCheckGroup]
    raw_judge: dict[str, Any] | None
    meta: JudgeMeta
    assessment: Assessment | None = None


class CoachRequest(CamelModel):
    skill_name: str = Field(min_length=1)
    rating: StrictInt = Field(ge=1, le=5)
    level_checks: list[LevelCheckGroup]
    skill_key_hash: str = Field(min_length=1)


class RoleplaySkillRequest(BaseModel):
    skill: str = Field(min_length=1)
    score: StrictInt = Field(ge=1, le=5)


class CoachRoleplayRequest(BaseModel):
    transcript: str = Field(min_length=1)
    skills: list[RoleplaySkillRequest] = Field(min_length=1)


class RoleplayMeta(BaseModel):
    duration_ms: int
    run_id: str
    kv_hit: bool


class CoachRoleplayResponse(BaseModel):
    assessments: list[Assessment]
    meta: RoleplayMeta


class AssessRequest(CamelModel):
    transcript: str = Field(min_length=1)
    seller_id: str = Field(min_length=1)
    skills: list[str] = Field(min_length=1)


class SkillFailureResponse(BaseModel):
    skill: str
    stage: Literal["judge", "coach"]
    error_code: ErrorCode
    error: str
    recoverable: bool


class AssessMeta(BaseModel):
    duration_ms: int
    run_id: str
    kv_hits: int
    kv_misses: int


class AssessResponse(BaseModel):
    assessments: list[Assessment]
    failures: list[SkillFailureResponse]
    meta: AssessMeta


class CacheStatusRequest(CamelModel):
    transcript: str = Field(min_length=1)
    seller_id: str = Field(min_length=1)
    skills: list[str]


class CacheStatusResponse(BaseModel):
    cached: dict[str, bool]
