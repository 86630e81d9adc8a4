from __future__ import annotations

from collections.abc import Sequence
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from assessment_engine.domain.models import CoachFeedback, LevelCheckGroup

logger = logging.getLogger(__name__)


class QualificationPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    qualifiedSkills: list[str]  # noqa: N815


class JudgePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level_checks: list[LevelCheckGroup] = Field(min_length=1)


def extract_json_object(text: str | None) -> dict[str, object] | None:
    """Parse the outermost {...} span of model output.

    Returns None instead of raising: callers decide whether a missing payload
    degrades the stage or fails it.
    """
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        logger.warning("no JSON object found in model output", extra={"preview": text[:200]})
        return None
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        logger.warning("model output is not valid JSON: %s", exc, extra={"preview": text[:200]})
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def parse_qualification(payload: dict[str, object] | None) -> list[str] | None:
    if payload is None:
        return None
    try:
        return QualificationPayload.model_validate(payload).qualifiedSkills
    except ValidationError as exc:
        logger.warning("qualification payload has invalid shape: %s", exc.errors(include_url=False))
        return None


def parse_judge(payload: dict[str, object] | None) -> list[LevelCheckGroup] | None:
    if payload is None:
        return None
    try:
        return JudgePayload.model_validate(payload).level_checks
    except ValidationError as exc:
        logger.warning("judge payload has invalid shape: %s", exc.errors(include_url=False))
        return None


def parse_coach_feedback(payload: dict[str, object] | None) -> CoachFeedback | None:
    if payload is None:
        return None
    try:
        return CoachFeedback.model_validate(payload)
    except ValidationError as exc:
        logger.warning("coach payload has invalid shape: %s", exc.errors(include_url=False))
        return None


def filter_to_catalog(names: Sequence[str], catalog: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split model-selected names into (accepted, rejected) against the catalog.

    Accepted names keep model order with duplicates removed; only verbatim
    catalog strings are accepted.
    """
    allowed = set(catalog)
    accepted: list[str] = []
    rejected: list[str] = []
    seen: set[str] = set()
    for name in names:
        if name not in allowed:
            rejected.append(name)
            continue
        if name in seen:
            continue
        seen.add(name)
        accepted.append(name)
    return accepted, rejected
