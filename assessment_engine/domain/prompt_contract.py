from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
import re
from typing import Literal

import yaml

from assessment_engine.domain.hashing import stable_json

ModelRole = Literal["judge", "coach"]

DEFAULT_CONTRACT_PATH = Path(__file__).resolve().parent.parent / "prompts" / "contract.v1.yaml"
PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_.-]+)\s*\}\}")
JUDGE_REASONING_STEPS = 7

REQUIRED_PLACEHOLDERS: dict[str, frozenset[str]] = {
    "qualify": frozenset({"seller_id", "transcript", "catalog", "competency_hints"}),
    "judge": frozenset({"seller_id", "transcript", "rubric", "reasoning_steps"}),
    "coach": frozenset(
        {
            "skill_name",
            "rating",
            "analysis",
            "business_context",
            "improvement_title",
            "improvement_instruction",
            "tip_instruction",
            "next_level_focus",
        }
    ),
    "roleplay": frozenset({"skill_name", "rating", "rubric", "transcript", "business_context", "improvement_focus"}),
}
BUSINESS_CONTEXT_PLACEHOLDERS = frozenset({"company_name", "market_vertical", "customer_segment"})


@dataclass(frozen=True)
class StagePrompt:
    system: str
    user_template: str
    model_role: ModelRole
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class CoachTier:
    name: str
    min_rating: int
    title: str
    improvement_instruction: str
    tip_instruction: str


@dataclass(frozen=True)
class PromptContract:
    contract_version: str
    qualify: StagePrompt
    judge: StagePrompt
    judge_reasoning_steps: tuple[str, ...]
    coach: StagePrompt
    coach_tiers: tuple[CoachTier, ...]
    roleplay: StagePrompt
    business_context_template: str

    def coach_tier(self, rating: int) -> CoachTier:
        # Tiers are stored highest min_rating first.
        for tier in self.coach_tiers:
            if rating >= tier.min_rating:
                return tier
        return self.coach_tiers[-1]

    def rendered_reasoning_steps(self) -> str:
        return "\n".join(f"{idx}.  {step}" for idx, step in enumerate(self.judge_reasoning_steps, start=1))


def load_prompt_contract(*, file_path: str | Path | None = None) -> PromptContract:
    path = Path(file_path) if file_path is not None else DEFAULT_CONTRACT_PATH
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("prompt contract must be a YAML object")
    return parse_prompt_contract(data)


def parse_prompt_contract(data: dict[str, object]) -> PromptContract:
    contract_version = _required_str(data, "contract_version")
    stages_raw = _required_obj(data, "stages")

    stages = {name: _parse_stage(_required_obj(stages_raw, name), stage=name) for name in REQUIRED_PLACEHOLDERS}

    judge_raw = _required_obj(stages_raw, "judge")
    steps = tuple(_required_str_list(judge_raw, "reasoning_steps"))
    if len(steps) != JUDGE_REASONING_STEPS:
        raise ValueError(f"stages.judge.reasoning_steps must list exactly {JUDGE_REASONING_STEPS} steps")

    coach_raw = _required_obj(stages_raw, "coach")
    tiers_raw = _required_list(coach_raw, "tiers")
    if not tiers_raw:
        raise ValueError("stages.coach.tiers must contain at least one tier")
    tiers = tuple(
        sorted(
            (
                CoachTier(
                    name=_required_str(item, "name"),
                    min_rating=_required_int(item, "min_rating"),
                    title=_required_str(item, "title"),
                    improvement_instruction=_required_str(item, "improvement_instruction"),
                    tip_instruction=_required_str(item, "tip_instruction"),
                )
                for item in _objects(tiers_raw, "stages.coach.tiers")
            ),
            key=lambda tier: tier.min_rating,
            reverse=True,
        )
    )

    business_context = _required_str(data, "business_context_template")
    missing = BUSINESS_CONTEXT_PLACEHOLDERS - template_placeholders(business_context)
    if missing:
        raise ValueError(f"business_context_template is missing placeholders: {', '.join(sorted(missing))}")

    return PromptContract(
        contract_version=contract_version,
        qualify=stages["qualify"],
        judge=stages["judge"],
        judge_reasoning_steps=steps,
        coach=stages["coach"],
        coach_tiers=tiers,
        roleplay=stages["roleplay"],
        business_context_template=business_context,
    )


def template_placeholders(template: str) -> set[str]:
    return {match.group(1) for match in PLACEHOLDER_RE.finditer(template)}


def render_user_prompt(*, template: str, inputs: dict[str, object]) -> str:
    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        value = _lookup_dot_path(inputs, key)
        if value is None:
            raise ValueError(f"missing placeholder value: {key}")
        if isinstance(value, (dict, list, tuple)):
            return stable_json(value)
        return str(value)

    return PLACEHOLDER_RE.sub(_replace, template)


def render_pretty_json(value: object) -> str:
    return json.dumps(value, ensure_ascii=False, indent=2)


def _parse_stage(raw: dict[str, object], *, stage: str) -> StagePrompt:
    model_role = _required_str(raw, "model_role")
    if model_role not in ("judge", "coach"):
        raise ValueError(f"stages.{stage}.model_role must be 'judge' or 'coach'")
    max_tokens = _required_int(raw, "max_tokens")
    if max_tokens <= 0:
        raise ValueError(f"stages.{stage}.max_tokens must be > 0")
    user_template = _required_str(raw, "user_template")
    missing = REQUIRED_PLACEHOLDERS[stage] - template_placeholders(user_template)
    if missing:
        raise ValueError(f"stages.{stage}.user_template is missing placeholders: {', '.join(sorted(missing))}")
    return StagePrompt(
        system=_required_str(raw, "system").strip(),
        user_template=user_template,
        model_role=model_role,  # type: ignore[arg-type]
        temperature=_required_float(raw, "temperature"),
        max_tokens=max_tokens,
    )


def _lookup_dot_path(data: dict[str, object], path: str) -> object | None:
    current: object = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _required_str(data: dict[str, object], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} is required and must be non-empty string")
    return value


def _required_float(data: dict[str, object], key: str) -> float:
    value = data.get(key)
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValueError(f"{key} is required and must be number")
    return float(value)


def _required_int(data: dict[str, object], key: str) -> int:
    value = data.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{key} is required and must be integer")
    return value


def _required_obj(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"{key} is required and must be object")
    return value


def _required_list(data: dict[str, object], key: str) -> list[object]:
    value = data.get(key)
    if not isinstance(value, list):
        raise ValueError(f"{key} is required and must be list")
    return value


def _required_str_list(data: dict[str, object], key: str) -> list[str]:
    values = _required_list(data, key)
    result: list[str] = []
    for value in values:
        if not isinstance(value, str) or not value:
            raise ValueError(f"{key} must contain non-empty strings")
        result.append(value)
    return result


def _objects(items: list[object], field_name: str) -> list[dict[str, object]]:
    result: list[dict[str, object]] = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"{field_name} must contain objects")
        result.append(item)
    return result
