from __future__ import annotations

import copy
from pathlib import Path

import pytest
import yaml

from assessment_engine.domain.prompt_contract import (
    DEFAULT_CONTRACT_PATH,
    JUDGE_REASONING_STEPS,
    load_prompt_contract,
    parse_prompt_contract,
    render_user_prompt,
    template_placeholders,
)


def _raw_contract() -> dict[str, object]:
    return yaml.safe_load(DEFAULT_CONTRACT_PATH.read_text(encoding="utf-8"))


@pytest.mark.unit
def test_default_contract_loads() -> None:
    contract = load_prompt_contract()

    assert contract.contract_version == "contract.v1"
    assert len(contract.judge_reasoning_steps) == JUDGE_REASONING_STEPS
    assert contract.judge.model_role == "judge"
    assert contract.coach.model_role == "coach"
    assert contract.judge.temperature == 0.0
    assert [tier.min_rating for tier in contract.coach_tiers] == [5, 4, 1]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("rating", "title"),
    [
        (5, "Next-Level Opportunities"),
        (4, "Areas for Refinement to Reach Mastery"),
        (3, "Areas for Improvement"),
        (1, "Areas for Improvement"),
    ],
)
def test_coach_tier_follows_rating(rating: int, title: str) -> None:
    assert load_prompt_contract().coach_tier(rating).title == title


@pytest.mark.unit
def test_reasoning_steps_render_as_numbered_list() -> None:
    rendered = load_prompt_contract().rendered_reasoning_steps().splitlines()

    assert len(rendered) == JUDGE_REASONING_STEPS
    assert rendered[0].startswith("1.  **Understand the Ask:**")
    assert rendered[-1].startswith("7.  **Finalize:**")


@pytest.mark.unit
def test_contract_rejects_template_without_required_placeholder() -> None:
    raw = _raw_contract()
    broken = copy.deepcopy(raw)
    broken["stages"]["judge"]["user_template"] = "Grade {{transcript}} for {{seller_id}}"

    with pytest.raises(ValueError, match="reasoning_steps"):
        parse_prompt_contract(broken)


@pytest.mark.unit
def test_contract_rejects_wrong_number_of_reasoning_steps() -> None:
    raw = _raw_contract()
    raw["stages"]["judge"]["reasoning_steps"] = raw["stages"]["judge"]["reasoning_steps"][:3]

    with pytest.raises(ValueError, match="exactly 7"):
        parse_prompt_contract(raw)


@pytest.mark.unit
def test_contract_file_can_be_overridden(tmp_path: Path) -> None:
    raw = _raw_contract()
    raw["contract_version"] = "contract.custom"
    path = tmp_path / "contract.yaml"
    path.write_text(yaml.safe_dump(raw), encoding="utf-8")

    assert load_prompt_contract(file_path=path).contract_version == "contract.custom"


@pytest.mark.unit
def test_render_user_prompt_fills_placeholders() -> None:
    rendered = render_user_prompt(
        template="Seller {{ seller_id }} / {{skills}} / {{meta.rating}}",
        inputs={"seller_id": "Alex", "skills": ["B", "A"], "meta": {"rating": 3}},
    )

    assert rendered == 'Seller Alex / ["B","A"] / 3'


@pytest.mark.unit
def test_render_user_prompt_rejects_missing_values() -> None:
    with pytest.raises(ValueError, match="missing placeholder value: transcript"):
        render_user_prompt(template="{{transcript}}", inputs={})


@pytest.mark.unit
def test_template_placeholders_ignores_single_braces() -> None:
    assert template_placeholders('{"a": 1} {{ rubric }} {{x.y}}') == {"rubric", "x.y"}
