from __future__ import annotations

from dataclasses import dataclass

from assessment_engine.domain.models import Polarity, coerce_polarity
from assessment_engine.domain.normalization import normalize_skill_key

POLARITIES: tuple[Polarity, ...] = ("positive", "limitation")
MAX_HINT_SKILLS_PER_COMPETENCY = 12


@dataclass(frozen=True)
class Characteristic:
    text: str
    polarity: Polarity


@dataclass(frozen=True)
class RubricLevel:
    level: int
    name: str
    characteristics: tuple[Characteristic, ...]


@dataclass(frozen=True)
class SkillRubric:
    skill_name: str
    competency: str
    levels: tuple[RubricLevel, ...]

    def level(self, number: int) -> RubricLevel | None:
        for item in self.levels:
            if item.level == number:
                return item
        return None

    def to_prompt_data(self) -> dict[str, object]:
        return {
            "levels": [
                {
                    "level": item.level,
                    "name": item.name,
                    "characteristics": [
                        {"text": characteristic.text, "polarity": characteristic.polarity}
                        for characteristic in item.characteristics
                    ],
                }
                for item in self.levels
            ]
        }


@dataclass(frozen=True)
class RubricSet:
    key: str
    # competency name -> skills in document order
    competencies: dict[str, tuple[SkillRubric, ...]]

    def skills(self) -> list[SkillRubric]:
        return [skill for skills in self.competencies.values() for skill in skills]

    def resolve(self, requested_name: str) -> SkillRubric | None:
        """Match a requested skill name ignoring case and whitespace runs."""
        wanted = normalize_skill_key(requested_name)
        if not wanted:
            return None
        for skill in self.skills():
            if normalize_skill_key(skill.skill_name) == wanted:
                return skill
        return None

    def competency_hints(self) -> list[dict[str, object]]:
        return [
            {
                "competency": competency,
                "skills": [skill.skill_name for skill in skills[:MAX_HINT_SKILLS_PER_COMPETENCY]],
            }
            for competency, skills in self.competencies.items()
        ]


def parse_rubric_set(data: object, *, key: str) -> RubricSet:
    """Validate a `{competency: {skills: {name: {levels: [...]}}}}` document."""
    if not isinstance(data, dict):
        raise ValueError("rubric set must be an object keyed by competency")

    competencies: dict[str, tuple[SkillRubric, ...]] = {}
    for competency, competency_raw in data.items():
        if not isinstance(competency, str) or not competency:
            raise ValueError("competency names must be non-empty strings")
        skills_raw = _required_obj(_as_obj(competency_raw, competency), "skills", context=competency)
        skills: list[SkillRubric] = []
        for skill_name, skill_raw in skills_raw.items():
            context = f"{competency}.{skill_name}"
            if not isinstance(skill_name, str) or not skill_name:
                raise ValueError(f"{competency}: skill names must be non-empty strings")
            skills.append(
                SkillRubric(
                    skill_name=skill_name,
                    competency=competency,
                    levels=_parse_levels(_as_obj(skill_raw or {}, context), context=context),
                )
            )
        competencies[competency] = tuple(skills)

    return RubricSet(key=key, competencies=competencies)


def _parse_levels(skill_raw: dict[str, object], *, context: str) -> tuple[RubricLevel, ...]:
    # Catalog-only entries (no levels yet) are allowed; they cannot be graded
    # but still appear in qualification hints.
    levels_raw = skill_raw.get("levels", [])
    if not isinstance(levels_raw, list):
        raise ValueError(f"{context}.levels must be a list")

    levels: list[RubricLevel] = []
    for item in levels_raw:
        level_raw = _as_obj(item, f"{context}.levels")
        number = level_raw.get("level")
        if not isinstance(number, int) or isinstance(number, bool) or number < 1:
            raise ValueError(f"{context}.levels[].level must be a positive integer")
        name = level_raw.get("name", f"Level {number}")
        if not isinstance(name, str):
            raise ValueError(f"{context}.levels[{number}].name must be string")
        characteristics_raw = level_raw.get("characteristics", [])
        if not isinstance(characteristics_raw, list):
            raise ValueError(f"{context}.levels[{number}].characteristics must be a list")
        levels.append(
            RubricLevel(
                level=number,
                name=name,
                characteristics=tuple(
                    _parse_characteristic(entry, context=f"{context}.levels[{number}]")
                    for entry in characteristics_raw
                ),
            )
        )

    numbers = [item.level for item in levels]
    if len(set(numbers)) != len(numbers):
        raise ValueError(f"{context}.levels must not repeat level numbers")
    return tuple(sorted(levels, key=lambda item: item.level))


def _parse_characteristic(raw: object, *, context: str) -> Characteristic:
    if isinstance(raw, str) and raw:
        return Characteristic(text=raw, polarity="positive")
    data = _as_obj(raw, context)
    text = data.get("text")
    if not isinstance(text, str) or not text:
        raise ValueError(f"{context}.characteristics[].text is required and must be non-empty string")
    polarity = coerce_polarity(data.get("polarity", "positive"))
    if polarity not in POLARITIES:
        raise ValueError(f"{context}.characteristics[].polarity must be one of {', '.join(POLARITIES)}")
    return Characteristic(text=text, polarity=polarity)  # type: ignore[arg-type]


def _as_obj(value: object, context: str) -> dict[str, object]:
    if not isinstance(value, dict):
        raise ValueError(f"{context} must be an object")
    return value


def _required_obj(data: dict[str, object], key: str, *, context: str) -> dict[str, object]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ValueError(f"{context}.{key} is required and must be object")
    return value
