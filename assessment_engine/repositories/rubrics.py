from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
import re

import yaml

from assessment_engine.domain.errors import RubricSourceError
from assessment_engine.domain.rubrics import RubricSet, parse_rubric_set

DEFAULT_RUBRICS_DIR = Path(__file__).resolve().parent.parent / "rubrics"
RUBRIC_SET_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+(?::[A-Za-z0-9_.-]+)*$")
RUBRIC_FILE_SUFFIXES = (".yaml", ".yml", ".json")

logger = logging.getLogger(__name__)


def rubric_file_stem(rubric_set: str) -> str:
    """`rubrics:v1` is stored as `rubrics.v1.yaml`."""
    if not RUBRIC_SET_KEY_RE.match(rubric_set):
        raise RubricSourceError(f"invalid rubric set key: {rubric_set!r}")
    return rubric_set.replace(":", ".")


@dataclass
class FileRubricSource:
    directory: Path = DEFAULT_RUBRICS_DIR
    loaded: dict[str, RubricSet] = field(default_factory=dict)

    async def load(self, rubric_set: str) -> RubricSet:
        cached = self.loaded.get(rubric_set)
        if cached is not None:
            return cached

        path = self._find_file(rubric_set)
        try:
            text = path.read_text(encoding="utf-8")
            data = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
            parsed = parse_rubric_set(data, key=rubric_set)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            raise RubricSourceError(f"could not load rubric set {rubric_set}: {exc}") from exc

        logger.info("rubric set loaded from %s (%d skills)", path, len(parsed.skills()))
        self.loaded[rubric_set] = parsed
        return parsed

    def _find_file(self, rubric_set: str) -> Path:
        stem = rubric_file_stem(rubric_set)
        for suffix in RUBRIC_FILE_SUFFIXES:
            candidate = Path(self.directory) / f"{stem}{suffix}"
            if candidate.is_file():
                return candidate
        raise RubricSourceError(f"Could not load rubrics: no file for {rubric_set} in {self.directory}")


@dataclass
class InMemoryRubricSource:
    documents: dict[str, object] = field(default_factory=dict)

    async def load(self, rubric_set: str) -> RubricSet:
        document = self.documents.get(rubric_set)
        if document is None:
            raise RubricSourceError(f"Could not load rubrics: unknown rubric set {rubric_set}")
        try:
            return parse_rubric_set(document, key=rubric_set)
        except ValueError as exc:
            raise RubricSourceError(f"could not load rubric set {rubric_set}: {exc}") from exc
