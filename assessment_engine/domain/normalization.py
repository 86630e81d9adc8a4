from __future__ import annotations

import re

_LINE_ENDINGS_RE = re.compile(r"\r\n?")
_SPACE_RUN_RE = re.compile(r"[ \u00a0]{2,}")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def normalize_transcript(text: str | None) -> str:
    """Canonical transcript form used for prompts and every cache key.

    Idempotent: normalize_transcript(normalize_transcript(x)) == normalize_transcript(x).
    """
    if not text:
        return ""
    normalized = _LINE_ENDINGS_RE.sub("\n", str(text))
    normalized = normalized.replace("\t", " ")
    normalized = _SPACE_RUN_RE.sub(" ", normalized)
    normalized = _BLANK_LINES_RE.sub("\n\n", normalized)
    return normalized.strip()


def normalize_skill_key(name: str | None) -> str:
    """Lookup key for rubric skill names: case-insensitive, whitespace collapsed."""
    return re.sub(r"\s+", " ", str(name or "")).lower().strip()
