from __future__ import annotations

from collections.abc import Mapping, Sequence
import hashlib
import json
from typing import Literal

from assessment_engine.domain.normalization import normalize_transcript

CacheNamespace = Literal["qualify", "assessment", "coach-roleplay"]

CACHE_NAMESPACES: tuple[CacheNamespace, ...] = ("qualify", "assessment", "coach-roleplay")


def stable_json(value: object) -> str:
    """Serialize JSON-like data with recursively sorted object keys.

    List order is kept. A container that refers back to one of its own
    ancestors is emitted as null instead of recursing forever.
    """
    return json.dumps(
        _canonical(value, frozenset()),
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )


def stable_key(value: object) -> str:
    return sha256_hex(stable_json(value))


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def cache_key(*, cache_version: str, namespace: CacheNamespace, key_hash: str) -> str:
    if namespace not in CACHE_NAMESPACES:
        raise ValueError(f"unknown cache namespace: {namespace}")
    return f"v{cache_version}:{namespace}:{key_hash}"


def skill_key_hash(*, cache_version: str, transcript: str, seller_id: str, skill_name: str) -> str:
    return stable_key(
        {
            "v": str(cache_version or "1"),
            "sellerId": str(seller_id or ""),
            "skillName": str(skill_name or ""),
            "transcript": normalize_transcript(transcript),
        }
    )


def qualification_key_hash(
    *,
    cache_version: str,
    transcript: str,
    seller_id: str,
    all_skills: Sequence[str],
) -> str:
    return stable_key(
        {
            "v": str(cache_version or "1"),
            "transcript": normalize_transcript(transcript),
            "sellerId": seller_id,
            "allSkills": list(all_skills),
        }
    )


def roleplay_key_hash(
    *,
    cache_version: str,
    transcript: str,
    skills: Sequence[Mapping[str, object]],
) -> str:
    return stable_key(
        {
            "v": str(cache_version or "1"),
            "transcript": normalize_transcript(transcript),
            "skills": [dict(item) for item in skills],
        }
    )


def _canonical(value: object, ancestors: frozenset[int]) -> object:
    if isinstance(value, Mapping):
        if id(value) in ancestors:
            return None
        inner = ancestors | {id(value)}
        return {str(key): _canonical(value[key], inner) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        if id(value) in ancestors:
            return None
        inner = ancestors | {id(value)}
        return [_canonical(item, inner) for item in value]
    return value
