from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import json

from assessment_engine.domain.dto import LLMClientRequest, LLMClientResult

Responder = Callable[[LLMClientRequest, str], str]


def default_stub_response(request: LLMClientRequest, hint: str) -> str:
    """Canned answers so the service runs end to end without a provider."""
    del request
    if hint == "qualify":
        return json.dumps({"qualifiedSkills": []})
    if hint == "judge":
        return json.dumps(
            {
                "level_checks": [
                    {
                        "level": 1,
                        "name": "Novice",
                        "checks": [
                            {
                                "characteristic": "Stub characteristic",
                                "polarity": "positive",
                                "met": True,
                                "evidence": [],
                                "reason": "Stub backend",
                            }
                        ],
                    }
                ]
            }
        )
    return json.dumps(
        {
            "strengths": ["Clear structure"],
            "improvements": [
                {
                    "point": "Probe deeper after the first answer",
                    "example": {"instead_of": "Moving on", "try_this": "Ask what that means for the team"},
                }
            ],
            "coaching_tips": ["Prepare two follow-up questions per topic"],
        }
    )


@dataclass
class ScriptedLLMClient:
    """Deterministic LLMClient for tests and the `stub` backend.

    Answers queued per hint with `script()` are consumed first (an Exception
    in the queue is raised instead); after that `responder` answers.
    """

    responder: Responder = default_stub_response
    scripts: dict[str, list[str | Exception]] = field(default_factory=dict)
    calls: list[tuple[str, LLMClientRequest]] = field(default_factory=list)

    def script(self, hint: str, *responses: str | Exception) -> None:
        self.scripts.setdefault(hint, []).extend(responses)

    def calls_for(self, hint: str) -> list[LLMClientRequest]:
        return [request for call_hint, request in self.calls if call_hint == hint]

    async def complete(self, request: LLMClientRequest, *, hint: str) -> LLMClientResult:
        self.calls.append((hint, request))
        queue = self.scripts.get(hint)
        if queue:
            item = queue.pop(0)
            if isinstance(item, Exception):
                raise item
            content = item
        else:
            content = self.responder(request, hint)
        return LLMClientResult(content=content, raw={"stub": True, "hint": hint}, latency_ms=0)
