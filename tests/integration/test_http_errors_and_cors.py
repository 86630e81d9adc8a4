from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from assessment_engine.clients.stub import ScriptedLLMClient, default_stub_response
from assessment_engine.domain.dto import LLMClientRequest
from assessment_engine.domain.errors import LLMTimeoutError
from tests.stage_support import SELLER_ID, TRANSCRIPT, build_test_app

ORIGIN = "chrome-extension://assessment"


@pytest.mark.integration
def test_request_validation_errors_are_400_with_error_body() -> None:
    with TestClient(build_test_app(llm=ScriptedLLMClient())) as client:
        missing = client.post("/judge", json={"skill": "Active listening", "sellerId": SELLER_ID})
        wrong_type = client.post(
            "/coach-roleplay",
            json={"transcript": TRANSCRIPT, "skills": [{"skill": "Active listening", "score": "3"}]},
        )
        blank = client.post("/judge", json={"transcript": "  \n ", "skill": "Active listening", "sellerId": SELLER_ID})

    assert missing.status_code == 400
    assert missing.json() == {"error": "Invalid 'transcript': Field required"}
    assert wrong_type.status_code == 400
    assert wrong_type.json()["error"].startswith("Invalid 'skills.0.score'")
    assert blank.status_code == 400
    assert blank.json() == {"error": "Missing 'transcript'."}


@pytest.mark.integration
def test_unknown_route_and_method_use_error_body() -> None:
    with TestClient(build_test_app(llm=ScriptedLLMClient())) as client:
        not_found = client.get("/nope")
        wrong_method = client.get("/judge")

    assert not_found.status_code == 404
    assert not_found.json() == {"error": "Not Found"}
    assert wrong_method.status_code == 405
    assert wrong_method.json() == {"error": "Method Not Allowed"}


@pytest.mark.integration
def test_stage_failures_are_500_with_message() -> None:
    llm = ScriptedLLMClient()
    llm.script("judge", LLMTimeoutError("judge API call timed out after 300000ms", timeout_ms=300_000))

    with TestClient(build_test_app(llm=llm)) as client:
        unresolved = client.post("/judge", json={"transcript": TRANSCRIPT, "skill": "Juggling", "sellerId": SELLER_ID})
        timed_out = client.post(
            "/judge",
            json={"transcript": TRANSCRIPT, "skill": "Active listening", "sellerId": SELLER_ID},
        )

    assert unresolved.status_code == 500
    assert unresolved.json() == {"error": "Could not resolve skill: Juggling"}
    assert timed_out.status_code == 500
    assert timed_out.json() == {"error": "judge API call timed out after 300000ms"}


@pytest.mark.integration
def test_unexpected_errors_become_json_500_with_cors_headers() -> None:
    def responder(request: LLMClientRequest, hint: str) -> str:
        if hint == "judge":
            raise RuntimeError("provider exploded")
        return default_stub_response(request, hint)

    with TestClient(build_test_app(llm=ScriptedLLMClient(responder=responder))) as client:
        response = client.post(
            "/judge",
            json={"transcript": TRANSCRIPT, "skill": "Active listening", "sellerId": SELLER_ID},
            headers={"Origin": ORIGIN},
        )

    assert response.status_code == 500
    assert response.json() == {"error": "provider exploded"}
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.integration
def test_cors_preflight_and_error_responses_carry_headers() -> None:
    with TestClient(build_test_app(llm=ScriptedLLMClient())) as client:
        preflight = client.options(
            "/assess",
            headers={
                "Origin": ORIGIN,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        invalid = client.post("/assess", json={}, headers={"Origin": ORIGIN})

    assert preflight.status_code == 200
    assert preflight.headers["access-control-allow-origin"] == "*"
    assert "POST" in preflight.headers["access-control-allow-methods"]
    assert preflight.headers["access-control-max-age"] == "86400"
    assert invalid.status_code == 400
    assert invalid.headers["access-control-allow-origin"] == "*"


@pytest.mark.integration
def test_configured_origin_is_sent_on_every_response() -> None:
    app = build_test_app(llm=ScriptedLLMClient(), allow_origin=ORIGIN)

    with TestClient(app) as client:
        allowed = client.get("/health", headers={"Origin": ORIGIN})
        other = client.get("/health", headers={"Origin": "https://elsewhere.example"})
        no_origin = client.get("/health")
        not_found = client.get("/nope")

    for response in (allowed, other, no_origin, not_found):
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert "Origin" in response.headers["vary"]
    assert not_found.json() == {"error": "Not Found"}


@pytest.mark.integration
def test_rejected_preflight_uses_error_body() -> None:
    app = build_test_app(llm=ScriptedLLMClient(), allow_origin=ORIGIN)

    with TestClient(app) as client:
        rejected = client.options(
            "/assess",
            headers={"Origin": "https://elsewhere.example", "Access-Control-Request-Method": "POST"},
        )

    assert rejected.status_code == 400
    assert rejected.json() == {"error": "Disallowed CORS origin"}
    assert rejected.headers["access-control-allow-origin"] == ORIGIN
