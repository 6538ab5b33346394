"""Tests for chat API endpoints via FastAPI TestClient with a mocked pipeline."""

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from app.core.brochure import build_brochure
from app.core.config import ConfigurationError
from app.core.intent_classifier import classify_intent
from app.core.page_validation import parse_page
from app.core.schemas_page import PageGenerationResult
from app.core.schemas_persona import PersonaScoreVector
from app.main import app
from app.services.chat_pipeline import ChatResult
from tests.fixtures_pages import valid_page

COOKIE = "bevgenie-session"


def _result(session_id: str, with_page: bool = False) -> ChatResult:
    message = "What's the ROI and payback on this investment?"
    page_result = None
    if with_page:
        page_result = PageGenerationResult(success=True, page=parse_page(valid_page()), strategy="template")
    return ChatResult(
        session_id=session_id,
        reply="Happy to help.",
        persona=PersonaScoreVector(),
        message_count=1,
        signals=["pain_point/execution_blind_spot: medium"],
        generation_mode="fresh",
        intent=classify_intent(message) if with_page else None,
        page_result=page_result,
    )


def _mock_pipeline(**methods) -> MagicMock:
    pipeline = MagicMock()
    for name, value in methods.items():
        setattr(pipeline, name, value)
    return pipeline


class TestPostChat:
    def test_new_session_sets_cookie(self):
        process = AsyncMock(side_effect=lambda sid, msg, ctx: _result(sid))
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(process=process)):
            client = TestClient(app)
            response = client.post("/chat", json={"message": "Hello, we run a brewery"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Happy to help."
        assert "generatedPage" not in data
        assert response.cookies.get(COOKIE) == data["session"]["sessionId"]

    def test_existing_cookie_is_reused(self):
        process = AsyncMock(side_effect=lambda sid, msg, ctx: _result(sid))
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(process=process)):
            client = TestClient(app, cookies={COOKIE: "sess-42"})
            response = client.post(
                "/chat", json={"message": "  tell me more  ", "interactionContext": "Pricing"}
            )

        assert response.status_code == 200
        assert process.call_args.args == ("sess-42", "tell me more", "Pricing")
        assert response.json()["session"]["sessionId"] == "sess-42"

    def test_generated_page_payload(self):
        process = AsyncMock(side_effect=lambda sid, msg, ctx: _result(sid, with_page=True))
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(process=process)):
            response = TestClient(app).post("/chat", json={"message": "What's the ROI?"})

        generated = response.json()["generatedPage"]
        assert generated["intent"] == "roi_inquiry"
        assert generated["strategy"] == "template"
        assert "visualContent" in generated["page"]["sections"][0]

    def test_empty_message_is_400(self):
        with patch("app.api.chat.get_chat_pipeline") as mock_get:
            response = TestClient(app).post("/chat", json={"message": "   "})

        assert response.status_code == 400
        mock_get.assert_not_called()

    def test_too_long_message_is_400(self):
        with patch("app.api.chat.get_chat_pipeline") as mock_get:
            response = TestClient(app).post("/chat", json={"message": "x" * 5001})

        assert response.status_code == 400
        assert "too long" in response.json()["detail"]
        mock_get.assert_not_called()

    def test_missing_configuration_is_503(self):
        with (
            patch(
                "app.api.chat.validate_generation_config",
                side_effect=ConfigurationError("ANTHROPIC_API_KEY is not set"),
            ),
            patch("app.api.chat.get_chat_pipeline") as mock_get,
        ):
            response = TestClient(app).post("/chat", json={"message": "hello there"})

        assert response.status_code == 503
        mock_get.assert_not_called()

    def test_input_errors_come_before_configuration_check(self):
        with (
            patch(
                "app.api.chat.validate_generation_config",
                side_effect=ConfigurationError("ANTHROPIC_API_KEY is not set"),
            ) as mock_validate,
            patch("app.api.chat.get_chat_pipeline") as mock_get,
        ):
            client = TestClient(app)
            too_long = client.post("/chat", json={"message": "x" * 5001})
            empty = client.post("/chat", json={"message": " "})

        assert too_long.status_code == 400
        assert empty.status_code == 400
        mock_validate.assert_not_called()
        mock_get.assert_not_called()

    def test_unexpected_error_is_500(self):
        process = AsyncMock(side_effect=RuntimeError("boom"))
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(process=process)):
            response = TestClient(app).post("/chat", json={"message": "hello there"})

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to process chat message"}


class TestGetChat:
    def test_no_cookie_is_404(self):
        assert TestClient(app).get("/chat").status_code == 404

    def test_unknown_session_is_404(self):
        snapshot = AsyncMock(return_value=None)
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(snapshot=snapshot)):
            response = TestClient(app, cookies={COOKIE: "sess-1"}).get("/chat")
        assert response.status_code == 404

    def test_returns_snapshot(self):
        snapshot = AsyncMock(return_value={"sessionId": "sess-1", "messageCount": 2})
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(snapshot=snapshot)):
            response = TestClient(app, cookies={COOKIE: "sess-1"}).get("/chat")

        assert response.status_code == 200
        assert response.json()["messageCount"] == 2
        snapshot.assert_awaited_once_with("sess-1")


class TestInteraction:
    def test_records_interaction(self):
        record = AsyncMock(return_value=PersonaScoreVector(total_interactions=1))
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(record_interaction=record)):
            response = TestClient(app, cookies={COOKIE: "sess-1"}).post(
                "/chat/interaction", json={"context": "Spirits distributors"}
            )

        assert response.status_code == 200
        assert response.json()["sessionId"] == "sess-1"
        record.assert_awaited_once_with("sess-1", "Spirits distributors")

    def test_blank_context_is_400(self):
        response = TestClient(app).post("/chat/interaction", json={"context": "  "})
        assert response.status_code == 400


class TestBrochure:
    def test_generates_brochure(self):
        brochure = build_brochure(PersonaScoreVector(), {})
        generate = AsyncMock(return_value=brochure)
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(brochure=generate)):
            response = TestClient(app, cookies={COOKIE: "sess-1"}).post("/chat/brochure")

        assert response.status_code == 200
        data = response.json()
        assert data["sessionId"] == "sess-1"
        assert data["brochure"]["sections"][0]["heading"] == "How We Can Help"
        generate.assert_awaited_once_with("sess-1")

    def test_generate_without_cookie_is_404(self):
        with patch("app.api.chat.get_chat_pipeline") as mock_get:
            response = TestClient(app).post("/chat/brochure")

        assert response.status_code == 404
        mock_get.assert_not_called()

    def test_generate_for_unknown_session_is_404(self):
        generate = AsyncMock(return_value=None)
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(brochure=generate)):
            response = TestClient(app, cookies={COOKIE: "sess-1"}).post("/chat/brochure")
        assert response.status_code == 404

    def test_latest_brochure(self):
        row = {"brochure_content": {"title": "Your Personalized BevGenie Solution"}, "created_at": "2024-01-01"}
        latest = AsyncMock(return_value=row)
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(latest_brochure=latest)):
            response = TestClient(app, cookies={COOKIE: "sess-1"}).get("/chat/brochure")

        assert response.status_code == 200
        assert response.json()["brochure"]["title"] == "Your Personalized BevGenie Solution"
        assert response.json()["createdAt"] == "2024-01-01"

    def test_no_stored_brochure_is_404(self):
        latest = AsyncMock(return_value=None)
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(latest_brochure=latest)):
            response = TestClient(app, cookies={COOKIE: "sess-1"}).get("/chat/brochure")
        assert response.status_code == 404


class TestDeleteChat:
    def test_erases_session(self):
        erase = AsyncMock(return_value=True)
        with patch("app.api.chat.get_chat_pipeline", return_value=_mock_pipeline(erase=erase)):
            response = TestClient(app, cookies={COOKIE: "sess-1"}).delete("/chat")

        assert response.status_code == 200
        assert response.json() == {"deleted": True}
        erase.assert_awaited_once_with("sess-1")

    def test_without_cookie(self):
        with patch("app.api.chat.get_chat_pipeline") as mock_get:
            response = TestClient(app).delete("/chat")

        assert response.json() == {"deleted": False}
        mock_get.assert_not_called()
