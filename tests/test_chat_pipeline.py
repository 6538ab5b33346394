"""Tests for the chat turn pipeline with mocked storage and generation."""

from contextlib import ExitStack
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.cache import TTLCache
from app.core.content_memory import ContentMemory
from app.core.page_validation import parse_page
from app.core.schemas_page import KnowledgeSnippet, PageGenerationResult
from app.core.schemas_persona import PainPoint, PersonaScoreVector
from app.services.chat_pipeline import ChatPipeline, determine_generation_mode
from tests.fixtures_pages import valid_page

SESSION = "sess-1"


class FakeKnowledge:
    def __init__(self):
        self.calls = []

    async def search(self, query, persona_tags=None, limit=5):
        self.calls.append({"query": query, "persona_tags": persona_tags, "limit": limit})
        return [KnowledgeSnippet(content="Field execution playbook", similarity_score=0.7)]

    async def pain_point_documents(self, pain_points, limit=3):
        self.calls.append({"pain_points": list(pain_points), "limit": limit})
        return {p: [KnowledgeSnippet(content=f"Guide to {p.value}")] for p in pain_points}


def _page_generator(success=True):
    generator = MagicMock()
    if success:
        result = PageGenerationResult(success=True, page=parse_page(valid_page()), strategy="template")
    else:
        result = PageGenerationResult(success=False, error="failed", strategy="full")
    generator.generate = AsyncMock(return_value=result)
    return generator


class _Storage:
    """Patches every db call the pipeline makes."""

    def __init__(self, persona=None, rows=None, prior=0, fail=False, load_error=None):
        error = RuntimeError("db down") if fail else None
        self.stack = ExitStack()
        self.get_persona = self._patch("app.db.personas.get_persona", persona, load_error or error)
        self.upsert_persona = self._patch("app.db.personas.upsert_persona", {}, error)
        self.list_messages = self._patch("app.db.conversations.list_messages", rows or [], error)
        self.count = self._patch("app.db.conversations.count_user_messages", prior, error)
        self.add_message = self._patch("app.db.conversations.add_message", {}, error)
        self.record_signals = self._patch("app.db.persona_signals.record_signals", 0, error)
        self.erase = self._patch("app.db.sessions.erase_session", True, error)
        self.save_brochure = self._patch("app.db.brochures.save_brochure", {}, error)
        self.latest_brochure = self._patch("app.db.brochures.get_latest_brochure", None, error)

    def _patch(self, target, return_value, error):
        return self.stack.enter_context(patch(target, return_value=return_value, side_effect=error))

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.stack.close()


def _pipeline(page_generator=None, memory=None):
    knowledge = FakeKnowledge()
    reply_fn = AsyncMock(return_value="Thanks for sharing that.")
    pipeline = ChatPipeline(
        page_generator or _page_generator(),
        knowledge,
        content_memory=memory,
        reply_fn=reply_fn,
    )
    return pipeline, knowledge, reply_fn


class TestProcess:
    @pytest.mark.asyncio
    async def test_first_message_generates_page(self):
        pipeline, knowledge, reply_fn = _pipeline()
        with _Storage() as storage:
            result = await pipeline.process(SESSION, "What's the ROI and payback on this investment?")

        assert result.reply == "Thanks for sharing that."
        assert result.intent.intent.value == "roi_inquiry"
        assert result.page_result.success is True
        assert result.message_count == 1

        request = pipeline.page_generator.generate.call_args.args[0]
        assert request.page_type.value == "roi_calculator"
        assert request.session_id == SESSION
        assert [s.content for s in request.knowledge] == ["Field execution playbook"]

        assert storage.upsert_persona.call_count == 1
        assert storage.add_message.call_count == 2
        assistant_call = storage.add_message.call_args_list[1]
        assert assistant_call.args[1] == "assistant"
        assert assistant_call.args[6]["sections"][0]["type"] == "single_screen"

    @pytest.mark.asyncio
    async def test_persona_is_updated_before_classification(self):
        pipeline, _, reply_fn = _pipeline()
        with _Storage():
            result = await pipeline.process(SESSION, "We struggle to prove ROI on our field sales team")

        assert result.persona.functional_role.value == "sales"
        assert PainPoint.EXECUTION_BLIND_SPOT in result.persona.pain_points_detected
        assert result.persona.total_interactions == 1

        request = pipeline.page_generator.generate.call_args.args[0]
        assert request.persona == result.persona
        assert reply_fn.call_args.args[1] == result.persona

    @pytest.mark.asyncio
    async def test_greeting_skips_classification_and_page(self):
        pipeline, _, _ = _pipeline()
        with _Storage():
            result = await pipeline.process(SESSION, "hi")

        assert result.intent is None
        assert result.page_result is None
        pipeline.page_generator.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_turn_count_comes_from_prior_messages(self):
        pipeline, _, _ = _pipeline()
        with _Storage(prior=4):
            result = await pipeline.process(SESSION, "What is the cost and payback?")

        assert result.intent.context_multiplier == 0.8
        assert result.intent.should_generate_page is False
        assert result.message_count == 5

    @pytest.mark.asyncio
    async def test_accumulates_onto_stored_persona(self):
        stored = PersonaScoreVector(total_interactions=3)
        stored.org_type.value = "retailer"
        pipeline, knowledge, _ = _pipeline()
        with _Storage(persona=stored):
            result = await pipeline.process(SESSION, "tell me more please")

        assert result.persona.total_interactions == 4
        assert knowledge.calls[0]["persona_tags"] == ["distributor"]

    @pytest.mark.asyncio
    async def test_storage_failures_do_not_block_reply(self):
        pipeline, _, _ = _pipeline()
        with _Storage(fail=True):
            result = await pipeline.process(SESSION, "What's the ROI and payback on this investment?")

        assert result.reply == "Thanks for sharing that."
        assert result.page_result.success is True
        assert result.message_count == 1

    @pytest.mark.asyncio
    async def test_unreadable_persona_is_not_overwritten(self):
        pipeline, _, _ = _pipeline()
        with _Storage(load_error=RuntimeError("timeout")) as storage:
            result = await pipeline.process(SESSION, "We struggle to prove ROI on our field sales team")

        assert result.reply == "Thanks for sharing that."
        storage.upsert_persona.assert_not_called()
        storage.record_signals.assert_not_called()
        assert storage.add_message.call_count == 2

    @pytest.mark.asyncio
    async def test_failed_page_still_returns_reply(self):
        pipeline, _, _ = _pipeline(page_generator=_page_generator(success=False))
        with _Storage() as storage:
            result = await pipeline.process(SESSION, "What's the ROI and payback on this investment?")

        assert result.page_result.success is False
        assert storage.add_message.call_args_list[1].args[6] is None

    @pytest.mark.asyncio
    async def test_successful_page_is_remembered(self):
        memory = ContentMemory(TTLCache())
        pipeline, _, _ = _pipeline(memory=memory)
        with _Storage():
            await pipeline.process(SESSION, "What's the ROI and payback on this investment?")

        assert "Prove Field Execution ROI Across Every Account" in memory.get(SESSION)["headlines"]


class TestOtherOperations:
    @pytest.mark.asyncio
    async def test_record_interaction_uses_navigation_signals(self):
        pipeline, _, reply_fn = _pipeline()
        with _Storage() as storage:
            persona = await pipeline.record_interaction(SESSION, "Spirits distributors")

        assert persona.product_focus.value == "spirits"
        assert persona.org_type.value == "retailer"
        assert persona.pain_points_detected == []
        storage.upsert_persona.assert_called_once()
        reply_fn.assert_not_called()

    @pytest.mark.asyncio
    async def test_record_interaction_with_unreadable_persona_skips_write(self):
        pipeline, _, _ = _pipeline()
        with _Storage(load_error=RuntimeError("timeout")) as storage:
            persona = await pipeline.record_interaction(SESSION, "Spirits distributors")

        assert persona.product_focus.value == "spirits"
        storage.upsert_persona.assert_not_called()
        storage.record_signals.assert_not_called()

    @pytest.mark.asyncio
    async def test_brochure_covers_top_pain_points(self):
        stored = PersonaScoreVector(
            pain_points_detected=[PainPoint.MARKET_ASSESSMENT, PainPoint.REGULATORY_COMPLIANCE],
            pain_points_confidence={PainPoint.MARKET_ASSESSMENT: 0.4, PainPoint.REGULATORY_COMPLIANCE: 0.9},
        )
        stored.org_type.value = "supplier"
        pipeline, knowledge, _ = _pipeline()
        with _Storage(persona=stored) as storage:
            brochure = await pipeline.brochure(SESSION)

        assert brochure.title.endswith("for Beverage Producers")
        assert [s.heading for s in brochure.sections] == ["REGULATORY COMPLIANCE", "MARKET ASSESSMENT"]
        assert brochure.sections[0].content == "Guide to regulatory_compliance"
        assert knowledge.calls[0]["limit"] == 3
        storage.save_brochure.assert_called_once()
        assert storage.save_brochure.call_args.args[0] == SESSION

    @pytest.mark.asyncio
    async def test_brochure_without_session(self):
        pipeline, _, _ = _pipeline()
        with _Storage(persona=None) as storage:
            assert await pipeline.brochure(SESSION) is None
        storage.save_brochure.assert_not_called()

    @pytest.mark.asyncio
    async def test_brochure_save_failure_still_returns(self):
        pipeline, _, _ = _pipeline()
        with _Storage(persona=PersonaScoreVector()) as storage:
            storage.save_brochure.side_effect = RuntimeError("db down")
            brochure = await pipeline.brochure(SESSION)

        assert brochure.sections[0].heading == "How We Can Help"

    @pytest.mark.asyncio
    async def test_snapshot(self):
        stored = PersonaScoreVector(overall_confidence=0.5)
        rows = [{"message_role": "user", "message_content": "hello", "created_at": "2024-01-01T00:00:00Z"}]
        pipeline, _, _ = _pipeline()
        with _Storage(persona=stored, rows=rows, prior=1):
            snapshot = await pipeline.snapshot(SESSION)

        assert snapshot["sessionId"] == SESSION
        assert snapshot["messageCount"] == 1
        assert snapshot["hasPersonaDetected"] is True
        assert snapshot["messages"][0]["content"] == "hello"
        assert snapshot["classification"]["all_vectors_identified"] is False

    @pytest.mark.asyncio
    async def test_snapshot_without_session(self):
        pipeline, _, _ = _pipeline()
        with _Storage(persona=None):
            assert await pipeline.snapshot(SESSION) is None

    @pytest.mark.asyncio
    async def test_erase_clears_memory_and_storage(self):
        memory = ContentMemory(TTLCache())
        memory.record(SESSION, parse_page(valid_page()))
        pipeline, _, _ = _pipeline(memory=memory)
        with _Storage() as storage:
            assert await pipeline.erase(SESSION) is True

        storage.erase.assert_called_once_with(SESSION)
        assert memory.prompt_block(SESSION) == ""


class TestGenerationMode:
    def test_modes(self):
        assert determine_generation_mode(PersonaScoreVector(), 1) == "fresh"
        assert determine_generation_mode(PersonaScoreVector(overall_confidence=0.6), 3) == "returning"
        deep = PersonaScoreVector(
            pain_points_detected=[PainPoint.MARKET_ASSESSMENT, PainPoint.SALES_EFFECTIVENESS]
        )
        assert determine_generation_mode(deep, 6) == "data_connected"
