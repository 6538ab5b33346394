"""Chat turn pipeline: signals -> persona -> intent -> reply + page.

Ordering within one request is strict: the persona is accumulated and
persisted before intent classification reads it, and classification
completes before page generation starts. The chat reply and the page are
independent of each other and run concurrently.

Persistence is best-effort: storage failures are logged and never block
the in-memory result. A failed persona read skips the persona and signal
writes for that turn, so the stored persona is never replaced by a blank
one. Requests for the same session are not serialized, so concurrent turns
race on the persona row and the last write wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import lru_cache

from app.chains.chat_reply import generate_chat_reply
from app.chains.generate_page import PageGenerator
from app.core.brochure import Brochure, build_brochure
from app.core.cache import get_cache
from app.core.config import Settings, get_settings
from app.core.content_memory import ContentMemory
from app.core.embeddings import QueryEmbedder
from app.core.intent_classifier import IntentAnalysis, classify_intent, is_quality_inquiry
from app.core.knowledge_search import KnowledgeSearch, KnowledgeSearcher
from app.core.llm import AnthropicTextGenerator
from app.core.logging import get_logger, log_with_context
from app.core.persona_accumulator import (
    apply_signals,
    current_classification,
    has_persona_detected,
    persona_tags,
    top_pain_points,
)
from app.core.schemas_page import (
    ConversationTurn,
    KnowledgeSnippet,
    PageGenerationRequest,
    PageGenerationResult,
)
from app.core.schemas_persona import PersonaScoreVector, Signal
from app.core.signal_extractors import KeywordSignalExtractor, SignalExtractor
from app.db import brochures, conversations, persona_signals, personas, sessions
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)

PAGE_KB_DOCS = 3
BROCHURE_DOCS_PER_PAIN_POINT = 3

ReplyFn = Callable[
    [str, PersonaScoreVector, list[ConversationTurn], list[KnowledgeSnippet]], Awaitable[str]
]


def determine_generation_mode(persona: PersonaScoreVector, message_count: int) -> str:
    """fresh, returning or data_connected, based on depth of the session."""
    if message_count > 5 and len(persona.pain_points_detected) >= 2:
        return "data_connected"
    if persona.overall_confidence > 0.5 and message_count > 2:
        return "returning"
    return "fresh"


@dataclass
class ChatResult:
    """Everything produced by one chat turn."""

    session_id: str
    reply: str
    persona: PersonaScoreVector
    message_count: int
    signals: list[str]
    generation_mode: str
    knowledge: list[KnowledgeSnippet] = field(default_factory=list)
    intent: IntentAnalysis | None = None
    page_result: PageGenerationResult | None = None


class ChatPipeline:
    """Processes chat messages and navigation interactions for a session."""

    def __init__(
        self,
        page_generator: PageGenerator,
        knowledge: KnowledgeSearcher,
        content_memory: ContentMemory | None = None,
        extractor: SignalExtractor | None = None,
        reply_fn: ReplyFn = generate_chat_reply,
        settings: Settings | None = None,
    ):
        self.page_generator = page_generator
        self.knowledge = knowledge
        self.content_memory = content_memory
        self.extractor = extractor or KeywordSignalExtractor()
        self.reply_fn = reply_fn
        self.settings = settings or get_settings()

    # =======================
    # Best-effort storage
    # =======================

    async def _load_persona(self, session_id: str) -> tuple[PersonaScoreVector, bool]:
        """
        Stored persona, or a fresh one for a new session.

        Returns:
            (persona, loaded). loaded is False when the read failed; the
            persona is then a blank stand-in that must not be written back.
        """
        try:
            stored = await asyncio.to_thread(personas.get_persona, session_id)
        except Exception as e:
            logger.warning(f"Failed to load persona: {e}", extra={"session_id": session_id})
            return PersonaScoreVector(), False
        return stored or PersonaScoreVector(), True

    async def _load_history(self, session_id: str) -> tuple[list[ConversationTurn], int]:
        try:
            rows = await asyncio.to_thread(
                conversations.list_messages, session_id, self.settings.HISTORY_TURNS
            )
            turns = conversations.to_turns(rows)
        except Exception as e:
            logger.warning(f"Failed to load history: {e}", extra={"session_id": session_id})
            return [], 0

        try:
            prior = await asyncio.to_thread(conversations.count_user_messages, session_id)
        except Exception as e:
            logger.warning(f"Failed to count messages: {e}", extra={"session_id": session_id})
            prior = sum(1 for t in turns if t.role == "user")
        return turns, prior

    async def _save_persona(
        self,
        session_id: str,
        persona: PersonaScoreVector,
        signals: list[Signal],
        confidence_before: float,
    ) -> None:
        try:
            await asyncio.to_thread(personas.upsert_persona, session_id, persona)
        except Exception as e:
            logger.warning(f"Failed to persist persona: {e}", extra={"session_id": session_id})

        try:
            await asyncio.to_thread(
                persona_signals.record_signals,
                session_id,
                signals,
                confidence_before,
                persona.overall_confidence,
            )
        except Exception as e:
            logger.warning(f"Failed to record signals: {e}", extra={"session_id": session_id})

    async def _save_turns(
        self,
        session_id: str,
        message: str,
        result: ChatResult,
    ) -> None:
        snapshot = result.persona.model_dump(mode="json")
        pain_points = [p.value for p in result.persona.pain_points_detected]
        page_payload = (
            result.page_result.page.to_payload()
            if result.page_result and result.page_result.success
            else None
        )
        try:
            await asyncio.to_thread(
                conversations.add_message,
                session_id,
                "user",
                message,
                snapshot,
                pain_points,
                result.generation_mode,
            )
            await asyncio.to_thread(
                conversations.add_message,
                session_id,
                "assistant",
                result.reply,
                snapshot,
                pain_points,
                result.generation_mode,
                page_payload,
            )
        except Exception as e:
            logger.warning(f"Failed to persist conversation: {e}", extra={"session_id": session_id})

    # =======================
    # Operations
    # =======================

    async def process(
        self, session_id: str, message: str, interaction_context: str | None = None
    ) -> ChatResult:
        """
        Handle one visitor message.

        Args:
            session_id: Visitor session id
            message: Validated message text
            interaction_context: Text of the clicked element that led here, if any

        Returns:
            ChatResult with reply, updated persona and optional page
        """
        persona, loaded = await self._load_persona(session_id)
        history, prior_messages = await self._load_history(session_id)

        signals = self.extractor.extract(message, interaction_context)
        updated = apply_signals(persona, signals)
        if loaded:
            await self._save_persona(session_id, updated, signals, persona.overall_confidence)
        else:
            logger.warning(
                "Persona not persisted for this turn, stored persona was unreadable",
                extra={"session_id": session_id},
            )

        message_count = prior_messages + 1
        intent = None
        if is_quality_inquiry(message):
            intent = classify_intent(message, prior_messages, updated)

        snippets = await self.knowledge.search(
            message, persona_tags=persona_tags(updated), limit=self.settings.KNOWLEDGE_MATCH_COUNT
        )

        page_task = None
        if intent and intent.should_generate_page:
            request = PageGenerationRequest(
                message=message,
                page_type=intent.page_type,
                persona=updated,
                knowledge=snippets[:PAGE_KB_DOCS],
                history=history,
                interaction_context=interaction_context,
                session_id=session_id,
            )
            page_task = self.page_generator.generate(request)

        if page_task is not None:
            reply, page_result = await asyncio.gather(
                self.reply_fn(message, updated, history, snippets), page_task
            )
        else:
            reply, page_result = await self.reply_fn(message, updated, history, snippets), None

        if page_result and page_result.success and self.content_memory is not None:
            self.content_memory.record(session_id, page_result.page)

        result = ChatResult(
            session_id=session_id,
            reply=reply,
            persona=updated,
            message_count=message_count,
            signals=[s.describe() for s in signals],
            generation_mode=determine_generation_mode(updated, message_count),
            knowledge=snippets,
            intent=intent,
            page_result=page_result,
        )
        await self._save_turns(session_id, message, result)

        log_with_context(
            logger,
            logging.INFO,
            "Chat turn processed",
            session_id=session_id,
            signals=len(signals),
            overall_confidence=round(updated.overall_confidence, 3),
            intent=intent.intent.value if intent else "skipped",
            page=page_result.success if page_result else None,
        )
        return result

    async def record_interaction(self, session_id: str, context: str) -> PersonaScoreVector:
        """Apply navigation-only signals from a click; no reply, no page."""
        persona, loaded = await self._load_persona(session_id)
        signals = self.extractor.extract("", context)
        updated = apply_signals(persona, signals)
        if loaded:
            await self._save_persona(session_id, updated, signals, persona.overall_confidence)
        return updated

    async def snapshot(self, session_id: str, message_limit: int = 50) -> dict | None:
        """Current session state, or None if the session has no stored persona."""
        persona = await asyncio.to_thread(personas.get_persona, session_id)
        if persona is None:
            return None

        rows = await asyncio.to_thread(conversations.list_messages, session_id, message_limit)
        message_count = await asyncio.to_thread(conversations.count_user_messages, session_id)
        messages = [
            {"role": r["message_role"], "content": r["message_content"], "timestamp": r.get("created_at")}
            for r in rows
        ]
        return {
            "sessionId": session_id,
            "messageCount": message_count,
            "persona": persona.model_dump(mode="json"),
            "classification": current_classification(persona).model_dump(mode="json"),
            "messages": messages,
            "hasPersonaDetected": has_persona_detected(persona),
        }

    async def brochure(self, session_id: str) -> Brochure | None:
        """
        Build and store a brochure for the session's top pain points.

        Returns:
            The brochure, or None if the session has no stored persona
        """
        persona = await asyncio.to_thread(personas.get_persona, session_id)
        if persona is None:
            return None

        pain_points = top_pain_points(persona)
        documents = await self.knowledge.pain_point_documents(pain_points, BROCHURE_DOCS_PER_PAIN_POINT)
        result = build_brochure(persona, documents)

        try:
            await asyncio.to_thread(brochures.save_brochure, session_id, result, persona)
        except Exception as e:
            logger.warning(f"Failed to persist brochure: {e}", extra={"session_id": session_id})

        log_with_context(
            logger,
            logging.INFO,
            "Brochure generated",
            session_id=session_id,
            sections=len(result.sections),
            pain_points=len(pain_points),
        )
        return result

    async def latest_brochure(self, session_id: str) -> dict | None:
        return await asyncio.to_thread(brochures.get_latest_brochure, session_id)

    async def erase(self, session_id: str) -> bool:
        """Privacy erasure of all stored and cached session data."""
        if self.content_memory is not None:
            self.content_memory.clear(session_id)
        return await asyncio.to_thread(sessions.erase_session, session_id)


@lru_cache(maxsize=1)
def get_chat_pipeline() -> ChatPipeline:
    """Build the process-wide pipeline with shared cache and clients."""
    cache = get_cache()
    knowledge = KnowledgeSearch(get_supabase(), QueryEmbedder(cache))
    memory = ContentMemory(cache)
    generator = AnthropicTextGenerator()
    page_generator = PageGenerator(generator, knowledge=knowledge, cache=cache, content_memory=memory)
    return ChatPipeline(page_generator, knowledge, content_memory=memory)
