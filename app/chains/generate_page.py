"""Page generation orchestrator.

Two strategies per request:
1. Fast path (template fill): template selection and knowledge retrieval run
   concurrently, then one call fills the selected template's slots.
2. Slow path (full synthesis): used only when the fast path throws, times out
   or fails validation. An explicit loop makes at most 1 + 2 attempts; each
   validation failure appends its violations to a feedback list carried into
   later prompts, while parse/service errors retry without new feedback.

The orchestrator never writes to storage and never raises: failures come
back as PageGenerationResult(success=False).
"""

import asyncio
import hashlib
import logging
import time

from app.chains.fill_template import fill_template
from app.chains.select_template import select_template
from app.core.cache import CacheStore
from app.core.config import Settings, get_settings
from app.core.content_memory import ContentMemory
from app.core.embeddings import normalize_text
from app.core.intent_classifier import PageType
from app.core.knowledge_search import KnowledgeSearcher
from app.core.llm import TextGenerator, extract_json_object
from app.core.logging import get_logger, log_with_context
from app.core.page_validation import normalize_insights, parse_page, validate_page
from app.core.persona_accumulator import describe_persona, persona_tags
from app.core.schemas_page import KnowledgeSnippet, PageGenerationRequest, PageGenerationResult
from app.core.schemas_persona import DETECTION_DIMENSIONS, PersonaScoreVector

logger = get_logger(__name__)

MAX_RETRIES_CAP = 2
PROMPT_KB_DOCS = 3
PROMPT_KB_CHARS = 200
PROMPT_HISTORY_TURNS = 2
PROMPT_HISTORY_CHARS = 100


FALLBACK_CONTENT: dict[PageType, str] = {
    PageType.SOLUTION_BRIEF: (
        "I understand your challenge. Our solution is designed to address these specific pain "
        "points in the beverage industry. Let me know if you would like more details about how we can help."
    ),
    PageType.FEATURE_SHOWCASE: (
        "Great question! These features are core to our platform and help teams work more "
        "efficiently. Would you like me to walk through any specific capability in more detail?"
    ),
    PageType.CASE_STUDY: (
        "We have helped many beverage companies achieve significant results. Each implementation "
        "is tailored to their unique needs. Would you like to discuss a similar scenario?"
    ),
    PageType.COMPARISON: (
        "We stand out by focusing specifically on the beverage industry with purpose-built features. "
        "Let me know which aspects matter most to you, and I can provide a detailed comparison."
    ),
    PageType.IMPLEMENTATION_ROADMAP: (
        "Most implementations follow a structured process that we can customize to your timeline. "
        "We ensure a smooth launch with proper planning and support every step of the way."
    ),
    PageType.ROI_CALCULATOR: (
        "The financial impact depends on your specific situation. Factors like team size, current "
        "processes, and your goals all play a role. Let us discuss your scenario to build a more "
        "accurate projection."
    ),
}


def get_fallback_page_content(page_type: PageType) -> str:
    """Canned plain-text answer for when no page could be generated."""
    return FALLBACK_CONTENT[PageType(page_type)]


PAGE_TYPE_GUIDANCE: dict[PageType, str] = {
    PageType.SOLUTION_BRIEF: "Frame the visitor's challenge, then show how BevGenie solves it.",
    PageType.FEATURE_SHOWCASE: "Explain the platform capabilities the visitor asked about and their business value.",
    PageType.CASE_STUDY: "Tell a concrete customer story: challenge, approach, measurable outcome.",
    PageType.COMPARISON: "Contrast BevGenie with the alternative the visitor mentioned, fairly and specifically.",
    PageType.IMPLEMENTATION_ROADMAP: "Lay out rollout phases, timeline and what the visitor's team needs to do.",
    PageType.ROI_CALCULATOR: "Quantify the financial impact with example inputs, outputs and payback period.",
}

SYSTEM_PROMPT = """You are an expert B2B SaaS marketing page generator for BevGenie, a beverage industry intelligence platform. You create professional, specific and personalized landing pages.

Page Type: {page_type}
{guidance}

Output ONLY valid JSON (no markdown, no commentary) with this shape:
{{
  "type": "{page_type}",
  "title": "Page title",
  "description": "Short page description",
  "sections": [
    {{
      "type": "single_screen",
      "headline": "Benefit-driven title (20-80 chars)",
      "subtitle": "Specific context for the query (15-60 chars)",
      "insights": [{{"text": "Detailed insight (50-250 chars)"}}],
      "stats": [{{"value": "47%", "label": "Metric label (max 40 chars)"}}],
      "visualContent": {{"type": "case_study|highlight_box|example", "title": "Title", "content": "Story or example"}},
      "howItWorks": ["Step (20-100 chars)"],
      "ctas": [{{"text": "CTA text (max 40 chars)", "type": "primary|secondary", "action": "form|new_section|external"}}]
    }}
  ]
}}

Rules:
- "sections" contains EXACTLY ONE object with type "single_screen"
- 3-5 insights, exactly 3 stats (value max 15 chars), 3-5 howItWorks steps, 2-3 ctas
- Use concrete beverage industry metrics and the knowledge base context
- Never use generic subtitles like "Solution Brief"{retry_note}{feedback}"""


def build_system_prompt(page_type: PageType, attempt: int, feedback: list[str]) -> str:
    retry_note = ""
    if attempt > 0:
        retry_note = (
            f"\n\nNote: This is retry attempt {attempt}. Pay careful attention to the schema "
            "requirements and make sure every field is present and valid."
        )
    feedback_block = ""
    if feedback:
        issues = "\n".join(f"- Attempt {i}: {entry}" for i, entry in enumerate(feedback, start=1))
        feedback_block = f"\n\nPrevious attempts failed validation. Fix these issues:\n{issues}"

    page_type = PageType(page_type)
    return SYSTEM_PROMPT.format(
        page_type=page_type.value,
        guidance=PAGE_TYPE_GUIDANCE[page_type],
        retry_note=retry_note,
        feedback=feedback_block,
    )


def build_user_prompt(
    request: PageGenerationRequest, snippets: list[KnowledgeSnippet], memory_block: str = ""
) -> str:
    parts = ["CONTEXT:", f'User\'s Question/Topic: "{request.message}"']

    if request.interaction_context:
        parts.append(f'\nUser Clicked On: "{request.interaction_context}"')
        parts.append("Generate deeper, more specific content based on what they clicked on.")

    parts.append(f"\nUser Profile/Persona: {describe_persona(request.persona)}")

    if snippets:
        parts.append("\n====== KB CONTEXT ======")
        for i, snippet in enumerate(snippets[:PROMPT_KB_DOCS], start=1):
            relevance = round(snippet.similarity_score * 100)
            parts.append(f"[{i}] {relevance}%: {snippet.content[:PROMPT_KB_CHARS]}...")
        parts.append("====== END KB ======")

    recent = request.history[-PROMPT_HISTORY_TURNS:]
    if recent:
        joined = " | ".join(f"{t.role}: {t.content[:PROMPT_HISTORY_CHARS]}" for t in recent)
        parts.append(f"\nRECENT: {joined}")

    if memory_block:
        parts.append(f"\n{memory_block}")

    parts.append(f"\nTASK: Generate the {PageType(request.page_type).value} page. Output ONLY JSON.")
    return "\n".join(parts)


def _persona_signature(persona: PersonaScoreVector) -> str:
    values = [f"{d.value}={persona.vector(d).value}" for d in DETECTION_DIMENSIONS]
    values += sorted(p.value for p in persona.pain_points_detected)
    return "|".join(values)


def page_cache_key(message: str, page_type: PageType, persona: PersonaScoreVector) -> str:
    message_hash = hashlib.sha256(normalize_text(message).encode("utf-8")).hexdigest()[:16]
    persona_hash = hashlib.sha256(_persona_signature(persona).encode("utf-8")).hexdigest()[:16]
    return f"page:{PageType(page_type).value}:{message_hash}:{persona_hash}"


def _coerce_page(page: dict, request: PageGenerationRequest) -> dict:
    """Fill envelope fields the model may omit and normalize insights."""
    page.setdefault("type", PageType(request.page_type).value)
    sections = page.get("sections")
    if isinstance(sections, list) and sections and isinstance(sections[0], dict):
        page.setdefault("title", sections[0].get("headline"))
        page.setdefault("description", sections[0].get("subtitle"))
    return normalize_insights(page)


class PageGenerator:
    """Generates one structured page per request."""

    def __init__(
        self,
        generator: TextGenerator,
        knowledge: KnowledgeSearcher | None = None,
        cache: CacheStore | None = None,
        content_memory: ContentMemory | None = None,
        settings: Settings | None = None,
    ):
        self.generator = generator
        self.knowledge = knowledge
        self.cache = cache
        self.content_memory = content_memory
        self.settings = settings or get_settings()

    @property
    def max_attempts(self) -> int:
        return 1 + max(0, min(self.settings.PAGE_MAX_RETRIES, MAX_RETRIES_CAP))

    async def _retrieve(self, request: PageGenerationRequest) -> list[KnowledgeSnippet]:
        if request.knowledge is not None:
            return request.knowledge
        if self.knowledge is None:
            return []
        try:
            return await self.knowledge.search(
                request.message,
                persona_tags=persona_tags(request.persona),
                limit=self.settings.KNOWLEDGE_MATCH_COUNT,
            )
        except Exception as e:
            logger.warning(f"Knowledge retrieval failed, generating without snippets: {e}")
            return []

    def _memory_block(self, request: PageGenerationRequest) -> str:
        if self.content_memory is None:
            return ""
        return self.content_memory.prompt_block(request.session_id)

    async def _fast_path(self, request: PageGenerationRequest, retrieved: dict) -> dict:
        selection, snippets = await asyncio.gather(
            select_template(self.generator, request.message, request.page_type, request.persona),
            self._retrieve(request),
        )
        retrieved["snippets"] = snippets
        logger.info(f"Template selected: {selection.template.id} ({selection.reasoning})")

        return await fill_template(
            self.generator, selection.template, request, snippets, self._memory_block(request)
        )

    async def _slow_path(
        self, request: PageGenerationRequest, snippets: list[KnowledgeSnippet]
    ) -> PageGenerationResult:
        user_prompt = build_user_prompt(request, snippets, self._memory_block(request))
        feedback: list[str] = []
        last_errors: list[str] = []

        for attempt in range(self.max_attempts):
            try:
                reply = await self.generator.generate(
                    user_prompt,
                    system=build_system_prompt(request.page_type, attempt, feedback),
                    model=self.settings.PAGE_MODEL,
                    max_tokens=self.settings.PAGE_MAX_TOKENS,
                    temperature=0.7,
                    timeout=self.settings.PAGE_SLOW_PATH_TIMEOUT_SECONDS,
                )
                page = extract_json_object(reply)
            except Exception as e:
                logger.warning(f"Full synthesis attempt {attempt + 1} failed: {e}")
                last_errors = [str(e)]
                continue

            errors = validate_page(_coerce_page(page, request))
            if not errors:
                return PageGenerationResult(
                    success=True, page=parse_page(page), retry_count=attempt, strategy="full"
                )

            logger.info(
                f"Full synthesis attempt {attempt + 1} failed validation ({len(errors)} issues)"
            )
            feedback.append("; ".join(errors))
            last_errors = errors

        return PageGenerationResult(
            success=False,
            error="Page generation failed after retries: " + "; ".join(last_errors),
            errors=last_errors,
            retry_count=self.max_attempts - 1,
            strategy="full",
        )

    async def generate(self, request: PageGenerationRequest) -> PageGenerationResult:
        """
        Generate a page for the request.

        Args:
            request: Message, page type, persona, optional snippets and history

        Returns:
            PageGenerationResult; success only with a fully validated page
        """
        started = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        cache_key = page_cache_key(request.message, request.page_type, request.persona)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return PageGenerationResult(
                    success=True, page=parse_page(cached), strategy="cached", elapsed_ms=elapsed()
                )

        retrieved: dict = {}
        result: PageGenerationResult | None = None
        try:
            page = await asyncio.wait_for(
                self._fast_path(request, retrieved),
                timeout=self.settings.PAGE_FAST_PATH_TIMEOUT_SECONDS,
            )
            errors = validate_page(page)
            if not errors:
                result = PageGenerationResult(success=True, page=parse_page(page), strategy="template")
            else:
                logger.info(f"Template page failed validation, using full synthesis: {errors[:3]}")
        except Exception as e:
            logger.warning(f"Template path failed, using full synthesis: {e}")

        if result is None:
            snippets = retrieved.get("snippets")
            if snippets is None:
                snippets = await self._retrieve(request)
            result = await self._slow_path(request, snippets)

        result.elapsed_ms = elapsed()
        if result.success and self.cache is not None:
            self.cache.set(cache_key, result.page.to_payload())

        log_with_context(
            logger,
            logging.INFO,
            "Page generation finished",
            session_id=request.session_id or "-",
            success=result.success,
            strategy=result.strategy,
            retry_count=result.retry_count,
            elapsed_ms=result.elapsed_ms,
        )
        return result
