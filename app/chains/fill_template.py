"""Fast path: fill a selected template's placeholder slots."""

from app.core.config import get_settings
from app.core.llm import TextGenerator, extract_json_object
from app.core.logging import get_logger
from app.core.page_templates import TemplateVariant, build_page_from_template, extract_slots
from app.core.schemas_page import KnowledgeSnippet, PageGenerationRequest

logger = get_logger(__name__)

FILL_KB_DOCS = 5
FILL_KB_CHARS = 300

SYSTEM_PROMPT = (
    "You are an expert beverage industry content generator. Create diverse, specific, "
    "non-repetitive content. Each piece of content must be unique. Output only valid JSON."
)


def build_fill_prompt(
    template: TemplateVariant,
    request: PageGenerationRequest,
    snippets: list[KnowledgeSnippet],
    memory_block: str = "",
) -> str:
    slots = extract_slots(template)
    slot_lines = "\n".join(f"- {s.name}: {s.kind}, max {s.max_chars} characters" for s in slots)
    kb_summary = "\n---\n".join(s.content[:FILL_KB_CHARS] for s in snippets[:FILL_KB_DOCS])
    focus = ", ".join(p.value for p in request.persona.pain_points_detected) or "general"

    prompt = f"""Fill these content placeholders for a beverage industry page with diverse, specific content:

User Query: "{request.message}"
Template: {template.name}
User Focus: {focus}

Knowledge Base Context:
{kb_summary or "(none)"}

Required placeholders (name: field, length limit):
{slot_lines}

Instructions:
1. Generate unique content for each placeholder, no repetition
2. Use specific beverage industry language: depletions, on-premise, off-premise, DSD, SKUs
3. Include concrete numbers and percentages where appropriate
4. Respect each length limit exactly
5. Each stat must use a different metric
6. Use data from the knowledge base context when available
"""
    if memory_block:
        prompt += f"\n{memory_block}\n"

    prompt += """
Respond with ONLY a JSON object mapping placeholder names to values:
{
  "placeholder_name": "filled value"
}"""
    return prompt


async def fill_template(
    generator: TextGenerator,
    template: TemplateVariant,
    request: PageGenerationRequest,
    snippets: list[KnowledgeSnippet],
    memory_block: str = "",
) -> dict:
    """
    Generate placeholder values and build the raw page.

    Returns:
        Raw page dict (not yet validated)

    Raises:
        GenerationError: If the call fails
        PageParseError: If the response holds no JSON object
    """
    settings = get_settings()
    reply = await generator.generate(
        build_fill_prompt(template, request, snippets, memory_block),
        system=SYSTEM_PROMPT,
        model=settings.TEMPLATE_MODEL,
        max_tokens=settings.TEMPLATE_FILL_MAX_TOKENS,
        temperature=0.7,
        timeout=settings.PAGE_FAST_PATH_TIMEOUT_SECONDS,
    )
    values = extract_json_object(reply)
    logger.debug(
        f"Filled {len(values)} placeholders for {template.id}",
        extra={"extra_data": {"template_id": template.id}},
    )
    return build_page_from_template(template, values, request.page_type)
