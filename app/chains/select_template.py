"""Pick the best pre-authored template for a page request."""

from dataclasses import dataclass

from app.core.config import get_settings
from app.core.intent_classifier import PageType
from app.core.llm import GenerationError, TextGenerator
from app.core.logging import get_logger
from app.core.page_templates import TemplateVariant, get_templates_for_type
from app.core.schemas_persona import PersonaScoreVector

logger = get_logger(__name__)


@dataclass
class TemplateSelection:
    template: TemplateVariant
    confidence: float
    reasoning: str


def _persona_lines(persona: PersonaScoreVector) -> list[str]:
    lines = []
    if persona.pain_points_detected:
        lines.append("- Pain points: " + ", ".join(p.value for p in persona.pain_points_detected))
    if persona.sales_focus_score > 0.5:
        lines.append("- Sales-focused user")
    if persona.marketing_focus_score > 0.5:
        lines.append("- Marketing-focused user")
    if persona.compliance_focus_score > 0.5:
        lines.append("- Compliance-focused user")
    return lines


def build_selection_prompt(
    message: str, templates: list[TemplateVariant], persona: PersonaScoreVector
) -> str:
    options = "\n\n".join(
        f"{i}. {t.name} (ID: {t.id})\n   Description: {t.description}\n"
        f"   Best for queries about: {', '.join(t.best_for)}"
        for i, t in enumerate(templates, start=1)
    )
    persona_block = "\n".join(_persona_lines(persona)) or "- No persona signals yet"

    return f"""Select the best template for this user query:

Query: "{message}"

User Context:
{persona_block}

Available Templates:
{options}

Respond with ONLY the template ID and a one-sentence reason.
Format: TEMPLATE_ID | Reason"""


def select_template_by_keywords(message: str, templates: list[TemplateVariant]) -> TemplateSelection:
    """Score templates by best_for keyword hits; the first template wins ties and misses."""
    lowered = message.lower()
    best, best_score = templates[0], 0
    for template in templates:
        score = sum(1 for kw in template.best_for if kw in lowered)
        if score > best_score:
            best, best_score = template, score

    return TemplateSelection(
        template=best,
        confidence=0.7 if best_score > 0 else 0.5,
        reasoning=f"Keyword matching ({best_score} matches)",
    )


async def select_template(
    generator: TextGenerator,
    message: str,
    page_type: PageType,
    persona: PersonaScoreVector,
) -> TemplateSelection:
    """
    Ask the model to pick a template, falling back to keyword scoring.

    Args:
        generator: Text generation client
        message: Visitor message
        page_type: Resolved page type
        persona: Updated persona snapshot

    Returns:
        TemplateSelection (never raises)
    """
    settings = get_settings()
    templates = get_templates_for_type(page_type)

    try:
        reply = await generator.generate(
            build_selection_prompt(message, templates, persona),
            model=settings.TEMPLATE_MODEL,
            max_tokens=settings.TEMPLATE_SELECT_MAX_TOKENS,
            temperature=0.0,
            timeout=settings.PAGE_FAST_PATH_TIMEOUT_SECONDS,
        )
    except GenerationError as e:
        logger.warning(f"Template selection call failed, using keywords: {e}")
        return select_template_by_keywords(message, templates)

    template_id, _, reason = reply.strip().partition("|")
    template_id = template_id.strip().strip("`\"'")
    chosen = next((t for t in templates if t.id == template_id), None)
    if chosen is None:
        logger.info(f"Unknown template id from model: {template_id!r}, using keywords")
        return select_template_by_keywords(message, templates)

    return TemplateSelection(
        template=chosen,
        confidence=0.9,
        reasoning=reason.strip() or "Best match for query intent",
    )
