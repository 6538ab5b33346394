"""Conversational reply generation with persona-aware system prompts."""

import asyncio

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from app.core.config import get_settings
from app.core.llm import get_llm
from app.core.logging import get_logger
from app.core.persona_accumulator import describe_persona, primary_focus
from app.core.schemas_page import ConversationTurn, KnowledgeSnippet
from app.core.schemas_persona import PainPoint, PersonaScoreVector

logger = get_logger(__name__)

APOLOGY_REPLY = (
    "I apologize, but I had trouble generating a response. Could you tell me a bit more "
    "about your business and the challenges you're facing?"
)

REPLY_KB_DOCS = 3
REPLY_KB_CHARS = 500

BASE_SYSTEM_PROMPT = """You are BevGenie, an AI assistant for beverage industry professionals.

Your role is to have natural conversations with beverage suppliers and distributors to understand their challenges and recommend relevant solutions.

Core principles:
1. Be conversational and helpful, not salesy
2. Ask clarifying questions to understand their situation
3. Listen for signals about their company type and challenges
4. Provide insights and solutions based on their specific situation
5. Maintain a professional but friendly tone

You represent a company that helps beverage businesses with:
- Execution effectiveness and ROI tracking
- Market assessment and customer insights
- Sales team enablement and optimization
- Market positioning and differentiation
- Operational efficiency improvements
- Regulatory compliance support

Guidelines:
- Keep responses concise (2-3 sentences typically)
- When you detect a pain point, offer relevant context or solutions
- Ask follow-up questions to clarify and deepen understanding"""

PAIN_POINT_PROMPTS: dict[PainPoint, str] = {
    PainPoint.EXECUTION_BLIND_SPOT: (
        "The visitor cannot see what happens in the field. Talk about tracking field activity, "
        "attributing depletions to programs and proving ROI on trade spend."
    ),
    PainPoint.MARKET_ASSESSMENT: (
        "The visitor wants to understand their market. Talk about account-level market data, "
        "customer feedback and spotting white space."
    ),
    PainPoint.SALES_EFFECTIVENESS: (
        "The visitor wants a more effective sales team. Talk about prioritizing accounts, "
        "coaching reps with data and territory planning."
    ),
    PainPoint.MARKET_POSITIONING: (
        "The visitor is fighting for shelf and mind share. Talk about competitive insight, "
        "differentiated messaging and where their brand wins."
    ),
    PainPoint.OPERATIONAL_CHALLENGE: (
        "The visitor has process bottlenecks. Talk about automating reporting, cleaning up "
        "distributor data and removing manual work."
    ),
    PainPoint.REGULATORY_COMPLIANCE: (
        "The visitor is worried about compliance. Talk about label and pricing rules, audit "
        "trails and state-by-state requirements."
    ),
}


def get_recommendations(persona: PersonaScoreVector) -> str:
    """Conversation strategy hints (top 3)."""
    recommendations: list[str] = []

    if persona.org_type.value == "supplier":
        recommendations.append("Talk about field sales effectiveness and ROI tracking")
    elif persona.org_type.value == "retailer":
        recommendations.append("Discuss channel management and wholesale strategy")

    focus_hints = [
        ("sales_focus_score", "Focus on sales enablement and territory management"),
        ("marketing_focus_score", "Discuss brand positioning and market differentiation"),
        ("operations_focus_score", "Talk about process optimization and efficiency"),
        ("compliance_focus_score", "Address regulatory requirements and audit support"),
    ]
    for attr, hint in focus_hints:
        if getattr(persona, attr) > 0.3:
            recommendations.append(hint)

    if PainPoint.EXECUTION_BLIND_SPOT in persona.pain_points_detected:
        recommendations.append("Offer solutions for measuring field activity ROI")
    if PainPoint.MARKET_ASSESSMENT in persona.pain_points_detected:
        recommendations.append("Provide market research and customer insight tools")
    if persona.overall_confidence < 0.3:
        recommendations.append("Ask more discovery questions to understand their situation")

    if not recommendations:
        recommendations.append("Continue asking discovery questions to understand their needs")

    return "## Conversation strategy:\n- " + "\n- ".join(recommendations[:3])


def build_system_prompt(
    persona: PersonaScoreVector, snippets: list[KnowledgeSnippet] | None = None
) -> str:
    """Personalized system prompt with persona, strategy, pain point and knowledge context."""
    sections = [
        BASE_SYSTEM_PROMPT,
        f"## What we know about them:\n{describe_persona(persona)}",
        get_recommendations(persona),
    ]

    if persona.pain_points_detected:
        guidance = PAIN_POINT_PROMPTS.get(persona.pain_points_detected[0])
        if guidance:
            sections.append(f"## Pain point guidance:\n{guidance}")

    if snippets:
        docs = "\n\n".join(
            f"[{s.source_type}] {s.content[:REPLY_KB_CHARS]}" for s in snippets[:REPLY_KB_DOCS]
        )
        sections.append(f"## Relevant knowledge:\n{docs}")

    sections.append(
        "Remember: Your goal is to understand their needs and help them see how our "
        f"solutions fit their specific situation. Their primary focus appears to be {primary_focus(persona)}."
    )
    return "\n\n".join(sections)


async def generate_chat_reply(
    message: str,
    persona: PersonaScoreVector,
    history: list[ConversationTurn],
    snippets: list[KnowledgeSnippet] | None = None,
) -> str:
    """
    Generate the conversational reply.

    Falls back to a fixed apology when the model call fails or times out.
    """
    settings = get_settings()
    messages = [SystemMessage(content=build_system_prompt(persona, snippets))]
    for turn in history:
        if turn.role == "user":
            messages.append(HumanMessage(content=turn.content))
        else:
            messages.append(AIMessage(content=turn.content))
    messages.append(HumanMessage(content=message))

    llm = get_llm(temperature=0.7)
    try:
        response = await asyncio.wait_for(llm.ainvoke(messages), timeout=settings.CHAT_TIMEOUT_SECONDS)
    except TimeoutError:
        logger.warning("Chat reply timed out")
        return APOLOGY_REPLY
    except Exception as e:
        logger.error(f"Chat reply generation failed: {e}")
        return APOLOGY_REPLY

    content = response.content if isinstance(response.content, str) else ""
    return content.strip() or APOLOGY_REPLY
