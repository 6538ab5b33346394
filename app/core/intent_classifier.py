"""Intent classification for deciding whether and what page to generate.

Scores a single message against keyword taxonomies for six page intents,
adjusts by conversation depth and persona focus, and maps the winner to a
page type. general_question is the fallback and never triggers generation.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from app.core.logging import get_logger
from app.core.schemas_persona import PersonaScoreVector

logger = get_logger(__name__)


class Intent(str, Enum):
    PAIN_POINT_INQUIRY = "pain_point_inquiry"
    FEATURE_QUESTION = "feature_question"
    SUCCESS_STORY_INQUIRY = "success_story_inquiry"
    COMPETITIVE_INQUIRY = "competitive_inquiry"
    IMPLEMENTATION_QUESTION = "implementation_question"
    ROI_INQUIRY = "roi_inquiry"
    GENERAL_QUESTION = "general_question"


class PageType(str, Enum):
    SOLUTION_BRIEF = "solution_brief"
    FEATURE_SHOWCASE = "feature_showcase"
    CASE_STUDY = "case_study"
    COMPARISON = "comparison"
    IMPLEMENTATION_ROADMAP = "implementation_roadmap"
    ROI_CALCULATOR = "roi_calculator"


@dataclass(frozen=True)
class IntentPattern:
    keywords: tuple[str, ...]
    weight: float


# Declaration order is the tie-break order
INTENT_PATTERNS: dict[Intent, IntentPattern] = {
    Intent.PAIN_POINT_INQUIRY: IntentPattern(
        ("problem", "challenge", "struggle", "difficult", "issue", "inefficient"), 1.0
    ),
    Intent.FEATURE_QUESTION: IntentPattern(
        ("feature", "capability", "how does", "does it", "functionality", "support"), 0.9
    ),
    Intent.SUCCESS_STORY_INQUIRY: IntentPattern(
        ("case study", "success", "example", "results", "proof", "similar"), 0.95
    ),
    Intent.COMPETITIVE_INQUIRY: IntentPattern(
        ("compared to", "versus", "competitor", "alternative", "better than", "different from"),
        0.85,
    ),
    Intent.IMPLEMENTATION_QUESTION: IntentPattern(
        ("implement", "rollout", "onboard", "integration", "timeline", "how long"), 0.8
    ),
    Intent.ROI_INQUIRY: IntentPattern(
        ("roi", "return on investment", "payback", "investment", "cost", "pricing"), 0.85
    ),
}

PAGE_TYPE_BY_INTENT: dict[Intent, PageType] = {
    Intent.PAIN_POINT_INQUIRY: PageType.SOLUTION_BRIEF,
    Intent.FEATURE_QUESTION: PageType.FEATURE_SHOWCASE,
    Intent.SUCCESS_STORY_INQUIRY: PageType.CASE_STUDY,
    Intent.COMPETITIVE_INQUIRY: PageType.COMPARISON,
    Intent.IMPLEMENTATION_QUESTION: PageType.IMPLEMENTATION_ROADMAP,
    Intent.ROI_INQUIRY: PageType.ROI_CALCULATOR,
}

GENERATION_THRESHOLD = 0.3
FOCUS_BOOST_THRESHOLD = 0.6

# focus score attribute -> {intent: multiplier}
PERSONA_BOOSTS: dict[str, dict[Intent, float]] = {
    "sales_focus_score": {Intent.PAIN_POINT_INQUIRY: 1.1, Intent.ROI_INQUIRY: 1.15},
    "marketing_focus_score": {Intent.FEATURE_QUESTION: 1.1, Intent.SUCCESS_STORY_INQUIRY: 1.15},
    "compliance_focus_score": {Intent.IMPLEMENTATION_QUESTION: 1.1},
}

LOW_QUALITY_MESSAGES = frozenset({"hi", "hello", "hey", "thanks", "ok", "yes", "no"})


@dataclass
class IntentAnalysis:
    """Outcome of classifying one message."""

    intent: Intent
    confidence: float
    should_generate_page: bool
    page_type: PageType | None
    context_multiplier: float
    reasoning: str
    scores: dict[Intent, float] = field(default_factory=dict)


def context_multiplier(turn_count: int) -> float:
    """First turn x1.2, turns 1-2 x0.95, later turns x0.8."""
    if turn_count <= 0:
        return 1.2
    if turn_count < 3:
        return 0.95
    return 0.8


def _score_intents(message: str) -> dict[Intent, float]:
    lowered = message.lower()
    scores: dict[Intent, float] = {}
    for intent, pattern in INTENT_PATTERNS.items():
        matches = sum(1 for kw in pattern.keywords if kw in lowered)
        scores[intent] = (matches / len(pattern.keywords)) * pattern.weight
    return scores


def _apply_persona_boosts(
    scores: dict[Intent, float], persona: PersonaScoreVector | None
) -> dict[Intent, float]:
    if persona is None:
        return scores
    boosted = dict(scores)
    for attr, multipliers in PERSONA_BOOSTS.items():
        if getattr(persona, attr) > FOCUS_BOOST_THRESHOLD:
            for intent, multiplier in multipliers.items():
                boosted[intent] *= multiplier
    return boosted


def _reasoning(intent: Intent, confidence: float) -> str:
    if confidence > 0.7:
        level = "high"
    elif confidence > 0.4:
        level = "medium"
    else:
        level = "low"
    return f"Message shows {level} confidence for {intent.value.replace('_', ' ')}"


def classify_intent(
    message: str,
    turn_count: int = 0,
    persona: PersonaScoreVector | None = None,
) -> IntentAnalysis:
    """
    Classify a message into a page intent.

    Args:
        message: Visitor message
        turn_count: Number of prior conversation turns (0 = first message)
        persona: Updated persona snapshot for focus boosts

    Returns:
        IntentAnalysis with the winning intent and generation decision
    """
    multiplier = context_multiplier(turn_count)
    scores = _score_intents(message)
    scores = {intent: score * multiplier for intent, score in scores.items()}
    scores = _apply_persona_boosts(scores, persona)

    best_intent = Intent.GENERAL_QUESTION
    best_score = 0.0
    for intent, score in scores.items():
        if score > best_score:
            best_intent, best_score = intent, score

    should_generate = best_score > GENERATION_THRESHOLD and best_intent != Intent.GENERAL_QUESTION
    confidence = min(best_score, 1.0)

    return IntentAnalysis(
        intent=best_intent,
        confidence=confidence,
        should_generate_page=should_generate,
        page_type=PAGE_TYPE_BY_INTENT.get(best_intent),
        context_multiplier=multiplier,
        reasoning=_reasoning(best_intent, confidence),
        scores=scores,
    )


def is_quality_inquiry(message: str) -> bool:
    """Reject greetings, acknowledgements and near-empty messages before classifying."""
    cleaned = (message or "").strip().lower()
    if len(cleaned.split()) < 3:
        return False
    if cleaned in LOW_QUALITY_MESSAGES:
        return False
    if len(re.sub(r"[^a-z0-9 ]", "", cleaned).strip()) < 5:
        return False
    return True


def summarize_intents(analyses: list[IntentAnalysis]) -> dict:
    """Aggregate generation metrics over a set of classified messages."""
    total = len(analyses)
    generated = [a for a in analyses if a.should_generate_page]

    intent_counts = Counter(a.intent for a in analyses)
    page_counts = Counter(a.page_type for a in generated if a.page_type)

    return {
        "total": total,
        "generated": len(generated),
        "generation_rate": len(generated) / total if total else 0.0,
        "top_intent": intent_counts.most_common(1)[0][0].value if intent_counts else None,
        "top_page_type": page_counts.most_common(1)[0][0].value if page_counts else None,
    }
