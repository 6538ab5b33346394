"""Keyword-based persona signal extraction.

Maps raw visitor text (chat messages and the text of clicked navigation
elements) to typed, weighted signals across:
- Four detection vectors (functional role, org type, org size, product focus)
- Six pain-point categories
- Legacy user-type / company-size / functional-focus dimensions

Matching is case-insensitive substring matching. Overlapping keywords may
fire in more than one category since the dimensions are independent.
"""

from dataclasses import dataclass
from typing import Literal, Protocol

from app.core.logging import get_logger
from app.core.schemas_persona import Signal, SignalDimension, SignalStrength

logger = get_logger(__name__)


@dataclass(frozen=True)
class KeywordCategory:
    """One candidate value of one dimension with its keyword list."""

    dimension: SignalDimension
    value: str
    keywords: tuple[str, ...]
    per_match: float = 0.2
    cap: float = 0.9
    fixed_confidence: float | None = None

    def confidence_for(self, match_count: int) -> float:
        if self.fixed_confidence is not None:
            return self.fixed_confidence
        return min(self.cap, match_count * self.per_match)


# =======================
# Detection vectors
# =======================

_ROLE = SignalDimension.FUNCTIONAL_ROLE
_ORG = SignalDimension.ORG_TYPE
_SIZE = SignalDimension.ORG_SIZE
_PRODUCT = SignalDimension.PRODUCT_FOCUS

VECTOR_CATEGORIES: tuple[KeywordCategory, ...] = (
    KeywordCategory(
        _ROLE,
        "sales",
        (
            "sales", "field", "revenue", "quota", "territory", "deal", "pipeline",
            "forecast", "customer acquisition", "sell through",
        ),
        per_match=0.2,
        cap=0.95,
    ),
    KeywordCategory(
        _ROLE,
        "marketing",
        (
            "marketing", "brand", "awareness", "campaign", "positioning", "messaging",
            "market research", "customer insight", "competitor analysis",
        ),
        per_match=0.2,
        cap=0.95,
    ),
    KeywordCategory(
        _ORG,
        "supplier",
        (
            "supplier", "producer", "manufacturer", "vineyard", "brewery", "distillery",
            "production", "our product", "our brand", "product launch",
        ),
        per_match=0.2,
        cap=0.9,
    ),
    KeywordCategory(
        _ORG,
        "retailer",
        (
            "retailer", "distributor", "reseller", "wholesale", "on-premise", "retail",
            "channel", "customer account", "retail partner", "portfolio management",
        ),
        per_match=0.2,
        cap=0.9,
    ),
    KeywordCategory(
        _SIZE,
        "S",
        (
            "small", "startup", "family", "independent", "local", "boutique", "craft",
            "artisan", "founder-led", "niche",
        ),
        per_match=0.15,
        cap=0.8,
    ),
    KeywordCategory(
        _SIZE,
        "M",
        (
            "mid-sized", "regional", "established", "growing", "expanding", "multi-state",
            "scaling", "emerging",
        ),
        per_match=0.15,
        cap=0.8,
    ),
    KeywordCategory(
        _SIZE,
        "L",
        (
            "large", "enterprise", "national", "multinational", "global", "fortune",
            "public company", "thousands", "international",
        ),
        per_match=0.15,
        cap=0.8,
    ),
    KeywordCategory(
        _PRODUCT,
        "beer",
        ("beer", "brewery", "breweries", "brewpub", "lager", "hops", "craft beer", "ipa"),
        per_match=0.2,
        cap=0.95,
    ),
    KeywordCategory(
        _PRODUCT,
        "spirits",
        (
            "spirit", "whiskey", "whisky", "vodka", "tequila", "liquor", "distillery",
            "bourbon", "brandy",
        ),
        per_match=0.2,
        cap=0.95,
    ),
    KeywordCategory(
        _PRODUCT,
        "wine",
        ("wine", "winery", "vineyard", "vintage", "sommelier", "varietal", "cabernet"),
        per_match=0.2,
        cap=0.95,
    ),
)

# =======================
# Pain points (fixed confidence)
# =======================

_PAIN = SignalDimension.PAIN_POINT

PAIN_POINT_CATEGORIES: tuple[KeywordCategory, ...] = (
    KeywordCategory(
        _PAIN, "execution_blind_spot",
        ("roi", "prove", "measure", "effectiveness", "field", "track"),
        fixed_confidence=0.7,
    ),
    KeywordCategory(
        _PAIN, "market_assessment",
        ("market", "research", "customer", "understand", "feedback"),
        fixed_confidence=0.65,
    ),
    KeywordCategory(
        _PAIN, "sales_effectiveness",
        ("sales", "train", "performance", "enablement", "optimize"),
        fixed_confidence=0.72,
    ),
    KeywordCategory(
        _PAIN, "market_positioning",
        ("position", "differentiate", "competitor", "brand", "messaging"),
        fixed_confidence=0.68,
    ),
    KeywordCategory(
        _PAIN, "operational_challenge",
        ("process", "efficiency", "workflow", "operation", "bottleneck"),
        fixed_confidence=0.70,
    ),
    KeywordCategory(
        _PAIN, "regulatory_compliance",
        ("compliance", "regulatory", "legal", "standard", "requirement"),
        fixed_confidence=0.85,
    ),
)

# =======================
# Legacy dimensions
# =======================

LEGACY_CATEGORIES: tuple[KeywordCategory, ...] = (
    KeywordCategory(
        SignalDimension.USER_TYPE, "supplier",
        ("supplier", "brand", "producer", "manufacturer", "our product", "craft"),
        per_match=0.2, cap=0.9,
    ),
    KeywordCategory(
        SignalDimension.USER_TYPE, "distributor",
        ("distributor", "distribution", "wholesale", "portfolio", "accounts", "route"),
        per_match=0.2, cap=0.9,
    ),
    KeywordCategory(
        SignalDimension.COMPANY_SIZE, "craft",
        ("craft", "small", "independent", "boutique", "family"),
        per_match=0.15, cap=0.8,
    ),
    KeywordCategory(
        SignalDimension.COMPANY_SIZE, "mid_sized",
        ("mid-sized", "regional", "growing", "expanding"),
        per_match=0.15, cap=0.8,
    ),
    KeywordCategory(
        SignalDimension.COMPANY_SIZE, "large",
        ("large", "enterprise", "national", "global"),
        per_match=0.15, cap=0.8,
    ),
    KeywordCategory(
        SignalDimension.FUNCTIONAL_FOCUS, "sales",
        ("sales", "sell", "revenue", "deal", "quota", "field"),
        per_match=0.15, cap=0.85,
    ),
    KeywordCategory(
        SignalDimension.FUNCTIONAL_FOCUS, "marketing",
        ("marketing", "brand", "campaign", "awareness", "messaging"),
        per_match=0.15, cap=0.85,
    ),
    KeywordCategory(
        SignalDimension.FUNCTIONAL_FOCUS, "operations",
        ("operations", "process", "efficiency", "logistics", "workflow"),
        per_match=0.15, cap=0.85,
    ),
    KeywordCategory(
        SignalDimension.FUNCTIONAL_FOCUS, "compliance",
        ("compliance", "regulatory", "legal", "ttb", "audit"),
        per_match=0.15, cap=0.85,
    ),
)


def match_category(
    text: str,
    category: KeywordCategory,
    source: Literal["message", "navigation"] = "message",
) -> Signal | None:
    """
    Run one category over lowercased text.

    Returns:
        A Signal if at least one keyword matched, otherwise None
    """
    matched = [kw for kw in category.keywords if kw in text]
    if not matched:
        return None

    strength = SignalStrength.STRONG if len(matched) >= 2 else SignalStrength.MEDIUM
    return Signal(
        dimension=category.dimension,
        value=category.value,
        strength=strength,
        confidence=category.confidence_for(len(matched)),
        evidence=matched[0],
        source=source,
    )


class SignalExtractor(Protocol):
    """Anything that turns visitor text into persona signals."""

    def extract(self, text: str, interaction_context: str | None = None) -> list[Signal]: ...


class KeywordSignalExtractor:
    """Deterministic substring-matching extractor."""

    def __init__(
        self,
        vector_categories: tuple[KeywordCategory, ...] = VECTOR_CATEGORIES,
        message_only_categories: tuple[KeywordCategory, ...] = PAIN_POINT_CATEGORIES
        + LEGACY_CATEGORIES,
    ):
        self.vector_categories = vector_categories
        self.message_only_categories = message_only_categories

    def extract(self, text: str, interaction_context: str | None = None) -> list[Signal]:
        signals: list[Signal] = []

        lowered = (text or "").strip().lower()
        if lowered:
            for category in self.vector_categories + self.message_only_categories:
                signal = match_category(lowered, category, "message")
                if signal:
                    signals.append(signal)

        context = (interaction_context or "").strip().lower()
        if context:
            for category in self.vector_categories:
                signal = match_category(context, category, "navigation")
                if signal:
                    signals.append(signal)

        if signals:
            logger.debug(
                f"Extracted {len(signals)} signals",
                extra={"extra_data": {"signal_count": len(signals)}},
            )
        return signals


_default_extractor = KeywordSignalExtractor()


def extract_signals(text: str, interaction_context: str | None = None) -> list[Signal]:
    """Extract signals with the default keyword extractor."""
    return _default_extractor.extract(text, interaction_context)
