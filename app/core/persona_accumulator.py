"""Persona score accumulation across conversation turns.

Merges extracted signals into the per-session PersonaScoreVector:
- Detection vectors adopt the value with the highest summed confidence,
  gain avg_confidence * 0.15 (clamped to 100) and record the adopted
  value in a FIFO history capped at 5.
- Pain points and legacy scores gain strength_weight * confidence,
  clamped to 1.0.
- overall_confidence is the mean of tracked pain-point confidences.

There is no decay: confidence only moves up until the session is erased.
"""

import time
from collections import defaultdict

from app.core.logging import get_logger
from app.core.schemas_persona import (
    DETECTION_DIMENSIONS,
    HISTORY_CAP,
    STRENGTH_WEIGHTS,
    VECTOR_CONFIDENCE_MAX,
    PainPoint,
    PersonaClassification,
    PersonaScoreVector,
    Signal,
    SignalDimension,
    VectorClassification,
)

logger = get_logger(__name__)

VECTOR_CONFIDENCE_STEP = 0.15

# (dimension, value) -> persona attribute holding the [0, 1] score
_SCORE_FIELDS: dict[tuple[SignalDimension, str], str] = {
    (SignalDimension.USER_TYPE, "supplier"): "supplier_score",
    (SignalDimension.USER_TYPE, "distributor"): "distributor_score",
    (SignalDimension.COMPANY_SIZE, "craft"): "craft_score",
    (SignalDimension.COMPANY_SIZE, "mid_sized"): "mid_sized_score",
    (SignalDimension.COMPANY_SIZE, "large"): "large_score",
    (SignalDimension.FUNCTIONAL_FOCUS, "sales"): "sales_focus_score",
    (SignalDimension.FUNCTIONAL_FOCUS, "marketing"): "marketing_focus_score",
    (SignalDimension.FUNCTIONAL_FOCUS, "operations"): "operations_focus_score",
    (SignalDimension.FUNCTIONAL_FOCUS, "compliance"): "compliance_focus_score",
}


def _clamp(value: float, upper: float) -> float:
    return max(0.0, min(upper, value))


def _weight(signal: Signal) -> float:
    return STRENGTH_WEIGHTS[signal.strength] * signal.confidence


def _apply_vector(persona: PersonaScoreVector, dimension: SignalDimension, signals: list[Signal]) -> bool:
    """Update one detection vector in place. Returns True if it was touched."""
    if not signals:
        return False

    totals: dict[str, float] = defaultdict(float)
    for signal in signals:
        totals[signal.value] += signal.confidence

    # dict preserves first-seen order, so ties keep the earliest value
    best_value = None
    best_total = -1.0
    for value, total in totals.items():
        if total > best_total:
            best_value, best_total = value, total

    avg_confidence = sum(s.confidence for s in signals) / len(signals)

    vector = persona.vector(dimension)
    vector.value = best_value
    vector.confidence = _clamp(
        vector.confidence + avg_confidence * VECTOR_CONFIDENCE_STEP, VECTOR_CONFIDENCE_MAX
    )
    vector.history = (vector.history + [best_value])[-HISTORY_CAP:]
    return True


def apply_signals(
    persona: PersonaScoreVector,
    signals: list[Signal],
    *,
    count_interaction: bool = True,
    now_ms: int | None = None,
) -> PersonaScoreVector:
    """
    Merge signals into a copy of the persona.

    Args:
        persona: Current persona state (not mutated)
        signals: Signals extracted from one message or interaction
        count_interaction: Whether this call represents one processed interaction
        now_ms: Clock override for vectors_updated_at

    Returns:
        New PersonaScoreVector
    """
    updated = persona.model_copy(deep=True)

    by_dimension: dict[SignalDimension, list[Signal]] = defaultdict(list)
    for signal in signals:
        by_dimension[signal.dimension].append(signal)

    vectors_changed = False
    for dimension in DETECTION_DIMENSIONS:
        vectors_changed |= _apply_vector(updated, dimension, by_dimension.get(dimension, []))

    for signal in by_dimension.get(SignalDimension.PAIN_POINT, []):
        pain_point = PainPoint(signal.value)
        current = updated.pain_points_confidence.get(pain_point, 0.0)
        updated.pain_points_confidence[pain_point] = _clamp(current + _weight(signal), 1.0)
        if pain_point not in updated.pain_points_detected:
            updated.pain_points_detected.append(pain_point)

    for signal in signals:
        field_name = _SCORE_FIELDS.get((signal.dimension, signal.value))
        if field_name:
            setattr(updated, field_name, _clamp(getattr(updated, field_name) + _weight(signal), 1.0))

    # Keep detected list and confidence map consistent
    for pain_point in updated.pain_points_detected:
        updated.pain_points_confidence.setdefault(pain_point, 0.0)

    updated.overall_confidence = _overall_confidence(updated)

    if count_interaction:
        updated.total_interactions += 1
    if vectors_changed:
        updated.vectors_updated_at = now_ms if now_ms is not None else int(time.time() * 1000)

    return updated


def _overall_confidence(persona: PersonaScoreVector) -> float:
    values = list(persona.pain_points_confidence.values())
    if not values:
        return 0.0
    return _clamp(sum(values) / len(values), 1.0)


# =======================
# Derived views
# =======================


def current_classification(persona: PersonaScoreVector) -> PersonaClassification:
    """Flatten the four detection vectors into a classification snapshot."""

    def view(dimension: SignalDimension) -> VectorClassification:
        vector = persona.vector(dimension)
        return VectorClassification(
            value=vector.value,
            confidence=vector.confidence,
            detection_count=len(vector.history),
        )

    views = {dimension.value: view(dimension) for dimension in DETECTION_DIMENSIONS}
    return PersonaClassification(
        **views,
        all_vectors_identified=all(v.value is not None for v in views.values()),
    )


def top_pain_points(persona: PersonaScoreVector, limit: int = 3) -> list[PainPoint]:
    """Detected pain points ordered by confidence, highest first."""
    ranked = sorted(
        persona.pain_points_detected,
        key=lambda p: persona.pain_points_confidence.get(p, 0.0),
        reverse=True,
    )
    return ranked[:limit]


def primary_focus(persona: PersonaScoreVector) -> str:
    scores = {
        "sales": persona.sales_focus_score,
        "marketing": persona.marketing_focus_score,
        "operations": persona.operations_focus_score,
        "compliance": persona.compliance_focus_score,
    }
    return max(scores, key=scores.get)


def primary_persona_class(persona: PersonaScoreVector) -> dict:
    """Coarse persona summary that drives brochure content."""
    return {
        "org_type": persona.org_type.value,
        "org_size": persona.org_size.value,
        "functional_role": persona.functional_role.value,
        "product_focus": persona.product_focus.value,
        "primary_focus": primary_focus(persona),
        "top_pain_points": [p.value for p in top_pain_points(persona)],
    }


_ORG_TYPE_LABELS = {"supplier": "a supplier/producer", "retailer": "a retailer/distributor"}
_ORG_SIZE_LABELS = {"S": "small/craft", "M": "mid-sized", "L": "large/enterprise"}


def describe_persona(persona: PersonaScoreVector) -> str:
    """Natural-language persona description for LLM prompts."""
    parts: list[str] = []

    if persona.functional_role.value:
        parts.append(f"Works in {persona.functional_role.value}")
    if persona.org_type.value:
        org = _ORG_TYPE_LABELS.get(persona.org_type.value, persona.org_type.value)
        size = _ORG_SIZE_LABELS.get(persona.org_size.value or "", "")
        parts.append(f"at {org}" if not size else f"at {org} ({size})")
    elif persona.org_size.value:
        parts.append(f"at a {_ORG_SIZE_LABELS[persona.org_size.value]} company")
    if persona.product_focus.value:
        parts.append(f"focused on {persona.product_focus.value}")

    description = " ".join(parts) if parts else "Visitor persona not yet identified"

    pain_points = top_pain_points(persona)
    if pain_points:
        labels = ", ".join(p.value.replace("_", " ") for p in pain_points)
        description += f". Key challenges: {labels}"

    description += f". Primary focus: {primary_focus(persona)}"
    return description + "."


def persona_tags(persona: PersonaScoreVector) -> list[str]:
    """Knowledge-base persona filter tags derived from the canonical org_type vector."""
    if persona.org_type.value == "supplier":
        return ["supplier"]
    if persona.org_type.value == "retailer":
        return ["distributor"]
    return []


def has_persona_detected(persona: PersonaScoreVector) -> bool:
    return persona.overall_confidence > 0.3
