"""Tests for persona score accumulation and derived views."""

import pytest

from app.core.persona_accumulator import (
    apply_signals,
    current_classification,
    describe_persona,
    has_persona_detected,
    persona_tags,
    primary_focus,
    top_pain_points,
)
from app.core.schemas_persona import (
    PainPoint,
    PersonaScoreVector,
    Signal,
    SignalDimension,
    SignalStrength,
)
from app.core.signal_extractors import extract_signals


def _signal(dimension, value, confidence=0.5, strength=SignalStrength.MEDIUM):
    return Signal(dimension, value, strength, confidence, evidence=value)


class TestApplySignals:
    def test_does_not_mutate_input(self):
        persona = PersonaScoreVector()
        apply_signals(persona, extract_signals("we are a craft brewery with a sales problem"))
        assert persona == PersonaScoreVector()

    def test_empty_signals_only_count_interaction(self):
        persona = PersonaScoreVector()
        updated = apply_signals(persona, [])

        assert updated.total_interactions == 1
        assert updated.model_dump(exclude={"total_interactions"}) == persona.model_dump(
            exclude={"total_interactions"}
        )
        assert updated.vectors_updated_at is None

    def test_vector_adopts_highest_total(self):
        signals = [
            _signal(SignalDimension.ORG_TYPE, "supplier", 0.4),
            _signal(SignalDimension.ORG_TYPE, "retailer", 0.3),
            _signal(SignalDimension.ORG_TYPE, "retailer", 0.3),
        ]
        updated = apply_signals(PersonaScoreVector(), signals, now_ms=1000)

        assert updated.org_type.value == "retailer"
        assert updated.org_type.confidence == pytest.approx((1.0 / 3) * 0.15)
        assert updated.org_type.history == ["retailer"]
        assert updated.vectors_updated_at == 1000

    def test_vector_tie_keeps_first_seen_value(self):
        signals = [
            _signal(SignalDimension.PRODUCT_FOCUS, "wine", 0.4),
            _signal(SignalDimension.PRODUCT_FOCUS, "beer", 0.4),
        ]
        updated = apply_signals(PersonaScoreVector(), signals)
        assert updated.product_focus.value == "wine"

    def test_history_is_bounded(self):
        persona = PersonaScoreVector()
        for value in ["S", "M", "L", "S", "M", "L", "S"]:
            persona = apply_signals(persona, [_signal(SignalDimension.ORG_SIZE, value)])

        assert persona.org_size.history == ["L", "S", "M", "L", "S"]
        assert persona.org_size.value == "S"

    def test_scores_are_monotonic_and_clamped(self):
        persona = PersonaScoreVector()
        signals = [
            _signal(SignalDimension.PAIN_POINT, "regulatory_compliance", 1.0, SignalStrength.STRONG),
            _signal(SignalDimension.FUNCTIONAL_FOCUS, "compliance", 1.0, SignalStrength.STRONG),
        ]
        previous = persona
        for _ in range(10):
            persona = apply_signals(persona, signals)
            assert persona.compliance_focus_score >= previous.compliance_focus_score
            assert (
                persona.pain_points_confidence[PainPoint.REGULATORY_COMPLIANCE]
                >= previous.pain_points_confidence.get(PainPoint.REGULATORY_COMPLIANCE, 0.0)
            )
            previous = persona

        assert persona.compliance_focus_score == 1.0
        assert persona.pain_points_confidence[PainPoint.REGULATORY_COMPLIANCE] == 1.0
        assert persona.overall_confidence == 1.0
        assert persona.total_interactions == 10

    def test_vector_confidence_is_capped_at_100(self):
        persona = PersonaScoreVector()
        persona.functional_role.confidence = 99.99
        updated = apply_signals(persona, [_signal(SignalDimension.FUNCTIONAL_ROLE, "sales", 1.0)])
        assert updated.functional_role.confidence == 100.0

    def test_pain_point_weighting(self):
        signal = _signal(SignalDimension.PAIN_POINT, "market_assessment", 0.65, SignalStrength.MEDIUM)
        updated = apply_signals(PersonaScoreVector(), [signal])

        assert updated.pain_points_detected == [PainPoint.MARKET_ASSESSMENT]
        assert updated.pain_points_confidence[PainPoint.MARKET_ASSESSMENT] == pytest.approx(0.13)
        assert updated.overall_confidence == pytest.approx(0.13)

    def test_detected_list_matches_confidence_map(self):
        persona = apply_signals(
            PersonaScoreVector(),
            extract_signals("We struggle to prove ROI on our field sales team"),
        )
        assert set(persona.pain_points_detected) == set(persona.pain_points_confidence)

    def test_count_interaction_flag(self):
        updated = apply_signals(PersonaScoreVector(), [], count_interaction=False)
        assert updated.total_interactions == 0

    def test_vectors_updated_at_unchanged_without_vector_signals(self):
        persona = PersonaScoreVector(vectors_updated_at=5)
        updated = apply_signals(persona, [_signal(SignalDimension.PAIN_POINT, "market_assessment")])
        assert updated.vectors_updated_at == 5


class TestDerivedViews:
    def _persona(self) -> PersonaScoreVector:
        return apply_signals(
            PersonaScoreVector(),
            extract_signals("Our craft brewery sales team struggles to track field execution ROI"),
            now_ms=1,
        )

    def test_current_classification(self):
        classification = current_classification(self._persona())

        assert classification.functional_role.value == "sales"
        assert classification.product_focus.value == "beer"
        assert classification.org_type.value == "supplier"
        assert classification.functional_role.detection_count == 1
        assert classification.all_vectors_identified is True

    def test_classification_of_empty_persona(self):
        classification = current_classification(PersonaScoreVector())
        assert classification.all_vectors_identified is False
        assert classification.org_size.value is None

    def test_top_pain_points_ordered_by_confidence(self):
        persona = PersonaScoreVector(
            pain_points_detected=[PainPoint.MARKET_ASSESSMENT, PainPoint.REGULATORY_COMPLIANCE],
            pain_points_confidence={
                PainPoint.MARKET_ASSESSMENT: 0.2,
                PainPoint.REGULATORY_COMPLIANCE: 0.6,
            },
        )
        assert top_pain_points(persona) == [PainPoint.REGULATORY_COMPLIANCE, PainPoint.MARKET_ASSESSMENT]

    def test_primary_focus(self):
        assert primary_focus(PersonaScoreVector(marketing_focus_score=0.7)) == "marketing"

    def test_describe_persona(self):
        description = describe_persona(self._persona())
        assert "Works in sales" in description
        assert "supplier/producer" in description
        assert "execution blind spot" in description

    def test_describe_unknown_persona(self):
        assert describe_persona(PersonaScoreVector()).startswith("Visitor persona not yet identified")

    def test_persona_tags(self):
        supplier = PersonaScoreVector()
        supplier.org_type.value = "supplier"
        retailer = PersonaScoreVector()
        retailer.org_type.value = "retailer"

        assert persona_tags(supplier) == ["supplier"]
        assert persona_tags(retailer) == ["distributor"]
        assert persona_tags(PersonaScoreVector()) == []

    def test_has_persona_detected_threshold(self):
        assert has_persona_detected(PersonaScoreVector(overall_confidence=0.31))
        assert not has_persona_detected(PersonaScoreVector(overall_confidence=0.3))
