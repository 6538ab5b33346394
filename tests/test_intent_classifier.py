"""Tests for page intent classification."""

import pytest

from app.core.intent_classifier import (
    Intent,
    PageType,
    classify_intent,
    context_multiplier,
    is_quality_inquiry,
    summarize_intents,
)
from app.core.schemas_persona import PersonaScoreVector


class TestClassifyIntent:
    def test_roi_question_on_first_turn(self):
        analysis = classify_intent("What's the ROI and payback on this investment?", turn_count=0)

        assert analysis.intent == Intent.ROI_INQUIRY
        assert analysis.page_type == PageType.ROI_CALCULATOR
        assert analysis.confidence == pytest.approx(3 / 6 * 0.85 * 1.2)
        assert analysis.should_generate_page is True
        assert analysis.context_multiplier == 1.2

    def test_greeting_is_general(self):
        analysis = classify_intent("hi")

        assert analysis.intent == Intent.GENERAL_QUESTION
        assert analysis.page_type is None
        assert analysis.should_generate_page is False

    def test_weak_match_below_threshold(self):
        analysis = classify_intent("is there an example?", turn_count=5)

        assert analysis.intent == Intent.SUCCESS_STORY_INQUIRY
        assert analysis.should_generate_page is False

    def test_later_turns_need_stronger_evidence(self):
        message = "What is the cost and payback?"
        first = classify_intent(message, turn_count=0)
        later = classify_intent(message, turn_count=4)

        assert first.should_generate_page is True
        assert later.should_generate_page is False
        assert later.confidence < first.confidence

    def test_deterministic(self):
        message = "How does the integration timeline compare to a competitor?"
        a = classify_intent(message, 1)
        b = classify_intent(message, 1)
        assert (a.intent, a.confidence, a.should_generate_page) == (b.intent, b.confidence, b.should_generate_page)

    def test_higher_weight_wins_equal_matches(self):
        analysis = classify_intent("a feature problem")
        assert analysis.intent == Intent.PAIN_POINT_INQUIRY

    def test_sales_focus_boosts_roi(self):
        message = "Tell me about cost"
        plain = classify_intent(message, turn_count=1)
        boosted = classify_intent(message, turn_count=1, persona=PersonaScoreVector(sales_focus_score=0.8))

        assert boosted.scores[Intent.ROI_INQUIRY] == pytest.approx(
            plain.scores[Intent.ROI_INQUIRY] * 1.15
        )

    def test_focus_at_threshold_does_not_boost(self):
        message = "Tell me about cost"
        plain = classify_intent(message)
        same = classify_intent(message, persona=PersonaScoreVector(sales_focus_score=0.6))
        assert same.scores == plain.scores

    def test_confidence_is_capped(self):
        message = "problem challenge struggle difficult issue inefficient"
        analysis = classify_intent(message, persona=PersonaScoreVector(sales_focus_score=0.9))
        assert analysis.confidence == 1.0
        assert analysis.page_type == PageType.SOLUTION_BRIEF

    @pytest.mark.parametrize(
        "turn_count,expected",
        [(0, 1.2), (1, 0.95), (2, 0.95), (3, 0.8), (10, 0.8)],
    )
    def test_context_multiplier(self, turn_count, expected):
        assert context_multiplier(turn_count) == expected


class TestQualityGate:
    @pytest.mark.parametrize("message", ["hi", "thanks", "ok sure", "   ", "?? !! ..", ""])
    def test_rejects_low_quality(self, message):
        assert is_quality_inquiry(message) is False

    def test_accepts_real_question(self):
        assert is_quality_inquiry("How do you track field execution?") is True


class TestSummarizeIntents:
    def test_summary(self):
        analyses = [
            classify_intent("What's the ROI and payback on this investment?"),
            classify_intent("What's the cost and payback on pricing?"),
            classify_intent("hi"),
        ]
        summary = summarize_intents(analyses)

        assert summary["total"] == 3
        assert summary["generated"] == 2
        assert summary["generation_rate"] == pytest.approx(2 / 3)
        assert summary["top_intent"] == "roi_inquiry"
        assert summary["top_page_type"] == "roi_calculator"

    def test_empty(self):
        summary = summarize_intents([])
        assert summary["total"] == 0
        assert summary["generation_rate"] == 0.0
        assert summary["top_intent"] is None
