"""Tests for keyword-based question classification."""

from __future__ import annotations

import pytest

from advisor_orchestrator.analysis.question_classifier import (
    Complexity,
    QuestionClassifier,
    Urgency,
)


@pytest.fixture
def classifier() -> QuestionClassifier:
    return QuestionClassifier()


class TestDomainAndType:
    """Tests for domain and question-type detection."""

    def test_comparative_wellness_question(self, classifier):
        insight = classifier.classify("Which is better for diabetic patients: rice or millet?")

        assert insight.domain == "natural_remedies"
        assert insight.question_type == "comparative"
        assert insight.confidence == 0.9
        assert insight.complexity == Complexity.MEDIUM

    def test_product_strategy(self, classifier):
        insight = classifier.classify("How should we design our product roadmap strategy?")

        assert insight.domain == "product_development"
        # Strategy is checked before ideation and informational
        assert insight.question_type == "strategy"

    def test_clinical_technical(self, classifier):
        insight = classifier.classify("What system architecture suits a clinical trial platform?")

        assert insight.domain == "clinical_research"
        assert insight.question_type == "technical"

    def test_education_ideation(self, classifier):
        insight = classifier.classify("Brainstorm a new curriculum idea")

        assert insight.domain == "education"
        assert insight.question_type == "product_ideation"

    def test_informational(self, classifier):
        insight = classifier.classify("Explain acupuncture")

        assert insight.domain == "natural_remedies"
        assert insight.question_type == "informational"

    def test_unmatched_is_general(self, classifier):
        insight = classifier.classify("Tell me something")

        assert insight.domain == "general"
        assert insight.question_type == "general"
        assert insight.confidence == 0.5
        assert insight.complexity == Complexity.LOW

    def test_vs_is_comparative(self, classifier):
        assert classifier.classify("Herbal tea vs coffee").question_type == "comparative"

    def test_plurals_match(self, classifier):
        assert classifier.classify("Thoughts on supplements").domain == "natural_remedies"
        assert classifier.classify("Thoughts on therapies").domain == "clinical_research"

    def test_empty_question(self, classifier):
        insight = classifier.classify("")

        assert insight.domain == "general"
        assert insight.keywords == ()
        assert insight.complexity == Complexity.LOW


class TestConfidence:
    """Confidence grows with the number of matched keywords."""

    def test_single_match(self, classifier):
        insight = classifier.classify("Thoughts on curriculum")

        assert insight.domain == "education"
        assert insight.question_type == "general"
        assert insight.confidence == 0.7

    def test_multiple_matches(self, classifier):
        assert classifier.classify("Explain the curriculum").confidence == 0.9


class TestTiers:
    """Tests for complexity and urgency tiers."""

    def test_long_question_is_high_complexity(self, classifier):
        question = "Please describe the situation in detail " * 6
        assert classifier.classify(question).complexity == Complexity.HIGH

    def test_keyword_dense_question_is_high_complexity(self, classifier):
        question = "pricing branding marketing sales growth analytics metrics roadmap launch"
        assert classifier.classify(question).complexity == Complexity.HIGH

    def test_urgency_high(self, classifier):
        assert classifier.classify("URGENT: please help now!").urgency == Urgency.HIGH

    def test_urgency_medium(self, classifier):
        assert classifier.classify("Any thoughts on this!").urgency == Urgency.MEDIUM

    def test_urgency_low(self, classifier):
        assert classifier.classify("Any thoughts on this").urgency == Urgency.LOW


class TestKeywords:
    """Tests for keyword extraction."""

    def test_drops_stop_words_short_tokens_and_duplicates(self, classifier):
        keywords = classifier.extract_keywords(["the", "product", "ai", "product", "launch"])
        assert keywords == ["product", "launch"]

    def test_classification_is_deterministic(self, classifier):
        question = "Which diet plan is better for athletes?"
        assert classifier.classify(question) == classifier.classify(question)

    def test_to_dict(self, classifier):
        data = classifier.classify("Explain acupuncture").to_dict()

        assert data["domain"] == "natural_remedies"
        assert data["keywords"] == ["explain", "acupuncture"]
        assert data["complexity"] == "low"
