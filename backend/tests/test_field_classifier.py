"""Tests for academic field detection."""
import pytest


class TestFieldClassifier:
    """Test the keyword field classifier."""

    @pytest.mark.parametrize("query,expected", [
        ("cancer immunotherapy response rates", "biomedical"),
        ("quantum entanglement in superconductors", "physical-sciences"),
        ("deep learning for code completion", "computer-science"),
        ("robotics control system design", "engineering"),
        ("depression and social media use among teenagers", "social-science"),
        ("medieval theology and religion", "humanities"),
    ])
    def test_detects_field(self, query, expected):
        """Queries with decisive keywords land in their field."""
        from litsearch.services.search.field_classifier import FieldClassifier

        result = FieldClassifier().classify(query)
        assert result.field.value == expected
        assert result.confidence >= 0.35

    def test_single_strong_keyword_is_enough(self):
        """One decisive term clears the confidence floor."""
        from litsearch.services.search.field_classifier import FieldClassifier

        result = FieldClassifier().classify("quantum")
        assert result.field.value == "physical-sciences"
        assert result.confidence == pytest.approx(0.6321, abs=1e-3)

    def test_plurals_and_phrases(self):
        """'clinical trials' matches the 'clinical trial' phrase."""
        from litsearch.services.search.field_classifier import FieldClassifier

        result = FieldClassifier().classify("Clinical Trials of statins")
        assert result.field.value == "biomedical"
        assert "clinical trial" in result.matched_keywords

    def test_no_keywords_is_interdisciplinary(self):
        """Nothing matched means zero confidence."""
        from litsearch.services.search.field_classifier import FieldClassifier

        result = FieldClassifier().classify("what happened next")
        assert result.field.value == "interdisciplinary"
        assert result.confidence == 0.0
        assert result.matched_keywords == []

    def test_empty_query(self):
        """An empty query does not raise."""
        from litsearch.services.search.field_classifier import FieldClassifier

        assert FieldClassifier().classify("").field.value == "interdisciplinary"

    def test_split_evidence_is_interdisciplinary(self):
        """Two fields with equal evidence fall below the confidence floor."""
        from litsearch.services.search.field_classifier import FieldClassifier

        result = FieldClassifier().classify("machine learning for cancer")
        assert result.field.value == "interdisciplinary"
        assert set(result.matched_keywords) == {"machine learning", "cancer"}

    def test_weak_terms_alone_are_not_enough(self):
        """Generic terms never decide a field."""
        from litsearch.services.search.field_classifier import FieldClassifier

        result = FieldClassifier().classify("health")
        assert result.field.value == "interdisciplinary"

    def test_custom_keyword_table(self):
        """Keyword tables can be swapped."""
        from litsearch.schemas.search import AcademicField
        from litsearch.services.search.field_classifier import FieldClassifier

        classifier = FieldClassifier(keywords={AcademicField.HUMANITIES: {"sonnet": 1.0}})
        assert classifier.classify("sonnets").field == AcademicField.HUMANITIES
