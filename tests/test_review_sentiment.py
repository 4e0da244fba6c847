"""
Tests for the lexicon sentiment scorer.

Usage:
    pytest tests/test_review_sentiment.py -v
"""

import pytest

from src.reviews.review_models import SentimentCategory
from src.reviews.review_sentiment import SENTIMENT_LEXICON, SentimentScorer


class TestSentimentScorer:
    """Thresholded-mean scoring."""

    def setup_method(self):
        self.scorer = SentimentScorer()

    def test_positive_review(self):
        result = self.scorer.score("Great app, love it")
        assert result.value == pytest.approx(4.0)
        assert result.category == SentimentCategory.POSITIVE

    def test_negative_review(self):
        result = self.scorer.score("This app is terrible, it keeps crashing and I lost all my data")
        assert result.value == pytest.approx(-4.5)
        assert result.category == SentimentCategory.NEGATIVE

    def test_mixed_review_is_mean_of_matches(self):
        result = self.scorer.score("good but slow")
        assert result.value == pytest.approx(0.5)
        assert result.category == SentimentCategory.POSITIVE

    def test_no_lexicon_match_is_neutral(self):
        result = self.scorer.score("The app opens")
        assert result.value == 0.0
        assert result.category == SentimentCategory.NEUTRAL

    def test_empty_text_is_neutral(self):
        result = self.scorer.score("")
        assert result.value == 0.0
        assert result.category == SentimentCategory.NEUTRAL

    def test_matching_is_case_insensitive(self):
        assert self.scorer.score("AWESOME").value == self.scorer.score("awesome").value

    @pytest.mark.parametrize("value,expected", [
        (0.2, SentimentCategory.NEUTRAL),
        (-0.2, SentimentCategory.NEUTRAL),
        (0.21, SentimentCategory.POSITIVE),
        (-0.21, SentimentCategory.NEGATIVE),
        (0.0, SentimentCategory.NEUTRAL),
    ])
    def test_threshold_is_exclusive(self, value, expected):
        assert self.scorer.categorize(value) == expected


class TestLexicon:

    def test_injected_lexicon_replaces_default(self):
        scorer = SentimentScorer(lexicon={"yay": 2})
        assert scorer.score("yay great").value == pytest.approx(2.0)

    def test_default_lexicon_is_read_only(self):
        with pytest.raises(TypeError):
            SENTIMENT_LEXICON["meh"] = 0

    def test_injected_lexicon_is_copied(self):
        lexicon = {"yay": 2}
        scorer = SentimentScorer(lexicon=lexicon)
        lexicon["yay"] = -5
        assert scorer.score("yay").value == pytest.approx(2.0)

    def test_common_inflections_present(self):
        for word in ("crash", "crashes", "crashing", "crashed"):
            assert SENTIMENT_LEXICON[word] < 0
