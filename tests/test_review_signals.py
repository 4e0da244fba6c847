"""
Tests for rule-based review signals: intents, phrase extraction,
competitors, user segments and severity.

Usage:
    pytest tests/test_review_signals.py -v
"""

import pytest

from src.reviews.review_models import Intention, Level, SentimentCategory, UserSegment
from src.reviews.review_signals import EntityExtractor, IntentMatcher, assess_severity


SCENARIO_CRASH = "This app is terrible, it keeps crashing and I lost all my data"


# ============================================================================
# INTENTS
# ============================================================================

class TestIntentMatcher:
    """Phrase-table intent tagging."""

    def setup_method(self):
        self.matcher = IntentMatcher()

    def test_feature_request(self):
        intents = self.matcher.classify("Please add a dark mode option", SentimentCategory.NEUTRAL)
        assert intents == frozenset({Intention.FEATURE_REQUEST})

    def test_multiple_categories(self):
        intents = self.matcher.classify(SCENARIO_CRASH, SentimentCategory.NEGATIVE)
        assert intents == frozenset({Intention.BUG_REPORT, Intention.COMPLAINT})

    def test_substring_matching_is_not_word_aware(self):
        intents = self.matcher.classify("Total addiction", SentimentCategory.NEUTRAL)
        assert intents == frozenset({Intention.FEATURE_REQUEST})

    def test_question_mark(self):
        intents = self.matcher.classify("Where are my photos?", SentimentCategory.NEUTRAL)
        assert Intention.QUESTION in intents

    @pytest.mark.parametrize("sentiment,expected", [
        (SentimentCategory.POSITIVE, frozenset({Intention.PRAISE})),
        (SentimentCategory.NEGATIVE, frozenset({Intention.COMPLAINT})),
        (SentimentCategory.NEUTRAL, frozenset()),
    ])
    def test_sentiment_fallback_when_nothing_matches(self, sentiment, expected):
        assert self.matcher.classify("It is okay I suppose", sentiment) == expected

    def test_fallback_not_used_when_a_phrase_matched(self):
        intents = self.matcher.classify("Please add a dark mode option", SentimentCategory.POSITIVE)
        assert Intention.PRAISE not in intents


# ============================================================================
# PHRASE EXTRACTION
# ============================================================================

class TestEntityExtractor:
    """Capture-group phrase extraction, competitors and segments."""

    def setup_method(self):
        self.extractor = EntityExtractor()

    def test_feature_request_phrase(self):
        assert self.extractor.extract_feature_requests("Please add a dark mode option") == ["a dark mode option"]

    def test_short_phrase_dropped(self):
        assert self.extractor.extract_feature_requests("Need a fix") == []

    def test_bug_report_phrase(self):
        phrases = self.extractor.extract_bug_reports("The app crashes when uploading photos")
        assert phrases == ["uploading photos"]

    def test_no_bug_phrase_without_context(self):
        assert self.extractor.extract_bug_reports(SCENARIO_CRASH) == []

    def test_unmatched_optional_group_yields_nothing(self):
        assert self.extractor.extract_bug_reports("Pages not load when ") == []

    def test_empty_text(self):
        assert self.extractor.extract_feature_requests("") == []
        assert self.extractor.extract_bug_reports(None) == []

    def test_competitors_in_table_order(self):
        competitors = self.extractor.detect_competitors("Switched from Spotify, better than Apple music")
        assert competitors == ["spotify", "apple"]

    def test_competitor_substring_match(self):
        assert self.extractor.detect_competitors("Works offline and online") == ["line"]

    @pytest.mark.parametrize("text,segment", [
        ("Just downloaded this, long time user of the old one", UserSegment.NEW),
        ("Been using for years", UserSegment.POWER),
        ("I came back after a break", UserSegment.RETURNING),
        ("Nothing special", UserSegment.UNKNOWN),
    ])
    def test_user_segment(self, text, segment):
        assert self.extractor.detect_user_segment(text) == segment

    def test_custom_competitor_table(self):
        extractor = EntityExtractor(competitors=["Acme"])
        assert extractor.detect_competitors("acme does it better") == ["acme"]


# ============================================================================
# SEVERITY
# ============================================================================

class TestSeverity:

    @pytest.mark.parametrize("text,score,expected", [
        (SCENARIO_CRASH, 1, Level.HIGH),
        ("App is slow", 4, Level.MEDIUM),
        ("App is slow", 5, Level.MEDIUM),
        ("Nice app", 5, Level.LOW),
        ("Nice app", 4, Level.LOW),
        ("Nice app", 3, Level.MEDIUM),
        ("Nice app", 1, Level.HIGH),
        ("Charged me twice for premium", 5, Level.HIGH),
    ])
    def test_assess_severity(self, text, score, expected):
        assert assess_severity(text, score) == expected

    def test_empty_text_uses_rating(self):
        assert assess_severity("", 0) == Level.HIGH
        assert assess_severity(None, 5) == Level.LOW
