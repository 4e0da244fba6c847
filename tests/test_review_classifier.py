"""
Tests for feature / bug clustering, priority rules and competitor analysis.

Usage:
    pytest tests/test_review_classifier.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.reviews.review_analyzer import ReviewAnalyzer
from src.reviews.review_classifier import (
    ReviewClassifier,
    bug_impact,
    detect_affected_versions,
    feature_priority,
)
from src.reviews.review_models import Level, RawReview


# ============================================================================
# TEST DATA
# ============================================================================

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_review(review_id, content, score=3, days_ago=0, version=None):
    return RawReview(
        review_id=review_id,
        user_name="reviewer",
        content=content,
        score=score,
        thumbs_up=0,
        date=NOW - timedelta(days=days_ago),
        app_version=version,
    )


def classify(reviews, app_versions=None):
    analysis = ReviewAnalyzer().analyze(reviews)
    return ReviewClassifier().classify(analysis, app_versions=app_versions)


DARK_MODE_REVIEWS = [
    make_review("F1", "Please add a dark mode option", score=3),
    make_review("F2", "Please add a dark mode option to the app", score=4),
]

UPLOAD_CRASH_REVIEWS = [
    make_review("B1", "The app crashes when uploading photos in 2.1.0", score=1, version="2.1.0"),
    make_review("B2", "Crash when uploading photos", score=2, version="2.0.5"),
]


# ============================================================================
# PRIORITY RULES
# ============================================================================

class TestPriorityRules:

    @pytest.mark.parametrize("count,rating,expected", [
        (10, 1.0, Level.HIGH),
        (5, 1.0, Level.MEDIUM),
        (1, 4.5, Level.HIGH),
        (1, 3.5, Level.MEDIUM),
        (4, 3.4, Level.LOW),
    ])
    def test_feature_priority(self, count, rating, expected):
        assert feature_priority(count, rating) == expected

    @pytest.mark.parametrize("count,severity,rating,expected", [
        (8, Level.LOW, 5.0, Level.HIGH),
        (1, Level.HIGH, 5.0, Level.HIGH),
        (1, Level.LOW, 1.5, Level.HIGH),
        (3, Level.LOW, 5.0, Level.MEDIUM),
        (1, Level.MEDIUM, 5.0, Level.MEDIUM),
        (1, Level.LOW, 3.0, Level.MEDIUM),
        (2, Level.LOW, 3.5, Level.LOW),
    ])
    def test_bug_impact(self, count, severity, rating, expected):
        assert bug_impact(count, severity, rating) == expected

    def test_custom_thresholds(self):
        assert feature_priority(3, 1.0, high=3, medium=2) == Level.HIGH
        assert bug_impact(2, Level.LOW, 5.0, high=4, medium=2) == Level.MEDIUM

    def test_affected_versions(self):
        phrases = ["fails on 2.1.0", "2.1.0 again", "bad in 3.0"]
        assert detect_affected_versions(phrases, ["2.1.0", "3.0", "4.0"]) == ["2.1.0", "3.0"]
        assert detect_affected_versions(phrases, []) == []


# ============================================================================
# FEATURE CLUSTERS
# ============================================================================

class TestFeatureClusters:
    """Feature requests grouped across reviews."""

    def setup_method(self):
        self.result = classify(DARK_MODE_REVIEWS)

    def test_near_duplicates_form_one_cluster(self):
        assert len(self.result.feature_clusters) == 1
        cluster = self.result.feature_clusters[0]
        assert cluster.cluster_id == "feature-0"
        assert cluster.count == 2
        assert cluster.requests == ("a dark mode option", "a dark mode option to the app")

    def test_priority_and_rating(self):
        cluster = self.result.feature_clusters[0]
        assert cluster.average_rating == pytest.approx(3.5)
        assert cluster.priority == Level.MEDIUM
        assert self.result.top_feature_requests == ()

    def test_examples_best_rated_first(self):
        cluster = self.result.feature_clusters[0]
        assert cluster.examples == (
            "Please add a dark mode option to the app",
            "Please add a dark mode option",
        )

    def test_terms_shared_by_every_review_are_not_keywords(self):
        # both reviews contain every term, so nothing is salient
        cluster = self.result.feature_clusters[0]
        assert cluster.keywords == ()
        assert cluster.name == "a dark mode option"

    def test_duplicate_review_counted_once(self):
        reviews = DARK_MODE_REVIEWS + [make_review("F1", "Please add a dark mode option", score=3)]
        cluster = classify(reviews).feature_clusters[0]
        assert len(cluster.requests) == 3
        assert cluster.count == 2
        assert [c.review_id for c in cluster.comments] == ["F1", "F2"]

    def test_highly_rated_cluster_is_top_feature(self):
        reviews = [
            make_review("F1", "Please add a dark mode option", score=5),
            make_review("F2", "Please add a dark mode option to the app", score=4),
        ]
        result = classify(reviews)
        assert result.feature_clusters[0].priority == Level.HIGH
        assert result.top_feature_requests == result.feature_clusters

    def test_single_request_is_not_a_cluster(self):
        assert classify(DARK_MODE_REVIEWS[:1]).feature_clusters == ()


# ============================================================================
# BUG CLUSTERS
# ============================================================================

class TestBugClusters:
    """Bug reports grouped across reviews."""

    def test_cluster_severity_and_impact(self):
        result = classify(UPLOAD_CRASH_REVIEWS, app_versions=["2.1.0", "2.2.0"])
        assert len(result.bug_clusters) == 1
        bug = result.bug_clusters[0]
        assert bug.cluster_id == "bug-0"
        assert bug.count == 2
        assert bug.severity == Level.HIGH
        assert bug.impact == Level.HIGH
        assert bug.affected_versions == ("2.1.0",)
        assert result.critical_bugs == (bug,)

    def test_examples_worst_rated_first(self):
        bug = classify(UPLOAD_CRASH_REVIEWS).bug_clusters[0]
        assert bug.examples[0] == "The app crashes when uploading photos in 2.1.0"

    def test_observed_versions_used_by_default(self):
        bug = classify(UPLOAD_CRASH_REVIEWS).bug_clusters[0]
        assert bug.affected_versions == ("2.1.0",)

    def test_explicit_empty_versions(self):
        bug = classify(UPLOAD_CRASH_REVIEWS, app_versions=[]).bug_clusters[0]
        assert bug.affected_versions == ()

    def test_cluster_sentiment_is_mean_polarity(self):
        bug = classify(UPLOAD_CRASH_REVIEWS).bug_clusters[0]
        assert bug.sentiment == pytest.approx(-1.0)


# ============================================================================
# COMPETITORS
# ============================================================================

class TestCompetitorAnalysis:

    def setup_method(self):
        self.result = classify([
            make_review("C1", "Spotify playlists are better", score=5),
            make_review("C2", "Spotify shuffle is terrible", score=1),
            make_review("C3", "Nice podcast section", score=4),
        ])

    def test_mentions_and_sentiment(self):
        assert len(self.result.competitor_analysis) == 1
        spotify = self.result.competitor_analysis[0]
        assert spotify.competitor == "spotify"
        assert spotify.mentions == 2
        assert spotify.sentiment == pytest.approx(3.0)

    def test_strengths_and_weaknesses(self):
        spotify = self.result.competitor_analysis[0]
        assert spotify.strengths == ("playlists", "better")
        assert spotify.weaknesses == ("shuffle", "terrible")


class TestEmptyClassification:

    def test_no_reviews(self):
        result = classify([])
        assert result.feature_clusters == ()
        assert result.bug_clusters == ()
        assert result.competitor_analysis == ()
