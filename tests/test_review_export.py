"""
Tests for the CSV / JSON export blobs.

Usage:
    pytest tests/test_review_export.py -v
"""

import csv
import io
import json
from datetime import datetime, timezone

from src.reviews.review_analyzer import ReviewAnalyzer
from src.reviews.review_classifier import ReviewClassifier
from src.reviews.review_export import CSV_HEADER, build_export, export_csv, export_json
from src.reviews.review_models import (
    AnalyzedComment,
    Intention,
    Level,
    RawReview,
    SentimentCategory,
    UserSegment,
    format_js_timestamp,
)


# ============================================================================
# TEST DATA
# ============================================================================

DATE = datetime(2026, 10, 12, 8, 30, 15, 123456, tzinfo=timezone.utc)


def make_comment(review_id="r1", content="Nice app", intentions=(), keywords=(), score=4, user="Ana"):
    return AnalyzedComment(
        review_id=review_id,
        user_name=user,
        content=content,
        score=score,
        thumbs_up=0,
        date=DATE,
        app_version=None,
        sentiment_category=SentimentCategory.POSITIVE,
        sentiment_score=3.0,
        keywords=tuple(keywords),
        intentions=frozenset(intentions),
        user_segment=UserSegment.UNKNOWN,
        feature_request_phrases=(),
        bug_report_phrases=(),
        competitor_mentions=(),
        severity=Level.LOW,
    )


def make_review(review_id, content, score=3):
    return RawReview(
        review_id=review_id,
        user_name="Bo",
        content=content,
        score=score,
        thumbs_up=1,
        date=DATE,
    )


# ============================================================================
# CSV
# ============================================================================

class TestLegacyCsv:
    """Default dialect kept byte-compatible with existing consumers."""

    def test_header_only_when_empty(self):
        assert export_csv([]) == CSV_HEADER
        assert CSV_HEADER == "ID,User,Date,Score,Sentiment,Content,Intentions,Keywords\n"

    def test_row_format(self):
        comment = make_comment(
            content='Love it, "really" great',
            intentions={Intention.PRAISE},
            keywords=("love", "great"),
        )
        row = export_csv([comment]).split("\n")[1]
        assert row == (
            '"r1","Ana","2026-10-12T08:30:15.123Z",4,"positive",'
            '"Love it"," ""really"" great","praise","love;great"'
        )

    def test_intentions_in_table_order(self):
        comment = make_comment(intentions={Intention.COMPLAINT, Intention.FEATURE_REQUEST})
        row = export_csv([comment]).split("\n")[1]
        assert '"feature_request;complaint"' in row

    def test_one_line_per_review(self):
        comments = [make_comment(review_id=f"r{i}") for i in range(5)]
        lines = export_csv(comments).split("\n")
        assert len(lines) == 6
        assert lines[0] + "\n" == CSV_HEADER


class TestStandardCsv:

    def test_round_trips_through_csv_reader(self):
        content = 'Love it, "really"\ngreat'
        comment = make_comment(content=content, intentions={Intention.PRAISE}, keywords=("love",))
        rows = list(csv.reader(io.StringIO(export_csv([comment], dialect="standard"))))
        assert rows[0] == ["ID", "User", "Date", "Score", "Sentiment", "Content", "Intentions", "Keywords"]
        assert rows[1] == ["r1", "Ana", "2026-10-12T08:30:15.123Z", "4", "positive", content, "praise", "love"]

    def test_score_unquoted(self):
        text = export_csv([make_comment()], dialect="standard")
        assert ',4,"positive"' in text


# ============================================================================
# JSON AND BUNDLE
# ============================================================================

class TestJsonExport:

    def setup_method(self):
        self.analysis = ReviewAnalyzer().analyze([
            make_review("a", "Great app, love it", score=5),
            make_review("b", "Très lent, slow", score=2),
        ])
        self.classification = ReviewClassifier().classify(self.analysis)

    def test_payload_shape(self):
        data = json.loads(export_json(self.analysis, self.classification))
        assert data["summary"]["totalReviews"] == 2
        assert data["summary"]["sentiment"]["positive"] == 1
        assert [r["id"] for r in data["reviews"]] == ["a", "b"]
        assert data["reviews"][0]["date"] == "2026-10-12T08:30:15.123Z"
        assert data["reviews"][0]["thumbsUp"] == 1

    def test_compact_and_unescaped(self):
        text = export_json(self.analysis, self.classification)
        assert '": ' not in text
        assert "Très" in text

    def test_build_export(self):
        export = build_export(self.analysis, self.classification)
        assert export.csv.startswith(CSV_HEADER)
        assert json.loads(export.json)["summary"]["totalReviews"] == 2

    def test_build_export_disabled(self):
        export = build_export(self.analysis, self.classification, include=False)
        assert (export.csv, export.json) == ("", "")


class TestTimestampFormat:

    def test_milliseconds_and_z_suffix(self):
        assert format_js_timestamp(DATE) == "2026-10-12T08:30:15.123Z"

    def test_naive_is_utc(self):
        assert format_js_timestamp(datetime(2026, 1, 2, 3, 4, 5, 678900)) == "2026-01-02T03:04:05.678Z"
