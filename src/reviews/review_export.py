"""
Review Export
=============

CSV and JSON blobs of an analysis run for download by presentation layers.

CSV dialects:
    legacy    — byte-compatible with existing consumers: every text field
                double-quoted, ``"`` doubled inside content, and literal
                commas in content rewritten to ``","``. Lossy: a reader
                splits such content into extra columns.
    standard  — RFC 4180 quoting via the csv module.

Usage:
    export = build_export(analysis, classification)
    open("reviews.csv", "w").write(export.csv)
"""

import csv
import io
import json
from typing import Any, Dict, Sequence

from .review_models import AnalysisResult, AnalyzedComment, ClassificationResult, ExportData

CSV_COLUMNS = ("ID", "User", "Date", "Score", "Sentiment", "Content", "Intentions", "Keywords")
CSV_HEADER = ",".join(CSV_COLUMNS) + "\n"

# Caps of the JSON summary block.
EXPORT_TOP_KEYWORDS = 20
EXPORT_TOP_FEATURES = 10
EXPORT_TOP_BUGS = 10


def _join(values: Sequence[str]) -> str:
    return ";".join(values)


def _legacy_row(comment: AnalyzedComment) -> str:
    content = comment.content.replace('"', '""').replace(",", '","')
    intentions = _join([i.value for i in comment.ordered_intentions])
    return (
        f'"{comment.review_id}","{comment.user_name}","{comment.iso_date}",{comment.score},'
        f'"{comment.sentiment_category.value}","{content}","{intentions}","{_join(comment.keywords)}"'
    )


def export_csv(comments: Sequence[AnalyzedComment], dialect: str = "legacy") -> str:
    """
    One header line plus one row per comment, newline separated.

    The legacy dialect has no trailing newline after the last row.
    """
    if dialect == "legacy":
        return CSV_HEADER + "\n".join(_legacy_row(c) for c in comments)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for comment in comments:
        writer.writerow([
            comment.review_id,
            comment.user_name,
            comment.iso_date,
            comment.score,
            comment.sentiment_category.value,
            comment.content,
            _join([i.value for i in comment.ordered_intentions]),
            _join(comment.keywords),
        ])
    return buffer.getvalue()


def export_payload(analysis: AnalysisResult, classification: ClassificationResult) -> Dict[str, Any]:
    return {
        "summary": {
            "totalReviews": len(analysis.comments),
            "sentiment": analysis.sentiment.to_dict(),
            "topKeywords": [k.to_dict() for k in analysis.keywords[:EXPORT_TOP_KEYWORDS]],
            "topFeatures": [f.to_dict() for f in classification.top_feature_requests[:EXPORT_TOP_FEATURES]],
            "topBugs": [b.to_dict() for b in classification.critical_bugs[:EXPORT_TOP_BUGS]],
        },
        "reviews": [c.to_export_dict() for c in analysis.comments],
    }


def export_json(analysis: AnalysisResult, classification: ClassificationResult) -> str:
    """Compact JSON of the summary block and every review row."""
    return json.dumps(
        export_payload(analysis, classification),
        separators=(",", ":"),
        ensure_ascii=False,
    )


def build_export(
    analysis: AnalysisResult,
    classification: ClassificationResult,
    include: bool = True,
    dialect: str = "legacy",
) -> ExportData:
    """Both blobs, or empty strings when export is disabled."""
    if not include:
        return ExportData()
    return ExportData(
        csv=export_csv(analysis.comments, dialect=dialect),
        json=export_json(analysis, classification),
    )
