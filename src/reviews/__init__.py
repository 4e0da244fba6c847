"""
Review Insight Engine
=====================

Deterministic analytics over app-store reviews: lexicon sentiment, TF-IDF
keywords, intent tags, clustered feature requests and bug reports, trends
and a ranked insight digest. No ML required.

Modules:
    review_models      — Enums and frozen dataclasses of every stage output
    review_options     — AnalysisOptions option bag and its validation
    review_text        — Tokenizer, run Corpus and TF-IDF keyword extraction
    review_sentiment   — Lexicon sentiment scorer
    review_signals     — Intent matcher, phrase/competitor/segment extraction
    review_analyzer    — Per-review analysis and corpus aggregation
    review_clustering  — Average-link phrase clustering and cluster naming
    review_classifier  — Feature / bug clusters and competitor analysis
    review_insights    — Trends, distributions and the insight digest
    review_export      — CSV / JSON export blobs
"""

from .review_models import (
    AggregatedResult,
    AnalysisResult,
    AnalyzedComment,
    BugCluster,
    ClassificationResult,
    FeatureCluster,
    RawReview,
    TimePeriod,
)
from .review_options import AnalysisOptions, InvalidOptionsError
from .review_analyzer import ReviewAnalyzer
from .review_classifier import ReviewClassifier
from .review_insights import ReviewInsightAggregator
