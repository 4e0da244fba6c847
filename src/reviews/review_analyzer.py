"""
Review Analyzer
===============

Composes the sentiment scorer, keyword extractor, intent matcher and entity
extractor into one AnalyzedComment per review, then aggregates the corpus:
sentiment distribution, ranked keywords, intention and user-segment
indexes and competitor mentions.

The corpus of review texts is built once, before any per-review work, and
is shared read-only by every keyword extraction of the run.

Usage:
    analyzer = ReviewAnalyzer(AnalysisOptions())
    analysis = analyzer.analyze(raw_reviews)
"""

import logging
import time
from collections import defaultdict
from types import MappingProxyType
from typing import Dict, List, Optional, Sequence

from .review_models import (
    AnalysisResult,
    AnalyzedComment,
    CompetitorMention,
    Intention,
    KeywordStat,
    RawReview,
    SentimentCategory,
    SentimentDistribution,
    UserSegment,
)
from .review_options import AnalysisOptions
from .review_sentiment import SentimentScorer
from .review_signals import EntityExtractor, IntentMatcher, assess_severity
from .review_text import Corpus, KeywordExtractor

logger = logging.getLogger(__name__)


class ReviewAnalyzer:
    """
    Per-review analysis plus corpus-level aggregation.

    Collaborators are injectable so tests (or callers with custom
    lexicons) can swap any of them.
    """

    def __init__(
        self,
        options: Optional[AnalysisOptions] = None,
        scorer: Optional[SentimentScorer] = None,
        keyword_extractor: Optional[KeywordExtractor] = None,
        intent_matcher: Optional[IntentMatcher] = None,
        entity_extractor: Optional[EntityExtractor] = None,
    ):
        self.options = options or AnalysisOptions()
        self.scorer = scorer or SentimentScorer(threshold=self.options.sentiment_threshold)
        self.keyword_extractor = keyword_extractor or KeywordExtractor()
        self.intent_matcher = intent_matcher or IntentMatcher()
        self.entity_extractor = entity_extractor or EntityExtractor()

    def build_corpus(self, reviews: Sequence[RawReview]) -> Corpus:
        """Corpus of every review text in the run (empty text for missing bodies)."""
        return Corpus.build(
            (review.content for review in reviews),
            min_term_length=self.options.min_keyword_length,
        )

    def analyze_review(self, review: RawReview, corpus: Corpus) -> AnalyzedComment:
        """Analyze a single review against the run corpus."""
        content = review.content or ""
        sentiment = self.scorer.score(content)
        keywords = self.keyword_extractor.extract(
            content,
            corpus,
            min_length=self.options.min_keyword_length,
            top_k=self.options.keywords_per_review,
        )

        return AnalyzedComment(
            review_id=review.review_id,
            user_name=review.user_name,
            content=content,
            score=review.score,
            thumbs_up=review.thumbs_up,
            date=review.date,
            app_version=review.app_version,
            sentiment_category=sentiment.category,
            sentiment_score=sentiment.value,
            keywords=tuple(keywords),
            intentions=self.intent_matcher.classify(content, sentiment.category),
            user_segment=self.entity_extractor.detect_user_segment(content),
            feature_request_phrases=tuple(self.entity_extractor.extract_feature_requests(content)),
            bug_report_phrases=tuple(self.entity_extractor.extract_bug_reports(content)),
            competitor_mentions=tuple(self.entity_extractor.detect_competitors(content)),
            severity=assess_severity(content, review.score),
        )

    def analyze(self, reviews: Sequence[RawReview]) -> AnalysisResult:
        """
        Analyze a batch of reviews.

        An empty batch yields an empty, all-zero result.
        """
        started = time.monotonic()
        corpus = self.build_corpus(reviews)
        comments = tuple(self.analyze_review(review, corpus) for review in reviews)

        result = AnalysisResult(
            comments=comments,
            corpus=corpus,
            sentiment=self.sentiment_distribution(comments),
            keywords=tuple(self.aggregate_keywords(comments)),
            intentions=self._index_intentions(comments),
            user_segments=self._index_segments(comments),
            competitor_mentions=tuple(self.aggregate_competitors(comments)),
        )

        logger.info(
            f"Analyzed {len(comments)} reviews in {time.monotonic() - started:.2f}s: "
            f"{result.sentiment.positive} positive, {result.sentiment.negative} negative, "
            f"{result.sentiment.neutral} neutral, {len(result.keywords)} keywords"
        )
        return result

    # =========================================================================
    # CORPUS AGGREGATION
    # =========================================================================

    @staticmethod
    def sentiment_distribution(comments: Sequence[AnalyzedComment]) -> SentimentDistribution:
        counts = {category: 0 for category in SentimentCategory}
        for comment in comments:
            counts[comment.sentiment_category] += 1

        average = sum(c.score for c in comments) / len(comments) if comments else 0.0
        return SentimentDistribution(
            positive=counts[SentimentCategory.POSITIVE],
            negative=counts[SentimentCategory.NEGATIVE],
            neutral=counts[SentimentCategory.NEUTRAL],
            average=average,
        )

    def aggregate_keywords(self, comments: Sequence[AnalyzedComment]) -> List[KeywordStat]:
        """
        Rank keywords across the corpus.

        Every (review, keyword) pair increments the keyword count; document
        frequency counts each review once. Keywords below
        ``min_keyword_frequency`` are dropped and the list is capped at
        ``max_keywords``, most frequent first.
        """
        stats: Dict[str, Dict[str, float]] = defaultdict(
            lambda: {"count": 0, "documents": 0, "sentiment": 0.0, "rating": 0.0}
        )

        for comment in comments:
            for keyword in comment.keywords:
                data = stats[keyword]
                data["count"] += 1
                data["sentiment"] += comment.sentiment_score
                data["rating"] += comment.score
            for keyword in set(comment.keywords):
                stats[keyword]["documents"] += 1

        ranked = [
            KeywordStat(
                word=word,
                count=int(data["count"]),
                documents=int(data["documents"]),
                sentiment=data["sentiment"] / data["count"],
                average_rating=data["rating"] / data["count"],
            )
            for word, data in stats.items()
            if data["count"] >= self.options.min_keyword_frequency
        ]
        ranked.sort(key=lambda k: k.count, reverse=True)
        return ranked[:self.options.max_keywords]

    @staticmethod
    def aggregate_competitors(comments: Sequence[AnalyzedComment]) -> List[CompetitorMention]:
        """Competitor mentions with their sentiment split, most mentioned first."""
        grouped: Dict[str, List[AnalyzedComment]] = defaultdict(list)
        for comment in comments:
            for competitor in comment.competitor_mentions:
                grouped[competitor].append(comment)

        mentions = [
            CompetitorMention(
                competitor=competitor,
                comment_ids=tuple(c.review_id for c in mentioning),
                positive=sum(1 for c in mentioning if c.sentiment_category == SentimentCategory.POSITIVE),
                negative=sum(1 for c in mentioning if c.sentiment_category == SentimentCategory.NEGATIVE),
                neutral=sum(1 for c in mentioning if c.sentiment_category == SentimentCategory.NEUTRAL),
            )
            for competitor, mentioning in grouped.items()
        ]
        mentions.sort(key=lambda m: m.total, reverse=True)
        return mentions

    @staticmethod
    def _index_intentions(comments: Sequence[AnalyzedComment]):
        return MappingProxyType({
            intention: tuple(c for c in comments if intention in c.intentions)
            for intention in Intention
        })

    @staticmethod
    def _index_segments(comments: Sequence[AnalyzedComment]):
        return MappingProxyType({
            segment: tuple(c for c in comments if c.user_segment == segment)
            for segment in UserSegment
        })
