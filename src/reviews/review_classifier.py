"""
Review Classifier
=================

Turns the per-review phrases of an AnalysisResult into ranked clusters:

    feature clusters  — grouped feature requests with a priority
    bug clusters      — grouped bug reports with severity, impact and the
                        app versions they mention
    competitors       — mention counts, star-equivalent sentiment and the
                        keywords of positive / negative mentions

Cluster ids are positional (``feature-0``, ``bug-0``, ...) in the order the
clusterer returns them, largest first.

Usage:
    classifier = ReviewClassifier(AnalysisOptions())
    classification = classifier.classify(analysis, app_versions=["2.1.0"])
"""

import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

from .review_clustering import SimilarityClusterer, name_cluster
from .review_models import (
    AnalysisResult,
    AnalyzedComment,
    BugCluster,
    ClassificationResult,
    CompetitorAnalysis,
    CompetitorMention,
    FeatureCluster,
    Level,
    SentimentCategory,
)
from .review_options import AnalysisOptions
from .review_text import Corpus, KeywordExtractor

logger = logging.getLogger(__name__)

# Keywords kept per competitor for strengths / weaknesses.
COMPETITOR_KEYWORD_COUNT = 5

# Mean rating above which a small feature cluster is still promoted.
FEATURE_HIGH_RATING = 4.5
FEATURE_MEDIUM_RATING = 3.5

# Mean rating at or below which a bug cluster is promoted.
BUG_HIGH_RATING = 1.5
BUG_MEDIUM_RATING = 3.0


def feature_priority(count: int, average_rating: float, high: int = 10, medium: int = 5) -> Level:
    """High when requested often or by very satisfied users."""
    if count >= high or average_rating >= FEATURE_HIGH_RATING:
        return Level.HIGH
    if count >= medium or average_rating >= FEATURE_MEDIUM_RATING:
        return Level.MEDIUM
    return Level.LOW


def bug_impact(count: int, severity: Level, average_rating: float, high: int = 8, medium: int = 3) -> Level:
    """High when reported often, severe, or tied to very low ratings."""
    if count >= high or severity == Level.HIGH or average_rating <= BUG_HIGH_RATING:
        return Level.HIGH
    if count >= medium or severity == Level.MEDIUM or average_rating <= BUG_MEDIUM_RATING:
        return Level.MEDIUM
    return Level.LOW


def max_severity(comments: Sequence[AnalyzedComment]) -> Level:
    if not comments:
        return Level.LOW
    return min((c.severity for c in comments), key=lambda level: level.rank)


def detect_affected_versions(phrases: Sequence[str], versions: Sequence[str]) -> List[str]:
    """Known versions appearing verbatim in any phrase, in first-hit order."""
    found: List[str] = []
    for phrase in phrases:
        for version in versions:
            if version and version in phrase and version not in found:
                found.append(version)
    return found


class ReviewClassifier:
    """
    Clusters feature requests and bug reports and derives their ranking
    attributes. Stateless apart from its options and collaborators.
    """

    def __init__(
        self,
        options: Optional[AnalysisOptions] = None,
        clusterer: Optional[SimilarityClusterer] = None,
        keyword_extractor: Optional[KeywordExtractor] = None,
    ):
        self.options = options or AnalysisOptions()
        self.clusterer = clusterer or SimilarityClusterer(
            threshold=self.options.cluster_threshold,
            min_cluster_size=self.options.min_cluster_size,
            max_clusters=self.options.max_clusters,
        )
        self.keyword_extractor = keyword_extractor or KeywordExtractor()

    def classify(
        self,
        analysis: AnalysisResult,
        app_versions: Optional[Sequence[str]] = None,
    ) -> ClassificationResult:
        """
        Classify one analysis run.

        Args:
            analysis: Output of ReviewAnalyzer.analyze
            app_versions: Known versions to look for in bug phrases. When
                None, the distinct app_version values of the reviews are used.
        """
        corpus = analysis.corpus
        if app_versions is None:
            app_versions = self._observed_versions(analysis.comments)

        features = self.classify_feature_requests(analysis.comments, corpus)
        bugs = self.classify_bug_reports(analysis.comments, corpus, app_versions)
        competitors = self.analyze_competitors(analysis)

        top_features = sorted(
            (f for f in features if f.priority == Level.HIGH),
            key=lambda f: f.count,
            reverse=True,
        )
        critical_bugs = sorted(
            (b for b in bugs if b.impact == Level.HIGH),
            key=lambda b: b.count,
            reverse=True,
        )

        logger.info(
            f"Classified {len(analysis.comments)} reviews: {len(features)} feature clusters "
            f"({len(top_features)} high priority), {len(bugs)} bug clusters "
            f"({len(critical_bugs)} critical), {len(competitors)} competitors"
        )

        return ClassificationResult(
            feature_clusters=tuple(features),
            bug_clusters=tuple(bugs),
            competitor_analysis=tuple(competitors),
            top_feature_requests=tuple(top_features),
            critical_bugs=tuple(critical_bugs),
        )

    # =========================================================================
    # CLUSTERING
    # =========================================================================

    def _cluster_phrases(
        self,
        comments: Sequence[AnalyzedComment],
        phrases_of,
    ) -> Tuple[List[List[str]], Dict[str, List[AnalyzedComment]]]:
        """Cluster every extracted phrase; map each phrase to its reviews."""
        phrases: List[str] = []
        owners: Dict[str, List[AnalyzedComment]] = {}
        for comment in comments:
            for phrase in phrases_of(comment):
                phrases.append(phrase)
                owners.setdefault(phrase, []).append(comment)
        return self.clusterer.cluster(phrases), owners

    @staticmethod
    def _unique_comments(
        cluster: Sequence[str],
        owners: Dict[str, List[AnalyzedComment]],
    ) -> List[AnalyzedComment]:
        """Reviews behind a cluster, deduplicated by id in first-seen order."""
        unique: Dict[str, AnalyzedComment] = {}
        for phrase in cluster:
            for comment in owners.get(phrase, ()):
                unique.setdefault(comment.review_id, comment)
        return list(unique.values())

    def classify_feature_requests(
        self,
        comments: Sequence[AnalyzedComment],
        corpus: Corpus,
    ) -> List[FeatureCluster]:
        clusters, owners = self._cluster_phrases(comments, lambda c: c.feature_request_phrases)

        results: List[FeatureCluster] = []
        for index, cluster in enumerate(clusters):
            members = self._unique_comments(cluster, owners)
            if not members:
                continue
            keywords, name = name_cluster(cluster, corpus, self.keyword_extractor)
            average_rating = sum(c.score for c in members) / len(members)
            examples = sorted(members, key=lambda c: c.score, reverse=True)[:self.options.max_examples]

            results.append(FeatureCluster(
                cluster_id=f"feature-{index}",
                name=name,
                keywords=tuple(keywords),
                requests=tuple(cluster),
                comments=tuple(members),
                count=len(members),
                average_rating=average_rating,
                sentiment=sum(c.polarity for c in members) / len(members),
                priority=feature_priority(
                    len(members),
                    average_rating,
                    high=self.options.feature_priority_high,
                    medium=self.options.feature_priority_medium,
                ),
                examples=tuple(c.content for c in examples),
            ))
        return results

    def classify_bug_reports(
        self,
        comments: Sequence[AnalyzedComment],
        corpus: Corpus,
        app_versions: Sequence[str] = (),
    ) -> List[BugCluster]:
        clusters, owners = self._cluster_phrases(comments, lambda c: c.bug_report_phrases)

        results: List[BugCluster] = []
        for index, cluster in enumerate(clusters):
            members = self._unique_comments(cluster, owners)
            if not members:
                continue
            keywords, name = name_cluster(cluster, corpus, self.keyword_extractor)
            average_rating = sum(c.score for c in members) / len(members)
            severity = max_severity(members)
            examples = sorted(members, key=lambda c: c.score)[:self.options.max_examples]

            results.append(BugCluster(
                cluster_id=f"bug-{index}",
                name=name,
                keywords=tuple(keywords),
                reports=tuple(cluster),
                comments=tuple(members),
                count=len(members),
                average_rating=average_rating,
                sentiment=sum(c.polarity for c in members) / len(members),
                severity=severity,
                impact=bug_impact(
                    len(members),
                    severity,
                    average_rating,
                    high=self.options.bug_impact_high,
                    medium=self.options.bug_impact_medium,
                ),
                examples=tuple(c.content for c in examples),
                affected_versions=tuple(detect_affected_versions(cluster, app_versions)),
            ))
        return results

    # =========================================================================
    # COMPETITORS
    # =========================================================================

    def analyze_competitors(self, analysis: AnalysisResult) -> List[CompetitorAnalysis]:
        """Competitor comparison, most mentioned first."""
        by_id = {c.review_id: c for c in analysis.comments}
        return [
            self._competitor_analysis(mention, [by_id[i] for i in mention.comment_ids if i in by_id])
            for mention in analysis.competitor_mentions
        ]

    @staticmethod
    def _top_keywords(comments: Sequence[AnalyzedComment]) -> Tuple[str, ...]:
        counts: Counter = Counter(k for c in comments for k in c.keywords)
        return tuple(word for word, _count in counts.most_common(COMPETITOR_KEYWORD_COUNT))

    def _competitor_analysis(
        self,
        mention: CompetitorMention,
        comments: Sequence[AnalyzedComment],
    ) -> CompetitorAnalysis:
        positive = [c for c in comments if c.sentiment_category == SentimentCategory.POSITIVE]
        negative = [c for c in comments if c.sentiment_category == SentimentCategory.NEGATIVE]
        return CompetitorAnalysis(
            competitor=mention.competitor,
            mentions=mention.total,
            sentiment=mention.average,
            strengths=self._top_keywords(positive),
            weaknesses=self._top_keywords(negative),
        )

    @staticmethod
    def _observed_versions(comments: Sequence[AnalyzedComment]) -> List[str]:
        versions: List[str] = []
        for comment in comments:
            if comment.app_version and comment.app_version not in versions:
                versions.append(comment.app_version)
        return versions
