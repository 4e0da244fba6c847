"""
Review Intelligence Data Models
================================

Structured outputs of every stage of the review analysis pipeline.

Each stage builds its own output objects and never mutates them afterwards,
so every record here is a frozen dataclass. Categorical values are string
enums so they serialize as plain strings.

Models:
    RawReview          — one review as handed over by the acquisition layer
    AnalyzedComment    — per-review sentiment, keywords, intents, entities
    AnalysisResult     — corpus-level aggregation of analyzed comments
    FeatureCluster     — grouped feature requests with a priority
    BugCluster         — grouped bug reports with severity and impact
    AggregatedResult   — summary, trends, insights and export blobs
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from .review_text import Corpus


class SentimentCategory(str, Enum):
    """Polarity bucket derived from the lexicon score."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class Intention(str, Enum):
    """Review intent categories, declared in matching-table order."""
    FEATURE_REQUEST = "feature_request"
    BUG_REPORT = "bug_report"
    PRAISE = "praise"
    COMPLAINT = "complaint"
    QUESTION = "question"
    COMPARISON = "comparison"


class UserSegment(str, Enum):
    """Reviewer segment inferred from self-descriptions."""
    NEW = "new"
    POWER = "power"
    RETURNING = "returning"
    UNKNOWN = "unknown"


class Level(str, Enum):
    """Three-step scale shared by severity, impact and priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """0 for high, 2 for low (sort key, most important first)."""
        return {"high": 0, "medium": 1, "low": 2}[self.value]


class TimePeriod(str, Enum):
    """Trend bucket granularity."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class TrendDirection(str, Enum):
    """Direction of the mean-rating trend."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class CountTrend(str, Enum):
    """Direction of a per-cluster mention count series."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class BugStatus(str, Enum):
    """Lifecycle of a bug cluster across trend buckets."""
    NEW = "new"
    RECURRING = "recurring"
    INCREASING = "increasing"
    DECREASING = "decreasing"


class InsightType(str, Enum):
    FEATURE = "feature"
    BUG = "bug"
    SENTIMENT = "sentiment"
    COMPETITOR = "competitor"
    USER = "user"


def format_js_timestamp(value: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


# =============================================================================
# INPUT AND PER-REVIEW MODELS
# =============================================================================

@dataclass(frozen=True)
class RawReview:
    """A single store review as supplied by the acquisition collaborator."""
    review_id: str
    user_name: str
    content: str
    score: int                  # 1 to 5 stars, 0 when missing
    thumbs_up: int
    date: datetime              # timezone-aware, UTC
    app_version: Optional[str] = None


@dataclass(frozen=True)
class SentimentScore:
    """Lexicon score: mean weight of matched words and its category."""
    value: float
    category: SentimentCategory


@dataclass(frozen=True)
class AnalyzedComment:
    """One review enriched with every per-document signal."""
    review_id: str
    user_name: str
    content: str
    score: int
    thumbs_up: int
    date: datetime
    app_version: Optional[str]
    sentiment_category: SentimentCategory
    sentiment_score: float
    keywords: Tuple[str, ...]
    intentions: FrozenSet[Intention]
    user_segment: UserSegment
    feature_request_phrases: Tuple[str, ...]
    bug_report_phrases: Tuple[str, ...]
    competitor_mentions: Tuple[str, ...]
    severity: Level

    @property
    def year(self) -> int:
        return self.date.year

    @property
    def iso_date(self) -> str:
        return format_js_timestamp(self.date)

    @property
    def ordered_intentions(self) -> List[Intention]:
        """Intentions in the fixed table order (stable for exports)."""
        return [i for i in Intention if i in self.intentions]

    @property
    def polarity(self) -> int:
        """+1 positive, -1 negative, 0 neutral."""
        if self.sentiment_category == SentimentCategory.POSITIVE:
            return 1
        if self.sentiment_category == SentimentCategory.NEGATIVE:
            return -1
        return 0

    def to_export_dict(self) -> Dict[str, Any]:
        """Review row of the JSON export."""
        return {
            "id": self.review_id,
            "userName": self.user_name,
            "date": self.iso_date,
            "score": self.score,
            "sentiment": self.sentiment_category.value,
            "content": self.content,
            "intentions": [i.value for i in self.ordered_intentions],
            "keywords": list(self.keywords),
            "thumbsUp": self.thumbs_up,
        }


# =============================================================================
# CORPUS-LEVEL ANALYSIS MODELS
# =============================================================================

@dataclass(frozen=True)
class KeywordStat:
    """A keyword aggregated over every review that ranked it."""
    word: str
    count: int                  # (review, keyword) occurrences
    documents: int              # reviews carrying the keyword
    sentiment: float            # mean lexicon score of those reviews
    average_rating: float       # mean star score of those reviews

    def to_dict(self) -> Dict[str, Any]:
        return {
            "word": self.word,
            "count": self.count,
            "documents": self.documents,
            "sentiment": self.sentiment,
            "averageRating": self.average_rating,
        }


@dataclass(frozen=True)
class SentimentDistribution:
    positive: int = 0
    negative: int = 0
    neutral: int = 0
    average: float = 0.0        # mean star score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "positive": self.positive,
            "negative": self.negative,
            "neutral": self.neutral,
            "average": self.average,
        }


@dataclass(frozen=True)
class CompetitorMention:
    """Comments naming one competitor, with their sentiment split."""
    competitor: str
    comment_ids: Tuple[str, ...]
    positive: int
    negative: int
    neutral: int

    @property
    def total(self) -> int:
        return len(self.comment_ids)

    @property
    def average(self) -> float:
        """Star-equivalent sentiment: positive=5, neutral=3, negative=1."""
        if self.total == 0:
            return 0.0
        return (self.positive * 5 + self.neutral * 3 + self.negative * 1) / self.total


@dataclass(frozen=True)
class AnalysisResult:
    """Output of the review analyzer for one run."""
    comments: Tuple[AnalyzedComment, ...]
    corpus: Corpus
    sentiment: SentimentDistribution
    keywords: Tuple[KeywordStat, ...]
    intentions: Mapping[Intention, Tuple[AnalyzedComment, ...]]
    user_segments: Mapping[UserSegment, Tuple[AnalyzedComment, ...]]
    competitor_mentions: Tuple[CompetitorMention, ...]

    def comments_with(self, intention: Intention) -> Tuple[AnalyzedComment, ...]:
        return self.intentions.get(intention, ())

    def segment(self, segment: UserSegment) -> Tuple[AnalyzedComment, ...]:
        return self.user_segments.get(segment, ())


# =============================================================================
# CLASSIFICATION MODELS
# =============================================================================

@dataclass(frozen=True)
class FeatureCluster:
    """Related feature requests grouped by phrase similarity."""
    cluster_id: str
    name: str
    keywords: Tuple[str, ...]
    requests: Tuple[str, ...]
    comments: Tuple[AnalyzedComment, ...]   # unique by review_id
    count: int
    average_rating: float
    sentiment: float                          # mean polarity in [-1, 1]
    priority: Level
    examples: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.cluster_id,
            "name": self.name,
            "keywords": list(self.keywords),
            "requests": list(self.requests),
            "examples": list(self.examples),
            "count": self.count,
            "averageRating": self.average_rating,
            "sentiment": self.sentiment,
            "priority": self.priority.value,
        }


@dataclass(frozen=True)
class BugCluster:
    """Related bug reports grouped by phrase similarity."""
    cluster_id: str
    name: str
    keywords: Tuple[str, ...]
    reports: Tuple[str, ...]
    comments: Tuple[AnalyzedComment, ...]   # unique by review_id
    count: int
    average_rating: float
    sentiment: float
    severity: Level
    impact: Level
    examples: Tuple[str, ...]
    affected_versions: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.cluster_id,
            "name": self.name,
            "keywords": list(self.keywords),
            "reports": list(self.reports),
            "examples": list(self.examples),
            "count": self.count,
            "averageRating": self.average_rating,
            "sentiment": self.sentiment,
            "severity": self.severity.value,
            "impact": self.impact.value,
            "affectedVersions": list(self.affected_versions),
        }


@dataclass(frozen=True)
class CompetitorAnalysis:
    """Competitor comparison derived from mentioning reviews."""
    competitor: str
    mentions: int
    sentiment: float
    strengths: Tuple[str, ...] = ()     # keywords of positive mentions
    weaknesses: Tuple[str, ...] = ()    # keywords of negative mentions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "competitor": self.competitor,
            "mentions": self.mentions,
            "sentiment": self.sentiment,
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
        }


@dataclass(frozen=True)
class ClassificationResult:
    feature_clusters: Tuple[FeatureCluster, ...] = ()
    bug_clusters: Tuple[BugCluster, ...] = ()
    competitor_analysis: Tuple[CompetitorAnalysis, ...] = ()
    top_feature_requests: Tuple[FeatureCluster, ...] = ()
    critical_bugs: Tuple[BugCluster, ...] = ()


# =============================================================================
# AGGREGATION MODELS
# =============================================================================

@dataclass(frozen=True)
class TrendDataPoint:
    """Sentiment counts and mean rating of one period bucket."""
    period: str
    positive: int = 0
    negative: int = 0
    neutral: int = 0
    total: int = 0
    average: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.period,
            "positive": self.positive,
            "negative": self.negative,
            "neutral": self.neutral,
            "total": self.total,
            "average": self.average,
        }


@dataclass(frozen=True)
class TrendAnalysis:
    time_period: TimePeriod
    data_points: Tuple[TrendDataPoint, ...]
    trend: TrendDirection
    percent_change: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timePeriod": self.time_period.value,
            "dataPoints": [p.to_dict() for p in self.data_points],
            "trend": self.trend.value,
            "percentChange": self.percent_change,
        }


@dataclass(frozen=True)
class FeaturePeriod:
    period: str
    count: int
    sentiment: float            # mean star score of the counted reviews


@dataclass(frozen=True)
class BugPeriod:
    period: str
    count: int
    severity: Level


@dataclass(frozen=True)
class FeatureTrend:
    feature: str
    periods: Tuple[FeaturePeriod, ...]
    trend: CountTrend

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feature": self.feature,
            "periods": [
                {"date": p.period, "count": p.count, "sentiment": p.sentiment}
                for p in self.periods
            ],
            "trend": self.trend.value,
        }


@dataclass(frozen=True)
class BugTrend:
    bug: str
    periods: Tuple[BugPeriod, ...]
    trend: CountTrend
    status: BugStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bug": self.bug,
            "periods": [
                {"date": p.period, "count": p.count, "severity": p.severity.value}
                for p in self.periods
            ],
            "trend": self.trend.value,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class RatingDistribution:
    counts: Mapping[int, int]   # star (1-5) -> reviews
    average: float
    total: int

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {str(star): self.counts.get(star, 0) for star in range(1, 6)}
        data["average"] = self.average
        data["total"] = self.total
        return data


@dataclass(frozen=True)
class UserSegmentDistribution:
    new_users: int = 0
    power_users: int = 0
    returning_users: int = 0
    unknown_users: int = 0

    @property
    def total(self) -> int:
        return self.new_users + self.power_users + self.returning_users + self.unknown_users

    def to_dict(self) -> Dict[str, Any]:
        return {
            "newUsers": self.new_users,
            "powerUsers": self.power_users,
            "returningUsers": self.returning_users,
            "unknownUsers": self.unknown_users,
            "total": self.total,
        }


@dataclass(frozen=True)
class Insight:
    """One actionable finding of the digest."""
    insight_id: str
    type: InsightType
    title: str
    description: str
    priority: Level
    recommendation: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.insight_id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "recommendation": self.recommendation,
            "data": self.data,
        }


@dataclass(frozen=True)
class ExportData:
    csv: str = ""
    json: str = ""


@dataclass(frozen=True)
class ResultSummary:
    total_reviews: int
    average_rating: float
    rating_distribution: RatingDistribution
    sentiment_distribution: SentimentDistribution
    user_segment_distribution: UserSegmentDistribution

    def to_dict(self) -> Dict[str, Any]:
        sentiment = self.sentiment_distribution
        return {
            "totalReviews": self.total_reviews,
            "averageRating": self.average_rating,
            "ratingDistribution": self.rating_distribution.to_dict(),
            "sentimentDistribution": {
                "positive": sentiment.positive,
                "negative": sentiment.negative,
                "neutral": sentiment.neutral,
            },
            "userSegmentDistribution": self.user_segment_distribution.to_dict(),
        }


@dataclass(frozen=True)
class TrendBlock:
    overall: TrendAnalysis
    features: Tuple[FeatureTrend, ...] = ()
    bugs: Tuple[BugTrend, ...] = ()
    recurring_issues: Tuple[str, ...] = ()   # bug names with status recurring

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall.to_dict(),
            "features": [t.to_dict() for t in self.features],
            "bugs": [t.to_dict() for t in self.bugs],
            "recurringIssues": list(self.recurring_issues),
        }


@dataclass(frozen=True)
class AggregatedResult:
    """Top-level output handed to presentation collaborators."""
    summary: ResultSummary
    trends: TrendBlock
    top_features: Tuple[FeatureCluster, ...] = ()
    critical_bugs: Tuple[BugCluster, ...] = ()
    competitor_insights: Tuple[CompetitorAnalysis, ...] = ()
    insights: Tuple[Insight, ...] = ()
    export: ExportData = field(default_factory=ExportData)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "trends": self.trends.to_dict(),
            "topFeatures": [f.to_dict() for f in self.top_features],
            "criticalBugs": [b.to_dict() for b in self.critical_bugs],
            "competitorInsights": [c.to_dict() for c in self.competitor_insights],
            "insights": [i.to_dict() for i in self.insights],
            "exportData": {"csv": self.export.csv, "json": self.export.json},
        }
