"""
Review Insight Aggregator
==========================

Final stage of the pipeline: combines an AnalysisResult and its
ClassificationResult into the AggregatedResult handed to dashboards and
exporters.

    summary   — totals, rating histogram, sentiment and user segments
    trends    — mean-rating trend over calendar buckets plus per-cluster
                count series for the reported features and bugs
    insights  — ranked "most important N" digest
    export    — CSV / JSON blobs (see review_export)

Buckets are generated backward from "now", not from the data: exactly
``max_data_points`` contiguous periods ending with the one that contains
"now". Reviews outside that window are left out of every trend series but
still count in the summary.

Usage:
    aggregator = ReviewInsightAggregator(options)
    result = aggregator.aggregate(analysis, classification)
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from .review_export import build_export
from .review_models import (
    AggregatedResult,
    AnalysisResult,
    AnalyzedComment,
    BugCluster,
    BugPeriod,
    BugStatus,
    BugTrend,
    ClassificationResult,
    CountTrend,
    FeatureCluster,
    FeaturePeriod,
    FeatureTrend,
    Insight,
    InsightType,
    Level,
    RatingDistribution,
    ResultSummary,
    TimePeriod,
    TrendAnalysis,
    TrendBlock,
    TrendDataPoint,
    TrendDirection,
    UserSegment,
    UserSegmentDistribution,
)
from .review_options import AnalysisOptions

logger = logging.getLogger(__name__)

# Percent change beyond which a series is considered moving.
TREND_THRESHOLD_PCT = 5.0

# Sentiment trend insight is high priority beyond this change.
SENTIMENT_INSIGHT_HIGH_PCT = 15.0

INSIGHT_FEATURE_COUNT = 3
INSIGHT_BUG_COUNT = 3
INSIGHT_COMPETITOR_COUNT = 2
COMPETITOR_MIN_MENTIONS = 5
COMPETITOR_HIGH_MENTIONS = 20
COMPETITOR_FAVORABLE_SENTIMENT = 3.5
SEGMENT_SKEW_FACTOR = 2


# =============================================================================
# CALENDAR BUCKETS
# =============================================================================

def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def period_start(value: datetime, period: TimePeriod) -> datetime:
    """Midnight UTC of the first day of the period containing ``value``."""
    day = _as_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)
    if period == TimePeriod.DAY:
        return day
    if period == TimePeriod.WEEK:
        return day - timedelta(days=day.weekday())
    if period == TimePeriod.MONTH:
        return day.replace(day=1)
    if period == TimePeriod.QUARTER:
        return day.replace(month=3 * ((day.month - 1) // 3) + 1, day=1)
    return day.replace(month=1, day=1)


def previous_period_start(start: datetime, period: TimePeriod) -> datetime:
    """Start of the period immediately before the one beginning at ``start``."""
    if period == TimePeriod.DAY:
        return start - timedelta(days=1)
    if period == TimePeriod.WEEK:
        return start - timedelta(days=7)
    if period == TimePeriod.YEAR:
        return start.replace(year=start.year - 1)

    step = 1 if period == TimePeriod.MONTH else 3
    month = start.month - step
    year = start.year
    if month < 1:
        month += 12
        year -= 1
    return start.replace(year=year, month=month)


def period_key(value: datetime, period: TimePeriod) -> str:
    """
    Bucket key of the period containing ``value``:
    ``YYYY-MM-DD`` (day, and week by its Monday), ``YYYY-MM``,
    ``YYYY-Qn`` or ``YYYY``.
    """
    start = period_start(value, period)
    if period in (TimePeriod.DAY, TimePeriod.WEEK):
        return start.strftime("%Y-%m-%d")
    if period == TimePeriod.MONTH:
        return start.strftime("%Y-%m")
    if period == TimePeriod.QUARTER:
        return f"{start.year}-Q{(start.month - 1) // 3 + 1}"
    return str(start.year)


def generate_periods(now: datetime, period: TimePeriod, count: int) -> List[str]:
    """``count`` contiguous bucket keys ending with the one containing ``now``, oldest first."""
    keys: List[str] = []
    start = period_start(now, period)
    for _ in range(count):
        keys.append(period_key(start, period))
        start = previous_period_start(start, period)
    keys.reverse()
    return keys


# =============================================================================
# TREND MATH
# =============================================================================

def _weighted_average(values: Sequence[float]) -> float:
    """Linearly weighted mean, later positions weigh more (weight = index + 1)."""
    if not values:
        return 0.0
    weights = range(1, len(values) + 1)
    return sum(v * w for v, w in zip(values, weights)) / sum(weights)


def weighted_half_change(values: Sequence[float]) -> Tuple[float, float, float]:
    """
    Split ``values`` at the midpoint and compare the weighted averages.

    Returns:
        (earlier average, later average, percent change); the change is 0
        when the earlier average is 0.
    """
    middle = len(values) // 2
    earlier = _weighted_average(values[:middle])
    later = _weighted_average(values[middle:])
    change = (later - earlier) / earlier * 100 if earlier != 0 else 0.0
    return earlier, later, change


def analyze_trend(values: Sequence[float]) -> Tuple[TrendDirection, float]:
    """Direction and percent change of a mean-rating series."""
    if len(values) < 2:
        return TrendDirection.STABLE, 0.0

    _earlier, _later, change = weighted_half_change(values)
    if change > TREND_THRESHOLD_PCT:
        return TrendDirection.IMPROVING, change
    if change < -TREND_THRESHOLD_PCT:
        return TrendDirection.DECLINING, change
    return TrendDirection.STABLE, change


def count_trend(counts: Sequence[int]) -> CountTrend:
    """
    Direction of a count series. An all-zero earlier half followed by any
    activity counts as increasing.
    """
    if len(counts) < 2:
        return CountTrend.STABLE

    earlier, later, change = weighted_half_change(counts)
    if earlier == 0:
        return CountTrend.INCREASING if later > 0 else CountTrend.STABLE
    if change > TREND_THRESHOLD_PCT:
        return CountTrend.INCREASING
    if change < -TREND_THRESHOLD_PCT:
        return CountTrend.DECREASING
    return CountTrend.STABLE


def bug_status(counts: Sequence[int]) -> BugStatus:
    """New when only the most recent bucket has reports, else per count trend."""
    if counts and counts[-1] > 0 and all(c == 0 for c in counts[:-1]):
        return BugStatus.NEW

    trend = count_trend(counts)
    if trend == CountTrend.INCREASING:
        return BugStatus.INCREASING
    if trend == CountTrend.DECREASING:
        return BugStatus.DECREASING
    return BugStatus.RECURRING


def _max_level(levels: Sequence[Level]) -> Level:
    if not levels:
        return Level.LOW
    return min(levels, key=lambda level: level.rank)


# =============================================================================
# AGGREGATOR
# =============================================================================

class ReviewInsightAggregator:
    """
    Builds the AggregatedResult of one run.

    ``now`` pins the clock for the bucket window; when None the current
    UTC time is read at aggregation.
    """

    def __init__(self, options: Optional[AnalysisOptions] = None, now: Optional[datetime] = None):
        self.options = options or AnalysisOptions()
        self.now = now

    def _current_time(self, now: Optional[datetime] = None) -> datetime:
        return _as_utc(now or self.now or datetime.now(timezone.utc))

    def aggregate(
        self,
        analysis: AnalysisResult,
        classification: ClassificationResult,
        now: Optional[datetime] = None,
    ) -> AggregatedResult:
        """Summary, trends, insights and export blobs of one run."""
        opts = self.options
        keys = generate_periods(self._current_time(now), opts.time_period, opts.max_data_points)
        grouped = self.group_by_period(analysis.comments, keys)

        overall = self.overall_trend(grouped, keys)
        top_features = classification.top_feature_requests[:opts.max_features]
        critical_bugs = classification.critical_bugs[:opts.max_bugs]
        feature_trends = tuple(self.feature_trend(f, keys) for f in top_features)
        bug_trends = tuple(self.bug_trend(b, keys) for b in critical_bugs)

        trends = TrendBlock(
            overall=overall,
            features=feature_trends,
            bugs=bug_trends,
            recurring_issues=tuple(t.bug for t in bug_trends if t.status == BugStatus.RECURRING),
        )

        summary = ResultSummary(
            total_reviews=len(analysis.comments),
            average_rating=analysis.sentiment.average,
            rating_distribution=self.rating_distribution(analysis.comments),
            sentiment_distribution=analysis.sentiment,
            user_segment_distribution=self.user_segment_distribution(analysis),
        )

        insights = self.generate_insights(analysis, classification, overall)
        export = build_export(
            analysis,
            classification,
            include=opts.include_export_data,
            dialect=opts.csv_dialect,
        )

        excluded = len(analysis.comments) - sum(len(v) for v in grouped.values())
        logger.info(
            f"Aggregated {len(analysis.comments)} reviews into {len(keys)} {opts.time_period.value} buckets "
            f"({excluded} outside the window), trend {overall.trend.value} "
            f"{overall.percent_change:+.1f}%, {len(insights)} insights"
        )

        return AggregatedResult(
            summary=summary,
            trends=trends,
            top_features=tuple(top_features),
            critical_bugs=tuple(critical_bugs),
            competitor_insights=classification.competitor_analysis,
            insights=tuple(insights),
            export=export,
        )

    # =========================================================================
    # TRENDS
    # =========================================================================

    def group_by_period(
        self,
        comments: Sequence[AnalyzedComment],
        keys: Sequence[str],
    ) -> Dict[str, List[AnalyzedComment]]:
        """Comments per bucket key; comments outside ``keys`` are dropped."""
        grouped: Dict[str, List[AnalyzedComment]] = {key: [] for key in keys}
        for comment in comments:
            key = period_key(comment.date, self.options.time_period)
            if key in grouped:
                grouped[key].append(comment)
        return grouped

    @staticmethod
    def trend_data_points(
        grouped: Dict[str, List[AnalyzedComment]],
        keys: Sequence[str],
    ) -> List[TrendDataPoint]:
        points = []
        for key in keys:
            bucket = grouped.get(key, [])
            points.append(TrendDataPoint(
                period=key,
                positive=sum(1 for c in bucket if c.polarity > 0),
                negative=sum(1 for c in bucket if c.polarity < 0),
                neutral=sum(1 for c in bucket if c.polarity == 0),
                total=len(bucket),
                average=sum(c.score for c in bucket) / len(bucket) if bucket else 0.0,
            ))
        return points

    def overall_trend(
        self,
        grouped: Dict[str, List[AnalyzedComment]],
        keys: Sequence[str],
    ) -> TrendAnalysis:
        points = self.trend_data_points(grouped, keys)
        direction, change = analyze_trend([p.average for p in points])
        return TrendAnalysis(
            time_period=self.options.time_period,
            data_points=tuple(points),
            trend=direction,
            percent_change=change,
        )

    def feature_trend(self, feature: FeatureCluster, keys: Sequence[str]) -> FeatureTrend:
        grouped = self.group_by_period(feature.comments, keys)
        periods = tuple(
            FeaturePeriod(
                period=key,
                count=len(grouped[key]),
                sentiment=sum(c.score for c in grouped[key]) / len(grouped[key]) if grouped[key] else 0.0,
            )
            for key in keys
        )
        return FeatureTrend(
            feature=feature.name,
            periods=periods,
            trend=count_trend([p.count for p in periods]),
        )

    def bug_trend(self, bug: BugCluster, keys: Sequence[str]) -> BugTrend:
        grouped = self.group_by_period(bug.comments, keys)
        periods = tuple(
            BugPeriod(
                period=key,
                count=len(grouped[key]),
                severity=_max_level([c.severity for c in grouped[key]]),
            )
            for key in keys
        )
        counts = [p.count for p in periods]
        return BugTrend(
            bug=bug.name,
            periods=periods,
            trend=count_trend(counts),
            status=bug_status(counts),
        )

    # =========================================================================
    # DISTRIBUTIONS
    # =========================================================================

    @staticmethod
    def rating_distribution(comments: Sequence[AnalyzedComment]) -> RatingDistribution:
        """Star histogram; scores are rounded half up and clamped to 1..5."""
        counts: Dict[int, int] = defaultdict(int)
        for comment in comments:
            star = min(5, max(1, int(comment.score + 0.5)))
            counts[star] += 1

        total = len(comments)
        return RatingDistribution(
            counts={star: counts[star] for star in range(1, 6)},
            average=sum(c.score for c in comments) / total if total else 0.0,
            total=total,
        )

    @staticmethod
    def user_segment_distribution(analysis: AnalysisResult) -> UserSegmentDistribution:
        return UserSegmentDistribution(
            new_users=len(analysis.segment(UserSegment.NEW)),
            power_users=len(analysis.segment(UserSegment.POWER)),
            returning_users=len(analysis.segment(UserSegment.RETURNING)),
            unknown_users=len(analysis.segment(UserSegment.UNKNOWN)),
        )

    # =========================================================================
    # INSIGHTS
    # =========================================================================

    def generate_insights(
        self,
        analysis: AnalysisResult,
        classification: ClassificationResult,
        trend: TrendAnalysis,
    ) -> List[Insight]:
        """
        Ranked insight digest.

        Candidates are collected in a fixed order (sentiment, features,
        bugs, competitors, user segments), stably sorted high -> low and
        truncated to ``max_insights``, so low-priority findings may drop.
        """
        insights: List[Insight] = []

        if trend.trend != TrendDirection.STABLE:
            improving = trend.trend == TrendDirection.IMPROVING
            insights.append(Insight(
                insight_id="sentiment-trend",
                type=InsightType.SENTIMENT,
                title=f"Overall sentiment is {trend.trend.value}",
                description=(
                    f"The overall sentiment has {'increased' if improving else 'decreased'} by "
                    f"{abs(trend.percent_change):.1f}% over the analyzed period."
                ),
                priority=Level.HIGH if abs(trend.percent_change) > SENTIMENT_INSIGHT_HIGH_PCT else Level.MEDIUM,
                recommendation=(
                    "Continue the positive momentum by maintaining recent improvements."
                    if improving else
                    "Investigate the causes of declining sentiment and address user concerns."
                ),
                data=trend.to_dict(),
            ))

        for index, feature in enumerate(classification.top_feature_requests[:INSIGHT_FEATURE_COUNT]):
            insights.append(Insight(
                insight_id=f"feature-{index}",
                type=InsightType.FEATURE,
                title=f"High demand for: {feature.name}",
                description=(
                    f"{feature.count} users have requested this feature with an average "
                    f"rating of {feature.average_rating:.1f}."
                ),
                priority=feature.priority,
                recommendation="Consider prioritizing the development of this feature to improve user satisfaction.",
                data=feature.to_dict(),
            ))

        for index, bug in enumerate(classification.critical_bugs[:INSIGHT_BUG_COUNT]):
            insights.append(Insight(
                insight_id=f"bug-{index}",
                type=InsightType.BUG,
                title=f"Critical issue: {bug.name}",
                description=f"{bug.count} users have reported this issue with {bug.severity.value} severity.",
                priority=Level.HIGH,
                recommendation="Prioritize fixing this issue to improve user experience and ratings.",
                data=bug.to_dict(),
            ))

        for index, competitor in enumerate(classification.competitor_analysis[:INSIGHT_COMPETITOR_COUNT]):
            if competitor.mentions < COMPETITOR_MIN_MENTIONS:
                continue
            name = competitor.competitor
            insights.append(Insight(
                insight_id=f"competitor-{index}",
                type=InsightType.COMPETITOR,
                title=f"Users comparing with {name}",
                description=f"{competitor.mentions} users mentioned {name} in their reviews.",
                priority=Level.HIGH if competitor.mentions > COMPETITOR_HIGH_MENTIONS else Level.MEDIUM,
                recommendation=(
                    f"Analyze what users prefer about your app compared to {name}."
                    if competitor.sentiment > COMPETITOR_FAVORABLE_SENTIMENT else
                    f"Investigate features from {name} that users prefer."
                ),
                data=competitor.to_dict(),
            ))

        segment_insight = self._segment_insight(analysis)
        if segment_insight is not None:
            insights.append(segment_insight)

        insights.sort(key=lambda i: i.priority.rank)
        return insights[:self.options.max_insights]

    @staticmethod
    def _segment_insight(analysis: AnalysisResult) -> Optional[Insight]:
        new_users = len(analysis.segment(UserSegment.NEW))
        power_users = len(analysis.segment(UserSegment.POWER))

        if new_users > power_users * SEGMENT_SKEW_FACTOR:
            return Insight(
                insight_id="user-new",
                type=InsightType.USER,
                title="High proportion of new users",
                description=f"{new_users} new users compared to {power_users} power users.",
                priority=Level.MEDIUM,
                recommendation="Focus on improving onboarding and first-time user experience.",
            )
        if power_users > new_users * SEGMENT_SKEW_FACTOR:
            return Insight(
                insight_id="user-power",
                type=InsightType.USER,
                title="Strong base of power users",
                description=f"{power_users} power users compared to {new_users} new users.",
                priority=Level.MEDIUM,
                recommendation="Consider adding advanced features to retain power users while improving acquisition.",
            )
        return None
