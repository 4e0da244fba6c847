"""
Analysis Option Bag
===================

Every tunable of one analysis run, validated eagerly so that an invalid
configuration is rejected before any per-review work starts.

Usage:
    options = AnalysisOptions.from_mapping({"timePeriod": "month", "maxDataPoints": 6})
    options = AnalysisOptions(cluster_threshold=0.5)
"""

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from .review_models import TimePeriod

logger = logging.getLogger(__name__)

CSV_DIALECTS = ("legacy", "standard")

# Keeps the yearly bucket window clear of year 1.
MAX_DATA_POINTS = 1000

# camelCase names used by presentation collaborators -> field names
_CAMEL_CASE_KEYS = {
    "minKeywordLength": "min_keyword_length",
    "maxKeywords": "max_keywords",
    "minKeywordFrequency": "min_keyword_frequency",
    "keywordsPerReview": "keywords_per_review",
    "sentimentThreshold": "sentiment_threshold",
    "clusterThreshold": "cluster_threshold",
    "minClusterSize": "min_cluster_size",
    "maxClusters": "max_clusters",
    "maxExamples": "max_examples",
    "featurePriorityHigh": "feature_priority_high",
    "featurePriorityMedium": "feature_priority_medium",
    "bugImpactHigh": "bug_impact_high",
    "bugImpactMedium": "bug_impact_medium",
    "timePeriod": "time_period",
    "maxDataPoints": "max_data_points",
    "maxInsights": "max_insights",
    "maxFeatures": "max_features",
    "maxBugs": "max_bugs",
    "includeExportData": "include_export_data",
    "csvDialect": "csv_dialect",
}


class InvalidOptionsError(ValueError):
    """Raised when an analysis option is out of range."""
    pass


@dataclass(frozen=True)
class AnalysisOptions:
    """Option bag for one analysis run."""

    # Keywords
    min_keyword_length: int = 4
    max_keywords: int = 50
    min_keyword_frequency: int = 2
    keywords_per_review: int = 10

    # Sentiment
    sentiment_threshold: float = 0.2

    # Clustering and classification
    cluster_threshold: float = 0.6
    min_cluster_size: int = 2
    max_clusters: int = 20
    max_examples: int = 3
    feature_priority_high: int = 10
    feature_priority_medium: int = 5
    bug_impact_high: int = 8
    bug_impact_medium: int = 3

    # Trends and digest
    time_period: TimePeriod = TimePeriod.WEEK
    max_data_points: int = 12
    max_insights: int = 10
    max_features: int = 5
    max_bugs: int = 5

    # Export
    include_export_data: bool = True
    csv_dialect: str = "legacy"

    def __post_init__(self):
        """Validate every option; coerce the time period to its enum."""
        if not isinstance(self.time_period, TimePeriod):
            try:
                object.__setattr__(self, "time_period", TimePeriod(str(self.time_period).lower()))
            except ValueError:
                raise InvalidOptionsError(
                    f"time_period must be one of {[p.value for p in TimePeriod]}, "
                    f"got: {self.time_period!r}"
                )

        positive = (
            "min_keyword_length", "max_keywords", "keywords_per_review",
            "min_cluster_size", "max_clusters", "max_data_points",
            "feature_priority_high", "feature_priority_medium",
            "bug_impact_high", "bug_impact_medium",
        )
        for name in positive:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidOptionsError(f"{name} must be a positive integer, got: {value!r}")

        if self.max_data_points > MAX_DATA_POINTS:
            raise InvalidOptionsError(
                f"max_data_points cannot exceed {MAX_DATA_POINTS}, got: {self.max_data_points!r}"
            )

        non_negative = ("min_keyword_frequency", "max_examples", "max_insights", "max_features", "max_bugs")
        for name in non_negative:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidOptionsError(f"{name} cannot be negative, got: {value!r}")

        for name in ("cluster_threshold", "sentiment_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise InvalidOptionsError(f"{name} must be between 0 and 1, got: {value!r}")

        if self.feature_priority_medium > self.feature_priority_high:
            raise InvalidOptionsError("feature_priority_medium cannot exceed feature_priority_high")
        if self.bug_impact_medium > self.bug_impact_high:
            raise InvalidOptionsError("bug_impact_medium cannot exceed bug_impact_high")
        if self.csv_dialect not in CSV_DIALECTS:
            raise InvalidOptionsError(f"csv_dialect must be one of {CSV_DIALECTS}, got: {self.csv_dialect!r}")

    @classmethod
    def from_mapping(
        cls,
        values: Optional[Mapping[str, Any]] = None,
        base: Optional["AnalysisOptions"] = None,
    ) -> "AnalysisOptions":
        """
        Build options from a camelCase or snake_case mapping.

        Args:
            values: Option overrides; unknown keys are logged and ignored.
            base: Options to start from (defaults when None).

        Raises:
            InvalidOptionsError: If any resulting option is invalid
        """
        base = base or cls()
        if not values:
            return base

        known = {f.name for f in fields(cls)}
        overrides: Dict[str, Any] = {}
        for key, value in values.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                logger.warning(f"Ignoring unknown analysis option: {key}")
                continue
            if value is None:
                continue
            overrides[name] = value
        return replace(base, **overrides)

    @classmethod
    def from_settings(cls, overrides: Optional[Mapping[str, Any]] = None) -> "AnalysisOptions":
        """Defaults taken from the environment (REVIEWS_*), then ``overrides``."""
        from ..data.config import get_settings

        base = cls.from_mapping(get_settings().pipeline.option_overrides())
        return cls.from_mapping(overrides, base=base)

    def cache_key_data(self) -> Dict[str, Any]:
        """Normalized, JSON-serializable view used for result memoization."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["time_period"] = self.time_period.value
        return data
