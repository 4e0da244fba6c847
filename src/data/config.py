"""
Review Insight Configuration Module
===================================

Centralized configuration management using environment variables.
Supports both .env files and system environment variables.

Environment Variables:
    LOG_LEVEL: Root log level (default: INFO)
    LOG_JSON: Emit JSON structured logs (default: false)
    LOG_FILE: Optional rotating log file path

    RESULT_CACHE_ENABLED: Memoize pipeline results (default: true)
    RESULT_CACHE_TTL_SECONDS: Cached result lifetime (default: 86400)
    RESULT_CACHE_MAX_SIZE: Maximum cached results (default: 100)

    REVIEWS_MIN_KEYWORD_LENGTH: Minimum keyword length (default: 4)
    REVIEWS_MAX_KEYWORDS: Corpus keyword list cap (default: 50)
    REVIEWS_MIN_KEYWORD_FREQUENCY: Minimum keyword occurrences (default: 2)
    REVIEWS_CLUSTER_THRESHOLD: Average-link merge threshold (default: 0.6)
    REVIEWS_MIN_CLUSTER_SIZE: Smallest reported cluster (default: 2)
    REVIEWS_MAX_CLUSTERS: Cluster cap per kind (default: 20)
    REVIEWS_TIME_PERIOD: Trend granularity day|week|month|quarter|year (default: week)
    REVIEWS_MAX_DATA_POINTS: Trend buckets (default: 12)
    REVIEWS_MAX_INSIGHTS / REVIEWS_MAX_FEATURES / REVIEWS_MAX_BUGS (default: 10/5/5)
    REVIEWS_CSV_DIALECT: legacy|standard (default: legacy)

    JOB_WORKERS: Background analysis job threads (default: 2)
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


# Load environment variables from .env file if present
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Environment variable, stripped, or ``default`` when unset or blank."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def get_env_int(key: str, default: int) -> int:
    """Get environment variable as integer."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be an integer, got: {value}")


def get_env_float(key: str, default: float) -> float:
    """Get environment variable as float."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable '{key}' must be a float, got: {value}")


def get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as boolean."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: get_env("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(default_factory=lambda: get_env("LOG_FILE"))

    # Structured logging
    json_logs: bool = field(default_factory=lambda: get_env_bool("LOG_JSON", False))


@dataclass
class CacheConfig:
    """Result cache configuration."""

    enabled: bool = field(default_factory=lambda: get_env_bool("RESULT_CACHE_ENABLED", True))
    ttl_seconds: int = field(default_factory=lambda: get_env_int("RESULT_CACHE_TTL_SECONDS", 24 * 60 * 60))
    max_size: int = field(default_factory=lambda: get_env_int("RESULT_CACHE_MAX_SIZE", 100))

    def __post_init__(self):
        """Validate configuration."""
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if self.max_size <= 0:
            raise ValueError("max_size must be positive")


@dataclass
class PipelineConfig:
    """Environment overrides for the analysis option bag defaults."""

    min_keyword_length: int = field(default_factory=lambda: get_env_int("REVIEWS_MIN_KEYWORD_LENGTH", 4))
    max_keywords: int = field(default_factory=lambda: get_env_int("REVIEWS_MAX_KEYWORDS", 50))
    min_keyword_frequency: int = field(default_factory=lambda: get_env_int("REVIEWS_MIN_KEYWORD_FREQUENCY", 2))

    # Clustering
    cluster_threshold: float = field(default_factory=lambda: get_env_float("REVIEWS_CLUSTER_THRESHOLD", 0.6))
    min_cluster_size: int = field(default_factory=lambda: get_env_int("REVIEWS_MIN_CLUSTER_SIZE", 2))
    max_clusters: int = field(default_factory=lambda: get_env_int("REVIEWS_MAX_CLUSTERS", 20))

    # Trends and digest
    time_period: str = field(default_factory=lambda: get_env("REVIEWS_TIME_PERIOD", "week"))
    max_data_points: int = field(default_factory=lambda: get_env_int("REVIEWS_MAX_DATA_POINTS", 12))
    max_insights: int = field(default_factory=lambda: get_env_int("REVIEWS_MAX_INSIGHTS", 10))
    max_features: int = field(default_factory=lambda: get_env_int("REVIEWS_MAX_FEATURES", 5))
    max_bugs: int = field(default_factory=lambda: get_env_int("REVIEWS_MAX_BUGS", 5))

    csv_dialect: str = field(default_factory=lambda: get_env("REVIEWS_CSV_DIALECT", "legacy"))

    # Background job threads
    job_workers: int = field(default_factory=lambda: get_env_int("JOB_WORKERS", 2))

    def __post_init__(self):
        """Validate configuration."""
        if self.job_workers <= 0:
            raise ValueError("job_workers must be positive")

    def option_overrides(self) -> dict:
        """Option bag values in the snake_case form accepted by AnalysisOptions."""
        return {
            "min_keyword_length": self.min_keyword_length,
            "max_keywords": self.max_keywords,
            "min_keyword_frequency": self.min_keyword_frequency,
            "cluster_threshold": self.cluster_threshold,
            "min_cluster_size": self.min_cluster_size,
            "max_clusters": self.max_clusters,
            "time_period": self.time_period,
            "max_data_points": self.max_data_points,
            "max_insights": self.max_insights,
            "max_features": self.max_features,
            "max_bugs": self.max_bugs,
            "csv_dialect": self.csv_dialect,
        }


@dataclass
class Settings:
    """Main application settings container."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    # Application metadata
    app_name: str = "review-insights"
    app_version: str = "1.0.0"
    environment: str = field(default_factory=lambda: get_env("ENVIRONMENT", "development"))

    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")


def load_settings() -> Settings:
    """
    Read every setting from the environment.

    Raises:
        ValueError: If a variable is malformed or out of range
    """
    return Settings()


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None

