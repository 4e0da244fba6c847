"""
Review Insight Data Module
==========================

Configuration and the validation of raw review records handed over by the
acquisition layer.

This module provides:
    - get_settings: env-driven configuration (.env supported)
    - ReviewRecord: pydantic model of one raw store review
    - parse_reviews: raw records -> RawReview list with field defaults

Quick Start:
    from src.data import parse_reviews

    reviews = parse_reviews(records)

Configuration:
    Set environment variables or create a .env file.
    See .env.example for all available options.
"""

from .config import get_settings, reset_settings, Settings
from .review_records import ReviewRecord, parse_reviews, parse_timestamp

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "get_settings",
    "reset_settings",
    "Settings",
    # Records
    "ReviewRecord",
    "parse_reviews",
    "parse_timestamp",
]
