"""
Review Record Validation
========================

Pydantic model for the raw review records handed over by the acquisition
layer (store scrapers, JSON dumps). Records arrive either in the store's
camelCase shape or in snake_case:

    {"id": "gp:1", "userName": "Ana", "text": "...", "score": 4,
     "thumbsUp": 2, "date": "2026-10-12T08:00:00.000Z", "version": "2.1.0"}

Malformed fields never fail a record: they fall back to defaults
(user "Anonymous", score 0, date now, text "", thumbs 0) with a debug log.

Usage:
    from src.data.review_records import parse_reviews

    reviews = parse_reviews(json.load(open("reviews.json")))
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..reviews.review_models import RawReview

logger = logging.getLogger(__name__)

DEFAULT_USER_NAME = "Anonymous"

# Numeric dates above this are epoch milliseconds, below it epoch seconds.
EPOCH_MILLIS_CUTOFF = 10 ** 11


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (trailing ``Z`` allowed), epoch number or
    datetime into an aware UTC datetime. Naive values are taken as UTC.

    Returns None when the value cannot be interpreted.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            return None
        seconds = value / 1000 if abs(value) >= EPOCH_MILLIS_CUTOFF else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class ReviewRecord(BaseModel):
    """One raw store review. Field names follow the store payload."""
    id: Optional[str] = Field(None, alias="review_id")
    userName: str = Field(DEFAULT_USER_NAME, alias="user_name")
    text: str = Field("", alias="content")
    score: int = 0
    thumbsUp: int = Field(0, alias="thumbs_up")
    date: datetime = Field(default_factory=_utcnow)
    version: Optional[str] = Field(None, alias="app_version")

    class Config:
        populate_by_name = True

    @field_validator("id", "version", mode="before")
    @classmethod
    def _optional_string(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (str, int, float)):
            text = str(value).strip()
            return text or None
        logger.debug(f"Dropping non-scalar value {value!r}")
        return None

    @field_validator("userName", mode="before")
    @classmethod
    def _user_name(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip():
            return value
        logger.debug(f"Missing user name {value!r}, using {DEFAULT_USER_NAME}")
        return DEFAULT_USER_NAME

    @field_validator("text", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        if isinstance(value, str):
            return value
        if value is not None:
            logger.debug(f"Non-text review body {type(value).__name__}, using empty text")
        return ""

    @field_validator("score", "thumbsUp", mode="before")
    @classmethod
    def _integer(cls, value: Any) -> int:
        if isinstance(value, bool):
            return 0
        try:
            number = float(value)
        except (TypeError, ValueError):
            logger.debug(f"Invalid numeric value {value!r}, using 0")
            return 0
        if not math.isfinite(number):
            return 0
        return int(round(number))

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> datetime:
        parsed = parse_timestamp(value)
        if parsed is None:
            logger.debug(f"Invalid review date {value!r}, using current time")
            return _utcnow()
        return parsed

    def to_raw_review(self, fallback_id: str) -> RawReview:
        return RawReview(
            review_id=self.id or fallback_id,
            user_name=self.userName,
            content=self.text,
            score=self.score,
            thumbs_up=self.thumbsUp,
            date=self.date,
            app_version=self.version,
        )


def parse_reviews(records: Iterable[Union[Mapping[str, Any], RawReview]]) -> List[RawReview]:
    """
    Validate raw records into RawReview objects, preserving input order.

    RawReview instances pass through unchanged. Records that are not
    mappings are skipped with a warning; records without an id get a
    positional one (``review-<index>``).
    """
    reviews: List[RawReview] = []
    skipped = 0

    for index, record in enumerate(records or ()):
        if isinstance(record, RawReview):
            reviews.append(record)
            continue
        if not isinstance(record, Mapping):
            logger.warning(f"Skipping review record {index}: expected a mapping, got {type(record).__name__}")
            skipped += 1
            continue
        try:
            parsed = ReviewRecord.model_validate(dict(record))
        except ValidationError as e:
            logger.warning(f"Skipping review record {index}: {e.error_count()} invalid fields")
            skipped += 1
            continue
        reviews.append(parsed.to_raw_review(f"review-{index}"))

    if skipped:
        logger.info(f"Parsed {len(reviews)} review records, skipped {skipped}")
    return reviews
