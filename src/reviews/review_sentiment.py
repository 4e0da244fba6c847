"""
Lexicon Sentiment Scorer (Deterministic)
========================================

Scores review text with a fixed word -> weight table (AFINN-style, roughly
-5 to +5). The score is the mean weight of the matched words, so a single
strong word in a long review still registers while many neutral words do
not dilute it.

Usage:
    scorer = SentimentScorer()
    result = scorer.score("Great app, love it")   # value 4.0, positive
"""

import logging
from types import MappingProxyType
from typing import Mapping, Optional

from .review_models import SentimentCategory, SentimentScore
from .review_text import tokenize

logger = logging.getLogger(__name__)


# =============================================================================
# SENTIMENT LEXICON
# =============================================================================
# Tokens are matched exactly (no stemming), so common inflections of the
# strongest app-store terms are listed explicitly.

SENTIMENT_LEXICON: Mapping[str, int] = MappingProxyType({
    # Positive
    "good": 3, "great": 4, "awesome": 5, "excellent": 5, "amazing": 5,
    "love": 4, "loved": 4, "loves": 4, "perfect": 5, "best": 5,
    "helpful": 3, "fantastic": 5, "wonderful": 4, "superb": 5,
    "brilliant": 5, "outstanding": 5, "easy": 2, "nice": 3, "better": 2,
    "recommend": 4, "worth": 3, "beautiful": 3, "fast": 2, "simple": 2,
    "clean": 2, "useful": 3, "happy": 3, "enjoy": 3, "fun": 3, "cool": 3,
    "impressive": 4, "smooth": 3, "intuitive": 3, "convenient": 3,
    "reliable": 3,

    # Negative
    "bad": -3, "poor": -3, "terrible": -5, "awful": -5, "horrible": -5,
    "worst": -5, "waste": -3, "useless": -3, "disappointed": -4,
    "disappointing": -4, "frustrating": -4, "annoying": -3, "slow": -2,
    "crash": -4, "crashes": -4, "crashing": -4, "crashed": -4,
    "bug": -3, "bugs": -3, "buggy": -3, "error": -3, "errors": -3,
    "issue": -2, "issues": -2, "problem": -2, "problems": -2,
    "difficult": -2, "confusing": -3, "expensive": -2, "hate": -4,
    "hated": -4, "boring": -3, "ugly": -3, "complicated": -3,
    "broken": -4, "fail": -3, "fails": -3, "failed": -3, "failure": -3,
    "glitch": -3, "glitches": -3, "stuck": -3, "freezes": -3,
    "freeze": -3, "froze": -3, "freezing": -3, "laggy": -3, "lag": -3,
    "lags": -3, "ads": -2, "advertisement": -2,
})

# Mean score above +threshold is positive, below -threshold negative.
DEFAULT_THRESHOLD = 0.2


class SentimentScorer:
    """
    Thresholded-mean lexicon scorer.

    The lexicon is injected read-only configuration; the scorer holds no
    mutable state and can be shared across a run.
    """

    def __init__(self, lexicon: Optional[Mapping[str, int]] = None, threshold: float = DEFAULT_THRESHOLD):
        self.lexicon = MappingProxyType(dict(lexicon)) if lexicon is not None else SENTIMENT_LEXICON
        self.threshold = threshold

    def categorize(self, value: float) -> SentimentCategory:
        if value > self.threshold:
            return SentimentCategory.POSITIVE
        if value < -self.threshold:
            return SentimentCategory.NEGATIVE
        return SentimentCategory.NEUTRAL

    def score(self, text: str) -> SentimentScore:
        """
        Score ``text``.

        Returns value = sum of matched weights / matched word count, or 0
        when no lexicon word matches (neutral, never an error).
        """
        total = 0
        matched = 0
        for token in tokenize(text):
            weight = self.lexicon.get(token)
            if weight is not None:
                total += weight
                matched += 1

        value = total / matched if matched else 0.0
        return SentimentScore(value=value, category=self.categorize(value))
