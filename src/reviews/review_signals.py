"""
Review Signal Extractor (Deterministic)
========================================

Rule-based signals extracted from a single review text:

    IntentMatcher    — feature request / bug report / praise / complaint /
                       question / comparison tags via phrase tables
    EntityExtractor  — literal feature-request and bug-report phrases via
                       capture-group regexes, competitor mentions and the
                       reviewer's user segment
    assess_severity  — low / medium / high from term lists and the rating

No LLM required: fast, explainable, reproducible. Every table is an
ordered tuple so evaluation order is explicit.

Usage:
    intents = IntentMatcher().classify(text, SentimentCategory.NEGATIVE)
    extractor = EntityExtractor()
    features = extractor.extract_feature_requests(text)
    bugs = extractor.extract_bug_reports(text)
"""

import logging
import re
from typing import FrozenSet, List, Optional, Pattern, Sequence, Tuple

from .review_models import Intention, Level, SentimentCategory, UserSegment

logger = logging.getLogger(__name__)


# =============================================================================
# INTENT PHRASE TABLE
# =============================================================================
# A category matches when the lowercased text contains ANY of its phrases as
# a plain substring (not word-boundary aware: "addiction" matches "add").

INTENT_PATTERNS: Tuple[Tuple[Intention, Tuple[str, ...]], ...] = (
    (Intention.FEATURE_REQUEST, (
        "add", "would be nice", "should have", "need", "missing", "please add",
        "would love", "wish it had", "could use", "hope you add", "suggestion",
        "feature request", "would be great if", "please implement", "consider adding",
    )),
    (Intention.BUG_REPORT, (
        "bug", "crash", "error", "issue", "problem", "not working", "fix",
        "broken", "glitch", "freezes", "stuck", "doesn't work", "fails",
        "doesn't load", "force close", "keeps stopping", "won't open",
    )),
    (Intention.PRAISE, (
        "great", "awesome", "love", "excellent", "perfect", "amazing",
        "fantastic", "wonderful", "best", "good", "helpful", "useful",
        "impressive", "outstanding", "superb", "brilliant", "terrific",
    )),
    (Intention.COMPLAINT, (
        "bad", "terrible", "poor", "waste", "disappointed", "awful",
        "horrible", "useless", "frustrating", "annoying", "worst",
        "hate", "sucks", "garbage", "rubbish", "pathetic", "joke",
    )),
    (Intention.QUESTION, (
        "how do i", "how to", "can you", "is there", "does it", "will it",
        "when will", "why is", "where is", "what is", "?",
    )),
    (Intention.COMPARISON, (
        "better than", "worse than", "compared to", "similar to", "like",
        "unlike", "preferred", "instead of", "alternative", "competitor",
        "competition", "other apps", "other games", "rivals",
    )),
)


# =============================================================================
# PHRASE EXTRACTION PATTERNS
# =============================================================================
# One capture group each, applied to the raw text (case-insensitive).

FEATURE_REQUEST_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"wish(?:ed)? (?:it |there was |you |they |had |for )(.{3,50})", re.IGNORECASE),
    re.compile(r"need(?:s)? (?:to |a |an |more )(.{3,50})", re.IGNORECASE),
    re.compile(r"add(?:ing)? (.{3,50}) would", re.IGNORECASE),
    re.compile(r"please (?:add|include) (.{3,50})", re.IGNORECASE),
    re.compile(r"would (?:be nice|love|like) (?:to have |if (?:you |there was |it had ))(.{3,50})", re.IGNORECASE),
    re.compile(r"(?:missing|lacks) (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:should|could) (?:add|include|implement) (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:want|looking for) (.{3,50})", re.IGNORECASE),
    re.compile(r"hope (?:you|they) (?:add|include|implement) (.{3,50})", re.IGNORECASE),
    re.compile(r"suggestion(?:s)?: (.{3,50})", re.IGNORECASE),
)

BUG_REPORT_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"(?:crash|bug|error|issue|problem)(?:es|s)? (?:with|when|during) (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:doesn't|does not|won't|will not|can't|cannot) (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:broken|not working|fails|failed) (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:keeps|constantly) (?:crashing|freezing|stopping) (?:when|during|after) (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:glitch|bug) (?:in|with) (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:unable|impossible) to (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:stuck|freezes) (?:on|at|when|during) (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:force|keeps) (?:closing|stopping) (?:when|during|after) (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:problem|issue) (?:with|when) (.{3,50})", re.IGNORECASE),
    re.compile(r"(?:not|doesn't) (?:load|open|function|work) (?:when|properly|correctly) (.{3,50})?", re.IGNORECASE),
)

# Extracted phrases must be longer than this after trimming.
MIN_PHRASE_LENGTH = 3


# =============================================================================
# COMPETITORS AND USER SEGMENTS
# =============================================================================

COMPETITORS: Tuple[str, ...] = (
    "facebook", "instagram", "tiktok", "snapchat", "twitter",
    "whatsapp", "messenger", "signal", "telegram", "discord",
    "slack", "teams", "zoom", "skype", "wechat", "line",
    "viber", "pinterest", "linkedin", "youtube", "netflix",
    "hulu", "disney", "prime", "spotify", "apple", "google",
    "amazon", "microsoft", "samsung", "huawei", "xiaomi",
)

# Checked in this order; the first segment with a hit wins.
USER_SEGMENT_PATTERNS: Tuple[Tuple[UserSegment, Tuple[str, ...]], ...] = (
    (UserSegment.NEW, (
        "just downloaded", "first time", "new to this", "recently started",
        "just started", "just installed", "new user", "beginner", "just got",
        "just beginning", "just trying", "first day", "first week",
    )),
    (UserSegment.POWER, (
        "long time user", "been using for years", "daily user", "power user",
        "premium user", "pro user", "expert", "advanced user", "loyal user",
        "using since", "for years", "heavy user", "regular user", "paid user",
    )),
    (UserSegment.RETURNING, (
        "came back", "returned to", "giving another try", "reinstalled",
        "trying again", "back after", "returned after", "coming back",
        "second chance", "redownloaded", "resubscribed",
    )),
)


# =============================================================================
# SEVERITY TERMS
# =============================================================================

HIGH_SEVERITY_TERMS: Tuple[str, ...] = (
    "crash", "freeze", "unusable", "broken", "lost data", "lost all my data",
    "corrupt", "security", "privacy", "payment", "money", "charge", "stuck",
    "can't login", "can't access", "deleted", "wiped", "reset",
)

MEDIUM_SEVERITY_TERMS: Tuple[str, ...] = (
    "slow", "lag", "delay", "glitch", "bug", "issue", "problem",
    "doesn't work", "not working", "error", "failed",
)


def _contains_any(text: str, phrases: Sequence[str]) -> bool:
    return any(phrase in text for phrase in phrases)


def assess_severity(text: str, score: int) -> Level:
    """
    Severity of a review.

    High when a high-severity term appears or the rating is <= 1, medium
    when a medium term appears or the rating is <= 3, otherwise low. The
    high check always runs first.
    """
    lowered = (text or "").lower()
    if _contains_any(lowered, HIGH_SEVERITY_TERMS) or score <= 1:
        return Level.HIGH
    if _contains_any(lowered, MEDIUM_SEVERITY_TERMS) or score <= 3:
        return Level.MEDIUM
    return Level.LOW


class IntentMatcher:
    """Phrase-table intent tagging with a sentiment fallback."""

    def __init__(self, patterns: Optional[Sequence[Tuple[Intention, Sequence[str]]]] = None):
        self.patterns = tuple(
            (intention, tuple(phrases))
            for intention, phrases in (patterns or INTENT_PATTERNS)
        )

    def classify(self, text: str, sentiment: SentimentCategory) -> FrozenSet[Intention]:
        """
        Every category with a substring hit is returned. Only when none
        matched does sentiment decide: positive -> praise, negative ->
        complaint, neutral -> empty set.
        """
        lowered = (text or "").lower()
        matched = {
            intention
            for intention, phrases in self.patterns
            if _contains_any(lowered, phrases)
        }
        if not matched:
            if sentiment == SentimentCategory.POSITIVE:
                matched.add(Intention.PRAISE)
            elif sentiment == SentimentCategory.NEGATIVE:
                matched.add(Intention.COMPLAINT)
        return frozenset(matched)


class EntityExtractor:
    """
    Literal phrase, competitor and user-segment extraction.

    All tables are injected read-only configuration with the module-level
    defaults above.
    """

    def __init__(
        self,
        feature_patterns: Optional[Sequence[Pattern]] = None,
        bug_patterns: Optional[Sequence[Pattern]] = None,
        competitors: Optional[Sequence[str]] = None,
        segment_patterns: Optional[Sequence[Tuple[UserSegment, Sequence[str]]]] = None,
    ):
        self.feature_patterns = tuple(feature_patterns or FEATURE_REQUEST_PATTERNS)
        self.bug_patterns = tuple(bug_patterns or BUG_REPORT_PATTERNS)
        self.competitors = tuple(c.lower() for c in (competitors or COMPETITORS))
        self.segment_patterns = tuple(
            (segment, tuple(phrases))
            for segment, phrases in (segment_patterns or USER_SEGMENT_PATTERNS)
        )

    @staticmethod
    def _extract_phrases(text: str, patterns: Sequence[Pattern]) -> List[str]:
        """First match of each pattern, trimmed, deduplicated within the review."""
        phrases: List[str] = []
        if not text:
            return phrases

        for pattern in patterns:
            match = pattern.search(text)
            if not match or not match.group(1):
                continue
            phrase = match.group(1).strip()
            if len(phrase) > MIN_PHRASE_LENGTH and phrase not in phrases:
                phrases.append(phrase)
        return phrases

    def extract_feature_requests(self, text: str) -> List[str]:
        return self._extract_phrases(text, self.feature_patterns)

    def extract_bug_reports(self, text: str) -> List[str]:
        return self._extract_phrases(text, self.bug_patterns)

    def detect_competitors(self, text: str) -> List[str]:
        """Canonical names of every competitor found as a substring."""
        lowered = (text or "").lower()
        return [name for name in self.competitors if name in lowered]

    def detect_user_segment(self, text: str) -> UserSegment:
        lowered = (text or "").lower()
        for segment, phrases in self.segment_patterns:
            if _contains_any(lowered, phrases):
                return segment
        return UserSegment.UNKNOWN
