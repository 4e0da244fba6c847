"""
Similarity Clustering of Review Phrases
=======================================

Groups near-duplicate feature-request / bug-report phrases with
average-link hierarchical clustering.

Similarity of two phrases = max(Jaccard, cosine) over their tokens longer
than two characters. Starting from singletons, the pair of clusters with
the highest mean pairwise similarity is merged while that mean reaches the
threshold.

Complexity: every merge scans all cluster pairs, O(n²) per merge and O(n)
merges. Fine for the hundreds of phrases of one run; thousands of phrases
would need candidate pruning (e.g. locality-sensitive hashing) first.

Usage:
    clusterer = SimilarityClusterer(threshold=0.6)
    groups = clusterer.cluster(phrases)
    keywords, name = name_cluster(groups[0], corpus)
"""

import logging
import math
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

from .review_text import Corpus, KeywordExtractor, tokenize

logger = logging.getLogger(__name__)

# Tokens of this length or shorter are ignored by the similarity measures.
SIMILARITY_MIN_TOKEN_LENGTH = 2

CLUSTER_KEYWORD_COUNT = 5
CLUSTER_KEYWORD_MIN_LENGTH = 4
MAX_NAME_LENGTH = 50


def similarity_tokens(text: str) -> List[str]:
    return [t for t in tokenize(text) if len(t) > SIMILARITY_MIN_TOKEN_LENGTH]


def jaccard_similarity(a: str, b: str) -> float:
    """|A ∩ B| / |A ∪ B| of the two token sets; 0 if either is empty."""
    set_a = set(similarity_tokens(a))
    set_b = set(similarity_tokens(b))
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def cosine_similarity(a: str, b: str) -> float:
    """Cosine of the two term-frequency vectors; 0 if either is empty."""
    vec_a = Counter(similarity_tokens(a))
    vec_b = Counter(similarity_tokens(b))
    if not vec_a or not vec_b:
        return 0.0

    dot = sum(count * vec_b.get(term, 0) for term, count in vec_a.items())
    norm_a = math.sqrt(sum(v * v for v in vec_a.values()))
    norm_b = math.sqrt(sum(v * v for v in vec_b.values()))
    return dot / (norm_a * norm_b)


def phrase_similarity(a: str, b: str) -> float:
    return max(jaccard_similarity(a, b), cosine_similarity(a, b))


class SimilarityClusterer:
    """
    Greedy average-link clustering.

    Pairwise similarity totals between clusters are kept and summed on
    merge, so each step only compares totals instead of every member pair.
    Ties go to the first pair in scan order, which makes the partition
    deterministic for a given input order.
    """

    def __init__(
        self,
        threshold: float = 0.6,
        min_cluster_size: int = 2,
        max_clusters: int = 20,
        max_merges: Optional[int] = None,
    ):
        """
        Args:
            threshold: Minimum average similarity for a merge.
            min_cluster_size: Smaller groups are dropped from the output.
            max_clusters: Output cap, largest groups first.
            max_merges: Optional cap on merge steps for very large inputs.
        """
        self.threshold = threshold
        self.min_cluster_size = min_cluster_size
        self.max_clusters = max_clusters
        self.max_merges = max_merges

    def partition(self, items: Sequence[str]) -> List[List[str]]:
        """Full partition of ``items`` (no size filtering or cap)."""
        n = len(items)
        if n == 0:
            return []
        if n == 1:
            return [[items[0]]]

        # totals[(a, b)] with a < b: sum of member-pair similarities
        members: Dict[int, List[int]] = {i: [i] for i in range(n)}
        totals: Dict[Tuple[int, int], float] = {}
        for i in range(n):
            for j in range(i + 1, n):
                totals[(i, j)] = phrase_similarity(items[i], items[j])

        merges = 0
        while len(members) > 1:
            if self.max_merges is not None and merges >= self.max_merges:
                logger.warning(f"Clustering stopped after {merges} merges (max_merges cap)")
                break

            best_pair: Optional[Tuple[int, int]] = None
            best_similarity = -1.0
            keys = sorted(members)
            for x, a in enumerate(keys):
                size_a = len(members[a])
                for b in keys[x + 1:]:
                    average = totals[(a, b)] / (size_a * len(members[b]))
                    if average > best_similarity:
                        best_similarity = average
                        best_pair = (a, b)

            if best_pair is None or best_similarity < self.threshold:
                break

            keep, absorbed = best_pair
            members[keep].extend(members.pop(absorbed))
            for other in members:
                if other == keep:
                    continue
                merged_key = (min(keep, other), max(keep, other))
                absorbed_key = (min(absorbed, other), max(absorbed, other))
                totals[merged_key] += totals.pop(absorbed_key)
            for key in [k for k in totals if absorbed in k]:
                del totals[key]
            merges += 1

        return [[items[i] for i in members[key]] for key in sorted(members)]

    def cluster(self, items: Sequence[str]) -> List[List[str]]:
        """
        Cluster ``items`` and keep groups of at least ``min_cluster_size``,
        at most ``max_clusters`` of them, largest first.
        """
        groups = [g for g in self.partition(items) if len(g) >= self.min_cluster_size]
        groups.sort(key=len, reverse=True)
        result = groups[:self.max_clusters]
        logger.debug(f"Clustered {len(items)} phrases into {len(result)} groups")
        return result


def name_cluster(
    phrases: Sequence[str],
    corpus: Corpus,
    keyword_extractor: Optional[KeywordExtractor] = None,
) -> Tuple[List[str], str]:
    """
    Keywords and display name of a phrase group.

    Keywords are the top TF-IDF terms of the concatenated phrases against
    the run corpus. The name is the phrase with the highest keyword hits
    per character (short, keyword-dense phrases win), truncated to 50
    characters with an ellipsis.
    """
    if not phrases:
        return [], ""

    extractor = keyword_extractor or KeywordExtractor()
    keywords = extractor.extract(
        " ".join(phrases),
        corpus,
        min_length=CLUSTER_KEYWORD_MIN_LENGTH,
        top_k=CLUSTER_KEYWORD_COUNT,
    )

    best = phrases[0]
    best_score = 0.0
    for phrase in phrases:
        if not phrase:
            continue
        lowered = phrase.lower()
        hits = sum(1 for keyword in keywords if keyword.lower() in lowered)
        score = hits / len(phrase)
        if score > best_score:
            best_score = score
            best = phrase

    if len(best) > MAX_NAME_LENGTH:
        best = best[:MAX_NAME_LENGTH] + "..."
    return keywords, best
