"""
Tests for phrase similarity, average-link clustering and cluster naming.

Usage:
    pytest tests/test_review_clustering.py -v
"""

import math

import pytest

from src.reviews.review_clustering import (
    SimilarityClusterer,
    cosine_similarity,
    jaccard_similarity,
    name_cluster,
    phrase_similarity,
)
from src.reviews.review_text import Corpus


PHRASES = [
    "dark mode option",
    "a dark mode option please",
    "export to pdf",
    "export data to pdf",
]


# ============================================================================
# SIMILARITY
# ============================================================================

class TestSimilarity:

    def test_identical_phrases(self):
        assert jaccard_similarity("dark mode option", "dark mode option") == 1.0
        assert cosine_similarity("dark mode option", "dark mode option") == pytest.approx(1.0)

    def test_empty_side_is_zero(self):
        assert jaccard_similarity("", "dark mode") == 0.0
        assert cosine_similarity("dark mode", "") == 0.0

    def test_short_tokens_ignored(self):
        # only "fix" and "bug" are longer than two characters
        assert jaccard_similarity("an ok fix", "an ok bug") == 0.0
        assert jaccard_similarity("an ok fix", "to be fix") == 1.0

    def test_cosine_uses_term_frequency(self):
        assert cosine_similarity("dark dark mode", "dark mode") == pytest.approx(3 / math.sqrt(10))

    def test_phrase_similarity_is_max_of_both(self):
        a, b = "a dark mode option", "dark mode"
        assert jaccard_similarity(a, b) == pytest.approx(2 / 3)
        assert phrase_similarity(a, b) == pytest.approx(2 / math.sqrt(6))

    def test_symmetric(self):
        assert phrase_similarity(PHRASES[0], PHRASES[1]) == phrase_similarity(PHRASES[1], PHRASES[0])


# ============================================================================
# CLUSTERING
# ============================================================================

class TestSimilarityClusterer:
    """Greedy average-link merging."""

    def setup_method(self):
        self.clusterer = SimilarityClusterer(threshold=0.6)

    def test_groups_similar_phrases(self):
        assert self.clusterer.cluster(PHRASES) == [
            ["dark mode option", "a dark mode option please"],
            ["export to pdf", "export data to pdf"],
        ]

    def test_partition_covers_every_item_once(self):
        groups = SimilarityClusterer(threshold=0.0).partition(PHRASES)
        flat = [p for g in groups for p in g]
        assert sorted(flat) == sorted(PHRASES)

    def test_threshold_blocks_merges(self):
        clusterer = SimilarityClusterer(threshold=0.9)
        assert clusterer.partition(PHRASES) == [[p] for p in PHRASES]
        assert clusterer.cluster(PHRASES) == []

    def test_min_cluster_size_one_keeps_singletons(self):
        clusterer = SimilarityClusterer(threshold=0.9, min_cluster_size=1)
        assert len(clusterer.cluster(PHRASES)) == 4

    def test_max_clusters_cap(self):
        clusterer = SimilarityClusterer(threshold=0.6, max_clusters=1)
        assert clusterer.cluster(PHRASES) == [["dark mode option", "a dark mode option please"]]

    def test_max_merges_cap(self):
        clusterer = SimilarityClusterer(threshold=0.6, max_merges=1)
        assert clusterer.partition(PHRASES) == [
            ["dark mode option", "a dark mode option please"],
            ["export to pdf"],
            ["export data to pdf"],
        ]

    def test_largest_group_first(self):
        phrases = ["export to pdf", "dark mode", "dark mode please", "dark mode now", "export data to pdf"]
        groups = self.clusterer.cluster(phrases)
        assert [len(g) for g in groups] == [3, 2]
        assert groups[0][0] == "dark mode"

    def test_deterministic(self):
        assert self.clusterer.cluster(PHRASES) == self.clusterer.cluster(list(PHRASES))

    def test_trivial_inputs(self):
        assert self.clusterer.partition([]) == []
        assert self.clusterer.partition(["only"]) == [["only"]]
        assert self.clusterer.cluster(["only"]) == []


# ============================================================================
# NAMING
# ============================================================================

class TestNameCluster:

    def setup_method(self):
        self.corpus = Corpus.build([
            "Please add a dark mode option",
            "Dark mode option would be great",
            "App crashes on login",
            "Export to pdf is missing",
        ])

    def test_keywords_and_densest_phrase(self):
        keywords, name = name_cluster(["a dark mode option", "dark mode option"], self.corpus)
        assert keywords == ["dark", "mode", "option"]
        assert name == "dark mode option"

    def test_long_name_truncated(self):
        phrase = "lorem " * 12
        _, name = name_cluster([phrase], Corpus.build(["first review", "second review"]))
        assert name == phrase[:50] + "..."
        assert len(name) == 53

    def test_no_keyword_hits_falls_back_to_first_phrase(self):
        _, name = name_cluster(["zz yy", "xx ww"], self.corpus)
        assert name == "zz yy"

    def test_empty_cluster(self):
        assert name_cluster([], self.corpus) == ([], "")
