"""
Review Text Primitives
======================

Tokenization, the per-run review corpus and TF-IDF keyword extraction.

The corpus is built once per analysis run, before any per-review work,
and is read-only afterwards: its document-frequency table is shared by
every keyword extraction of the run (per-review keywords and cluster
naming alike).

Usage:
    corpus = Corpus.build(texts, min_term_length=4)
    keywords = KeywordExtractor().extract(text, corpus, min_length=4, top_k=10)
"""

import math
import re
from collections import Counter
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple, Union

# Runs of letters and digits; punctuation, whitespace and underscores separate.
TOKEN_PATTERN = re.compile(r"[^\W_]+")

# Terms present in more than this share of documents are treated as stopwords.
MAX_DOCUMENT_SHARE = 0.5


def tokenize(text: str) -> List[str]:
    """Lowercase ``text`` and split it into letter/digit tokens (no stemming)."""
    if not text:
        return []
    return TOKEN_PATTERN.findall(text.lower())


class Corpus:
    """
    Review texts of one run plus a precomputed document-frequency table.

    Document frequency uses case-insensitive substring containment, not
    token containment: "add" is counted in a review saying "addiction".
    """

    def __init__(self, texts: Sequence[str], document_frequencies: Mapping[str, int]):
        self._texts: Tuple[str, ...] = tuple(texts)
        self._lowered: Tuple[str, ...] = tuple(t.lower() for t in self._texts)
        self._document_frequencies = MappingProxyType(dict(document_frequencies))

    @classmethod
    def build(cls, texts: Iterable[str], min_term_length: int = 1) -> "Corpus":
        """
        Build a corpus and precompute the frequency of every token of at
        least ``min_term_length`` characters that appears in it.
        """
        texts = tuple(t or "" for t in texts)
        lowered = [t.lower() for t in texts]
        vocabulary = {
            token
            for text in texts
            for token in tokenize(text)
            if len(token) >= min_term_length
        }
        frequencies = {
            term: sum(1 for doc in lowered if term in doc)
            for term in vocabulary
        }
        return cls(texts, frequencies)

    @property
    def texts(self) -> Tuple[str, ...]:
        return self._texts

    @property
    def size(self) -> int:
        return len(self._texts)

    def __len__(self) -> int:
        return len(self._texts)

    def document_frequency(self, term: str) -> int:
        """Number of documents containing ``term`` as a substring."""
        term = term.lower()
        cached = self._document_frequencies.get(term)
        if cached is not None:
            return cached
        return sum(1 for doc in self._lowered if term in doc)


class KeywordExtractor:
    """TF-IDF keyword extraction against a run corpus."""

    def score_terms(
        self,
        text: str,
        corpus: Union[Corpus, Sequence[str]],
        min_length: int = 4,
    ) -> List[Tuple[str, float]]:
        """
        Score every eligible term of ``text``, in first-encounter order.

        tf  = occurrences / total tokens of the text
        idf = ln(corpus size / max(document frequency, 1))

        Terms shorter than ``min_length`` and terms found in more than half
        of the corpus documents are skipped.
        """
        if not isinstance(corpus, Corpus):
            corpus = Corpus.build(corpus, min_term_length=min_length)

        tokens = tokenize(text)
        if not tokens:
            return []

        term_counts: Dict[str, int] = Counter(t for t in tokens if len(t) >= min_length)
        doc_count = corpus.size or 1

        scored: List[Tuple[str, float]] = []
        for term, count in term_counts.items():
            doc_freq = corpus.document_frequency(term)
            if doc_freq > doc_count * MAX_DOCUMENT_SHARE:
                continue
            tf = count / len(tokens)
            idf = math.log(doc_count / max(doc_freq, 1))
            scored.append((term, tf * idf))
        return scored

    def extract(
        self,
        text: str,
        corpus: Union[Corpus, Sequence[str]],
        min_length: int = 4,
        top_k: int = 10,
    ) -> List[str]:
        """
        Return the ``top_k`` most salient terms of ``text``.

        Ties keep their original encounter order (stable sort). A corpus of
        one document yields nothing: every term is in 100% of documents.
        """
        scored = self.score_terms(text, corpus, min_length=min_length)
        ranked = sorted(scored, key=lambda item: item[1], reverse=True)
        return [term for term, _score in ranked[:top_k]]
