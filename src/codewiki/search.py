"""In-memory inverted index over article titles, bodies and tags.

The index is rebuilt from scratch for every snapshot; it is never patched.

Scoring: each (token, article) posting carries
    title_weight * tf(title) + body_weight * tf(body) + tag_weight * tf(tags)
A query token matches postings for the identical token at full weight and
postings for longer tokens that start with it at prefix_weight
('conf' matches 'config' and 'configure'). Scores sum over query tokens.
Ties: most recently modified first, then slug ascending.
"""

from __future__ import annotations

import bisect
import re
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from codewiki.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from datetime import datetime

    from codewiki.models import Article

_TOKEN_RE = re.compile(r"[^a-z0-9]+")
_LINK_MARKUP_RE = re.compile(r"\[\[([^\[\]|]*)\|([^\[\]]*)\]\]")

STOPWORDS = frozenset({
    "a", "about", "above", "after", "again", "against", "ain", "all", "am", "an",
    "and", "any", "are", "aren", "as", "at", "be", "because", "been", "before",
    "being", "below", "between", "both", "but", "by", "can", "couldn", "d", "did",
    "didn", "do", "does", "doesn", "doing", "don", "down", "during", "each", "few",
    "for", "from", "further", "had", "hadn", "has", "hasn", "have", "haven", "having",
    "he", "her", "here", "hers", "herself", "him", "himself", "his", "how", "i",
    "if", "in", "into", "is", "isn", "it", "its", "itself", "just", "ll", "m", "ma",
    "me", "mightn", "more", "most", "mustn", "my", "myself", "needn", "no", "nor",
    "not", "now", "o", "of", "off", "on", "once", "only", "or", "other", "our",
    "ours", "ourselves", "out", "over", "own", "re", "s", "same", "shan", "she",
    "should", "shouldn", "so", "some", "such", "t", "than", "that", "the", "their",
    "theirs", "them", "themselves", "then", "there", "these", "they", "this", "those",
    "through", "to", "too", "under", "until", "up", "ve", "very", "was", "wasn", "we",
    "were", "weren", "what", "when", "where", "which", "while", "who", "whom", "why",
    "will", "with", "won", "wouldn", "y", "you", "your", "yours", "yourself", "yourselves",
})


@dataclass(frozen=True)
class SearchWeights:
    title: float = 3.0
    body: float = 1.0
    tags: float = 2.0
    prefix: float = 0.5

    def validate(self) -> SearchWeights:
        for name in ("title", "body", "tags", "prefix"):
            if getattr(self, name) < 0:
                msg = f"search weight '{name}' must be >= 0"
                raise ConfigError(msg)
        return self


def tokenize(text: str, stopwords: frozenset[str] = STOPWORDS) -> list[str]:
    """Lower-case, split on non-alphanumerics, drop stop-words."""
    return [t for t in _TOKEN_RE.split(text.lower()) if t and t not in stopwords]


def _body_text(body: str) -> str:
    # [[target|label]] reads as its label
    return _LINK_MARKUP_RE.sub(r"\2", body)


@dataclass(frozen=True)
class SearchIndex:
    postings: Mapping[str, Mapping[str, float]]      # token -> {slug: weight}
    vocabulary: tuple[str, ...]                      # sorted tokens, for prefix lookup
    modified: Mapping[str, datetime | None]
    weights: SearchWeights = SearchWeights()

    def __len__(self) -> int:
        return len(self.modified)

    def entry(self, token: str) -> dict[str, float]:
        """The IndexEntry for a normalised token."""
        return dict(self.postings.get(token, {}))

    def _expand(self, term: str) -> Iterable[tuple[str, float]]:
        """(token, multiplier) pairs the term matches: itself, then prefix extensions."""
        i = bisect.bisect_left(self.vocabulary, term)
        while i < len(self.vocabulary) and self.vocabulary[i].startswith(term):
            token = self.vocabulary[i]
            yield token, 1.0 if token == term else self.weights.prefix
            i += 1

    def query(self, text: str, limit: int) -> list[tuple[str, float]]:
        """Ranked (slug, score) pairs, best first. Empty query -> []."""
        if limit < 1:
            msg = f"limit must be >= 1, got {limit}"
            raise ConfigError(msg)
        terms = list(dict.fromkeys(tokenize(text)))
        if not terms:
            return []

        scores: Counter[str] = Counter()
        for term in terms:
            for token, mult in self._expand(term):
                if mult == 0:
                    continue
                for slug, weight in self.postings[token].items():
                    scores[slug] += weight * mult

        def _key(item: tuple[str, float]) -> tuple[float, float, str]:
            slug, score = item
            ts = self.modified.get(slug)
            return (-score, -ts.timestamp() if ts else float("inf"), slug)

        ranked = sorted(((s, round(v, 6)) for s, v in scores.items() if v > 0), key=_key)
        return ranked[:limit]

    def suggest(self, prefix: str, limit: int = 10) -> list[str]:
        """Indexed tokens starting with prefix, most widely used first."""
        if limit < 1:
            msg = f"limit must be >= 1, got {limit}"
            raise ConfigError(msg)
        term = prefix.strip().lower()
        if not term:
            return []
        matches = [token for token, _ in self._expand(term)]
        matches.sort(key=lambda t: (-len(self.postings[t]), t))
        return matches[:limit]


def build_index(articles: Sequence[Article], weights: SearchWeights | None = None) -> SearchIndex:
    """Build a fresh index over articles."""
    weights = (weights or SearchWeights()).validate()
    postings: dict[str, dict[str, float]] = {}

    for article in articles:
        counts: Counter[str] = Counter()
        for token, n in Counter(tokenize(article.title)).items():
            counts[token] += weights.title * n
        for token, n in Counter(tokenize(_body_text(article.body))).items():
            counts[token] += weights.body * n
        for token, n in Counter(t for tag in article.tags for t in tokenize(tag)).items():
            counts[token] += weights.tags * n
        for token, weight in counts.items():
            if weight > 0:
                postings.setdefault(token, {})[article.slug] = weight

    return SearchIndex(
        postings=postings,
        vocabulary=tuple(sorted(postings)),
        modified={a.slug: a.modified for a in articles},
        weights=weights,
    )


def query(index: SearchIndex, text: str, limit: int) -> list[tuple[str, float]]:
    return index.query(text, limit)
