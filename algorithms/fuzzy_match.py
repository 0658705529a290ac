from __future__ import annotations

import difflib
import sys
from typing import Iterable, Sequence, TypeVar

T = TypeVar("T")


class FuzzyMatcher:
    """Weighted approximate matching of a query against record attributes.

    Each key pairs an attribute name with a relative weight. An attribute may
    hold a string or a list of strings; the best-matching string counts. The
    distance of a string is 0.0 for a case-insensitive substring hit and
    otherwise ``1 - ratio`` of the best whole word or query-length window, so
    misspellings anywhere in the text are found.
    """

    EPSILON: float = sys.float_info.epsilon

    def __init__(self, keys: Sequence[tuple[str, float]], threshold: float = 0.4) -> None:
        if not keys:
            raise ValueError("at least one key is required")
        total = sum(w for _k, w in keys)
        if total <= 0:
            raise ValueError("key weights must be positive")
        self.keys = [(name, weight / total) for name, weight in keys]
        self.threshold = threshold

    @staticmethod
    def distance(query: str, text: str) -> float:
        q = query.strip().lower()
        t = text.lower()
        if not q or not t:
            return 1.0
        if q in t:
            return 0.0
        n = len(q)
        if len(t) <= n:
            return 1.0 - difflib.SequenceMatcher(None, q, t).ratio()
        matcher = difflib.SequenceMatcher(None, "", q)
        best = 0.0
        # whole words first, so a misspelt word beats a partial window elsewhere
        for word in t.split():
            matcher.set_seq1(word)
            best = max(best, matcher.ratio())
        for i in range(len(t) - n + 1):
            matcher.set_seq1(t[i : i + n])
            # quick_ratio is an upper bound, skip windows that cannot win
            if matcher.real_quick_ratio() <= best or matcher.quick_ratio() <= best:
                continue
            best = max(best, matcher.ratio())
        return 1.0 - best

    @classmethod
    def field_distance(cls, query: str, value: str | Iterable[str] | None) -> float:
        if value is None:
            return 1.0
        if isinstance(value, str):
            return cls.distance(query, value)
        return min((cls.distance(query, v) for v in value), default=1.0)

    def score(self, query: str, record: object) -> float | None:
        """Return the combined score (lower is better) or ``None`` if no key matches."""
        total = 1.0
        matched = False
        for name, weight in self.keys:
            d = self.field_distance(query, getattr(record, name, None))
            if d <= self.threshold:
                matched = True
                total *= (d or self.EPSILON) ** weight
        return total if matched else None

    def search(self, query: str, records: Iterable[T]) -> list[T]:
        """Return matching records ordered by relevance, ties in input order."""
        scored = []
        for record in records:
            s = self.score(query, record)
            if s is not None:
                scored.append((s, record))
        scored.sort(key=lambda pair: pair[0])
        return [record for _s, record in scored]
