"""Frequency maps and top-N rankings shared by the aggregators.

Ordering rule: descending by count; equal counts keep the order in which
the key was first seen in the input. `Counter` preserves insertion order
and `most_common` sorts stably, which gives exactly that.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Hashable, Iterable
from typing import TypeVar

K = TypeVar("K", bound=Hashable)


def frequencies(keys: Iterable[K]) -> Counter[K]:
    return Counter(keys)


def top_n(counts: Counter[K], n: int) -> list[tuple[K, int]]:
    """At most `n` (key, count) pairs, highest count first."""
    if n <= 0:
        return []
    return counts.most_common(n)


def most_frequent(keys: Iterable[K]) -> K | None:
    """The single most frequent key, or None for empty input."""
    ranked = top_n(frequencies(keys), 1)
    return ranked[0][0] if ranked else None
