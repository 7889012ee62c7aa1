"""Recency-biased sampling."""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")

DEFAULT_BIAS_STRENGTH = 2.0


def biased_sample(
    items: Sequence[T],
    sample_size: int,
    bias_strength: float = DEFAULT_BIAS_STRENGTH,
    rng: random.Random | None = None,
) -> list[T]:
    """Sample from a newest-first list with a tunable bias toward the front.

    Each draw maps a uniform ``r`` in [0, 1) to index ``floor(r**bias_strength * n)``:

    - bias_strength = 1: uniform (no bias)
    - bias_strength = 2: quadratic, ~75% of draws from the newer half
    - bias_strength = 3: cubic, ~87.5% from the newer half

    Args:
        items: Items sorted newest to oldest.
        sample_size: Number of distinct items to draw.
        bias_strength: Exponent controlling how strongly newer items are favored.
        rng: Random source (defaults to the module-level generator).

    Returns:
        Up to ``sample_size`` distinct items, in draw order.
    """
    if bias_strength <= 0:
        msg = f"bias_strength must be positive, got {bias_strength}"
        raise ValueError(msg)

    rng = rng or random.Random()
    target = min(sample_size, len(items))
    used: set[int] = set()
    result: list[T] = []

    while len(result) < target:
        index = int((rng.random() ** bias_strength) * len(items))
        if index not in used:
            used.add(index)
            result.append(items[index])

    return result
