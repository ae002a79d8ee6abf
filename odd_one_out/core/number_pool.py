from __future__ import annotations

import random


def draw(count: int, range_max: int, *, rng: random.Random) -> list[int]:
    """Return `count` distinct integers sampled uniformly from [1, range_max].

    The result is capped at `range_max` values rather than raising when more are asked for.
    """

    if count <= 0 or range_max <= 0:
        return []
    return rng.sample(range(1, range_max + 1), min(count, range_max))
