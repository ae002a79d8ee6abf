from __future__ import annotations

import logging
import random

from odd_one_out.api.models import Round
from odd_one_out.rules import RANGE_MAX
from odd_one_out.core.number_pool import draw

logger = logging.getLogger(__name__)

# Rejection sampling gives up after this many draws and picks from the complement instead.
MAX_SUBSTITUTE_ATTEMPTS = 1_000


def validate_round_config(*, tile_count: int, range_max: int) -> None:
    if tile_count < 1:
        raise ValueError("tile_count must be at least 1")
    if range_max <= tile_count:
        raise ValueError(f"range_max ({range_max}) must exceed tile_count ({tile_count})")


def pick_substitute(*, original: list[int], index: int, range_max: int, rng: random.Random) -> int:
    """Pick a value absent from `original` to overwrite `original[index]` with."""

    taken = set(original)
    replaced = original[index]
    for _ in range(MAX_SUBSTITUTE_ATTEMPTS):
        candidate = rng.randint(1, range_max)
        if candidate not in taken and candidate != replaced:
            return candidate

    logger.debug("substitute sampling hit attempt cap; range_max=%s tiles=%s", range_max, len(original))
    complement = [v for v in range(1, range_max + 1) if v not in taken and v != replaced]
    return rng.choice(complement)


def build_round(tile_count: int, range_max: int = RANGE_MAX, *, rng: random.Random) -> Round:
    """Build one round: the memorized set, one substitution, and the shuffled recall layout.

    Precondition: range_max > tile_count >= 1, so at least one value outside the set exists.
    """

    validate_round_config(tile_count=tile_count, range_max=range_max)

    original = draw(tile_count, range_max, rng=rng)
    original_index = rng.randrange(len(original))
    changed_value = pick_substitute(original=original, index=original_index, range_max=range_max, rng=rng)

    pre_shuffle = list(original)
    pre_shuffle[original_index] = changed_value
    rng.shuffle(pre_shuffle)

    return Round(
        original=tuple(original),
        recall_layout=tuple(pre_shuffle),
        changed_index=pre_shuffle.index(changed_value),
        changed_value=changed_value,
        original_index=original_index,
        replaced_value=original[original_index],
    )


def new_round(tile_count: int, range_max: int = RANGE_MAX, *, rng: random.Random | None = None) -> Round:
    return build_round(tile_count, range_max, rng=rng or random.Random())
