"""Difficulty bands and the exploration policy.

A track's difficulty score is the historical share of players who guessed it
right, so a high score means an easy track. Tracks without a score have never
been measured; exploring slots prefer them to collect data.

The policy does not pick anything itself. It returns the ordered pools a
selection step should query, so the same plan drives game selection and
track selection.
"""

from enum import Enum
from typing import Iterable, List, Optional, Tuple

EASY_LOWER_BOUND = 0.66
HARD_UPPER_BOUND = 0.33


class Difficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class DifficultyPool(str, Enum):
    unset = "unset"  # no difficulty score recorded yet
    in_bands = "in_bands"  # score inside one of the lobby's bands
    any = "any"


def covers_all_bands(bands: Iterable[Difficulty]) -> bool:
    return set(bands) >= set(Difficulty)


def score_in_bands(score: Optional[float], bands: Iterable[Difficulty]) -> bool:
    """Check whether a difficulty score falls in any of the given bands."""
    if score is None:
        return False
    for band in bands:
        if band == Difficulty.easy and score > EASY_LOWER_BOUND:
            return True
        if band == Difficulty.medium and HARD_UPPER_BOUND <= score <= EASY_LOWER_BOUND:
            return True
        if band == Difficulty.hard and score < HARD_UPPER_BOUND:
            return True
    return False


def score_in_pool(
    score: Optional[float], pool: DifficultyPool, bands: Iterable[Difficulty]
) -> bool:
    if pool == DifficultyPool.unset:
        return score is None
    if pool == DifficultyPool.in_bands:
        return score_in_bands(score, bands)
    return True


def pool_plan(
    exploring: bool, bands: Iterable[Difficulty], allow_exploration: bool
) -> List[Tuple[DifficultyPool, bool]]:
    """Ordered pools to try for one selection step.

    Args:
        exploring (bool): Whether the step starts out preferring unmeasured tracks
        bands (Iterable[Difficulty]): Difficulty bands selected by the lobby
        allow_exploration (bool): Whether the lobby permits exploration at all

    Returns:
        List[Tuple[DifficultyPool, bool]]: (pool, exploring) pairs. The flag is
        the exploring state that holds if the pool is the one that matches.
    """
    all_bands = covers_all_bands(bands)

    if exploring:
        if all_bands:
            return [(DifficultyPool.unset, True), (DifficultyPool.any, True)]
        return [
            (DifficultyPool.unset, True),
            (DifficultyPool.in_bands, True),
            (DifficultyPool.any, True),
        ]

    if all_bands:
        return [(DifficultyPool.any, False)]

    plan = [(DifficultyPool.in_bands, False)]
    if allow_exploration:
        # Nothing in the lobby's bands: fall back to collecting missing data.
        plan.append((DifficultyPool.unset, True))
        plan.append((DifficultyPool.any, True))
    return plan
