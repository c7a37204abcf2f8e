"""Rules for a single round entry that do not touch the catalog.

Rule of thumb:
- OK: window arithmetic, answer sets, pure transformations.
- Not OK: touching DB sessions, Redis, FastAPI, datetime.now(), etc.
"""

from typing import Dict, List, Tuple
from uuid import UUID

import numpy as np

from musicquiz.models.dc_models import TrackTypeModel
from musicquiz.models.schema_models import GameSchema, TrackSchema

REVEAL_EXTRA_SECONDS = 10
OFFSET_DECIMALS = 4

HINT_GAME_COUNT = 4
SIMILAR_HINT_LIMIT = 3


def lobby_window(guess_window_seconds: float, reveal_extends_window: bool) -> float:
    """Seconds of audio a round plays, including the answer reveal if it extends playback."""
    if reveal_extends_window:
        return guess_window_seconds + REVEAL_EXTRA_SECONDS
    return guess_window_seconds


def truncate(value: float, decimals: int = OFFSET_DECIMALS) -> float:
    factor = 10**decimals
    return float(np.floor(value * factor) / factor)


def playback_window(
    duration: float, window: float, rng: np.random.Generator
) -> Tuple[float, float]:
    """Pick the part of a track that a round plays.

    Args:
        duration (float): Track duration in seconds
        window (float): Seconds the round plays
        rng (np.random.Generator): Source of randomness

    Returns:
        Tuple[float, float]: start_offset and end_offset. The whole track when
        it is shorter than the window.
    """
    if window > duration:
        return 0.0, float(duration)
    end_offset = max(truncate(rng.uniform(window, duration)), window)
    return end_offset - window, end_offset


def lineage_games(track: TrackSchema) -> List[GameSchema]:
    """Games accepted as the answer for a track.

    The Original's game comes first, followed by the game of every Derivative
    of that Original. A Derivative whose Original is unknown only accepts its
    own game.
    """
    if track.track_type == TrackTypeModel.derivative and track.original is not None:
        root_game = track.original.game
        derivatives = track.original.derivatives
    else:
        root_game = track.game
        derivatives = track.derivatives

    games: Dict[UUID, GameSchema] = {root_game.game_id: root_game}
    for derivative in derivatives:
        games.setdefault(derivative.game.game_id, derivative.game)
    if track.game.game_id not in games:
        games[track.game.game_id] = track.game
    return list(games.values())
