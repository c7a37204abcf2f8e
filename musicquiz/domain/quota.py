"""Slot ownership planning.

Every slot of the playlist is owned by one participating player. Ownership is
split evenly; the slots left over after the even split go to distinct random
players so that no player gets more than one extra slot.
"""

from typing import List, Sequence
from uuid import UUID

import numpy as np

from musicquiz.domain.errors import NoEligiblePlayers


def plan_slot_owners(
    player_ids: Sequence[UUID], track_count: int, rng: np.random.Generator
) -> List[UUID]:
    """Return one owner per slot, in random order.

    Args:
        player_ids (Sequence[UUID]): Participating players, without duplicates
        track_count (int): Number of slots to plan
        rng (np.random.Generator): Source of randomness

    Raises:
        NoEligiblePlayers: No player participates in the lobby

    Returns:
        List[UUID]: Owner of each slot, length track_count
    """
    if len(player_ids) == 0:
        raise NoEligiblePlayers("No participating player in lobby")
    if track_count <= 0:
        raise ValueError("track_count must be > 0")

    players = list(player_ids)
    share = track_count // len(players)
    owners: List[UUID] = [player_id for player_id in players for _ in range(share)]

    remainder = track_count - len(owners)
    if remainder > 0:
        extra_indexes = rng.choice(len(players), size=remainder, replace=False)
        owners.extend(players[int(index)] for index in extra_indexes)

    rng.shuffle(owners)
    return owners
