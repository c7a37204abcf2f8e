"""Pick one game and one track for a slot owner.

Game and track selection run the same difficulty plan against the catalog:
each pool of the plan is queried in turn with a random order and a limit of
one, and the first hit wins.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Set, Tuple, TypeVar
from uuid import UUID

import numpy as np

from musicquiz.catalog import Catalog, CatalogFilter
from musicquiz.domain.difficulty import pool_plan
from musicquiz.domain.errors import GameHadNoTrack, OwnerExhausted
from musicquiz.models.schema_models import GameSchema, LobbySchema, TrackSchema

T = TypeVar("T")


class SelectionState:
    """Exclusion state of one composition, shared by all of its slots."""

    def __init__(self):
        self.used_game_ids: Set[UUID] = set()
        self.used_track_ids: Set[UUID] = set()
        self.blacklisted_game_ids: Set[UUID] = set()

    def mark_used(self, track: TrackSchema):
        self.used_game_ids.add(track.game_id)
        self.used_track_ids.add(track.track_id)


class Candidate:
    def __init__(self, owner_id: UUID, game: GameSchema, track: TrackSchema, exploring: bool):
        self.owner_id = owner_id
        self.game = game
        self.track = track
        self.exploring = exploring


class CandidateSelector:
    def __init__(
        self,
        catalog: Catalog,
        lobby: LobbySchema,
        exploration_ratio: float,
        rng: np.random.Generator,
    ):
        self.catalog = catalog
        self.lobby = lobby
        self.exploration_ratio = exploration_ratio
        self.rng = rng

    def roll_exploring(self) -> bool:
        """Per-slot coin flip: the less difficulty data exists, the more slots explore."""
        if not self.lobby.allow_exploration:
            return False
        return bool(self.rng.random() > self.exploration_ratio)

    async def select(self, owner_id: UUID, state: SelectionState) -> Candidate:
        """Select a game owned by owner_id and a track inside it.

        Args:
            owner_id (UUID): Player the slot is currently assigned to
            state (SelectionState): Exclusion state of the composition

        Raises:
            OwnerExhausted: The owner has no eligible game left
            GameHadNoTrack: The picked game had no eligible track; it is blacklisted

        Returns:
            Candidate: The picked game and track, with the slot's exploring flag
        """
        exploring = self.roll_exploring()

        excluded_games = set(state.blacklisted_game_ids)
        if not self.lobby.allow_duplicate_games:
            excluded_games |= state.used_game_ids
        game_filter = CatalogFilter(
            excluded_game_ids=frozenset(excluded_games),
            min_duration=self.lobby.guess_window_seconds,
            require_track=True,
            difficulty_bands=frozenset(self.lobby.difficulty_bands),
            limit=1,
        )
        game, exploring = await self._first_in_plan(
            lambda pool_filter: self.catalog.query_games_for_owner(owner_id, pool_filter),
            game_filter,
            exploring,
        )
        if game is None:
            raise OwnerExhausted(owner_id)

        track_filter = CatalogFilter(
            excluded_track_ids=frozenset(state.used_track_ids),
            min_duration=self.lobby.guess_window_seconds,
            difficulty_bands=frozenset(self.lobby.difficulty_bands),
            limit=1,
        )
        # The plan may switch to exploring for the track query; that switch stays local.
        track, _ = await self._first_in_plan(
            lambda pool_filter: self.catalog.query_tracks_for_game(game.game_id, pool_filter),
            track_filter,
            exploring,
        )
        if track is None:
            state.blacklisted_game_ids.add(game.game_id)
            logging.debug(f"Blacklisted game {game.game_id} for lobby {self.lobby.lobby_id}")
            raise GameHadNoTrack(game.game_id)

        return Candidate(owner_id, game, track, exploring)

    async def _first_in_plan(
        self,
        query: Callable[[CatalogFilter], Awaitable[List[T]]],
        base_filter: CatalogFilter,
        exploring: bool,
    ) -> Tuple[Optional[T], bool]:
        plan = pool_plan(exploring, self.lobby.difficulty_bands, self.lobby.allow_exploration)
        for pool, pool_exploring in plan:
            results = await query(base_filter.model_copy(update={"difficulty_pool": pool}))
            if results:
                return results[0], pool_exploring
        return None, exploring
