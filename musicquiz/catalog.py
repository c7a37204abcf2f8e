"""Catalog query capability used by round composition.

The composer only needs a handful of queries against the game/track catalog.
They are declared here so the composition services can run against the
SQLAlchemy catalog in production and against in-memory doubles in tests.
"""

from abc import ABC, abstractmethod
from typing import FrozenSet, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from musicquiz.domain.difficulty import Difficulty, DifficultyPool
from musicquiz.models.schema_models import GameSchema, TrackSchema


class CatalogFilter(BaseModel):
    """Filters shared by every catalog query.

    Results always come back in random order; limit caps how many are returned.
    Track-level conditions (min_duration, difficulty pool) apply to the tracks
    a game must contain when require_track is set on a game query.
    """

    enabled_only: bool = True
    excluded_game_ids: FrozenSet[UUID] = frozenset()
    excluded_track_ids: FrozenSet[UUID] = frozenset()
    min_duration: Optional[float] = None
    owner_ids: Optional[FrozenSet[UUID]] = None
    require_track: bool = False
    difficulty_pool: DifficultyPool = DifficultyPool.any
    difficulty_bands: FrozenSet[Difficulty] = Field(default_factory=lambda: frozenset(Difficulty))
    limit: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class Catalog(ABC):
    @abstractmethod
    async def query_games_for_owner(
        self, owner_id: UUID, catalog_filter: CatalogFilter
    ) -> List[GameSchema]:
        """Games owned by one player."""

    @abstractmethod
    async def query_games(self, catalog_filter: CatalogFilter) -> List[GameSchema]:
        """Games owned by any of catalog_filter.owner_ids, or by anyone when it is None."""

    @abstractmethod
    async def query_similar_games(
        self, game_id: UUID, catalog_filter: CatalogFilter
    ) -> List[GameSchema]:
        """Games marked similar to game_id, in either direction."""

    @abstractmethod
    async def query_tracks_for_game(
        self, game_id: UUID, catalog_filter: CatalogFilter
    ) -> List[TrackSchema]:
        """Tracks of one game with their lineage loaded."""

    @abstractmethod
    async def increment_play_count(self, track_id: UUID) -> int:
        """Atomically add one play to a track and return the new count."""

    @abstractmethod
    async def read_difficulty_coverage(self, player_ids: Iterable[UUID]) -> float:
        """Share of the players' enabled tracks that already have a difficulty score."""
