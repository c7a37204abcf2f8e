"""SQLAlchemy-backed catalog used by round composition.

Each query opens its own session, so a composition holds no connection
between two catalog calls.
"""

from typing import Iterable, List
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker

from musicquiz.catalog import Catalog, CatalogFilter
from musicquiz.crud import ReadData, UpdateData
from musicquiz.models.schema_models import GameSchema, TrackSchema


class SqlCatalog(Catalog):
    def __init__(self, Session: async_sessionmaker):
        self.Session = Session

    async def query_games_for_owner(
        self, owner_id: UUID, catalog_filter: CatalogFilter
    ) -> List[GameSchema]:
        async with self.Session() as session:
            return await ReadData.read_games_for_owner(owner_id, catalog_filter, session)

    async def query_games(self, catalog_filter: CatalogFilter) -> List[GameSchema]:
        async with self.Session() as session:
            return await ReadData.read_games(catalog_filter, session)

    async def query_similar_games(
        self, game_id: UUID, catalog_filter: CatalogFilter
    ) -> List[GameSchema]:
        async with self.Session() as session:
            return await ReadData.read_similar_games(game_id, catalog_filter, session)

    async def query_tracks_for_game(
        self, game_id: UUID, catalog_filter: CatalogFilter
    ) -> List[TrackSchema]:
        async with self.Session() as session:
            return await ReadData.read_tracks_for_game(game_id, catalog_filter, session)

    async def increment_play_count(self, track_id: UUID) -> int:
        async with self.Session() as session:
            return await UpdateData.increment_play_count(track_id, session)

    async def read_difficulty_coverage(self, player_ids: Iterable[UUID]) -> float:
        async with self.Session() as session:
            return await ReadData.read_difficulty_coverage(list(player_ids), session)
