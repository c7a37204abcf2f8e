from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, false, func, or_, select, update
from sqlalchemy.orm import selectinload
from typing import Iterable, List
from uuid import UUID
import logging

from musicquiz.catalog import CatalogFilter
from musicquiz.converter import DataConverter
from musicquiz.domain.difficulty import (
    EASY_LOWER_BOUND,
    HARD_UPPER_BOUND,
    Difficulty,
    DifficultyPool,
)
from musicquiz.models.dc_models import LobbyRoleModel, LobbyStatusModel
from musicquiz.models.schema_models import (
    GameSchema,
    LobbySchema,
    RoundEntrySchema,
    TrackSchema,
)
from musicquiz.models.schemas import (
    Game,
    GameOwner,
    GameSimilarity,
    Lobby,
    LobbyPlayer,
    LobbyRoundEntry,
    Track,
)

PARTICIPANT_ROLES = [LobbyRoleModel.host.value, LobbyRoleModel.player.value]


def difficulty_clause(pool: DifficultyPool, bands: Iterable[Difficulty]):
    """SQL condition on Track.difficulty_score for a difficulty pool, None for no condition."""
    if pool == DifficultyPool.unset:
        return Track.difficulty_score.is_(None)
    if pool == DifficultyPool.in_bands:
        clauses = []
        if Difficulty.easy in bands:
            clauses.append(Track.difficulty_score > EASY_LOWER_BOUND)
        if Difficulty.medium in bands:
            clauses.append(Track.difficulty_score.between(HARD_UPPER_BOUND, EASY_LOWER_BOUND))
        if Difficulty.hard in bands:
            clauses.append(Track.difficulty_score < HARD_UPPER_BOUND)
        if not clauses:
            return false()
        return or_(*clauses)
    return None


def track_conditions(catalog_filter: CatalogFilter) -> list:
    conditions = []
    if catalog_filter.min_duration is not None:
        conditions.append(Track.duration >= catalog_filter.min_duration)
    clause = difficulty_clause(catalog_filter.difficulty_pool, catalog_filter.difficulty_bands)
    if clause is not None:
        conditions.append(clause)
    return conditions


def game_conditions(catalog_filter: CatalogFilter) -> list:
    conditions = []
    if catalog_filter.enabled_only:
        conditions.append(Game.enabled.is_(True))
    if catalog_filter.excluded_game_ids:
        conditions.append(Game.game_id.not_in(list(catalog_filter.excluded_game_ids)))
    if catalog_filter.owner_ids is not None:
        conditions.append(
            Game.game_id.in_(
                select(GameOwner.game_id).where(GameOwner.player_id.in_(list(catalog_filter.owner_ids)))
            )
        )
    if catalog_filter.require_track:
        conditions.append(
            Game.game_id.in_(select(Track.game_id).where(*track_conditions(catalog_filter)))
        )
    return conditions


def random_limit(stmt, limit):
    stmt = stmt.order_by(func.random())
    if limit is not None:
        stmt = stmt.limit(limit)
    return stmt


class ReadData:
    @staticmethod
    async def read_lobby_data(lobby_id: UUID, session: AsyncSession) -> LobbySchema:
        """Read lobby configuration from database

        Args:
            lobby_id (UUID): To identify the lobby

        Returns:
            LobbySchema: Lobby configuration, None if the lobby does not exist
        """
        async with session:
            try:
                stmt = select(Lobby).where(Lobby.lobby_id == lobby_id)
                result = await session.execute(stmt)
                result = result.scalars().first()

                if result is None:
                    return None

                return LobbySchema.model_validate(result)
            except Exception as e:
                logging.error(f"Failed to read lobby data: {e}")
                raise

    @staticmethod
    async def read_participant_ids(lobby_id: UUID, session: AsyncSession) -> List[UUID]:
        """Read the players taking part in the lobby's round (host and players, no spectators)"""
        async with session:
            try:
                stmt = (
                    select(LobbyPlayer.player_id)
                    .where(LobbyPlayer.lobby_id == lobby_id)
                    .where(LobbyPlayer.role.in_(PARTICIPANT_ROLES))
                )
                result = await session.execute(stmt)
                return list(result.scalars().all())
            except Exception as e:
                logging.error(f"Failed to read participant ids: {e}")
                raise

    @staticmethod
    async def read_games_for_owner(
        owner_id: UUID, catalog_filter: CatalogFilter, session: AsyncSession
    ) -> List[GameSchema]:
        """Read games owned by one player, in random order

        Args:
            owner_id (UUID): Player whose catalog is searched
            catalog_filter (CatalogFilter): Query filters; owner_ids is ignored
        """
        owner_filter = catalog_filter.model_copy(update={"owner_ids": frozenset([owner_id])})
        return await ReadData.read_games(owner_filter, session)

    @staticmethod
    async def read_games(catalog_filter: CatalogFilter, session: AsyncSession) -> List[GameSchema]:
        async with session:
            try:
                stmt = select(Game).where(*game_conditions(catalog_filter))
                stmt = random_limit(stmt, catalog_filter.limit)
                result = await session.execute(stmt)
                return [GameSchema.model_validate(game) for game in result.scalars().all()]
            except Exception as e:
                logging.error(f"Failed to read games: {e}")
                raise

    @staticmethod
    async def read_similar_games(
        game_id: UUID, catalog_filter: CatalogFilter, session: AsyncSession
    ) -> List[GameSchema]:
        """Read games similar to game_id, whichever side of the pair it was stored on"""
        async with session:
            try:
                similar_condition = or_(
                    Game.game_id.in_(
                        select(GameSimilarity.similar_game_id).where(GameSimilarity.game_id == game_id)
                    ),
                    Game.game_id.in_(
                        select(GameSimilarity.game_id).where(GameSimilarity.similar_game_id == game_id)
                    ),
                )
                stmt = (
                    select(Game)
                    .where(similar_condition)
                    .where(Game.game_id != game_id)
                    .where(*game_conditions(catalog_filter))
                )
                stmt = random_limit(stmt, catalog_filter.limit)
                result = await session.execute(stmt)
                return [GameSchema.model_validate(game) for game in result.scalars().all()]
            except Exception as e:
                logging.error(f"Failed to read similar games: {e}")
                raise

    @staticmethod
    async def read_tracks_for_game(
        game_id: UUID, catalog_filter: CatalogFilter, session: AsyncSession
    ) -> List[TrackSchema]:
        """Read tracks of a game with their Original/Derivative lineage

        Args:
            game_id (UUID): Game the tracks belong to
            catalog_filter (CatalogFilter): min_duration, difficulty pool, excluded tracks and limit apply

        Returns:
            List[TrackSchema]: Tracks in random order
        """
        async with session:
            try:
                stmt = (
                    select(Track)
                    .where(Track.game_id == game_id)
                    .where(*track_conditions(catalog_filter))
                    .options(
                        selectinload(Track.game),
                        selectinload(Track.derivatives).selectinload(Track.game),
                        selectinload(Track.original).selectinload(Track.game),
                        selectinload(Track.original)
                        .selectinload(Track.derivatives)
                        .selectinload(Track.game),
                    )
                )
                if catalog_filter.excluded_track_ids:
                    stmt = stmt.where(Track.track_id.not_in(list(catalog_filter.excluded_track_ids)))
                stmt = random_limit(stmt, catalog_filter.limit)
                result = await session.execute(stmt)
                return [TrackSchema.model_validate(track) for track in result.scalars().all()]
            except Exception as e:
                logging.error(f"Failed to read tracks for game: {e}")
                raise

    @staticmethod
    async def read_difficulty_coverage(player_ids: List[UUID], session: AsyncSession) -> float:
        """Read the share of the players' enabled tracks that have a difficulty score

        Returns:
            float: Between 0 and 1, 0 when the players own no track
        """
        async with session:
            try:
                stmt = (
                    select(func.count(Track.track_id), func.count(Track.difficulty_score))
                    .join(Game, Game.game_id == Track.game_id)
                    .where(Game.enabled.is_(True))
                    .where(
                        Game.game_id.in_(
                            select(GameOwner.game_id).where(GameOwner.player_id.in_(list(player_ids)))
                        )
                    )
                )
                result = await session.execute(stmt)
                total, measured = result.one()
                if not total:
                    return 0.0
                return measured / total
            except Exception as e:
                logging.error(f"Failed to read difficulty coverage: {e}")
                raise

    @staticmethod
    async def read_round_entries(lobby_id: UUID, session: AsyncSession) -> List[LobbyRoundEntry]:
        """Read the persisted round of a lobby, ordered by position"""
        async with session:
            try:
                stmt = (
                    select(LobbyRoundEntry)
                    .where(LobbyRoundEntry.lobby_id == lobby_id)
                    .options(selectinload(LobbyRoundEntry.track).selectinload(Track.game))
                    .order_by(LobbyRoundEntry.position)
                )
                result = await session.execute(stmt)
                return list(result.scalars().all())
            except Exception as e:
                logging.error(f"Failed to read round entries: {e}")
                raise

    @staticmethod
    async def read_games_by_ids(game_ids: Iterable[UUID], session: AsyncSession) -> List[GameSchema]:
        async with session:
            try:
                stmt = select(Game).where(Game.game_id.in_(list(game_ids)))
                result = await session.execute(stmt)
                return [GameSchema.model_validate(game) for game in result.scalars().all()]
            except Exception as e:
                logging.error(f"Failed to read games by ids: {e}")
                raise


class UpdateData:
    @staticmethod
    async def update_lobby_status(
        lobby_id: UUID, status: LobbyStatusModel, session: AsyncSession
    ) -> bool:
        """Update lobby status

        Args:
            lobby_id (UUID): To identify the lobby
            status (LobbyStatusModel): New status

        Returns:
            bool: False if the lobby does not exist
        """
        async with session:
            try:
                stmt = select(Lobby).where(Lobby.lobby_id == lobby_id)
                result = await session.execute(stmt)
                result = result.scalars().first()

                if result is None:
                    return False

                result.status = status.value
                await session.commit()
                return True
            except Exception as e:
                logging.error(f"Failed to update lobby status: {e}")
                raise

    @staticmethod
    async def claim_lobby_for_loading(lobby_id: UUID, session: AsyncSession) -> bool:
        """Move a waiting lobby to loading in one statement

        Returns:
            bool: False if the lobby is not waiting (already loading or playing)
        """
        async with session:
            try:
                stmt = (
                    update(Lobby)
                    .where(Lobby.lobby_id == lobby_id)
                    .where(Lobby.status == LobbyStatusModel.waiting.value)
                    .values(status=LobbyStatusModel.loading.value)
                )
                result = await session.execute(stmt)
                await session.commit()
                return result.rowcount == 1
            except Exception as e:
                logging.error(f"Failed to claim lobby for loading: {e}")
                raise

    @staticmethod
    async def increment_play_count(track_id: UUID, session: AsyncSession) -> int:
        """Add one play to a track

        Args:
            track_id (UUID): To identify the track

        Returns:
            int: Play count after the increment
        """
        async with session:
            try:
                stmt = (
                    update(Track)
                    .where(Track.track_id == track_id)
                    .values(play_count=Track.play_count + 1)
                    .returning(Track.play_count)
                )
                result = await session.execute(stmt)
                play_count = result.scalar_one()
                await session.commit()
                return play_count
            except Exception as e:
                logging.error(f"Failed to increment play count: {e}")
                raise


class CreateData:
    @staticmethod
    async def add_round_entries(
        lobby_id: UUID, entries: List[RoundEntrySchema], session: AsyncSession
    ):
        """Add round entries without committing; the caller owns the transaction

        Args:
            lobby_id (UUID): Lobby the round belongs to
            entries (List[RoundEntrySchema]): Finalized entries
        """
        session.add_all(
            [DataConverter.convert_round_entry_to_row(lobby_id, entry) for entry in entries]
        )
        await session.flush()


class DeleteData:
    @staticmethod
    async def delete_round_entries_no_commit(lobby_id: UUID, session: AsyncSession):
        """Delete the previous round of a lobby; the caller owns the transaction"""
        await session.execute(delete(LobbyRoundEntry).where(LobbyRoundEntry.lobby_id == lobby_id))
