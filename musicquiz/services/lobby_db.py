"""DB service layer for lobby rounds.

- Routers and the composer should not touch DB sessions directly; they call this module.
- This layer owns session/transaction boundaries.
- Use CRUD helpers that do NOT commit inside session.begin().
"""

from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker

from musicquiz.converter import DataConverter
from musicquiz.crud import CreateData, DeleteData, ReadData, UpdateData
from musicquiz.models.dc_models import LobbyStatusModel, RoundEntryModel
from musicquiz.models.schema_models import LobbySchema, RoundEntrySchema


class LobbyRoundStore:
    def __init__(self, Session: async_sessionmaker):
        self.Session = Session

    async def read_lobby(self, lobby_id: UUID) -> LobbySchema | None:
        async with self.Session() as session:
            return await ReadData.read_lobby_data(lobby_id, session)

    async def read_participant_ids(self, lobby_id: UUID) -> List[UUID]:
        async with self.Session() as session:
            return await ReadData.read_participant_ids(lobby_id, session)

    async def read_round(self, lobby_id: UUID) -> List[RoundEntryModel]:
        async with self.Session() as session:
            rows = await ReadData.read_round_entries(lobby_id, session)
        game_ids = {
            UUID(game_id)
            for row in rows
            for game_id in [*row.accepted_answer_game_ids, *row.hint_game_ids]
        }
        async with self.Session() as session:
            games = await ReadData.read_games_by_ids(game_ids, session)
        games_by_id = {game.game_id: game for game in games}
        return [DataConverter.convert_row_to_round_entry_model(row, games_by_id) for row in rows]

    async def save_composed_round(self, lobby_id: UUID, entries: List[RoundEntrySchema]) -> None:
        """Replace the lobby's round with the composed entries in one transaction."""
        async with self.Session() as session:
            async with session.begin():
                await DeleteData.delete_round_entries_no_commit(lobby_id, session)
                await CreateData.add_round_entries(lobby_id, entries, session)

    async def claim_lobby_for_loading(self, lobby_id: UUID) -> bool:
        async with self.Session() as session:
            return await UpdateData.claim_lobby_for_loading(lobby_id, session)

    async def mark_lobby_waiting(self, lobby_id: UUID) -> None:
        await self._update_status(lobby_id, LobbyStatusModel.waiting)

    async def mark_lobby_playing(self, lobby_id: UUID) -> None:
        await self._update_status(lobby_id, LobbyStatusModel.playing)

    async def _update_status(self, lobby_id: UUID, status: LobbyStatusModel) -> None:
        async with self.Session() as session:
            success = await UpdateData.update_lobby_status(lobby_id, status, session)
            if not success:
                raise RuntimeError(f"Failed to set lobby {lobby_id} to {status.value}")
