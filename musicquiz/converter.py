from typing import Dict, List
from uuid import UUID

from musicquiz.models.dc_models import GameModel, RoundEntryModel
from musicquiz.models.schema_models import GameSchema, RoundEntrySchema
from musicquiz.models.schemas import LobbyRoundEntry


class DataConverter:
    """This class is used to convert round entries between different formats."""

    @staticmethod
    def convert_round_entry_to_model(entry: RoundEntrySchema) -> RoundEntryModel:
        """Convert the RoundEntrySchema to the RoundEntryModel to send client

        Args:
            entry (RoundEntrySchema): A finalized round entry

        Returns:
            RoundEntryModel: The entry as sent to the lobby's clients
        """
        return RoundEntryModel(
            position=entry.position,
            track_id=entry.track.track_id,
            game_id=entry.track.game_id,
            title=entry.track.title,
            start_offset=entry.start_offset,
            end_offset=entry.end_offset,
            accepted_answers=[GameModel(game_id=g.game_id, name=g.name) for g in entry.accepted_answer_games],
            hint_games=[GameModel(game_id=g.game_id, name=g.name) for g in entry.hint_games],
            exploration_flag=entry.exploration_flag,
        )

    @staticmethod
    def convert_round_entry_to_row(lobby_id: UUID, entry: RoundEntrySchema) -> LobbyRoundEntry:
        return LobbyRoundEntry(
            lobby_id=lobby_id,
            track_id=entry.track.track_id,
            position=entry.position,
            start_offset=entry.start_offset,
            end_offset=entry.end_offset,
            exploration_flag=entry.exploration_flag,
            accepted_answer_game_ids=[str(game.game_id) for game in entry.accepted_answer_games],
            hint_game_ids=[str(game.game_id) for game in entry.hint_games],
        )

    @staticmethod
    def convert_row_to_round_entry_model(
        row: LobbyRoundEntry, games: Dict[UUID, GameSchema]
    ) -> RoundEntryModel:
        """Convert a persisted round entry back to the client format

        Args:
            row (LobbyRoundEntry): Persisted entry with its track and game loaded
            games (Dict[UUID, GameSchema]): Games referenced by the entry's answer and hint ids
        """

        def to_models(game_ids: List[str]) -> List[GameModel]:
            models = []
            for game_id in game_ids:
                game = games.get(UUID(game_id))
                if game is not None:
                    models.append(GameModel(game_id=game.game_id, name=game.name))
            return models

        return RoundEntryModel(
            position=row.position,
            track_id=row.track_id,
            game_id=row.track.game_id,
            title=row.track.title,
            start_offset=row.start_offset,
            end_offset=row.end_offset,
            accepted_answers=to_models(row.accepted_answer_game_ids),
            hint_games=to_models(row.hint_game_ids),
            exploration_flag=row.exploration_flag,
        )
