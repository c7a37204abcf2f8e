from pydantic import BaseModel
from enum import Enum
from uuid import UUID
from typing import List, Optional


class LobbyStatusModel(str, Enum):
    waiting = "waiting"
    loading = "loading"  # round composition in progress
    playing = "playing"


class LobbyRoleModel(str, Enum):
    host = "host"
    player = "player"
    spectator = "spectator"  # watches the lobby, owns no slot


class TrackTypeModel(str, Enum):
    original = "original"
    derivative = "derivative"


class CompositionStatusModel(str, Enum):
    composed = "composed"
    empty = "empty"


class EmptyReasonModel(str, Enum):
    no_players = "no_players"
    no_tracks = "no_tracks"


class GameModel(BaseModel):
    game_id: UUID
    name: str

    class Config:
        from_attributes = True


class RoundEntryModel(BaseModel):
    position: int
    track_id: UUID
    game_id: UUID
    title: str
    start_offset: float
    end_offset: float
    accepted_answers: List[GameModel]
    hint_games: List[GameModel]
    exploration_flag: bool


class ComposeResultModel(BaseModel):
    lobby_id: UUID
    status: CompositionStatusModel
    entries: List[RoundEntryModel] = []
    reason: Optional[EmptyReasonModel] = None
