from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from musicquiz.domain.difficulty import Difficulty
from musicquiz.models.dc_models import LobbyStatusModel, TrackTypeModel


class GameSchema(BaseModel):
    game_id: UUID
    name: str
    enabled: bool = True

    class Config:
        from_attributes = True


class TrackRefSchema(BaseModel):
    """A track seen through a lineage link; only its game matters."""

    track_id: UUID
    game: GameSchema

    class Config:
        from_attributes = True


class OriginalTrackSchema(BaseModel):
    track_id: UUID
    game: GameSchema
    derivatives: List[TrackRefSchema] = Field(default_factory=list)

    class Config:
        from_attributes = True


class TrackSchema(BaseModel):
    track_id: UUID
    game_id: UUID
    title: str
    duration: float
    track_type: TrackTypeModel = TrackTypeModel.original
    play_count: int = 0
    difficulty_score: float | None = None
    game: GameSchema
    original: Optional[OriginalTrackSchema] = None
    derivatives: List[TrackRefSchema] = Field(default_factory=list)

    class Config:
        from_attributes = True


class LobbySchema(BaseModel):
    lobby_id: UUID
    code: str
    status: LobbyStatusModel = LobbyStatusModel.waiting
    track_count: int = Field(gt=0)
    difficulty_bands: List[Difficulty] = Field(min_length=1)
    guess_window_seconds: float = Field(gt=0)
    allow_duplicate_games: bool = False
    allow_exploration: bool = False
    reveal_extends_window: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoundEntrySchema(BaseModel):
    position: int
    track: TrackSchema
    start_offset: float
    end_offset: float
    accepted_answer_games: List[GameSchema]
    hint_games: List[GameSchema] = Field(default_factory=list, max_length=4)
    exploration_flag: bool = False

    class Config:
        from_attributes = True
