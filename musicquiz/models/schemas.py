from sqlalchemy import ForeignKey
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.schema import Column
from sqlalchemy.types import JSON, Boolean, DateTime, Float, Integer, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from uuid import uuid4
from uuid6 import uuid7
from datetime import datetime

JSONList = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class Player(Base):
    __tablename__ = "player"
    player_id = Column(Uuid, primary_key=True, default=uuid4)
    player_name = Column(String)

    games = relationship("Game", secondary="game_owner", back_populates="owners")


class GameOwner(Base):
    __tablename__ = "game_owner"
    game_id = Column(Uuid, ForeignKey("game.game_id", ondelete="CASCADE"), primary_key=True)
    player_id = Column(Uuid, ForeignKey("player.player_id", ondelete="CASCADE"), primary_key=True)


class GameSimilarity(Base):
    """Undirected: a pair is stored once and read in both directions."""

    __tablename__ = "game_similarity"
    game_id = Column(Uuid, ForeignKey("game.game_id", ondelete="CASCADE"), primary_key=True)
    similar_game_id = Column(Uuid, ForeignKey("game.game_id", ondelete="CASCADE"), primary_key=True)


class Game(Base):
    __tablename__ = "game"
    game_id = Column(Uuid, primary_key=True, default=uuid7)
    name = Column(String, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    parent_game_id = Column(Uuid, nullable=True)
    original_game_id = Column(Uuid, nullable=True)

    owners = relationship("Player", secondary="game_owner", back_populates="games")
    tracks = relationship("Track", back_populates="game", cascade="all, delete")


class Track(Base):
    """Link between a game and a piece of music played in it."""

    __tablename__ = "track"
    track_id = Column(Uuid, primary_key=True, default=uuid7)
    game_id = Column(Uuid, ForeignKey("game.game_id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    duration = Column(Float, nullable=False)
    track_type = Column(String, default="original", nullable=False)
    original_track_id = Column(Uuid, ForeignKey("track.track_id"), nullable=True)
    play_count = Column(Integer, default=0, nullable=False)
    difficulty_score = Column(Float, nullable=True)  # guess accuracy, None until measured

    game = relationship("Game", back_populates="tracks")
    original = relationship(
        "Track",
        remote_side=[track_id],
        back_populates="derivatives",
    )
    derivatives = relationship("Track", back_populates="original")


class Lobby(Base):
    __tablename__ = "lobby"
    lobby_id = Column(Uuid, primary_key=True, default=uuid7)
    code = Column(String, unique=True, nullable=False)
    status = Column(String, default="waiting", nullable=False)
    track_count = Column(Integer, nullable=False)
    difficulty_bands = Column(JSONList, nullable=False)
    guess_window_seconds = Column(Float, nullable=False)
    allow_duplicate_games = Column(Boolean, default=False, nullable=False)
    allow_exploration = Column(Boolean, default=False, nullable=False)
    reveal_extends_window = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    players = relationship("LobbyPlayer", back_populates="lobby", cascade="all, delete")
    round_entries = relationship(
        "LobbyRoundEntry",
        back_populates="lobby",
        cascade="all, delete",
        order_by="LobbyRoundEntry.position",
    )


class LobbyPlayer(Base):
    __tablename__ = "lobby_player"
    lobby_id = Column(Uuid, ForeignKey("lobby.lobby_id", ondelete="CASCADE"), primary_key=True)
    player_id = Column(Uuid, ForeignKey("player.player_id", ondelete="CASCADE"), primary_key=True)
    role = Column(String, default="player", nullable=False)

    lobby = relationship("Lobby", back_populates="players")


class LobbyRoundEntry(Base):
    __tablename__ = "lobby_round_entry"
    entry_id = Column(Uuid, primary_key=True, default=uuid7)
    lobby_id = Column(Uuid, ForeignKey("lobby.lobby_id", ondelete="CASCADE"), nullable=False)
    track_id = Column(Uuid, ForeignKey("track.track_id"), nullable=False)
    position = Column(Integer, nullable=False)
    start_offset = Column(Float, nullable=False)
    end_offset = Column(Float, nullable=False)
    exploration_flag = Column(Boolean, default=False, nullable=False)
    accepted_answer_game_ids = Column(JSONList, nullable=False)
    hint_game_ids = Column(JSONList, nullable=False)

    lobby = relationship("Lobby", back_populates="round_entries")
    track = relationship("Track")
