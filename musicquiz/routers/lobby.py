import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from redis.asyncio import Redis

from musicquiz.buffer_queue import BufferQueue
from musicquiz.converter import DataConverter
from musicquiz.db import Session
from musicquiz.domain.errors import InsufficientHintPool
from musicquiz.load_secrets import redis_host, redis_port
from musicquiz.models.dc_models import (
    ComposeResultModel,
    LobbyStatusModel,
    RoundEntryModel,
)
from musicquiz.notifier import LobbyNotifier
from musicquiz.redis_subscriber import RedisSubscriber
from musicquiz.services.catalog_db import SqlCatalog
from musicquiz.services.lobby_db import LobbyRoundStore
from musicquiz.services.round_composer import RoundComposer

redis = Redis(host=redis_host, port=redis_port, decode_responses=True, health_check_interval=30)

lobby_router = APIRouter(prefix="/lobbies")
notifier = LobbyNotifier(redis)


def get_redis() -> Redis:
    return redis


def get_store() -> LobbyRoundStore:
    return LobbyRoundStore(Session)


def get_composer(store: LobbyRoundStore = Depends(get_store)) -> RoundComposer:
    return RoundComposer(SqlCatalog(Session), store, notifier, BufferQueue(redis))


class LobbyRoundAPI:
    @staticmethod
    @lobby_router.post("/{lobby_id}/compose", response_model=ComposeResultModel)
    async def compose_round(
        lobby_id: UUID,
        store: LobbyRoundStore = Depends(get_store),
        composer: RoundComposer = Depends(get_composer),
    ) -> ComposeResultModel:
        """Compose the round of a waiting lobby and start it

        Raises:
            HTTPException: 404 if the lobby does not exist
            HTTPException: 409 if the lobby is already loading or playing
            HTTPException: 500 if the catalog cannot provide enough hint games
        """
        lobby = await store.read_lobby(lobby_id)
        if lobby is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lobby not found")

        if not await store.claim_lobby_for_loading(lobby_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Lobby is not waiting",
            )
        composer.notifier.on_status(lobby_id, LobbyStatusModel.loading)

        try:
            player_ids = await store.read_participant_ids(lobby_id)
        except Exception as e:
            logging.error(f"Failed to read participants of lobby {lobby_id}: {e}")
            await store.mark_lobby_waiting(lobby_id)
            composer.notifier.on_status(lobby_id, LobbyStatusModel.waiting)
            raise

        try:
            result = await composer.compose(lobby, player_ids)
        except InsufficientHintPool as e:
            logging.error(f"Round composition failed for lobby {lobby_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Not enough games to build hints",
            )

        return ComposeResultModel(
            lobby_id=lobby_id,
            status=result.status,
            entries=[DataConverter.convert_round_entry_to_model(entry) for entry in result.entries],
            reason=result.reason,
        )

    @staticmethod
    @lobby_router.get("/{lobby_id}/round", response_model=List[RoundEntryModel])
    async def get_round(
        lobby_id: UUID, store: LobbyRoundStore = Depends(get_store)
    ) -> List[RoundEntryModel]:
        lobby = await store.read_lobby(lobby_id)
        if lobby is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lobby not found")
        return await store.read_round(lobby_id)

    @staticmethod
    @lobby_router.get("/{lobby_id}/events")
    async def lobby_events(lobby_id: UUID, redis: Redis = Depends(get_redis)):
        subscriber = RedisSubscriber(lobby_id)
        return StreamingResponse(
            subscriber.event_generator(redis), media_type="text/event-stream"
        )
