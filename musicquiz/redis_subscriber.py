import json
import logging
from typing import AsyncGenerator
from uuid import UUID

from redis.asyncio import Redis

from musicquiz.models.dc_models import LobbyStatusModel
from musicquiz.notifier import lobby_channel

# Events after which the lobby's composition is over.
TERMINAL_EVENTS = {"empty"}
TERMINAL_STATUSES = {LobbyStatusModel.playing.value, LobbyStatusModel.waiting.value}


class RedisSubscriber:
    """Redis subscriber class to relay lobby events as SSE."""

    def __init__(self, lobby_id: UUID):
        self.lobby_id: UUID = lobby_id

    async def event_generator(self, redis: Redis) -> AsyncGenerator[str, None]:
        """Event generator to handle SSE events.

        The stream ends once the composition reaches a terminal state: an
        empty result, or the lobby moving to playing or back to waiting.

        Args:
            redis (Redis): Redis connection object.
        """
        channel = lobby_channel(self.lobby_id)
        pubsub = redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            while True:
                msg = await pubsub.get_message(ignore_subscribe_messages=True, timeout=None)
                if not msg or msg["type"] != "message":
                    continue

                payload = json.loads(msg["data"])
                event = payload.get("event", "message")
                logging.debug(f"Payload: {payload}")
                yield f"event: {event}\ndata: {json.dumps(payload)}\n\n"

                if event in TERMINAL_EVENTS:
                    break
                if event == "status" and payload.get("status") in TERMINAL_STATUSES:
                    break
        finally:
            logging.info("Unsubscribing from channel")
            if pubsub:
                await pubsub.unsubscribe(channel)
                await pubsub.close()
