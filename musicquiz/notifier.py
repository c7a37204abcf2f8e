import asyncio
import json
import logging
from typing import Set
from uuid import UUID

from redis.asyncio import Redis

from musicquiz.models.dc_models import EmptyReasonModel, LobbyStatusModel


def lobby_channel(lobby_id: UUID) -> str:
    return f"lobby:{lobby_id}"


class LobbyNotifier:
    """Publish lobby events on the lobby's redis channel.

    Every method schedules the publish and returns at once; a failed publish is
    logged and never reaches the caller.
    """

    def __init__(self, redis: Redis):
        self.redis = redis
        self._pending: Set[asyncio.Task] = set()

    def on_progress(self, lobby_id: UUID, percent: int):
        self._publish(lobby_id, "load_progress", {"percent": percent})

    def on_empty(self, lobby_id: UUID, reason: EmptyReasonModel):
        self._publish(lobby_id, "empty", {"reason": reason.value})

    def on_status(self, lobby_id: UUID, status: LobbyStatusModel):
        self._publish(lobby_id, "status", {"status": status.value})

    async def drain(self):
        """Wait for the publishes scheduled so far."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def _publish(self, lobby_id: UUID, event: str, data: dict):
        payload = json.dumps({"event": event, "lobby_id": str(lobby_id), **data})
        task = asyncio.create_task(self.redis.publish(lobby_channel(lobby_id), payload))
        self._pending.add(task)
        task.add_done_callback(self._on_published)

    def _on_published(self, task: asyncio.Task):
        self._pending.discard(task)
        if task.cancelled():
            return
        exception = task.exception()
        if exception is not None:
            logging.error(f"Failed to publish lobby event: {exception}")
