import json
import logging
from uuid import UUID

from redis.asyncio import Redis

from musicquiz.load_secrets import buffer_job_ttl_seconds

BUFFER_QUEUE_KEY = "queue:lobby"
BUFFER_JOB_NAME = "buffer_tracks"
BUFFER_STAGE = "buffer-tracks:1"


def buffer_job_id(lobby_id: UUID) -> str:
    return f"lobby:{lobby_id}:{BUFFER_STAGE}"


class BufferQueue:
    """Hand composed lobbies over to the audio buffering workers.

    Jobs go to a redis list. The job id doubles as an idempotency key: the
    first enqueue claims it with SET NX, so retried enqueues are no-ops until
    the key expires.
    """

    def __init__(self, redis: Redis, job_ttl_seconds: int = buffer_job_ttl_seconds):
        self.redis = redis
        self.job_ttl_seconds = job_ttl_seconds

    async def enqueue_buffering(self, lobby_id: UUID) -> bool:
        """Enqueue the buffering job of a lobby.

        Args:
            lobby_id (UUID): Lobby whose round was just composed

        Returns:
            bool: False if the same job was already enqueued
        """
        job_id = buffer_job_id(lobby_id)
        claimed = await self.redis.set(f"job:{job_id}", "queued", nx=True, ex=self.job_ttl_seconds)
        if not claimed:
            logging.info(f"Buffering job {job_id} already enqueued")
            return False

        payload = json.dumps({"job_id": job_id, "name": BUFFER_JOB_NAME, "lobby_id": str(lobby_id)})
        await self.redis.rpush(BUFFER_QUEUE_KEY, payload)
        logging.debug(f"Enqueued buffering job {job_id}")
        return True
