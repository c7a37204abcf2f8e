import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from musicquiz.db import engine
from musicquiz.routers import lobby
from musicquiz.routers.lobby import notifier, redis

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app):
    """Release redis and the DB pool when the server stops."""
    try:
        yield
    finally:
        await notifier.drain()
        await redis.aclose()
        await engine.dispose()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)
app.include_router(lobby.lobby_router)
