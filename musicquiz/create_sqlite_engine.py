import pathlib

from sqlalchemy.ext.asyncio import create_async_engine

from musicquiz.load_secrets import sqlite_path

file_path = pathlib.Path(sqlite_path).resolve()
sqlite_url = f"sqlite+aiosqlite:///{file_path}"


def create_sqlite_engine():
    return create_async_engine(url=sqlite_url, echo=False)
