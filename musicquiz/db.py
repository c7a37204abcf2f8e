from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from musicquiz.load_secrets import db_backend

if db_backend == "sqlite":
    from musicquiz.create_sqlite_engine import create_sqlite_engine as create_engine
else:
    from musicquiz.create_postgres_engine import create_postgres_engine as create_engine

engine = create_engine()

# Centralized session factory to avoid creating it in router modules.
Session = async_sessionmaker(
    autocommit=False,
    class_=AsyncSession,
    autoflush=True,
    expire_on_commit=False,
    bind=engine,
)
