from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from slate.core.config import settings

Base = declarative_base()


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    connect_args = {}
    if url.startswith("sqlite"):
        # writers queue on the file lock instead of failing fast
        connect_args = {"check_same_thread": False, "timeout": 30}
    engine = create_async_engine(
        url,
        connect_args=connect_args,
        poolclass=NullPool,
        echo=echo,
    )
    if url.startswith("sqlite"):
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

SessionLocal = build_sessionmaker(engine)

async def get_db():
    async with SessionLocal() as session:
        yield session
