from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def get_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    if is_sqlite(database_url):
        return create_async_engine(database_url, echo=echo)
    # pooled server connections can go stale between sweeps
    return create_async_engine(database_url, echo=echo, pool_pre_ping=True)


def get_session(engine):
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables. Local dev and tests only; deployments run alembic."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
