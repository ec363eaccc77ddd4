# watchwise/database.py
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from watchwise.core.settings import settings


def _to_async_driver(url: str) -> str:
    """
    Ensure the SQLAlchemy URL uses the async driver.
    - postgresql+psycopg:// -> postgresql+asyncpg://
    - postgresql://          -> postgresql+asyncpg://
    - postgres://            -> postgresql+asyncpg://  (Heroku/Render style)
    - postgresql+asyncpg://  -> (as is)
    """
    url = url.strip().strip('"').strip("'")
    if url.startswith("postgresql+asyncpg://"):
        return url
    for prefix in ("postgresql+psycopg://", "postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url.split(prefix, 1)[1]
    # Fallback: do nothing
    return url


ASYNC_DSN = _to_async_driver(settings.database_url)

async_engine = create_async_engine(ASYNC_DSN, future=True, pool_pre_ping=True)
AsyncSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=async_engine, expire_on_commit=False, autoflush=False
)


# FastAPI dependency
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
