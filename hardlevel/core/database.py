from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from hardlevel.core.config import settings
from hardlevel.models.base import Base


def get_async_database_url(url: str) -> str:
    """Convert database URL to async format for SQLAlchemy.

    Hosted Postgres providers hand out postgres:// URLs but SQLAlchemy async
    requires postgresql+asyncpg://, and plain sqlite:// needs aiosqlite.
    """
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


# Create async engine with converted URL
database_url = get_async_database_url(settings.database_url)

engine = create_async_engine(
    database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Create session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """Dependency that provides a database session."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Create all tables. Call once at startup."""
    # Import models to register them with Base
    from hardlevel.models import gamification, tracking  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def insert_ignore(session: AsyncSession, table, **values):
    """Build an INSERT that silently skips rows violating a unique constraint.

    The statement reports rowcount 1 when the row was inserted and 0 when it
    already existed, which is what the exactly-once paths rely on.
    """
    dialect = session.bind.dialect.name if session.bind is not None else "sqlite"
    if dialect == "postgresql":
        return postgresql.insert(table).values(**values).on_conflict_do_nothing()
    return sqlite.insert(table).values(**values).on_conflict_do_nothing()
