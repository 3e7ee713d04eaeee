from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from linkboard.config import settings

engine = create_async_engine(
    settings.database_url_fixed,
    echo=settings.DATABASE_ECHO,
    pool_pre_ping=True,
)

# Objects stay readable after commit; resolvers serialize them once the service returns.
SessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with SessionLocal() as db:
        yield db


async def create_tables(bind=None):
    """Create every table known to the model metadata."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
