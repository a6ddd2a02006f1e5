from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from prequel.core.config import settings


def build_engine(url: str, **kwargs) -> AsyncEngine:
    kwargs.setdefault("echo", settings.SQL_ECHO)
    return create_async_engine(url, **kwargs)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    # Formatted results are read after the session closes, so keep attributes loaded on commit
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = build_sessionmaker(engine)


# Mapped classes handed to prequelize() usually derive from this Base
class Base(DeclarativeBase):
    pass
