import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapper

from prequel.core.database import AsyncSessionLocal

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# ENGINE ADAPTER
# Purpose: the find/findAll/create/update/remove surface over one mapped class.
# Sessions: own session + commit per call, unless a transaction is passed in.
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class NativeQuery:
    """SQLAlchemy-ready form of a settings mapping."""

    where: Tuple[Any, ...] = ()
    options: Tuple[Any, ...] = ()
    order_by: Tuple[Any, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    transaction: Optional[Any] = None


class MutationResult(NamedTuple):
    rows: List[Any]
    count: int


class Transaction:
    """
    A unit of work on its own session.
    Terminated by exactly one of commit() or rollback(); both close the session.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @classmethod
    async def begin(cls, sessionmaker: async_sessionmaker) -> "Transaction":
        session = sessionmaker()
        try:
            await session.begin()
        except BaseException:
            await session.close()
            raise
        return cls(session)

    async def commit(self):
        try:
            await self.session.commit()
        finally:
            await self.session.close()

    async def rollback(self):
        try:
            await self.session.rollback()
        finally:
            await self.session.close()


def session_of(transaction) -> AsyncSession:
    # Callers may hand over a prequel Transaction or a bare AsyncSession
    return getattr(transaction, "session", transaction)


@dataclass(frozen=True)
class ModelEngine:
    mapped_class: Any
    sessionmaker: async_sessionmaker = field(default=AsyncSessionLocal)

    @property
    def mapper(self) -> Mapper:
        return self.mapped_class.__mapper__

    @property
    def name(self) -> str:
        return self.mapped_class.__name__

    async def transaction(self) -> Transaction:
        logger.debug(f"Opening transaction for {self.name}")
        return await Transaction.begin(self.sessionmaker)

    @asynccontextmanager
    async def _session_scope(self, transaction):
        if transaction is not None:
            # The caller owns this transaction: never commit here
            yield session_of(transaction)
            return

        async with self.sessionmaker() as session:
            async with session.begin():
                yield session

    def _select(self, query: NativeQuery):
        statement = select(self.mapped_class).where(*query.where)
        if query.options:
            statement = statement.options(*query.options)
        if query.order_by:
            statement = statement.order_by(*query.order_by)
        if query.limit is not None:
            statement = statement.limit(query.limit)
        if query.offset is not None:
            statement = statement.offset(query.offset)
        return statement

    def _returning_columns(self):
        props = list(self.mapper.column_attrs)
        return [prop.key for prop in props], [prop.columns[0] for prop in props]

    async def find(self, query: NativeQuery):
        async with self._session_scope(query.transaction) as session:
            result = await session.execute(self._select(query))
            return result.scalars().first()

    async def find_all(self, query: NativeQuery) -> List[Any]:
        async with self._session_scope(query.transaction) as session:
            result = await session.execute(self._select(query))
            return list(result.scalars().all())

    async def find_and_count_all(self, query: NativeQuery) -> Dict[str, Any]:
        count_statement = (
            select(func.count()).select_from(self.mapped_class).where(*query.where)
        )
        async with self._session_scope(query.transaction) as session:
            count = (await session.execute(count_statement)).scalar_one()
            result = await session.execute(self._select(query))
            return {"count": count, "rows": list(result.scalars().all())}

    async def create(self, values: Dict[str, Any], query: NativeQuery):
        instance = self.mapped_class(**values)
        async with self._session_scope(query.transaction) as session:
            session.add(instance)
            await session.flush()
            await session.refresh(instance)  # Pick up ids and server defaults
            return instance

    async def update(self, values: Dict[str, Any], query: NativeQuery) -> MutationResult:
        keys, columns = self._returning_columns()
        statement = (
            update(self.mapped_class)
            .where(*query.where)
            .values(**values)
            .returning(*columns)
            .execution_options(synchronize_session=False)
        )
        async with self._session_scope(query.transaction) as session:
            result = await session.execute(statement)
            rows = [dict(zip(keys, row)) for row in result.all()]
        logger.debug(f"Updated {len(rows)} {self.name} row/s")
        return MutationResult(rows, len(rows))

    async def remove(self, query: NativeQuery) -> MutationResult:
        keys, columns = self._returning_columns()
        statement = (
            delete(self.mapped_class)
            .where(*query.where)
            .returning(*columns)
            .execution_options(synchronize_session=False)
        )
        async with self._session_scope(query.transaction) as session:
            result = await session.execute(statement)
            rows = [dict(zip(keys, row)) for row in result.all()]
        logger.debug(f"Removed {len(rows)} {self.name} row/s")
        return MutationResult(rows, len(rows))
