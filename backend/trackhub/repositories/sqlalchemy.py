"""SQLAlchemy-backed repositories.

One session per call, committed before returning. No session is shared
between calls.
"""

from typing import Any

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trackhub.db.base import utcnow
from trackhub.repositories.interfaces import (
    CommentRepository,
    Filters,
    ItemRepository,
    ModelT,
    ProjectRepository,
    Repository,
    TagRepository,
    UserRepository,
)


class SqlAlchemyRepository(Repository[ModelT]):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _where(self, query: Select, filters: Filters | None) -> Select:
        for field, value in (filters or {}).items():
            column = getattr(self.model, field)
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.where(column.in_(list(value)))
            elif value is None:
                query = query.where(column.is_(None))
            else:
                query = query.where(column == value)
        return query

    async def find(
        self,
        filters: Filters | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[ModelT]:
        query = self._where(select(self.model), filters)
        if order_by:
            column = getattr(self.model, order_by)
            query = query.order_by(column.desc() if descending else column.asc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def count(self, filters: Filters | None = None) -> int:
        query = self._where(select(func.count()).select_from(self.model), filters)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return result.scalar_one()

    async def find_by_id(self, doc_id: str) -> ModelT | None:
        async with self.session_factory() as session:
            return await session.get(self.model, doc_id)

    async def insert(self, doc: ModelT) -> ModelT:
        async with self.session_factory() as session:
            session.add(doc)
            await session.commit()
            await session.refresh(doc)
        return doc

    async def update(self, doc_id: str, patch: dict[str, Any]) -> ModelT | None:
        values = dict(patch)
        values.setdefault("updated_at", utcnow())
        async with self.session_factory() as session:
            result = await session.execute(
                update(self.model).where(self.model.id == doc_id).values(**values)
            )
            await session.commit()
        if result.rowcount == 0:
            return None
        return await self.find_by_id(doc_id)

    async def remove(self, doc_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(self.model).where(self.model.id == doc_id))
            await session.commit()
        return result.rowcount > 0


class SqlAlchemyUserRepository(SqlAlchemyRepository, UserRepository):
    pass


class SqlAlchemyProjectRepository(SqlAlchemyRepository, ProjectRepository):
    pass


class SqlAlchemyItemRepository(SqlAlchemyRepository, ItemRepository):
    pass


class SqlAlchemyTagRepository(SqlAlchemyRepository, TagRepository):
    pass


class SqlAlchemyCommentRepository(SqlAlchemyRepository, CommentRepository):
    pass
