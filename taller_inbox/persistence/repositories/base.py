"""Base repository with organization-scoped queries."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Generic, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.engine import Result
from sqlalchemy.sql.expression import Executable
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.core.errors import StoreError, UniquenessRaceError, is_unique_violation
from taller_inbox.persistence.database import Base

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with organization-scoped query methods.

    Writes go through ``execute_write()`` and ``commit()``, which roll the
    session back and translate driver errors: unique-constraint hits become
    ``UniquenessRaceError``, anything else becomes ``StoreError``.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """Initialize repository with model and session."""
        self.model = model
        self.session = session

    async def get_by_id(self, organization_id: int, id: int) -> ModelType | None:
        """Get entity by ID, scoped to organization."""
        stmt = select(self.model).where(
            self.model.id == id,
            self.model.organization_id == organization_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list(
        self,
        organization_id: int,
        skip: int = 0,
        limit: int = 100,
        **filters: Any,
    ) -> list[ModelType]:
        """List entities, scoped to organization."""
        stmt = select(self.model).where(self.model.organization_id == organization_id)

        # Apply additional filters
        for key, value in filters.items():
            if value is not None and hasattr(self.model, key):
                stmt = stmt.where(getattr(self.model, key) == value)

        stmt = stmt.order_by(self.model.id).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, organization_id: int, **data: Any) -> ModelType:
        """Create new entity with organization_id.

        Raises:
            UniquenessRaceError: A concurrent writer already holds the unique key
            StoreError: Any other persistence failure
        """
        data["organization_id"] = organization_id
        instance = self.model(**data)
        self.session.add(instance)
        await self.commit(organization_id=organization_id)
        await self.session.refresh(instance)
        return instance

    async def execute_write(self, stmt: Executable, **context: Any) -> Result:
        """Execute an UPDATE/DELETE without committing, translating driver errors."""
        async with self.translate_errors(**context):
            return await self.session.execute(stmt)

    async def commit(self, **context: Any) -> None:
        """Commit the session, translating driver errors.

        Args:
            **context: Correlation ids attached to the raised error
        """
        async with self.translate_errors(**context):
            await self.session.commit()

    @asynccontextmanager
    async def translate_errors(self, **context: Any) -> AsyncIterator[None]:
        table = self.model.__tablename__
        try:
            yield
        except IntegrityError as e:
            await self.session.rollback()
            if is_unique_violation(e):
                raise UniquenessRaceError(f"{table} unique constraint hit", **context) from e
            raise StoreError(f"{table} integrity error: {e.orig}", **context) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Store error on {table}: {e}", extra=context, exc_info=True)
            raise StoreError(f"{table} store error", **context) from e
