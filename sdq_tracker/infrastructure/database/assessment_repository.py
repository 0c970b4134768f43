"""Assessment result repository.

Document-style access to the analysis_results table: records go in and come
out as plain dictionaries keyed by column name.
"""

from collections.abc import Mapping
from typing import Any

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sdq_tracker.infrastructure.database.models import AssessmentResultORM

logger = structlog.get_logger(__name__)

Document = dict[str, Any]

COLUMNS: frozenset[str] = frozenset(AssessmentResultORM.__table__.columns.keys())


class AssessmentRepository:
    """Assessment result document repository."""

    def __init__(self, session: AsyncSession):
        """Initialize the repository.

        Args:
            session: Async database session
        """
        self._session = session

    async def insert(self, record: Mapping[str, Any]) -> str:
        """Insert a record.

        Args:
            record: Column values including the id

        Returns:
            Id of the inserted record
        """
        self._check_fields(record)
        orm = AssessmentResultORM(**record)
        self._session.add(orm)
        await self._session.flush()

        logger.info(
            "[ASSESSMENT_REPO] Record inserted",
            extra={"result_id": orm.id, "child_id": orm.child_id},
        )
        return orm.id

    async def get(self, result_id: str) -> Document | None:
        """Fetch one record by id.

        Args:
            result_id: Record id

        Returns:
            The record, or None when it does not exist
        """
        result = await self._session.execute(
            select(AssessmentResultORM)
            .where(AssessmentResultORM.id == result_id)
            .execution_options(populate_existing=True)
        )
        orm = result.scalar_one_or_none()
        return self._to_document(orm) if orm else None

    async def query_by_field(
        self,
        field: str,
        value: Any,
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[Document]:
        """Query records where a single field equals a value."""
        return await self.query_by_fields(
            {field: value},
            order_by=order_by,
            descending=descending,
            limit=limit,
        )

    async def query_by_fields(
        self,
        filters: Mapping[str, Any],
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[Document]:
        """Query records matching every field/value pair.

        Args:
            filters: Equality filters keyed by column name
            order_by: Column to sort on
            descending: Sort direction when order_by is given
            limit: Maximum number of records

        Returns:
            Matching records
        """
        self._check_fields(filters)
        stmt = select(AssessmentResultORM).execution_options(populate_existing=True)
        for field, value in filters.items():
            stmt = stmt.where(getattr(AssessmentResultORM, field) == value)

        if order_by is not None:
            self._check_fields([order_by])
            column = getattr(AssessmentResultORM, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return [self._to_document(orm) for orm in result.scalars().all()]

    async def update(self, result_id: str, values: Mapping[str, Any]) -> bool:
        """Overwrite fields of one record.

        Returns:
            Whether a record was updated
        """
        self._check_fields(values)
        result = await self._session.execute(
            update(AssessmentResultORM)
            .where(AssessmentResultORM.id == result_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def delete(self, result_id: str) -> bool:
        """Delete one record.

        Returns:
            Whether a record was deleted
        """
        result = await self._session.execute(
            delete(AssessmentResultORM)
            .where(AssessmentResultORM.id == result_id)
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount > 0
        if deleted:
            logger.info("[ASSESSMENT_REPO] Record deleted", extra={"result_id": result_id})
        return deleted

    def _check_fields(self, fields: Mapping[str, Any] | list[str]) -> None:
        unknown = set(fields) - COLUMNS
        if unknown:
            raise ValueError(f"Unknown analysis_results field(s): {sorted(unknown)}")

    def _to_document(self, orm: AssessmentResultORM) -> Document:
        return {column: getattr(orm, column) for column in COLUMNS}
