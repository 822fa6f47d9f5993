"""
Task repository — owner-scoped CRUD, soft delete and the paginated query engine.

Every statement filters on ``user_id == owner_id``; everything except the
deleted-set helpers also filters on ``active``.  A task that is missing,
soft-deleted or owned by someone else is indistinguishable to callers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Task, TaskStatus
from utils.errors import ValidationFailed
from utils.schemas import Pagination, SortOrder, TaskSortField

logger = logging.getLogger(__name__)

_WRITABLE_FIELDS = {"title", "description", "status", "priority", "due_date"}

_SORT_COLUMNS = {
    TaskSortField.ID: Task.id,
    TaskSortField.TITLE: Task.title,
    TaskSortField.STATUS: Task.status,
    TaskSortField.PRIORITY: Task.priority,
    TaskSortField.DUE_DATE: Task.due_date,
    TaskSortField.CREATED_AT: Task.created_at,
    TaskSortField.UPDATED_AT: Task.updated_at,
}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _check_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - _WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown task fields: {sorted(unknown)}")


@dataclass
class TaskPage:
    items: List[Task]
    pagination: Pagination


@dataclass
class TaskQuery:
    """Filter, sort and paging options for :meth:`TaskRepository.query_page`."""

    statuses: Optional[Iterable[TaskStatus]] = None
    search: Optional[str] = None
    sort_field: TaskSortField = TaskSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    page_size: int = 10

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationFailed("page must be >= 1")
        if self.page_size < 1:
            raise ValidationFailed("pageSize must be >= 1")
        self.statuses = frozenset(self.statuses or ())


class TaskRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def _scope(task_id: int, owner_id: int, active: bool = True):
        return (Task.id == task_id, Task.user_id == owner_id, Task.active.is_(active))

    async def create(self, fields: Dict[str, Any], owner_id: int) -> Task:
        _check_fields(fields)
        values = {k: v for k, v in fields.items() if v is not None}
        task = Task(**values, user_id=owner_id, active=True)
        self._session.add(task)
        await self._session.flush()
        await self._session.refresh(task)
        logger.debug("Created task %s for user %s", task.id, owner_id)
        return task

    async def find_by_id(self, task_id: int, owner_id: int) -> Optional[Task]:
        result = await self._session.execute(
            select(Task)
            .where(*self._scope(task_id, owner_id))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def exists(self, task_id: int, owner_id: int) -> bool:
        result = await self._session.execute(
            select(func.count()).select_from(Task).where(*self._scope(task_id, owner_id))
        )
        return result.scalar_one() > 0

    async def update(
        self, task_id: int, owner_id: int, fields: Dict[str, Any]
    ) -> Optional[Task]:
        """Apply ``fields`` to an active task of ``owner_id``; ``None`` if no row matched."""
        _check_fields(fields)
        if not fields:
            return await self.find_by_id(task_id, owner_id)
        result = await self._session.execute(
            update(Task)
            .where(*self._scope(task_id, owner_id))
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return await self.find_by_id(task_id, owner_id)

    async def delete(self, task_id: int, owner_id: int) -> None:
        """Soft delete.  Idempotent; silently does nothing if no row matched."""
        result = await self._session.execute(
            update(Task)
            .where(*self._scope(task_id, owner_id))
            .values(active=False)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("Soft-deleted task %s (user %s)", task_id, owner_id)

    async def restore(self, task_id: int, owner_id: int) -> Optional[Task]:
        """Reactivate a soft-deleted task; ``None`` if there was nothing to restore."""
        result = await self._session.execute(
            update(Task)
            .where(*self._scope(task_id, owner_id, active=False))
            .values(active=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        logger.info("Restored task %s (user %s)", task_id, owner_id)
        return await self.find_by_id(task_id, owner_id)

    async def find_deleted(self, owner_id: int) -> List[Task]:
        result = await self._session.execute(
            select(Task)
            .where(Task.user_id == owner_id, Task.active.is_(False))
            .order_by(Task.updated_at.desc(), Task.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def query_page(self, owner_id: int, query: Optional[TaskQuery] = None) -> TaskPage:
        """
        Return one page of the owner's active tasks.

        Status filter is set membership, search is a case-insensitive title
        substring.  Ties on the sort column are broken by ``id`` in the same
        direction.  Pages past the end come back empty with correct metadata.
        """
        query = query or TaskQuery()
        conditions = [Task.user_id == owner_id, Task.active.is_(True)]
        if query.statuses:
            conditions.append(Task.status.in_(sorted(query.statuses)))
        if query.search:
            conditions.append(
                Task.title.ilike(f"%{_escape_like(query.search)}%", escape="\\")
            )

        total = (
            await self._session.execute(
                select(func.count()).select_from(Task).where(*conditions)
            )
        ).scalar_one()

        column = _SORT_COLUMNS[query.sort_field]
        if query.sort_order == SortOrder.ASC:
            ordering = (column.asc(), Task.id.asc())
        else:
            ordering = (column.desc(), Task.id.desc())

        result = await self._session.execute(
            select(Task)
            .where(*conditions)
            .order_by(*ordering)
            .offset((query.page - 1) * query.page_size)
            .limit(query.page_size)
            .execution_options(populate_existing=True)
        )
        items = list(result.scalars().all())
        return TaskPage(
            items=items,
            pagination=Pagination.build(query.page, query.page_size, total),
        )
