"""
Task REST routes.

Every route requires a Bearer token; the authenticated account id is passed
to the repository as the owner of every read and write.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from auth.dependencies import get_current_user_id, get_task_repository
from config.settings import config
from database.models import TaskStatus
from database.tasks import TaskQuery, TaskRepository
from utils.errors import NotFoundOrForbidden
from utils.schemas import (
    SortOrder,
    TaskCreate,
    TaskOut,
    TaskPageOut,
    TaskSortField,
    TaskUpdate,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])

_TASK_NOT_FOUND = "Task not found"


@router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(
    req: TaskCreate,
    user_id: int = Depends(get_current_user_id),
    tasks: TaskRepository = Depends(get_task_repository),
) -> TaskOut:
    """Create a task for the authenticated user (guests included)."""
    task = await tasks.create(req.model_dump(), user_id)
    return TaskOut.model_validate(task)


@router.get("", response_model=TaskPageOut)
async def list_tasks(
    page: int = Query(1),
    page_size: int = Query(config.default_page_size, le=config.max_page_size, alias="pageSize"),
    statuses: Optional[List[TaskStatus]] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    sort_field: TaskSortField = Query(TaskSortField.CREATED_AT, alias="sortField"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    user_id: int = Depends(get_current_user_id),
    tasks: TaskRepository = Depends(get_task_repository),
) -> TaskPageOut:
    """Paginated, filterable, sortable listing of the caller's active tasks."""
    result = await tasks.query_page(
        user_id,
        TaskQuery(
            statuses=statuses,
            search=search or None,
            sort_field=sort_field,
            sort_order=sort_order,
            page=page,
            page_size=page_size,
        ),
    )
    return TaskPageOut(
        data=[TaskOut.model_validate(t) for t in result.items],
        pagination=result.pagination,
    )


@router.get("/deleted", response_model=List[TaskOut])
async def list_deleted_tasks(
    user_id: int = Depends(get_current_user_id),
    tasks: TaskRepository = Depends(get_task_repository),
) -> List[TaskOut]:
    return [TaskOut.model_validate(t) for t in await tasks.find_deleted(user_id)]


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(
    task_id: int,
    user_id: int = Depends(get_current_user_id),
    tasks: TaskRepository = Depends(get_task_repository),
) -> TaskOut:
    task = await tasks.find_by_id(task_id, user_id)
    if task is None:
        raise NotFoundOrForbidden(_TASK_NOT_FOUND)
    return TaskOut.model_validate(task)


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: int,
    req: TaskUpdate,
    user_id: int = Depends(get_current_user_id),
    tasks: TaskRepository = Depends(get_task_repository),
) -> TaskOut:
    task = await tasks.update(task_id, user_id, req.model_dump(exclude_unset=True))
    if task is None:
        raise NotFoundOrForbidden(_TASK_NOT_FOUND)
    return TaskOut.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    user_id: int = Depends(get_current_user_id),
    tasks: TaskRepository = Depends(get_task_repository),
) -> Response:
    """Soft delete; missing and foreign tasks answer 404 like any other lookup."""
    if not await tasks.exists(task_id, user_id):
        raise NotFoundOrForbidden(_TASK_NOT_FOUND)
    await tasks.delete(task_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{task_id}/restore", response_model=TaskOut)
async def restore_task(
    task_id: int,
    user_id: int = Depends(get_current_user_id),
    tasks: TaskRepository = Depends(get_task_repository),
) -> TaskOut:
    task = await tasks.restore(task_id, user_id)
    if task is None:
        raise NotFoundOrForbidden(_TASK_NOT_FOUND)
    return TaskOut.model_validate(task)
