"""
Pydantic schemas for the task manager API.

Request models carry every field constraint; the auth and task layers
trust what reaches them.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from database.models import TaskStatus

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# ═══════════════════════════════════════════════════════════════════════════════
# Auth — Requests / Responses
# ═══════════════════════════════════════════════════════════════════════════════


class SignUpRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=5, max_length=255, pattern=_EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=128)


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=128)
    password: Optional[str] = Field(None, min_length=6, max_length=128)

    @model_validator(mode="after")
    def _no_explicit_nulls(self) -> "ProfileUpdate":
        for name in ("name", "password"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class PublicUser(BaseModel):
    """User view returned to clients.  Guests only get ``name`` and ``isGuest``."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None
    name: str
    email: Optional[str] = None
    is_guest: Optional[bool] = Field(None, alias="isGuest")


class AuthResponse(BaseModel):
    token: str
    user: PublicUser


class MeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    email: str
    is_guest: bool = Field(False, alias="isGuest")
    expires_at: datetime = Field(..., alias="expiresAt")


# ═══════════════════════════════════════════════════════════════════════════════
# Tasks — Requests
# ═══════════════════════════════════════════════════════════════════════════════


class TaskSortField(str, Enum):
    ID = "id"
    TITLE = "title"
    STATUS = "status"
    PRIORITY = "priority"
    DUE_DATE = "due_date"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def _missing_(cls, value):
        # Case-insensitive, so "DESC" and "Asc" match too.
        if isinstance(value, str):
            return cls._value2member_map_.get(value.lower())
        return None


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    status: TaskStatus = TaskStatus.PENDING
    priority: int = Field(1, ge=1, le=3, description="1: Low, 2: Medium, 3: High")
    due_date: Optional[datetime] = None


class TaskUpdate(BaseModel):
    """Partial update; only fields present in the request body are written."""

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[TaskStatus] = None
    priority: Optional[int] = Field(None, ge=1, le=3)
    due_date: Optional[datetime] = None

    @model_validator(mode="after")
    def _required_columns_not_null(self) -> "TaskUpdate":
        for name in ("title", "status", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


# ═══════════════════════════════════════════════════════════════════════════════
# Tasks — Responses
# ═══════════════════════════════════════════════════════════════════════════════


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: int
    due_date: Optional[datetime] = None
    active: bool
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    page_size: int = Field(..., alias="pageSize")
    total_items: int = Field(..., alias="totalItems")
    total_pages: int = Field(..., alias="totalPages")
    has_next_page: bool = Field(..., alias="hasNextPage")
    has_previous_page: bool = Field(..., alias="hasPreviousPage")

    @classmethod
    def build(cls, page: int, page_size: int, total_items: int) -> "Pagination":
        total_pages = math.ceil(total_items / page_size) if page_size else 0
        return cls(
            page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )


class TaskPageOut(BaseModel):
    data: List[TaskOut] = Field(default_factory=list)
    pagination: Pagination
