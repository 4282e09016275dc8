import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from . import crud, lists, models
from .database import transaction
from .errors import ForbiddenError, NotFoundError, ValidationError
from .validation import MAX_TITLE_LENGTH, require_text, validate_description

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"title", "description", "status", "priority", "due_date", "list_id"}
# supplying one of these as null clears it; the others are required to hold a value
NULLABLE_FIELDS = {"description", "due_date"}


@dataclass
class TaskFilters:
    """Only one filter is honoured per query: list_id, then search, then status, then priority."""

    list_id: Optional[int] = None
    search: Optional[str] = None
    status: Optional[models.TaskStatus] = None
    priority: Optional[models.TaskPriority] = None


def _coerce_enum(enum_cls, value, field: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls[value.strip().upper()]
        except KeyError:
            pass
    allowed = ", ".join(member.name for member in enum_cls)
    raise ValidationError(f"invalid {field} {value!r}; expected one of {allowed}")


def _validate_due_date(due_date):
    if due_date is not None and not isinstance(due_date, date):
        raise ValidationError("due_date must be a calendar date")
    return due_date


def parse_task_filters(list_id: Optional[int] = None, search: Optional[str] = None,
                       status: Optional[str] = None, priority: Optional[str] = None) -> TaskFilters:
    """Build filters from raw query parameters, rejecting unknown status/priority names."""
    return TaskFilters(
        list_id=list_id,
        search=search.strip() if search and search.strip() else None,
        status=_coerce_enum(models.TaskStatus, status, "status") if status and status.strip() else None,
        priority=_coerce_enum(models.TaskPriority, priority, "priority") if priority and priority.strip() else None,
    )


def create_task(db: Session, user_id: int, title: str, description: Optional[str] = None,
                status=None, priority=None, due_date: Optional[date] = None,
                list_id: Optional[int] = None) -> models.Task:
    title = require_text(title, "title", MAX_TITLE_LENGTH)
    description = validate_description(description)
    due_date = _validate_due_date(due_date)
    status = models.TaskStatus.TODO if status is None else _coerce_enum(models.TaskStatus, status, "status")
    priority = (models.TaskPriority.MEDIUM if priority is None
                else _coerce_enum(models.TaskPriority, priority, "priority"))

    if list_id is not None:
        task_list = lists.get_list(db, user_id, list_id)
    else:
        task_list = lists.get_default_list(db, user_id)

    with transaction(db):
        task = crud.create_task(
            db,
            owner_id=user_id,
            list_id=task_list.id,
            title=title,
            description=description,
            status=status,
            priority=priority,
            due_date=due_date,
        )
    logger.debug("User id=%s created task id=%s in list id=%s", user_id, task.id, task.list_id)
    return task


def get_task(db: Session, user_id: int, task_id: int) -> models.Task:
    task = crud.get_task(db, task_id)
    if not task:
        raise NotFoundError("task not found")
    if task.user_id != user_id:
        raise ForbiddenError("task belongs to another user")
    return task


def update_task(db: Session, user_id: int, task_id: int, changes: Mapping[str, Any]) -> models.Task:
    """Apply a partial update.

    ``changes`` holds only the fields the caller supplied; absent keys are
    left untouched, so "not supplied" and "set to null" stay distinct.
    """
    task = get_task(db, user_id, task_id)

    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"cannot update field(s): {', '.join(sorted(unknown))}")

    fields = {}
    for field, value in changes.items():
        if value is None and field not in NULLABLE_FIELDS:
            raise ValidationError(f"{field} must not be null")
        if field == "title":
            value = require_text(value, "title", MAX_TITLE_LENGTH)
        elif field == "description":
            value = validate_description(value)
        elif field == "due_date":
            value = _validate_due_date(value)
        elif field == "status":
            value = _coerce_enum(models.TaskStatus, value, "status")
        elif field == "priority":
            value = _coerce_enum(models.TaskPriority, value, "priority")
        elif field == "list_id":
            value = lists.get_list(db, user_id, value).id
        fields[field] = value

    with transaction(db):
        crud.update_task(db, task, fields)
    return task


def delete_task(db: Session, user_id: int, task_id: int) -> None:
    task = get_task(db, user_id, task_id)
    with transaction(db):
        crud.delete_task(db, task)
    logger.debug("User id=%s deleted task id=%s", user_id, task_id)


def list_tasks(db: Session, user_id: int, page: int = 0, size: int = 20,
               filters: Optional[TaskFilters] = None) -> crud.Page:
    if page < 0:
        raise ValidationError("page must not be negative")
    if size < 1:
        raise ValidationError("size must be at least 1")

    filters = filters or TaskFilters()
    status = None if filters.status is None else _coerce_enum(models.TaskStatus, filters.status, "status")
    priority = None if filters.priority is None else _coerce_enum(models.TaskPriority, filters.priority, "priority")
    if filters.list_id is not None:
        lists.get_list(db, user_id, filters.list_id)
        return crud.get_tasks_page(db, user_id, page, size, list_id=filters.list_id)
    if filters.search and filters.search.strip():
        return crud.get_tasks_page(db, user_id, page, size, search=filters.search.strip())
    if status is not None:
        return crud.get_tasks_page(db, user_id, page, size, status=status)
    if priority is not None:
        return crud.get_tasks_page(db, user_id, page, size, priority=priority)
    return crud.get_tasks_page(db, user_id, page, size)
