import math
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from . import models
from .database import unicode_lower

# Storage helpers flush but never commit; the services own the transaction.


@dataclass
class Page:
    items: List[Any]
    page: int
    size: int
    total_elements: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size) if self.size else 0


# USERS
def create_user(db: Session, username: str, email: str, hashed_password: str):
    db_user = models.User(username=username, email=email, hashed_password=hashed_password)
    db.add(db_user)
    db.flush()
    return db_user


def get_user_by_email(db: Session, email: str):
    return db.query(models.User).filter(models.User.email == email).first()


def get_user_by_username(db: Session, username: str):
    return db.query(models.User).filter(models.User.username == username).first()


def get_user_by_id(db: Session, user_id: int):
    return db.query(models.User).filter(models.User.id == user_id).first()


# LISTS
def create_list(db: Session, owner_id: int, name: str, is_default: bool = False):
    db_list = models.TaskList(name=name, user_id=owner_id, is_default=is_default)
    db.add(db_list)
    db.flush()
    return db_list


def get_list(db: Session, list_id: int):
    return db.query(models.TaskList).filter(models.TaskList.id == list_id).first()


def get_user_lists(db: Session, owner_id: int):
    return (
        db.query(models.TaskList)
        .filter(models.TaskList.user_id == owner_id)
        .order_by(models.TaskList.is_default.desc(), models.TaskList.created_at, models.TaskList.id)
        .all()
    )


def get_default_list(db: Session, owner_id: int):
    return (
        db.query(models.TaskList)
        .filter(models.TaskList.user_id == owner_id, models.TaskList.is_default.is_(True))
        .first()
    )


def rename_list(db: Session, task_list: models.TaskList, name: str):
    task_list.name = name
    db.flush()
    return task_list


def delete_list(db: Session, task_list: models.TaskList):
    db.delete(task_list)
    db.flush()


def reassign_tasks(db: Session, from_list_id: int, to_list_id: int) -> int:
    """Move every task of one list to another in a single UPDATE; returns the row count."""
    moved = (
        db.query(models.Task)
        .filter(models.Task.list_id == from_list_id)
        .update({models.Task.list_id: to_list_id}, synchronize_session="fetch")
    )
    db.flush()
    return moved


# TASKS
def create_task(db: Session, owner_id: int, list_id: int, title: str, description=None,
                status=models.TaskStatus.TODO, priority=models.TaskPriority.MEDIUM, due_date=None):
    db_task = models.Task(
        title=title,
        description=description,
        status=status,
        priority=priority,
        due_date=due_date,
        user_id=owner_id,
        list_id=list_id,
    )
    db.add(db_task)
    db.flush()
    return db_task


def get_task(db: Session, task_id: int):
    return db.query(models.Task).filter(models.Task.id == task_id).first()


def update_task(db: Session, task: models.Task, fields: dict):
    for field, value in fields.items():
        setattr(task, field, value)
    task.updated_at = models.utcnow()
    db.flush()
    return task


def delete_task(db: Session, task: models.Task):
    db.delete(task)
    db.flush()


# TASK QUERIES
def _owned_tasks(db: Session, owner_id: int) -> Query:
    return db.query(models.Task).filter(models.Task.user_id == owner_id)


def _paginate(q: Query, page: int, size: int) -> Page:
    total = q.order_by(None).count()
    offset = page * size
    if offset >= total:
        # past the last row
        return Page(items=[], page=page, size=size, total_elements=total)
    items = (
        q.order_by(models.Task.created_at.desc(), models.Task.id.desc())
        .offset(offset)
        .limit(min(size, total - offset))
        .all()
    )
    return Page(items=items, page=page, size=size, total_elements=total)


def get_tasks_page(db: Session, owner_id: int, page: int, size: int, list_id: Optional[int] = None,
                   search: Optional[str] = None, status=None, priority=None) -> Page:
    q = _owned_tasks(db, owner_id)
    if list_id is not None:
        q = q.filter(models.Task.list_id == list_id)
    if search:
        needle = search.lower()
        q = q.filter(or_(
            unicode_lower(models.Task.title).contains(needle, autoescape=True),
            unicode_lower(models.Task.description).contains(needle, autoescape=True),
        ))
    if status is not None:
        q = q.filter(models.Task.status == status)
    if priority is not None:
        q = q.filter(models.Task.priority == priority)
    return _paginate(q, page, size)


def count_tasks(db: Session, owner_id: int, status=None) -> int:
    q = _owned_tasks(db, owner_id)
    if status is not None:
        q = q.filter(models.Task.status == status)
    return q.count()


def count_due_on(db: Session, owner_id: int, day: date) -> int:
    return _owned_tasks(db, owner_id).filter(models.Task.due_date == day).count()


def count_overdue(db: Session, owner_id: int, today: date) -> int:
    return (
        _owned_tasks(db, owner_id)
        .filter(models.Task.due_date < today, models.Task.status != models.TaskStatus.COMPLETED)
        .count()
    )
