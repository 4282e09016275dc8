import logging

from sqlalchemy.orm import Session

from . import crud, models
from .database import transaction
from .errors import ForbiddenError, InternalError, NotFoundError, ValidationError
from .validation import MAX_LIST_NAME_LENGTH, require_text

logger = logging.getLogger(__name__)


def create_list(db: Session, user_id: int, name: str) -> models.TaskList:
    name = require_text(name, "list name", MAX_LIST_NAME_LENGTH)
    with transaction(db):
        task_list = crud.create_list(db, user_id, name, is_default=False)
    logger.debug("User id=%s created list id=%s", user_id, task_list.id)
    return task_list


def list_lists(db: Session, user_id: int) -> list:
    return crud.get_user_lists(db, user_id)


def get_list(db: Session, user_id: int, list_id: int) -> models.TaskList:
    task_list = crud.get_list(db, list_id)
    if not task_list:
        raise NotFoundError("task list not found")
    if task_list.user_id != user_id:
        raise ForbiddenError("task list belongs to another user")
    return task_list


def get_default_list(db: Session, user_id: int) -> models.TaskList:
    task_list = crud.get_default_list(db, user_id)
    if not task_list:
        # registration always creates one; reaching this means the data is corrupt
        logger.error("User id=%s has no default task list", user_id)
        raise InternalError("default task list is missing")
    return task_list


def update_list(db: Session, user_id: int, list_id: int, name: str) -> models.TaskList:
    task_list = get_list(db, user_id, list_id)
    name = require_text(name, "list name", MAX_LIST_NAME_LENGTH)
    with transaction(db):
        crud.rename_list(db, task_list, name)
    return task_list


def delete_list(db: Session, user_id: int, list_id: int) -> int:
    """Delete a non-default list, moving its tasks to the default list first.

    Returns the number of tasks that were moved.
    """
    task_list = get_list(db, user_id, list_id)
    if task_list.is_default:
        raise ValidationError("cannot delete default list")
    default_list = get_default_list(db, user_id)

    with transaction(db):
        moved = crud.reassign_tasks(db, task_list.id, default_list.id)
        crud.delete_list(db, task_list)

    logger.info("User id=%s deleted list id=%s, moved %s task(s) to list id=%s",
                user_id, list_id, moved, default_list.id)
    return moved
