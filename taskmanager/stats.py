from dataclasses import dataclass

from sqlalchemy.orm import Session

from . import crud, models
from .clock import Clock


@dataclass(frozen=True)
class DashboardStats:
    total: int
    todo_count: int
    in_progress_count: int
    completed_count: int
    due_today_count: int
    overdue_count: int


def dashboard_stats(db: Session, user_id: int, clock: Clock) -> DashboardStats:
    """Recompute the dashboard counters for one user.

    "Today" is the clock's calendar date. Overdue means a due date strictly
    before today on a task that is not completed; tasks without a due date
    count towards neither.
    """
    today = clock.today()
    return DashboardStats(
        total=crud.count_tasks(db, user_id),
        todo_count=crud.count_tasks(db, user_id, status=models.TaskStatus.TODO),
        in_progress_count=crud.count_tasks(db, user_id, status=models.TaskStatus.IN_PROGRESS),
        completed_count=crud.count_tasks(db, user_id, status=models.TaskStatus.COMPLETED),
        due_today_count=crud.count_due_on(db, user_id, today),
        overdue_count=crud.count_overdue(db, user_id, today),
    )
