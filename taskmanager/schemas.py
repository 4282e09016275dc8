from pydantic import BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import date, datetime

from .models import TaskPriority, TaskStatus


# AUTH
class UserCreate(BaseModel):
    username: str
    email: EmailStr
    password: str

class LoginRequest(BaseModel):
    email: str
    password: str

class UserOut(BaseModel):
    id: int
    username: str
    email: str
    created_at: datetime
    class Config:
        from_attributes = True

class AuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user_id: int
    username: str
    email: str
    class Config:
        from_attributes = True


# TASKS
class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    list_id: Optional[int] = None

class TaskUpdate(BaseModel):
    """Every field is optional; only the ones present in the request body are applied."""
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    list_id: Optional[int] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)

class TaskOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[date] = None
    user_id: int
    list_id: int
    list_name: str
    created_at: datetime
    updated_at: datetime
    class Config:
        from_attributes = True

class TaskPage(BaseModel):
    items: List[TaskOut] = []
    page: int
    size: int
    total_elements: int
    total_pages: int
    class Config:
        from_attributes = True


# LISTS
class TaskListCreate(BaseModel):
    name: str

class TaskListOut(BaseModel):
    id: int
    name: str
    user_id: int
    is_default: bool
    task_count: int = 0
    created_at: datetime
    class Config:
        from_attributes = True


# STATISTICS
class DashboardStats(BaseModel):
    total: int
    todo_count: int
    in_progress_count: int
    completed_count: int
    due_today_count: int
    overdue_count: int
    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str

class ErrorResponse(BaseModel):
    timestamp: datetime
    status: int
    error: str
    message: str
    path: str
    details: Optional[List[dict]] = Field(default=None)
