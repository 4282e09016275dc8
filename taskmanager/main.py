import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, Depends, Path, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import auth, config, crud, database, lists, schemas, stats, tasks
from .clock import Clock
from .dependencies import get_clock, get_current_user_id, get_db, get_password_hasher, get_token_service
from .errors import TaskManagerError, UnauthorizedError
from .passwords import PasswordHasher
from .tokens import TokenService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.Base.metadata.create_all(bind=database.engine)
    yield


app = FastAPI(title="Task Manager API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)


def _error_response(request: Request, status_code: int, error: str, message: str, details=None) -> JSONResponse:
    body = schemas.ErrorResponse(
        timestamp=datetime.now(timezone.utc),
        status=status_code,
        error=error,
        message=message,
        path=request.url.path,
        details=details,
    )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True), headers=headers)


@app.exception_handler(TaskManagerError)
async def handle_task_manager_error(request: Request, exc: TaskManagerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return _error_response(request, exc.status_code, exc.kind, exc.message)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    details = [{"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()]
    message = details[0]["msg"] if details else "invalid request"
    return _error_response(request, status.HTTP_400_BAD_REQUEST, "validation_error", message, details)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "internal server error")


# AUTH
@app.post("/api/auth/register", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserCreate, db: Session = Depends(get_db),
             hasher: PasswordHasher = Depends(get_password_hasher)):
    return auth.register_user(db, hasher, payload.username, payload.email, payload.password)

@app.post("/api/auth/login", response_model=schemas.AuthResponse)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db),
          hasher: PasswordHasher = Depends(get_password_hasher),
          tokens: TokenService = Depends(get_token_service)):
    return auth.authenticate_user(db, hasher, tokens, payload.email, payload.password)

@app.post("/api/auth/logout", response_model=schemas.MessageResponse)
def logout():
    # tokens are stateless; the client discards its copy
    return {"message": "logged out"}

@app.get("/api/auth/me", response_model=schemas.UserOut)
def me(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    user = crud.get_user_by_id(db, user_id)
    if not user:
        raise UnauthorizedError(auth.INVALID_TOKEN)
    return user


# TASKS
@app.post("/api/tasks", response_model=schemas.TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(task: schemas.TaskCreate, user_id: int = Depends(get_current_user_id),
                db: Session = Depends(get_db)):
    return tasks.create_task(
        db, user_id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        due_date=task.due_date,
        list_id=task.list_id,
    )

@app.get("/api/tasks", response_model=schemas.TaskPage)
def get_tasks(page: int = Query(0, ge=0),
              size: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
              list_id: Optional[int] = None,
              search: Optional[str] = None,
              status: Optional[str] = None,
              priority: Optional[str] = None,
              user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    filters = tasks.parse_task_filters(list_id=list_id, search=search, status=status, priority=priority)
    result = tasks.list_tasks(db, user_id, page=page, size=size, filters=filters)
    return schemas.TaskPage.model_validate(result)

@app.get("/api/tasks/{task_id}", response_model=schemas.TaskOut)
def get_task_details(task_id: int = Path(...), user_id: int = Depends(get_current_user_id),
                     db: Session = Depends(get_db)):
    return tasks.get_task(db, user_id, task_id)

@app.put("/api/tasks/{task_id}", response_model=schemas.TaskOut)
def update_task(task_id: int, task_update: schemas.TaskUpdate, user_id: int = Depends(get_current_user_id),
                db: Session = Depends(get_db)):
    return tasks.update_task(db, user_id, task_id, task_update.changes())

@app.delete("/api/tasks/{task_id}", response_model=schemas.MessageResponse)
def delete_task(task_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    tasks.delete_task(db, user_id, task_id)
    return {"message": "task deleted"}


# LISTS
@app.post("/api/lists", response_model=schemas.TaskListOut, status_code=status.HTTP_201_CREATED)
def create_list(payload: schemas.TaskListCreate, user_id: int = Depends(get_current_user_id),
                db: Session = Depends(get_db)):
    return lists.create_list(db, user_id, payload.name)

@app.get("/api/lists", response_model=List[schemas.TaskListOut])
def get_lists(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return lists.list_lists(db, user_id)

@app.get("/api/lists/default", response_model=schemas.TaskListOut)
def get_default_list(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return lists.get_default_list(db, user_id)

@app.get("/api/lists/{list_id}", response_model=schemas.TaskListOut)
def get_list_details(list_id: int = Path(...), user_id: int = Depends(get_current_user_id),
                     db: Session = Depends(get_db)):
    return lists.get_list(db, user_id, list_id)

@app.put("/api/lists/{list_id}", response_model=schemas.TaskListOut)
def update_list(list_id: int, payload: schemas.TaskListCreate, user_id: int = Depends(get_current_user_id),
                db: Session = Depends(get_db)):
    return lists.update_list(db, user_id, list_id, payload.name)

@app.delete("/api/lists/{list_id}", response_model=schemas.MessageResponse)
def delete_list(list_id: int, user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    moved = lists.delete_list(db, user_id, list_id)
    return {"message": f"task list deleted, {moved} task(s) moved to the default list"}


# STATISTICS
@app.get("/api/statistics/dashboard", response_model=schemas.DashboardStats)
def get_dashboard_stats(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db),
                        clock: Clock = Depends(get_clock)):
    return stats.dashboard_stats(db, user_id, clock)


def run():
    import uvicorn
    from .logging_setup import setup_logging

    setup_logging(config.LOG_LEVEL, config.LOG_DIR)
    uvicorn.run(app, host="0.0.0.0", port=8000, log_config=None)
