"""Failure taxonomy shared by the services and the HTTP layer."""


class TaskManagerError(Exception):
    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ValidationError(TaskManagerError):
    kind = "validation_error"
    status_code = 400


class UnauthorizedError(TaskManagerError):
    kind = "unauthorized"
    status_code = 401


class InvalidToken(TaskManagerError):
    """Raised by the token service; the authorization guard turns it into UnauthorizedError."""

    kind = "invalid_token"
    status_code = 401


class ForbiddenError(TaskManagerError):
    kind = "forbidden"
    status_code = 403


class NotFoundError(TaskManagerError):
    kind = "not_found"
    status_code = 404


class ConflictError(TaskManagerError):
    kind = "conflict"
    status_code = 409


class InternalError(TaskManagerError):
    kind = "internal_error"
    status_code = 500
