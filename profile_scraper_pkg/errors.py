from typing import Any, Dict, List, Optional


class TabControllerError(Exception):
    """Base class for failures while driving a single browser tab."""


class TabTimeout(TabControllerError):
    pass


class TabNotFound(TabControllerError):
    pass


class ExtractionError(TabControllerError):
    pass


class NavigationError(TabControllerError):
    pass


class BatchError(Exception):
    pass


class AlreadyRunning(BatchError):
    def __init__(self, message: str = "Batch processing already in progress"):
        super().__init__(message)


class BatchRejected(BatchError):
    pass


class ApiError(Exception):
    """Error rendered by the backend as a structured JSON response."""

    status_code = 500
    error_type = "ServerError"

    def __init__(
        self,
        message: str,
        fields: Optional[List[Dict[str, Any]]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.fields = fields or []
        self.extra = extra or {}


class ValidationFailed(ApiError):
    status_code = 400
    error_type = "ValidationError"


class DuplicateEntryError(ApiError):
    status_code = 409
    error_type = "DuplicateEntryError"


class NotFoundError(ApiError):
    status_code = 404
    error_type = "NotFoundError"


class ForbiddenError(ApiError):
    status_code = 403
    error_type = "ForbiddenError"


class RetriesExhausted(BatchError):
    """Every attempt of a retried operation failed."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error
