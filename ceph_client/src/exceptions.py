from typing import Optional


class CephClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

class RetryableError(CephClientError):
    """Temporary: the same request or operation may succeed later."""
    pass

class PermanentError(CephClientError):
    """Won't improve with retry."""
    pass

class ValidationError(PermanentError):
    """A required identifying parameter is empty. Raised before any request is made."""
    pass

class AuthenticationError(PermanentError):
    pass

class TransportError(RetryableError):
    """Network failure or retryable status surviving the transport retry budget."""
    pass

class ApiError(PermanentError):
    """Final non-success response from the API."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message, status_code)
        self.code = code
        self.detail = detail

class DomainConflictError(ApiError):
    """The resource already exists; resubmitting cannot succeed."""
    pass

class ImageAlreadyExistsError(DomainConflictError):
    pass

class NamespaceAlreadyExistsError(DomainConflictError):
    pass

class TaskFailedError(RetryableError):
    """Background task finished unsuccessfully without a recognised conflict code."""

    def __init__(
        self,
        task_name: str,
        code: Optional[str] = None,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(f"task {task_name} failed: code={code} detail={detail}", status_code)
        self.task_name = task_name
        self.code = code
        self.detail = detail

class MaxAttemptsExceededError(PermanentError):
    def __init__(self, operation: str, attempts: int, status_code: Optional[int] = None):
        super().__init__(f"{operation}: gave up after {attempts} attempt(s)", status_code)
        self.operation = operation
        self.attempts = attempts

class TaskTrackingError(PermanentError):
    """Polling exhausted its cycle budget without a terminal task state."""

    def __init__(self, message: str, task_name: str, cycles: int):
        super().__init__(message)
        self.task_name = task_name
        self.cycles = cycles

class TaskNotFoundError(TaskTrackingError):
    pass

class TaskTimeoutError(TaskTrackingError):
    pass
