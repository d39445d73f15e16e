from typing import Dict, Optional, Set, Type, Union

import httpx
from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError

from .config import Settings, settings as default_settings
from .exceptions import (
    ApiError,
    DomainConflictError,
    ImageAlreadyExistsError,
    MaxAttemptsExceededError,
    NamespaceAlreadyExistsError,
    TaskFailedError,
    ValidationError,
)
from .logging import jlog
from .schemas import ApiErrorDetail, Operation, OperationAttempt, TaskState
from .tasks import EntryKey, TaskTracker, entry_key

tracer = trace.get_tracer("ceph_client")

RBD_IMAGE_ALREADY_EXISTS = "17"
NAMESPACE_ALREADY_EXISTS = "namespace_already_exists"

# Error codes after which a resubmission can only fail the same way
CONFLICT_ERRORS: Dict[str, Type[DomainConflictError]] = {
    RBD_IMAGE_ALREADY_EXISTS: ImageAlreadyExistsError,
    NAMESPACE_ALREADY_EXISTS: NamespaceAlreadyExistsError,
}


def decode_error(resp: httpx.Response) -> Optional[ApiErrorDetail]:
    try:
        return ApiErrorDetail.model_validate(resp.json())
    except (ValueError, PydanticValidationError):
        return None


def _check_max_attempts(max_attempts: int) -> int:
    # 0 is a valid ceiling: the operation is refused without a submission
    if max_attempts < 0:
        raise ValidationError(f"max_attempts can not be negative, got {max_attempts}")
    return max_attempts


class OperationExecutor:
    """
    Runs one mutating operation to a terminal outcome.

    An attempt submits the request, waits for the background task when the
    status says one was started, and either returns the operation's canonical
    success status or, when the task failed for a non-conflict reason, starts
    the next attempt with the same request. There is no resume primitive on
    the API side, so a fresh submission is the only way to recover.
    """

    def __init__(
        self,
        tracker: TaskTracker,
        settings: Optional[Settings] = None,
        conflict_errors: Optional[Dict[str, Type[DomainConflictError]]] = None,
    ):
        settings = settings or default_settings
        self.tracker = tracker
        self.max_attempts = _check_max_attempts(settings.max_attempts)
        self.conflict_errors = CONFLICT_ERRORS if conflict_errors is None else conflict_errors

    def _conflict(self, operation: Operation, detail: Optional[ApiErrorDetail], status_code: int) -> Optional[DomainConflictError]:
        if detail is None or detail.code not in self.conflict_errors:
            return None
        error_cls = self.conflict_errors[detail.code]
        return error_cls(
            f"{operation.name}: {detail.detail or 'already exists'}",
            status_code=status_code,
            code=detail.code,
            detail=detail.detail,
        )

    def execute(self, operation: Operation, max_attempts: Optional[int] = None) -> int:
        max_attempts = self.max_attempts if max_attempts is None else _check_max_attempts(max_attempts)
        attempt_number = 0
        last_failure: Optional[TaskFailedError] = None
        # Finished task entries of earlier failed attempts; a later attempt
        # must not take them for its own result
        stale: Set[EntryKey] = set()

        while True:
            attempt_number += 1
            if attempt_number > max_attempts:
                jlog(
                    event="operation_gave_up",
                    severity="ERROR",
                    operation=operation.name,
                    attempts=max_attempts,
                )
                raise MaxAttemptsExceededError(
                    operation.name,
                    max_attempts,
                    status_code=last_failure.status_code if last_failure else None,
                ) from last_failure

            attempt = OperationAttempt(attempt_number=attempt_number)
            with tracer.start_as_current_span("ceph.operation") as span:
                span.set_attribute("ceph.operation", operation.name)
                span.set_attribute("ceph.attempt", attempt_number)
                result = self._attempt(operation, attempt, stale)

            if not isinstance(result, TaskFailedError):
                return result

            last_failure = result
            jlog(
                event="operation_retry",
                severity="WARNING",
                operation=operation.name,
                attempt=attempt_number,
                max_attempts=max_attempts,
                task=last_failure.task_name,
                code=last_failure.code,
                error=last_failure.detail,
            )

    def _attempt(self, operation: Operation, attempt: OperationAttempt, stale: Set[EntryKey]) -> Union[int, TaskFailedError]:
        """
        Returns the final status, or the task failure when a resubmission is due.
        The failed task entry is added to `stale`.
        """
        jlog(
            event="operation_submit",
            operation=operation.name,
            attempt=attempt.attempt_number,
            submitted_at=attempt.submitted_at.isoformat(),
        )
        resp = operation.submit()
        status = resp.status_code

        if status >= 400:
            detail = decode_error(resp)
            if detail is not None:
                jlog(event="operation_error_body", operation=operation.name, status_code=status,
                     code=detail.code, detail=detail.detail)
            conflict = self._conflict(operation, detail, status)
            if conflict is not None:
                raise conflict
            # Some API versions answer 400 and still enqueue a task; only
            # wait for it when the body says so.
            has_task = detail is not None and detail.task is not None
            if not (status in operation.in_flight and has_task and operation.descriptor is not None):
                raise ApiError(
                    f"{operation.name}: {detail.detail if detail and detail.detail else resp.text[:512]}",
                    status_code=status,
                    code=detail.code if detail else None,
                    detail=detail.detail if detail else None,
                )

        if operation.descriptor is None or status not in operation.in_flight:
            jlog(event="operation_done", operation=operation.name, status_code=status, waited=False)
            return status

        outcome = self.tracker.wait_for_completion(operation.descriptor, stale=frozenset(stale))

        if outcome.state is TaskState.SUCCEEDED:
            jlog(event="operation_done", operation=operation.name, status_code=operation.success_status,
                 submitted_status=status, waited=True)
            return operation.success_status

        conflict = self._conflict(operation, outcome.failure, status)
        if conflict is not None:
            raise conflict

        if outcome.entry is not None and outcome.entry.end_time:
            stale.add(entry_key(outcome.entry))
        failure = outcome.failure or ApiErrorDetail()
        return TaskFailedError(
            operation.descriptor.name,
            code=failure.code,
            detail=failure.detail,
            status_code=status,
        )
