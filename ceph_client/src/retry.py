import logging
from typing import Callable, Optional

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from .config import Settings, settings as default_settings
from .exceptions import TransportError
from .logging import jlog

retry_logger = logging.getLogger("tenacity")

# Statuses on which the server has said something definitive about the request.
# 400 is included: it usually carries a domain error (e.g. already exists) the
# caller has to interpret.
NO_RETRY_STATUSES = frozenset({200, 201, 202, 204, 400, 404})


def _describe(resp: httpx.Response) -> str:
    try:
        return f"{resp.request.method} {resp.request.url}"
    except RuntimeError:
        # Response built without a request (tests, hand-made fakes)
        return "<request>"


class RetryPolicy:
    """
    Transport-level retry of a single request.

    Every response status outside NO_RETRY_STATUSES, and every
    httpx.TransportError, causes the identical request to be sent again after a
    fixed wait. This is separate from the executor's resubmission of a whole
    operation after a failed background task.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.retry_count = max(0, settings.transport_retry_count)
        self.wait_s = max(0.0, settings.transport_retry_wait_s)

    def should_retry(self, status_code: int, request: Optional[str] = None) -> bool:
        retry = status_code not in NO_RETRY_STATUSES
        jlog(
            event="transport_status",
            severity="DEBUG",
            status_code=status_code,
            request=request,
            retry=retry,
        )
        return retry

    def _retry_on_response(self, resp: httpx.Response) -> bool:
        return self.should_retry(resp.status_code, _describe(resp))

    def retrying(self) -> Retrying:
        tenacity_log = before_sleep_log(retry_logger, logging.WARNING)

        def _before_sleep(retry_state: RetryCallState):
            outcome = retry_state.outcome
            status_code = None
            err = None
            if outcome is not None and outcome.failed:
                err = str(outcome.exception())
            elif outcome is not None:
                status_code = outcome.result().status_code
            jlog(
                event="transport_retry",
                severity="WARNING",
                attempt=retry_state.attempt_number,
                wait_s=getattr(getattr(retry_state, "next_action", None), "sleep", None),
                status_code=status_code,
                error=err,
            )
            tenacity_log(retry_state)

        return Retrying(
            retry=(retry_if_result(self._retry_on_response) | retry_if_exception_type(httpx.TransportError)),
            stop=stop_after_attempt(self.retry_count + 1),  # first try + retries
            wait=wait_fixed(self.wait_s),
            before_sleep=_before_sleep,
            retry_error_callback=_raise_exhausted,
        )

    def call(self, send: Callable[[], httpx.Response]) -> httpx.Response:
        return self.retrying()(send)


def _raise_exhausted(retry_state: RetryCallState) -> httpx.Response:
    outcome = retry_state.outcome
    if outcome is None:
        raise TransportError(f"request gave up after {retry_state.attempt_number} attempt(s) without an outcome")
    if outcome.failed:
        exc = outcome.exception()
        raise TransportError(f"request failed after {retry_state.attempt_number} attempt(s): {exc}") from exc
    resp: httpx.Response = outcome.result()
    raise TransportError(
        f"{_describe(resp)} still returned {resp.status_code} after {retry_state.attempt_number} attempt(s)",
        status_code=resp.status_code,
    )
