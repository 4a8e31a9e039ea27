"""Re-login-and-retry decorator for session-based supplier calls."""

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
)

from partsearch.core.exceptions import SessionExpiredError


logger = structlog.get_logger(__name__)


def _log_relogin(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "upstream_session_rejected",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


# One extra attempt after the session was rejected; the failing call is
# expected to have invalidated the session so the retry logs in again.
relogin_retry = retry(
    stop=stop_after_attempt(2),
    retry=retry_if_exception_type(SessionExpiredError),
    before_sleep=_log_relogin,
    reraise=True,
)
