"""
Infrastructure-specific decorators, providing cross-cutting concerns like
retry logic for network operations.
"""

import logging

import httpx
from tenacity import (
    retry,
    wait_exponential,
    retry_if_exception_type,
)

logger = logging.getLogger(__name__)

# --- Constants for Retry Logic ---
_RETRY_MIN_WAIT_SECONDS = 1
_RETRY_MAX_WAIT_SECONDS = 10


def _stop_after_configured_attempts(retry_state) -> bool:
    """Stop once the client's own `retry_attempts` budget is spent."""
    client = retry_state.args[0]
    attempts = max(1, getattr(client, "retry_attempts", 1))
    return retry_state.attempt_number >= attempts


def _log_before_retry(retry_state):
    """Log the retry attempt with details about the exception and wait time."""
    exception = retry_state.outcome.exception()
    next_attempt_in = retry_state.next_action.sleep
    logger.warning(
        f"Retrying {retry_state.fn.__name__} in {next_attempt_in:.2f}s due to "
        f"{type(exception).__name__} (attempt {retry_state.attempt_number})..."
    )


# A pre-configured decorator for async client methods. The attempt budget is
# read from the client instance; with the default of 1 nothing is retried and
# the original exception propagates.
retry_on_network_error = retry(
    stop=_stop_after_configured_attempts,
    wait=wait_exponential(
        multiplier=1,
        min=_RETRY_MIN_WAIT_SECONDS,
        max=_RETRY_MAX_WAIT_SECONDS,
    ),
    retry=retry_if_exception_type(
        (httpx.TransportError, httpx.HTTPStatusError)
    ),
    before_sleep=_log_before_retry,
    reraise=True,
)
