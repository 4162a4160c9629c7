from typing import Tuple, Type

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .logger_utils import logger


def on_retry_callback(retry_state):
    """Callback function to log retry attempts."""
    fn_name = getattr(retry_state.fn, "__name__", "block")
    logger.warning(
        f"Retrying {fn_name}, "
        f"attempt {retry_state.attempt_number} after {retry_state.seconds_since_start:.2f}s..."
    )


def build_retrying(
    max_attempts: int,
    retry_on: Tuple[Type[BaseException], ...],
    backoff: float = 1.0,
    max_wait: float = 10.0,
) -> Retrying:
    """
    Retry controller used as `for attempt in build_retrying(...): with attempt: ...`.

    The last exception is re-raised unchanged once attempts run out, so callers
    see their own domain errors rather than tenacity.RetryError.
    """
    return Retrying(
        wait=wait_exponential(multiplier=backoff, max=max_wait),
        stop=stop_after_attempt(max(1, max_attempts)),
        retry=retry_if_exception_type(retry_on),
        before_sleep=on_retry_callback,
        reraise=True,
    )
