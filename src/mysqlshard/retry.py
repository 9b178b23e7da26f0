# src/mysqlshard/retry.py
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_none,
)

from .errors import TransientConnectionError


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry for statements that hit a dropped connection.

    Attributes:
        max_retries: Extra attempts after the first one.
        transient_errors: Exception types classified as transient.
    """

    max_retries: int = 1
    transient_errors: Tuple[Type[BaseException], ...] = (TransientConnectionError,)

    def is_transient(self, error: BaseException) -> bool:
        return isinstance(error, self.transient_errors)

    def retrying(self, can_retry: Optional[Callable[[], bool]] = None,
                 logger: Optional[logging.Logger] = None) -> Retrying:
        """Build the tenacity controller for one call.

        Args:
            can_retry: Consulted after a transient failure; returning False
                re-raises the error instead of retrying.
            logger: Receives a warning before each retry.

        The last error is always re-raised unchanged.
        """

        def should_retry(error: BaseException) -> bool:
            return self.is_transient(error) and (can_retry is None or can_retry())

        def before_sleep(retry_state: RetryCallState) -> None:
            if logger is not None:
                logger.warning(
                    f"Retrying after transient error (attempt {retry_state.attempt_number}): "
                    f"{retry_state.outcome.exception()}"
                )

        return Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_none(),
            retry=retry_if_exception(should_retry),
            before_sleep=before_sleep,
            reraise=True,
        )
