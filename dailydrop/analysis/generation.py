"""
Generation client: wraps a ``TextGenerator`` with rate limiting, a wall-clock timeout and
exponential-backoff retries.

Per attempt the order is: wait for the shared rate limiter, then run the provider call under the
timeout. Failed attempts are retried regardless of cause; classifying the cause is left to the
orchestrator.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Optional, Tuple

from dailydrop.analysis.ai_providers.base import TextGenerator
from dailydrop.analysis.errors import GenerationError
from dailydrop.core.config import (
    GENERATION_MAX_RETRIES,
    GENERATION_MIN_INTERVAL_SECONDS,
    GENERATION_RETRY_BASE_SECONDS,
    GENERATION_RETRY_MULTIPLIER,
    GENERATION_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)


class GenerationTimeoutError(TimeoutError):
    pass


class RateLimiter:
    """
    Enforces a minimum spacing between consecutive requests to one counterparty.

    One instance is shared by every caller in the process; callers block until their slot.
    """

    def __init__(
        self,
        min_interval: float = GENERATION_MIN_INTERVAL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request: Optional[float] = None

    def acquire(self) -> float:
        """Blocks until the spacing has elapsed. Returns the seconds waited."""
        with self._lock:
            waited = 0.0
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    logger.info(f"Rate limiting: waiting {waited * 1000:.0f}ms before next request")
                    self._sleep(waited)
            self._last_request = self._clock()
            return waited


class GenerationClient:
    """
    Calls the generation service under rate-limit, timeout and retry discipline.

    A call that exceeds the timeout is abandoned on its worker thread, not cancelled. The provider
    only returns text, so an abandoned call has no way to touch shared state.
    """

    def __init__(
        self,
        generator: TextGenerator,
        rate_limiter: RateLimiter,
        *,
        max_retries: int = GENERATION_MAX_RETRIES,
        timeout: float = GENERATION_TIMEOUT_SECONDS,
        retry_base: float = GENERATION_RETRY_BASE_SECONDS,
        retry_multiplier: float = GENERATION_RETRY_MULTIPLIER,
        sleep: Callable[[float], None] = time.sleep,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.generator = generator
        self.rate_limiter = rate_limiter
        self.max_retries = max_retries
        self.timeout = timeout
        self.retry_base = retry_base
        self.retry_multiplier = retry_multiplier
        self._sleep = sleep
        self._executor = executor or ThreadPoolExecutor(thread_name_prefix="generation")

    def backoff_delay(self, attempt: int) -> float:
        """Delay after the failed attempt with zero-based index ``attempt``: base * multiplier^attempt."""
        return self.retry_base * (self.retry_multiplier ** attempt)

    def _call_with_timeout(self, prompt: str) -> str:
        future = self._executor.submit(self.generator.generate, prompt)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            # The provider's own TimeoutError surfaces here too once the future is done.
            if future.done():
                raise
            future.cancel()
            raise GenerationTimeoutError(f"Analysis request timeout after {self.timeout:g}s")

    def generate(self, prompt: str) -> str:
        """Returns raw generated text. See ``generate_with_attempts``."""
        text, _ = self.generate_with_attempts(prompt)
        return text

    def generate_with_attempts(self, prompt: str) -> Tuple[str, int]:
        """
        Returns the generated text and the number of calls it took.

        Makes at most ``max_retries + 1`` attempts.

        Raises:
            GenerationError: After the last failed attempt; ``__cause__`` is that failure and
                ``attempts`` is the number of calls made.
        """
        attempts = 0
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            self.rate_limiter.acquire()
            attempts = attempt + 1
            try:
                text = self._call_with_timeout(prompt)
                if attempt:
                    logger.info(f"Generation succeeded on attempt {attempts}")
                return text, attempts
            except Exception as e:
                last_error = e
                if attempt == self.max_retries:
                    break
                delay = self.backoff_delay(attempt)
                logger.warning(f"Analysis attempt {attempts} failed, retrying in {delay * 1000:.0f}ms: {e}")
                self._sleep(delay)

        logger.error(f"Generation failed after {attempts} attempts: {last_error}")
        raise GenerationError(
            f"Generation failed after {attempts} attempts: {last_error}",
            attempts=attempts,
        ) from last_error

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
