import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Dict, Iterator, Optional

from dailydrop.analysis.errors import DuplicateAnalysisError

logger = logging.getLogger(__name__)


class AnalysisState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    COMPILING = "compiling"
    GENERATING = "generating"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class AnalysisRun:
    """Handle for one admitted analysis; records the pipeline stage it has reached."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        self.state = AnalysisState.IDLE

    def advance(self, state: AnalysisState) -> None:
        logger.info(f"Analysis for user {self.user_id}: {self.state.value} -> {state.value}")
        self.state = state


class InFlightGuard:
    """
    Per-user mutual exclusion for analysis runs.

    A second run for a user already in flight is rejected, not queued. Admission is an in-memory
    check; it does not lock anything in the database.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._running: Dict[str, AnalysisRun] = {}

    @contextmanager
    def hold(self, user_id: str) -> Iterator[AnalysisRun]:
        """
        Admits one run for ``user_id`` and releases it on every exit path.

        Raises:
            DuplicateAnalysisError: If a run for this user is already in flight.
        """
        run = AnalysisRun(user_id)
        with self._lock:
            if user_id in self._running:
                raise DuplicateAnalysisError(user_id)
            self._running[user_id] = run

        try:
            yield run
        finally:
            with self._lock:
                # A cancelled run may have been replaced by a newer one; leave that one alone.
                if self._running.get(user_id) is run:
                    del self._running[user_id]

    def is_running(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._running

    def state_of(self, user_id: str) -> Optional[AnalysisState]:
        with self._lock:
            run = self._running.get(user_id)
            return run.state if run else None

    def release(self, user_id: str) -> bool:
        """Drops the marker for ``user_id`` without waiting for its run. Returns whether one was held."""
        with self._lock:
            return self._running.pop(user_id, None) is not None
