"""
Failure taxonomy for the analysis pipeline.

Every stage raises one of the exceptions below; the orchestrator turns them into an
``AnalysisCreationResult`` carrying a stable ``ErrorKind`` tag and a user-facing message.
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    INTEGRITY = "integrity"
    NETWORK = "network"
    LLM = "llm"
    DATABASE = "database"
    UNKNOWN = "unknown"


def insufficient_entries_message(count: int, required: int) -> str:
    return (
        f"You need at least {required} journal entries to create an analysis. "
        f"You currently have {count} unanalyzed entries."
    )


def cooldown_message(remaining_minutes: int) -> str:
    return f"Please wait {remaining_minutes} minutes before creating another analysis."


ERROR_MESSAGES: Dict[str, str] = {
    "USER_NOT_FOUND": "User not found. Please log in again.",
    "DUPLICATE_ANALYSIS": "An analysis is already being processed. Please wait for it to complete before creating another.",
    "NETWORK_ERROR": "Unable to connect to our analysis service. Please check your internet connection and try again.",
    "LLM_SERVICE_ERROR": "Our analysis service is temporarily unavailable. Please try again in a few minutes.",
    "DATABASE_ERROR": "Unable to save your analysis. Please try again or contact support if the problem persists.",
    "INTEGRITY_ERROR": "Analysis data validation failed. Please try again or contact support.",
    "RATE_LIMIT_ERROR": "You've reached the analysis limit. Please wait before creating another analysis.",
    "TIMEOUT_ERROR": "Analysis took too long to complete. Please try again with fewer entries.",
    "GENERIC_ERROR": "Something went wrong while creating your analysis. Please try again.",
}


class AnalysisError(Exception):
    """Base error for the analysis pipeline."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, *, kind: Optional[ErrorKind] = None, metadata: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.metadata = metadata or {}


class UserNotFoundError(AnalysisError):
    kind = ErrorKind.VALIDATION

    def __init__(self, user_id: str):
        super().__init__(ERROR_MESSAGES["USER_NOT_FOUND"], metadata={"user_id": user_id})
        self.user_id = user_id


class DuplicateAnalysisError(AnalysisError):
    kind = ErrorKind.DUPLICATE

    def __init__(self, user_id: str):
        super().__init__(ERROR_MESSAGES["DUPLICATE_ANALYSIS"], metadata={"user_id": user_id})
        self.user_id = user_id


class HistoryIntegrityError(AnalysisError):
    """Compiled journal history is unusable for an analysis."""

    kind = ErrorKind.INTEGRITY


class GenerationError(AnalysisError):
    """The generation service failed on every attempt. ``__cause__`` holds the last failure."""

    kind = ErrorKind.LLM

    def __init__(self, message: str, *, attempts: int = 0):
        super().__init__(message, metadata={"attempts": attempts})
        self.attempts = attempts


_TIMEOUT_MARKERS = ("timeout", "timed out")
_NETWORK_MARKERS = ("network", "fetch", "connection", "connect error", "econnreset", "econnrefused")
_RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "too many requests", "429")


def _failure_text(exc: BaseException) -> str:
    # GenerationError wraps the provider failure; both messages may carry the signal.
    parts = [str(exc)]
    cause = exc.__cause__
    if cause is not None:
        parts.append(str(cause))
        parts.append(type(cause).__name__)
    return " ".join(parts).lower()


def classify_generation_error(exc: BaseException) -> Tuple[ErrorKind, str]:
    """
    Maps a generation failure to an error kind and user message by sniffing its text.

    Timeouts and connectivity problems are network failures, rate limiting is surfaced as a
    validation failure (the user has to wait), anything else is an LLM failure.
    """
    text = _failure_text(exc)
    if any(marker in text for marker in _TIMEOUT_MARKERS):
        return ErrorKind.NETWORK, ERROR_MESSAGES["TIMEOUT_ERROR"]
    if any(marker in text for marker in _NETWORK_MARKERS):
        return ErrorKind.NETWORK, ERROR_MESSAGES["NETWORK_ERROR"]
    if any(marker in text for marker in _RATE_LIMIT_MARKERS):
        return ErrorKind.VALIDATION, ERROR_MESSAGES["RATE_LIMIT_ERROR"]
    return ErrorKind.LLM, ERROR_MESSAGES["LLM_SERVICE_ERROR"]


def classify_database_error(exc: BaseException) -> Tuple[ErrorKind, str]:
    """
    Maps a failed commit to an error kind and user message.

    Constraint violations usually mean a concurrent analysis already consumed the entries.
    """
    text = str(exc).lower()
    if "constraint" in text or "unique" in text:
        return ErrorKind.DUPLICATE, ERROR_MESSAGES["DUPLICATE_ANALYSIS"]
    if "connection" in text or "timeout" in text:
        return ErrorKind.DATABASE, ERROR_MESSAGES["NETWORK_ERROR"]
    return ErrorKind.DATABASE, ERROR_MESSAGES["DATABASE_ERROR"]
