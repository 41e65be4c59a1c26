"""Tests for dailydrop.analysis.errors."""

from __future__ import annotations

import pytest

from dailydrop.analysis.errors import (
    ERROR_MESSAGES,
    ErrorKind,
    GenerationError,
    classify_database_error,
    classify_generation_error,
    cooldown_message,
    insufficient_entries_message,
)


def _wrapped(cause: Exception) -> GenerationError:
    try:
        raise GenerationError("Generation failed after 3 attempts", attempts=3) from cause
    except GenerationError as e:
        return e


class APIConnectionError(Exception):
    pass


class TestClassifyGenerationError:
    @pytest.mark.parametrize(
        "cause, kind, message_key",
        [
            (TimeoutError("Analysis request timeout after 30s"), ErrorKind.NETWORK, "TIMEOUT_ERROR"),
            (RuntimeError("Request timed out."), ErrorKind.NETWORK, "TIMEOUT_ERROR"),
            (RuntimeError("network unreachable"), ErrorKind.NETWORK, "NETWORK_ERROR"),
            (RuntimeError("fetch failed"), ErrorKind.NETWORK, "NETWORK_ERROR"),
            (RuntimeError("Error code: 429 - Too Many Requests"), ErrorKind.VALIDATION, "RATE_LIMIT_ERROR"),
            (RuntimeError("rate_limit_exceeded"), ErrorKind.VALIDATION, "RATE_LIMIT_ERROR"),
            (ValueError("Empty response from LLM"), ErrorKind.LLM, "LLM_SERVICE_ERROR"),
            (RuntimeError("The server had an error"), ErrorKind.LLM, "LLM_SERVICE_ERROR"),
        ],
    )
    def test_classification(self, cause, kind, message_key) -> None:
        assert classify_generation_error(_wrapped(cause)) == (kind, ERROR_MESSAGES[message_key])

    def test_cause_type_name_is_considered(self) -> None:
        kind, _ = classify_generation_error(_wrapped(APIConnectionError("boom")))
        assert kind == ErrorKind.NETWORK

    def test_timeout_wins_over_network(self) -> None:
        kind, message = classify_generation_error(RuntimeError("connection timeout"))
        assert kind == ErrorKind.NETWORK
        assert message == ERROR_MESSAGES["TIMEOUT_ERROR"]


class TestClassifyDatabaseError:
    @pytest.mark.parametrize(
        "text, kind, message_key",
        [
            ("UNIQUE constraint failed: analysis_drops.analysis_id", ErrorKind.DUPLICATE, "DUPLICATE_ANALYSIS"),
            ("FOREIGN KEY constraint failed", ErrorKind.DUPLICATE, "DUPLICATE_ANALYSIS"),
            ("could not open connection", ErrorKind.DATABASE, "NETWORK_ERROR"),
            ("statement timeout", ErrorKind.DATABASE, "NETWORK_ERROR"),
            ("disk I/O error", ErrorKind.DATABASE, "DATABASE_ERROR"),
        ],
    )
    def test_classification(self, text, kind, message_key) -> None:
        assert classify_database_error(RuntimeError(text)) == (kind, ERROR_MESSAGES[message_key])


class TestMessages:
    def test_insufficient_entries_names_both_counts(self) -> None:
        message = insufficient_entries_message(2, 3)
        assert "at least 3" in message
        assert "have 2" in message

    def test_cooldown_names_remaining_minutes(self) -> None:
        assert "wait 12 minutes" in cooldown_message(12)

    def test_generation_error_records_attempts(self) -> None:
        error = GenerationError("failed", attempts=3)
        assert error.kind == ErrorKind.LLM
        assert error.metadata == {"attempts": 3}
