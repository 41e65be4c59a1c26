"""Tests for dailydrop.analysis.history."""

from __future__ import annotations

import datetime

import pytest

from dailydrop.analysis.db import create_analysis
from dailydrop.analysis.errors import ErrorKind, HistoryIntegrityError, UserNotFoundError
from dailydrop.analysis.history import check_history_integrity, compile_unanalyzed_history
from dailydrop.analysis.schemas import AnalysisCreate, CompiledEntry
from dailydrop.core.timeutils import utcnow

from conftest import add_entries, make_user


def _entry(**overrides) -> CompiledEntry:
    fields = dict(
        id=1,
        user_id="user-1",
        question_text="What made you pause today?",
        text="A long enough answer to be meaningful.",
        created_at=datetime.datetime(2024, 3, 1, 9, 30),
    )
    fields.update(overrides)
    return CompiledEntry(**fields)


class TestCompileUnanalyzedHistory:
    def test_entries_oldest_first_with_conversations(self, db) -> None:
        make_user(db)
        add_entries(db, "user-1", 3)

        history = compile_unanalyzed_history(db, "user-1")

        assert [e.text[-4:] for e in history] == ["(#1)", "(#2)", "(#3)"]
        assert all(a.created_at < b.created_at for a, b in zip(history, history[1:]))
        for entry in history:
            assert entry.question_text == "What made you pause today?"
            assert [m.from_user for m in entry.conversation] == [False, True]
            assert entry.conversation[0].created_at < entry.conversation[1].created_at

    def test_entry_without_conversation(self, db) -> None:
        make_user(db)
        add_entries(db, "user-1", 1, with_conversation=False)

        history = compile_unanalyzed_history(db, "user-1")

        assert history[0].conversation == []

    def test_only_this_users_entries(self, db) -> None:
        make_user(db, "user-1")
        make_user(db, "user-2")
        add_entries(db, "user-1", 2)
        add_entries(db, "user-2", 4)

        assert len(compile_unanalyzed_history(db, "user-1")) == 2

    def test_entries_before_watermark_excluded(self, db, now) -> None:
        make_user(db, last_analysis_date=now - datetime.timedelta(days=1))
        add_entries(db, "user-1", 2, start=now - datetime.timedelta(days=3))
        add_entries(db, "user-1", 2, start=now - datetime.timedelta(hours=5))

        history = compile_unanalyzed_history(db, "user-1")

        assert len(history) == 2

    def test_linked_entries_excluded(self, db) -> None:
        make_user(db)
        entries = add_entries(db, "user-1", 4)
        data = AnalysisCreate(summary="s", content="c", bullet_points=["b"])
        # keep the watermark behind every entry so only the link excludes them
        create_analysis(db, "user-1", data, [entries[0].id, entries[1].id], watermark=datetime.datetime(2000, 1, 1))

        history = compile_unanalyzed_history(db, "user-1")

        assert [e.id for e in history] == [entries[2].id, entries[3].id]

    def test_unknown_user(self, db) -> None:
        with pytest.raises(UserNotFoundError) as excinfo:
            compile_unanalyzed_history(db, "ghost")
        assert excinfo.value.kind == ErrorKind.VALIDATION

    def test_no_entries_is_integrity_failure(self, db) -> None:
        make_user(db)
        with pytest.raises(HistoryIntegrityError, match="No valid journal entries"):
            compile_unanalyzed_history(db, "user-1")

    def test_short_entry_fails_whole_history(self, db) -> None:
        make_user(db)
        add_entries(db, "user-1", 3)
        add_entries(db, "user-1", 1, text="meh", start=utcnow() - datetime.timedelta(hours=1))

        with pytest.raises(HistoryIntegrityError, match="too short"):
            compile_unanalyzed_history(db, "user-1")


class TestCheckHistoryIntegrity:
    def test_valid_history_passes(self) -> None:
        entries = [_entry(id=1), _entry(id=2)]
        assert [e.id for e in check_history_integrity(entries)] == [1, 2]

    def test_empty(self) -> None:
        with pytest.raises(HistoryIntegrityError) as excinfo:
            check_history_integrity([])
        assert excinfo.value.kind == ErrorKind.INTEGRITY

    @pytest.mark.parametrize("field", ["id", "user_id", "text", "created_at"])
    def test_missing_required_field(self, field: str) -> None:
        with pytest.raises(HistoryIntegrityError, match="missing data"):
            check_history_integrity([_entry(), _entry(**{field: None})])

    def test_whitespace_padding_does_not_count_towards_length(self) -> None:
        with pytest.raises(HistoryIntegrityError, match="too short"):
            check_history_integrity([_entry(text="   short    ")])

    def test_custom_minimum_length(self) -> None:
        assert check_history_integrity([_entry(text="ok")], min_text_length=2)

    def test_invalid_date(self) -> None:
        with pytest.raises(HistoryIntegrityError, match="invalid dates"):
            check_history_integrity([_entry(created_at="not-a-date")])

    def test_iso_string_dates_normalized(self) -> None:
        checked = check_history_integrity([_entry(created_at="2024-03-01T09:30:00+02:00")])
        assert checked[0].created_at == datetime.datetime(2024, 3, 1, 7, 30)

    def test_stale_entries_allowed(self, caplog) -> None:
        old = utcnow() - datetime.timedelta(days=800)
        with caplog.at_level("WARNING"):
            checked = check_history_integrity([_entry(created_at=old)])
        assert len(checked) == 1
        assert "older than 1 year" in caplog.text
