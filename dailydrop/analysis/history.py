import datetime
import logging
from typing import List

from sqlalchemy.orm import Session

from dailydrop.analysis.errors import HistoryIntegrityError, UserNotFoundError
from dailydrop.analysis.schemas import CompiledEntry, ConversationMessageBase
from dailydrop.core.config import ENTRY_MIN_TEXT_LENGTH
from dailydrop.core.timeutils import as_naive_utc, utcnow
from dailydrop.journals.db import get_conversation, get_unanalyzed_entries
from dailydrop.users.db import get_user

logger = logging.getLogger(__name__)

STALE_ENTRY_AGE = datetime.timedelta(days=365)


def compile_unanalyzed_history(
    db: Session,
    user_id: str,
    min_text_length: int = ENTRY_MIN_TEXT_LENGTH,
) -> List[CompiledEntry]:
    """
    Loads the user's unanalyzed entries with their full conversations and validates them.

    Args:
        db (Session): SQLAlchemy session.
        user_id (str): ID of the user.
        min_text_length (int): Shortest entry text considered meaningful.

    Returns:
        List[CompiledEntry]: Entries oldest to newest, each with its chronological transcript.

    Raises:
        UserNotFoundError: If the user does not exist.
        HistoryIntegrityError: If the compiled history is empty or malformed.
    """
    user = get_user(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    compiled: List[CompiledEntry] = []
    for entry in get_unanalyzed_entries(db, user):
        messages = get_conversation(db, entry.id)
        compiled.append(
            CompiledEntry(
                id=entry.id,
                user_id=entry.user_id,
                question_text=(entry.question.text if entry.question else None) or "Unknown question",
                text=entry.text,
                created_at=entry.created_at,
                conversation=[ConversationMessageBase.model_validate(m) for m in messages],
            )
        )

    logger.info(f"Retrieved {len(compiled)} unanalyzed entries for user {user_id}")
    return check_history_integrity(compiled, min_text_length=min_text_length)


def _parse_timestamp(value) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return as_naive_utc(value)
    if isinstance(value, str) and value.strip():
        return as_naive_utc(datetime.datetime.fromisoformat(value.strip()))
    raise ValueError(f"not a timestamp: {value!r}")


def check_history_integrity(
    entries: List[CompiledEntry],
    min_text_length: int = ENTRY_MIN_TEXT_LENGTH,
) -> List[CompiledEntry]:
    """
    Rejects a compiled history that would produce a misleading analysis.

    A single bad entry fails the whole history. Entries older than a year are allowed but logged.

    Returns:
        List[CompiledEntry]: The same entries with timestamps normalized to naive UTC datetimes.
    """
    if not entries:
        raise HistoryIntegrityError("No valid journal entries found for analysis.")

    checked: List[CompiledEntry] = []
    for entry in entries:
        if entry.id is None or entry.text is None or entry.user_id is None or entry.created_at is None:
            raise HistoryIntegrityError(
                "Some journal entries have missing data. Please contact support.",
                metadata={"entry_id": entry.id},
            )

        if len(entry.text.strip()) < min_text_length:
            raise HistoryIntegrityError(
                "Some journal entries are too short for meaningful analysis.",
                metadata={"entry_id": entry.id},
            )

        try:
            created_at = _parse_timestamp(entry.created_at)
        except ValueError:
            raise HistoryIntegrityError(
                "Some journal entries have invalid dates. Please contact support.",
                metadata={"entry_id": entry.id},
            )

        checked.append(entry.model_copy(update={"created_at": created_at}))

    oldest = min(e.created_at for e in checked)
    if oldest < utcnow() - STALE_ENTRY_AGE:
        logger.warning(f"Analysis includes entries older than 1 year for user: {checked[0].user_id}")

    return checked
