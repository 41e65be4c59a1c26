from typing import List

from sqlalchemy import and_, exists, func
from sqlalchemy.orm import Session
from dailydrop.journals.models import ConversationMessage, JournalEntry
from dailydrop.analysis.models import AnalysisEntryLink
from dailydrop.core.timeutils import EPOCH
from dailydrop.users.models import User


def _unanalyzed_filter(user: User):
    """
    An entry is unanalyzed when it was created at or after the user's watermark
    (epoch if the user was never analyzed) and no analysis has consumed it yet.
    """
    watermark = user.last_analysis_date or EPOCH
    already_linked = exists().where(AnalysisEntryLink.drop_id == JournalEntry.id)
    return and_(
        JournalEntry.user_id == user.id,
        JournalEntry.created_at >= watermark,
        ~already_linked,
    )


def get_unanalyzed_entries(db: Session, user: User) -> List[JournalEntry]:
    """
    Retrieves the user's unanalyzed journal entries, oldest first.

    Args:
        db (Session): SQLAlchemy session.
        user (User): Owner of the entries; supplies the watermark.

    Returns:
        List[JournalEntry]: Entries in chronological order.
    """
    return (
        db.query(JournalEntry)
        .filter(_unanalyzed_filter(user))
        .order_by(JournalEntry.created_at.asc(), JournalEntry.id.asc())
        .all()
    )


def count_unanalyzed_entries(db: Session, user: User) -> int:
    """
    Counts the user's unanalyzed journal entries without loading them.
    """
    return (
        db.query(func.count(JournalEntry.id))
        .filter(_unanalyzed_filter(user))
        .scalar()
        or 0
    )


def get_conversation(db: Session, entry_id: int) -> List[ConversationMessage]:
    """
    Retrieves the conversation transcript attached to a journal entry.

    Args:
        db (Session): SQLAlchemy session.
        entry_id (int): ID of the journal entry.

    Returns:
        List[ConversationMessage]: Messages in chronological order.
    """
    return (
        db.query(ConversationMessage)
        .filter(ConversationMessage.drop_id == entry_id)
        .order_by(ConversationMessage.created_at.asc(), ConversationMessage.id.asc())
        .all()
    )
