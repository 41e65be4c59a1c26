import datetime
import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session
from dailydrop.analysis.models import Analysis, AnalysisEntryLink
from dailydrop.analysis.schemas import AnalysisCreate, AnalysisEligibility
from dailydrop.analysis.errors import DuplicateAnalysisError, UserNotFoundError
from dailydrop.core.config import ANALYSIS_MIN_ENTRIES
from dailydrop.core.timeutils import as_naive_utc, utcnow
from dailydrop.journals.db import count_unanalyzed_entries
from dailydrop.journals.models import JournalEntry
from dailydrop.users.db import get_user
from dailydrop.users.models import User

logger = logging.getLogger(__name__)


def get_analysis_eligibility(db: Session, user_id: str, required_count: int = ANALYSIS_MIN_ENTRIES) -> AnalysisEligibility:
    """
    Computes whether a user has enough unanalyzed entries for a new analysis.

    Args:
        db (Session): SQLAlchemy session.
        user_id (str): ID of the user.
        required_count (int): Minimum number of unanalyzed entries.

    Returns:
        AnalysisEligibility: Eligibility flag with the current and required counts.

    Raises:
        UserNotFoundError: If the user does not exist.
    """
    user = get_user(db, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    unanalyzed = count_unanalyzed_entries(db, user)
    return AnalysisEligibility(
        is_eligible=unanalyzed >= required_count,
        unanalyzed_count=unanalyzed,
        required_count=required_count,
    )


def create_analysis(
    db: Session,
    user_id: str,
    data: AnalysisCreate,
    entry_ids: Sequence[int],
    watermark: Optional[datetime.datetime] = None,
) -> Analysis:
    """
    Stores an analysis, links it to the entries it consumed and advances the user's watermark.

    All three writes share one transaction; on any failure the session is rolled back and the
    error is re-raised, leaving no analysis, no links and the old watermark.

    Args:
        db (Session): SQLAlchemy session.
        user_id (str): Owner of the analysis.
        data (AnalysisCreate): Parsed analysis fields.
        entry_ids (Sequence[int]): Journal entries included in the analysis.
        watermark (datetime): New watermark; defaults to now.

    Returns:
        Analysis: The committed analysis.

    Raises:
        UserNotFoundError: If the user does not exist.
        DuplicateAnalysisError: If any entry already belongs to an analysis. The unique
            ``drop_id`` constraint backs this up against a concurrent commit.
    """
    try:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise UserNotFoundError(user_id)

        if entry_ids:
            consumed = (
                db.query(AnalysisEntryLink.drop_id)
                .filter(AnalysisEntryLink.drop_id.in_(list(entry_ids)))
                .all()
            )
            if consumed:
                logger.warning(
                    f"Entries {sorted(row.drop_id for row in consumed)} already belong to an analysis; "
                    f"rejecting analysis for user {user_id}"
                )
                raise DuplicateAnalysisError(user_id)

        now = utcnow()
        analysis = Analysis(
            user_id=user_id,
            summary=data.summary,
            content=data.content,
            bullet_points=list(data.bullet_points),
            is_favorited=False,
            created_at=now,
        )
        db.add(analysis)
        db.flush()

        for entry_id in entry_ids:
            db.add(AnalysisEntryLink(analysis_id=analysis.id, drop_id=entry_id, created_at=now))
        db.flush()

        user.last_analysis_date = as_naive_utc(watermark) or now
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(analysis)
    logger.info(f"Stored analysis {analysis.id} for user {user_id} covering {len(entry_ids)} entries")
    return analysis


def get_user_analyses(db: Session, user_id: str, limit: int = 20, offset: int = 0) -> List[Analysis]:
    """
    Retrieves a user's analyses, newest first, paginated.
    """
    return (
        db.query(Analysis)
        .filter(Analysis.user_id == user_id)
        .order_by(Analysis.created_at.desc(), Analysis.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def count_user_analyses(db: Session, user_id: str) -> int:
    return db.query(Analysis).filter(Analysis.user_id == user_id).count()


def get_analysis(db: Session, analysis_id: int) -> Optional[Analysis]:
    return db.query(Analysis).filter(Analysis.id == analysis_id).first()


def update_analysis_favorite(db: Session, analysis_id: int, is_favorited: bool) -> Optional[Analysis]:
    """
    Sets the favorite flag on an analysis.

    Returns:
        Optional[Analysis]: Updated analysis or None if not found.
    """
    analysis = get_analysis(db, analysis_id)
    if analysis is None:
        return None
    analysis.is_favorited = is_favorited
    db.commit()
    db.refresh(analysis)
    return analysis


def get_analysis_entries(db: Session, analysis_id: int) -> List[JournalEntry]:
    """
    Retrieves the journal entries an analysis was built from, oldest first.
    """
    return (
        db.query(JournalEntry)
        .join(AnalysisEntryLink, AnalysisEntryLink.drop_id == JournalEntry.id)
        .filter(AnalysisEntryLink.analysis_id == analysis_id)
        .order_by(JournalEntry.created_at.asc())
        .all()
    )
