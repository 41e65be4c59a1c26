import datetime
import logging
import math
import time
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from dailydrop.analysis.db import (
    count_user_analyses,
    create_analysis,
    get_analysis_eligibility,
    get_user_analyses,
)
from dailydrop.analysis.errors import (
    ERROR_MESSAGES,
    AnalysisError,
    DuplicateAnalysisError,
    ErrorKind,
    GenerationError,
    classify_database_error,
    classify_generation_error,
    cooldown_message,
    insufficient_entries_message,
)
from dailydrop.analysis.generation import GenerationClient
from dailydrop.analysis.guard import AnalysisRun, AnalysisState, InFlightGuard
from dailydrop.analysis.history import compile_unanalyzed_history
from dailydrop.analysis.parser import parse_analysis_response
from dailydrop.analysis.prompt_builder import build_analysis_prompt
from dailydrop.analysis.schemas import (
    AnalysisBase,
    AnalysisCreate,
    AnalysisCreationResult,
    AnalysisMetadata,
    AnalysisPreview,
    AnalysisStats,
    CompiledEntry,
    HealthStatus,
)
from dailydrop.core.config import ANALYSIS_COOLDOWN_MINUTES, ANALYSIS_MIN_ENTRIES
from dailydrop.core.timeutils import utcnow
from dailydrop.users.db import get_user

logger = logging.getLogger(__name__)

HEALTH_CHECK_USER_ID = "health-check-user"

# Error metadata keys copied into the result metadata.
_METADATA_EXTRAS = ("entry_count", "required_count", "remaining_minutes", "retry_attempts")


class AnalysisService:
    """
    Runs the analysis pipeline for one user per call:

    validate eligibility and cooldown, compile unanalyzed history, generate, parse, persist.

    Failures never escape as exceptions; they come back as an ``AnalysisCreationResult`` with a
    kind and a user-facing message. Storage is left untouched unless the final commit succeeds.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        generation_client: GenerationClient,
        guard: InFlightGuard,
        *,
        min_entries: int = ANALYSIS_MIN_ENTRIES,
        cooldown: datetime.timedelta = datetime.timedelta(minutes=ANALYSIS_COOLDOWN_MINUTES),
        now: Callable[[], datetime.datetime] = utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.session_factory = session_factory
        self.generation_client = generation_client
        self.guard = guard
        self.min_entries = min_entries
        self.cooldown = cooldown
        self._now = now
        self._monotonic = monotonic

    # ------------------------------------------------------------------ pipeline

    def create_analysis_for_user(self, user_id: str) -> AnalysisCreationResult:
        """
        Creates a new analysis from the user's unanalyzed entries.

        Args:
            user_id (str): ID of the user.

        Returns:
            AnalysisCreationResult: The stored analysis with metadata, or a typed failure.
        """
        started = self._monotonic()
        stats: Dict[str, Any] = {"entry_count": 0}
        logger.info(f"Starting analysis creation workflow for user: {user_id}")

        try:
            with self.guard.hold(user_id) as run:
                try:
                    analysis = self._run_pipeline(run, user_id, stats)
                except AnalysisError as e:
                    run.advance(AnalysisState.FAILED)
                    logger.error(f"Analysis for user {user_id} failed ({e.kind.value}): {e}")
                    stats.update({k: v for k, v in e.metadata.items() if k in _METADATA_EXTRAS})
                    return self._failure(user_id, e.kind, e.message, stats, started)
                except Exception as e:
                    run.advance(AnalysisState.FAILED)
                    logger.exception(f"Analysis creation workflow failed for user {user_id}: {e}")
                    return self._failure(user_id, ErrorKind.UNKNOWN, ERROR_MESSAGES["GENERIC_ERROR"], stats, started)
        except DuplicateAnalysisError as e:
            logger.warning(f"Rejected duplicate analysis request for user {user_id}")
            return self._failure(user_id, e.kind, e.message, stats, started)

        elapsed_ms = self._elapsed_ms(started)
        logger.info(f"Analysis created successfully for user {user_id} in {elapsed_ms}ms")
        logger.info(f'Analysis ID: {analysis.id}, Summary: "{analysis.summary}"')
        return AnalysisCreationResult(
            success=True,
            analysis=analysis,
            metadata=AnalysisMetadata(user_id=user_id, processing_time_ms=elapsed_ms, **stats),
        )

    def _run_pipeline(self, run: AnalysisRun, user_id: str, stats: Dict[str, Any]) -> AnalysisBase:
        run.advance(AnalysisState.VALIDATING)
        with self.session_factory() as db:
            self._validate(db, user_id, stats)

            # Entries written after this instant stay above the new watermark.
            compiled_at = self._now()
            run.advance(AnalysisState.COMPILING)
            history = self._compile(db, user_id, stats)

        run.advance(AnalysisState.GENERATING)
        data = self._generate(history, stats)

        run.advance(AnalysisState.PERSISTING)
        analysis = self._persist(user_id, data, history, compiled_at)

        run.advance(AnalysisState.DONE)
        return analysis

    def _validate(self, db: Session, user_id: str, stats: Dict[str, Any]) -> None:
        try:
            eligibility = get_analysis_eligibility(db, user_id, self.min_entries)
            user = get_user(db, user_id)
        except SQLAlchemyError as e:
            raise AnalysisError(ERROR_MESSAGES["NETWORK_ERROR"], kind=ErrorKind.DATABASE) from e

        stats["entry_count"] = eligibility.unanalyzed_count
        stats["required_count"] = eligibility.required_count
        if not eligibility.is_eligible:
            raise AnalysisError(
                insufficient_entries_message(eligibility.unanalyzed_count, eligibility.required_count),
                kind=ErrorKind.VALIDATION,
            )

        if user is not None and user.last_analysis_date is not None:
            since_last = self._now() - user.last_analysis_date
            if since_last < self.cooldown:
                remaining = math.ceil((self.cooldown - since_last).total_seconds() / 60)
                raise AnalysisError(
                    cooldown_message(remaining),
                    kind=ErrorKind.VALIDATION,
                    metadata={"remaining_minutes": remaining},
                )

    def _compile(self, db: Session, user_id: str, stats: Dict[str, Any]) -> List[CompiledEntry]:
        try:
            history = compile_unanalyzed_history(db, user_id)
        except SQLAlchemyError as e:
            raise AnalysisError(ERROR_MESSAGES["NETWORK_ERROR"], kind=ErrorKind.DATABASE) from e

        stats["entry_count"] = len(history)
        if len(history) < self.min_entries:
            raise AnalysisError(
                insufficient_entries_message(len(history), self.min_entries),
                kind=ErrorKind.VALIDATION,
            )

        total_messages = sum(len(entry.conversation) for entry in history)
        logger.info(f"Validated eligibility: {len(history)} entries with {total_messages} messages available for analysis")
        return history

    def _generate(self, history: List[CompiledEntry], stats: Dict[str, Any]) -> AnalysisCreate:
        prompt = build_analysis_prompt(history)
        try:
            raw, attempts = self.generation_client.generate_with_attempts(prompt)
        except GenerationError as e:
            stats["retry_attempts"] = e.attempts
            kind, message = classify_generation_error(e)
            raise AnalysisError(message, kind=kind) from e
        stats["retry_attempts"] = attempts
        logger.info("LLM analysis generated successfully")

        parsed = parse_analysis_response(raw)
        data = AnalysisCreate(
            summary=parsed.summary.strip(),
            content=parsed.content.strip(),
            bullet_points=[point.strip() for point in parsed.bullet_points if point.strip()],
        )
        if not data.summary or not data.content:
            raise AnalysisError(ERROR_MESSAGES["INTEGRITY_ERROR"], kind=ErrorKind.INTEGRITY)
        return data

    def _persist(
        self,
        user_id: str,
        data: AnalysisCreate,
        history: List[CompiledEntry],
        compiled_at: datetime.datetime,
    ) -> AnalysisBase:
        entry_ids = [entry.id for entry in history]
        newest = max(entry.created_at for entry in history)
        watermark = max(compiled_at, newest)

        with self.session_factory() as db:
            try:
                analysis = create_analysis(db, user_id, data, entry_ids, watermark)
            except AnalysisError:
                raise
            except Exception as e:
                logger.error(f"Database storage failed: {e}")
                kind, message = classify_database_error(e)
                raise AnalysisError(message, kind=kind) from e
            return AnalysisBase.model_validate(analysis)

    def _elapsed_ms(self, started: float) -> int:
        return int((self._monotonic() - started) * 1000)

    def _failure(
        self,
        user_id: str,
        kind: ErrorKind,
        message: str,
        stats: Dict[str, Any],
        started: float,
    ) -> AnalysisCreationResult:
        return AnalysisCreationResult(
            success=False,
            kind=kind,
            message=message,
            metadata=AnalysisMetadata(user_id=user_id, processing_time_ms=self._elapsed_ms(started), **stats),
        )

    # ------------------------------------------------------------------ in-flight runs

    def has_ongoing_analysis(self, user_id: str) -> bool:
        return self.guard.is_running(user_id)

    def cancel_ongoing_analysis(self, user_id: str) -> bool:
        """
        Releases the in-flight marker so the user may start again. The running call itself is not
        interrupted and will still commit if it gets that far.
        """
        return self.guard.release(user_id)

    # ------------------------------------------------------------------ read-only helpers

    def get_analysis_stats(self, user_id: str) -> AnalysisStats:
        """Analysis counters for monitoring. Storage failures yield zeroed stats."""
        try:
            with self.session_factory() as db:
                latest = get_user_analyses(db, user_id, limit=1, offset=0)
                eligibility = get_analysis_eligibility(db, user_id, self.min_entries)
                return AnalysisStats(
                    total_analyses=count_user_analyses(db, user_id),
                    last_analysis_date=latest[0].created_at if latest else None,
                    unanalyzed_count=eligibility.unanalyzed_count,
                    is_eligible=eligibility.is_eligible,
                    has_ongoing_analysis=self.guard.is_running(user_id),
                )
        except Exception as e:
            logger.error(f"Error getting analysis stats for user {user_id}: {e}")
            return AnalysisStats()

    def preview_analysis(self, user_id: str) -> AnalysisPreview:
        """Describes what a new analysis would cover, without generating or writing anything."""
        try:
            with self.session_factory() as db:
                eligibility = get_analysis_eligibility(db, user_id, self.min_entries)
                if not eligibility.is_eligible:
                    return AnalysisPreview(
                        eligible=False,
                        entry_count=eligibility.unanalyzed_count,
                        error=insufficient_entries_message(eligibility.unanalyzed_count, eligibility.required_count),
                    )
                history = compile_unanalyzed_history(db, user_id)
        except AnalysisError as e:
            return AnalysisPreview(eligible=False, error=e.message)
        except Exception as e:
            logger.error(f"Preview failed for user {user_id}: {e}")
            return AnalysisPreview(eligible=False, error=f"Preview failed: {e}")

        dates = sorted(entry.created_at for entry in history)
        return AnalysisPreview(
            eligible=True,
            entry_count=len(history),
            oldest_entry=dates[0],
            newest_entry=dates[-1],
            total_messages=sum(len(entry.conversation) for entry in history),
        )

    def health_check(self) -> HealthStatus:
        checks = {
            "generation_provider": False,
            "database_connection": False,
            "storage_service": False,
        }
        try:
            checks["generation_provider"] = self.generation_client.generator.is_configured()

            with self.session_factory() as db:
                try:
                    db.execute(text("SELECT 1"))
                    checks["database_connection"] = True
                except Exception as e:
                    logger.error(f"Database health check failed: {e}")

                try:
                    get_user_analyses(db, HEALTH_CHECK_USER_ID, limit=1, offset=0)
                    checks["storage_service"] = True
                except Exception as e:
                    logger.error(f"Storage health check failed: {e}")
        except Exception as e:
            return HealthStatus(healthy=False, checks=checks, error=str(e))

        return HealthStatus(healthy=all(checks.values()), checks=checks)
