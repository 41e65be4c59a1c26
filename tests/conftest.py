"""
Pytest configuration for the analysis pipeline tests.

Provides an in-memory database, seeding helpers and a scripted text generator.
"""

from __future__ import annotations

import datetime
import threading
from typing import Iterable, List, Optional, Union

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dailydrop.analysis.ai_providers.base import TextGenerator
from dailydrop.analysis.generation import GenerationClient, RateLimiter
from dailydrop.analysis.guard import InFlightGuard
from dailydrop.analysis.service import AnalysisService
from dailydrop.core.database import Base
from dailydrop.core.timeutils import utcnow
from dailydrop.journals.models import ConversationMessage, JournalEntry, Question
from dailydrop.users.models import User

GOOD_RESPONSE = """SUMMARY: You grow most when you name your fears out loud.

ANALYSIS:
Across your entries you return to the tension between ambition and rest.

You often frame setbacks as personal failures, a classic all-or-nothing pattern.

Try scheduling one deliberate pause each day and noting what it changes.

INSIGHTS:
• You reflect honestly when the stakes feel high
• Rest is a recurring blind spot
• Naming emotions reduces their grip on you
"""


class ScriptedGenerator(TextGenerator):
    """Returns (or raises) scripted outcomes in order; repeats the last one when exhausted."""

    model_tag = "scripted"

    def __init__(self, outcomes: Iterable[Union[str, BaseException]] = (GOOD_RESPONSE,)):
        self.outcomes: List[Union[str, BaseException]] = list(outcomes)
        self.prompts: List[str] = []
        self._lock = threading.Lock()

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def generate(self, prompt: str) -> str:
        with self._lock:
            index = min(len(self.prompts), len(self.outcomes) - 1)
            self.prompts.append(prompt)
        outcome = self.outcomes[index]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def file_session_factory(tmp_path):
    """File-backed database; each thread gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'dailydrop.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def now():
    return utcnow()


def make_user(db, user_id: str = "user-1", last_analysis_date: Optional[datetime.datetime] = None) -> User:
    user = User(id=user_id, username=user_id, name=user_id.title(), last_analysis_date=last_analysis_date)
    db.add(user)
    db.commit()
    return user


def add_entries(
    db,
    user_id: str,
    count: int,
    *,
    start: Optional[datetime.datetime] = None,
    spacing: datetime.timedelta = datetime.timedelta(hours=1),
    text: str = "Today I noticed how much I rush through mornings.",
    with_conversation: bool = True,
) -> List[JournalEntry]:
    """Adds ``count`` entries, oldest first, each with a two-message conversation."""
    question = db.query(Question).first()
    if question is None:
        question = Question(text="What made you pause today?")
        db.add(question)
        db.flush()

    start = start or utcnow() - datetime.timedelta(days=2)
    entries = []
    for i in range(count):
        created_at = start + spacing * i
        entry = JournalEntry(
            question_id=question.id,
            user_id=user_id,
            text=f"{text} (#{i + 1})",
            created_at=created_at,
        )
        db.add(entry)
        db.flush()
        if with_conversation:
            db.add(ConversationMessage(
                drop_id=entry.id,
                text="What led you to this answer?",
                from_user=False,
                created_at=created_at + datetime.timedelta(minutes=1),
            ))
            db.add(ConversationMessage(
                drop_id=entry.id,
                text="I think I was tired.",
                from_user=True,
                created_at=created_at + datetime.timedelta(minutes=2),
            ))
            entry.message_count = 2
        entries.append(entry)
    db.commit()
    return entries


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def rate_limiter(sleeper):
    return RateLimiter(0.0, sleep=sleeper)


@pytest.fixture
def generation_client(generator, rate_limiter, sleeper):
    client = GenerationClient(generator, rate_limiter, max_retries=2, timeout=5, sleep=sleeper)
    yield client
    client.shutdown()


@pytest.fixture
def guard():
    return InFlightGuard()


@pytest.fixture
def service(session_factory, generation_client, guard):
    return AnalysisService(session_factory, generation_client, guard, min_entries=3)
