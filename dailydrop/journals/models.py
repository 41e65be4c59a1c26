from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from dailydrop.core.database import Base
from dailydrop.core.timeutils import utcnow


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    text = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    category = Column(String, nullable=True, default="general")
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class JournalEntry(Base):
    """A "drop": the user's answer to the daily question."""

    __tablename__ = "drops"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=True)

    text = Column("answer", Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    message_count = Column(Integer, nullable=False, default=0)
    is_favorited = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="drops")
    question = relationship("Question", lazy="joined")
    messages = relationship(
        "ConversationMessage",
        back_populates="drop",
        order_by="ConversationMessage.created_at",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("drops_user_created_at_idx", "user_id", "created_at"),)


class ConversationMessage(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    drop_id = Column(Integer, ForeignKey("drops.id"), index=True, nullable=False)
    text = Column(Text, nullable=False)
    from_user = Column(Boolean, nullable=False, default=False)  # False: coach
    created_at = Column(DateTime, nullable=False, default=utcnow)

    drop = relationship("JournalEntry", back_populates="messages")
