from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.orm import relationship
from dailydrop.core.database import Base
from dailydrop.core.timeutils import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)  # Identity key issued by the auth provider
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, nullable=True)
    name = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Watermark: entries created before this are already analyzed. Null means never analyzed.
    last_analysis_date = Column(DateTime, nullable=True)

    drops = relationship("JournalEntry", back_populates="user", cascade="all, delete-orphan")
    analyses = relationship("Analysis", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (Index("users_last_analysis_date_idx", "last_analysis_date"),)
