from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from dailydrop.core.database import Base
from dailydrop.core.timeutils import utcnow


class Analysis(Base):
    __tablename__ = "analyses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)

    summary = Column(Text, nullable=False)  # one line, 15 words or less
    content = Column(Text, nullable=False)  # three paragraphs
    bullet_points = Column(JSON, nullable=False)  # list[str], 3-5 insights
    is_favorited = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="analyses")
    entry_links = relationship(
        "AnalysisEntryLink",
        back_populates="analysis",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("analyses_user_id_idx", "user_id"),
        Index("analyses_created_at_idx", "created_at"),
        Index("analyses_is_favorited_idx", "is_favorited"),
    )


class AnalysisEntryLink(Base):
    __tablename__ = "analysis_drops"

    id = Column(Integer, primary_key=True, autoincrement=True)
    analysis_id = Column(Integer, ForeignKey("analyses.id", ondelete="CASCADE"), nullable=False)
    drop_id = Column(Integer, ForeignKey("drops.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    analysis = relationship("Analysis", back_populates="entry_links")

    __table_args__ = (
        # An entry is consumed by at most one analysis.
        UniqueConstraint("drop_id", name="analysis_drops_drop_uq"),
        Index("analysis_drops_analysis_id_idx", "analysis_id"),
    )
