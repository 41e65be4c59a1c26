# schemas.py
from typing import Dict, List, Optional, Union
from datetime import datetime
from pydantic import BaseModel

from dailydrop.analysis.errors import ErrorKind


class BaseSchema(BaseModel):
    class Config:
        from_attributes = True


class AnalysisEligibility(BaseSchema):
    is_eligible: bool
    unanalyzed_count: int
    required_count: int


class ConversationMessageBase(BaseSchema):
    id: int
    text: str
    from_user: bool
    created_at: datetime


class CompiledEntry(BaseSchema):
    """
    One unanalyzed journal entry plus its transcript, as handed to the prompt builder.

    Fields stay optional so a malformed row survives assembly and is rejected by the
    integrity checks with a readable reason instead of a schema error.
    """
    id: Optional[int] = None
    user_id: Optional[str] = None
    question_text: str = "Unknown question"
    text: Optional[str] = None
    created_at: Optional[Union[datetime, str]] = None
    conversation: List[ConversationMessageBase] = []


class ParsedAnalysis(BaseModel):
    summary: str
    content: str
    bullet_points: List[str]


class AnalysisCreate(BaseSchema):
    summary: str
    content: str
    bullet_points: List[str]


class AnalysisBase(BaseSchema):
    id: int
    user_id: str
    summary: str
    content: str
    bullet_points: List[str]
    is_favorited: bool
    created_at: datetime


class AnalysisFavoriteUpdate(BaseSchema):
    is_favorited: bool


class AnalysisMetadata(BaseSchema):
    entry_count: int = 0
    processing_time_ms: int = 0
    user_id: str
    retry_attempts: Optional[int] = None
    required_count: Optional[int] = None
    remaining_minutes: Optional[int] = None


class AnalysisCreationResult(BaseSchema):
    success: bool
    analysis: Optional[AnalysisBase] = None
    kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    metadata: AnalysisMetadata


class AnalysisStats(BaseSchema):
    total_analyses: int = 0
    last_analysis_date: Optional[datetime] = None
    unanalyzed_count: int = 0
    is_eligible: bool = False
    has_ongoing_analysis: bool = False


class AnalysisPreview(BaseSchema):
    eligible: bool
    entry_count: int = 0
    oldest_entry: Optional[datetime] = None
    newest_entry: Optional[datetime] = None
    total_messages: int = 0
    error: Optional[str] = None


class HealthStatus(BaseSchema):
    healthy: bool
    checks: Dict[str, bool]
    error: Optional[str] = None
