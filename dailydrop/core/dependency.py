from fastapi import Header, HTTPException, status
from functools import lru_cache
from dailydrop.analysis.ai_providers.base import TextGenerator
from dailydrop.analysis.ai_providers.openai import OpenAITextGenerator
from dailydrop.analysis.generation import GenerationClient, RateLimiter
from dailydrop.analysis.guard import InFlightGuard
from dailydrop.analysis.service import AnalysisService
from dailydrop.core.database import SessionLocal
import logging

logger = logging.getLogger(__name__)

# Process-wide: one counterparty, one spacing; one in-flight marker per user.
default_rate_limiter = RateLimiter()
default_guard = InFlightGuard()


@lru_cache(maxsize=None)
def _openai() -> TextGenerator:
    return OpenAITextGenerator()


@lru_cache(maxsize=None)
def get_analysis_service() -> AnalysisService:
    """
    FastAPI dependency returning the shared analysis service.
    """
    client = GenerationClient(_openai(), default_rate_limiter)
    logger.info(f"Analysis service ready with model {client.generator.model_tag}")
    return AnalysisService(SessionLocal, client, default_guard)


def get_current_user_id(x_user_id: str = Header(default="")) -> str:
    """
    Resolves the caller's user ID. The authentication layer in front of this service is
    expected to set the ``X-User-Id`` header.
    """
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user_id
