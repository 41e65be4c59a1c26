from fastapi import APIRouter, Depends, HTTPException, Query, Security, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import List

import logging

logger = logging.getLogger(__name__)

from dailydrop.core.database import get_db
from dailydrop.core.dependency import get_analysis_service, get_current_user_id
from dailydrop.analysis.db import get_analysis, get_analysis_eligibility, get_user_analyses, update_analysis_favorite
from dailydrop.analysis.errors import UserNotFoundError
from dailydrop.analysis.schemas import AnalysisBase, AnalysisEligibility, AnalysisFavoriteUpdate, HealthStatus
from dailydrop.analysis.service import AnalysisService

router = APIRouter(prefix="/analyses", tags=["Analysis"])


def _owned_analysis(db: Session, analysis_id: int, user_id: str):
    analysis = get_analysis(db, analysis_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    if analysis.user_id != user_id:
        raise HTTPException(status_code=403, detail="Access denied")
    return analysis


@router.get(
    "/eligibility",
    response_model=AnalysisEligibility,
    summary="Check analysis eligibility",
    description="Report how many unanalyzed entries the user has and how many an analysis requires.",
    responses={
        200: {"description": "Eligibility returned."},
        401: {"description": "Unauthorized - missing user identity."},
        404: {"description": "User not found."},
        500: {"description": "Failed to check eligibility."},
    },
)
def eligibility_route(
    db: Session = Depends(get_db),
    user_id: str = Security(get_current_user_id),
) -> AnalysisEligibility:
    try:
        return get_analysis_eligibility(db, user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception as e:
        logger.error(f"Error checking analysis eligibility for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to check analysis eligibility")


@router.post(
    "",
    response_model=AnalysisBase,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new analysis",
    description="""
                Generate an analysis from the user's unanalyzed journal entries and their conversations.
                Fails with 400 when the user is not eligible, is cooling down, already has an analysis
                in progress, or when generation or storage fails.
                """,
    responses={
        201: {"description": "Analysis created."},
        400: {"description": "Analysis could not be created; body carries message, kind and metadata."},
        401: {"description": "Unauthorized - missing user identity."},
        500: {"description": "Internal server error."},
    },
)
def create_analysis_route(
    user_id: str = Security(get_current_user_id),
    service: AnalysisService = Depends(get_analysis_service),
):
    try:
        result = service.create_analysis_for_user(user_id)
    except Exception as e:
        logger.error(f"Error creating analysis for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create analysis")

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "message": result.message,
                "kind": result.kind.value if result.kind else None,
                "metadata": result.metadata.model_dump(mode="json"),
            },
        )
    return result.analysis


@router.get(
    "",
    response_model=List[AnalysisBase],
    summary="List analyses",
    description="Return the user's analyses, newest first.",
)
def list_analyses_route(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    user_id: str = Security(get_current_user_id),
) -> List[AnalysisBase]:
    return get_user_analyses(db, user_id, limit, offset)


@router.get(
    "/health",
    response_model=HealthStatus,
    summary="Analysis service health",
    responses={
        200: {"description": "All dependencies healthy."},
        503: {"description": "At least one dependency is unavailable."},
    },
)
def health_route(service: AnalysisService = Depends(get_analysis_service)):
    health = service.health_check()
    if not health.healthy:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=health.model_dump())
    return health


@router.get(
    "/{analysis_id}",
    response_model=AnalysisBase,
    summary="Fetch specific analysis",
    responses={
        200: {"description": "Analysis returned."},
        403: {"description": "Analysis belongs to another user."},
        404: {"description": "Analysis not found."},
    },
)
def read_analysis_route(
    analysis_id: int,
    db: Session = Depends(get_db),
    user_id: str = Security(get_current_user_id),
) -> AnalysisBase:
    return _owned_analysis(db, analysis_id, user_id)


@router.put(
    "/{analysis_id}/favorite",
    response_model=AnalysisBase,
    summary="Set favorite status of an analysis",
    responses={
        200: {"description": "Favorite status updated."},
        403: {"description": "Analysis belongs to another user."},
        404: {"description": "Analysis not found."},
    },
)
def favorite_analysis_route(
    analysis_id: int,
    body: AnalysisFavoriteUpdate,
    db: Session = Depends(get_db),
    user_id: str = Security(get_current_user_id),
) -> AnalysisBase:
    _owned_analysis(db, analysis_id, user_id)
    return update_analysis_favorite(db, analysis_id, body.is_favorited)
