from __future__ import annotations

from fastapi import APIRouter, Depends

from ...domain.document_models import UserStatsResponse
from ...security.auth import get_current_user
from ...services.orchestrator import UserStatsService
from ..dependencies import get_user_stats_service


router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(get_current_user)])


@router.get("/stats/{user_id}", response_model=UserStatsResponse)
def user_stats(
    user_id: str,
    stats: UserStatsService = Depends(get_user_stats_service),
) -> UserStatsResponse:
    return UserStatsResponse(stats=stats.stats(user_id))
