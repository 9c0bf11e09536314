# app/routers/analytics.py
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.stats_repo import StatsRepository
from app.schemas.stats import AnalyticsRange, AnalyticsSummary
from app.services.stats_service import StatsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])

repo = StatsRepository()
service = StatsService(repo)


@router.get(
    "",
    response_model=AnalyticsSummary,
    dependencies=[Depends(require_admin)],
)
def get_analytics(
    range_key: AnalyticsRange = Query(default="30days", alias="range"),
    session: Session = Depends(get_session),
):
    """
    Aggregated statistics for the admin dashboard.

    Query params:
      - range: 7days | 30days | 90days | year (default 30days)

    Only accessible to users with role='admin'.
    """
    return service.get_analytics(session, range_key)
