"""Dashboard analytics API routes."""

from uuid import UUID

from fastapi import APIRouter, Query, Response

from src.api.deps import CurrentUser, require_account
from src.schemas.analytics import AnalyticsResponse
from src.services.analytics_service import AnalyticsService, clamp_days

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get(
    "",
    response_model=AnalyticsResponse,
    summary="Scan and lead analytics",
    description="Totals, a daily UTC timeline and top tags over the last N days.",
)
async def get_analytics(
    user: CurrentUser,
    account_id: UUID | None = Query(default=None, alias="accountId"),
    days: int = Query(default=30, ge=1, le=365),
) -> AnalyticsResponse:
    """Get analytics for the caller's account.

    Args:
        user: The authenticated user context.
        account_id: Account id from the query string.
        days: Range length in days.

    Returns:
        AnalyticsResponse: Totals, timeline and top tags.
    """
    owner = require_account(user, account_id)
    service = AnalyticsService()
    return AnalyticsResponse(**await service.get_user_analytics(owner, days))


@router.get(
    "/export",
    summary="Export the analytics timeline as CSV",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}},
)
async def export_analytics(
    user: CurrentUser,
    account_id: UUID | None = Query(default=None, alias="accountId"),
    days: int = Query(default=30, ge=1, le=365),
) -> Response:
    """Download the daily timeline as CSV.

    Args:
        user: The authenticated user context.
        account_id: Account id from the query string.
        days: Range length in days.

    Returns:
        Response: CSV attachment.
    """
    owner = require_account(user, account_id)
    service = AnalyticsService()
    body = await service.export_timeline_csv(owner, days)
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="linket-analytics-{clamp_days(days)}d.csv"'},
    )
