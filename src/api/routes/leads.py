"""Lead inbox API routes."""

from uuid import UUID

from fastapi import APIRouter, Query, Response

from src.api.deps import CurrentUser, require_account
from src.schemas.lead import LeadListResponse, LeadResponse
from src.services.lead_service import LeadService

router = APIRouter(prefix="/leads", tags=["leads"])


@router.get(
    "",
    response_model=LeadListResponse,
    summary="List leads",
    description="Returns the account's leads, newest first.",
)
async def list_leads(
    user: CurrentUser,
    account_id: UUID | None = Query(default=None, alias="accountId"),
    handle: str | None = Query(default=None, description="Only leads from this form"),
    limit: int = Query(default=100, ge=1, le=1000),
) -> LeadListResponse:
    """List the caller's leads.

    Args:
        user: The authenticated user context.
        account_id: Account id from the query string.
        handle: Optional form scope filter.
        limit: Maximum number of leads.

    Returns:
        LeadListResponse: Leads and their count.
    """
    owner = require_account(user, account_id)
    service = LeadService()
    leads = await service.list_leads(owner, handle=handle, limit=limit)
    return LeadListResponse(leads=[LeadResponse.model_validate(lead) for lead in leads], total=len(leads))


@router.get(
    "/export",
    summary="Export leads as CSV",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}},
)
async def export_leads(
    user: CurrentUser,
    account_id: UUID | None = Query(default=None, alias="accountId"),
    handle: str | None = Query(default=None),
) -> Response:
    """Download the caller's leads as CSV.

    Args:
        user: The authenticated user context.
        account_id: Account id from the query string.
        handle: Optional form scope filter.

    Returns:
        Response: CSV attachment.
    """
    owner = require_account(user, account_id)
    service = LeadService()
    body = await service.export_leads_csv(owner, handle=handle)
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="linket-leads.csv"'},
    )
