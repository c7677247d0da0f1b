"""Lead form builder API routes."""

from uuid import UUID

from fastapi import APIRouter, Query

from src.api.deps import CurrentUser, require_account
from src.schemas.lead_form import (
    LeadFormFieldResponse,
    LeadFormResponse,
    LeadFormTemplate,
    SaveLeadFormRequest,
)
from src.services.lead_form_service import LeadFormService, list_templates

router = APIRouter(prefix="/lead-forms", tags=["lead-forms"])


def _to_response(form: dict) -> LeadFormResponse:
    return LeadFormResponse(
        handle=form["handle"],
        fields=[LeadFormFieldResponse.model_validate(field) for field in form["fields"]],
        settings=form["settings"],
    )


@router.get(
    "/templates",
    response_model=list[LeadFormTemplate],
    summary="List form templates",
    description="Built-in field sets the builder can start from.",
)
async def get_templates() -> list[LeadFormTemplate]:
    """Return the built-in lead form templates."""
    return list_templates()


@router.get(
    "/{handle}",
    response_model=LeadFormResponse,
    summary="Load a lead form",
    description="Returns every field (including disabled and hidden ones) and the settings.",
)
async def get_lead_form(
    handle: str,
    user: CurrentUser,
    account_id: UUID | None = Query(default=None, alias="accountId"),
) -> LeadFormResponse:
    """Load the caller's lead form for a handle.

    Args:
        handle: Form scope handle.
        user: The authenticated user context.
        account_id: Account id from the query string.

    Returns:
        LeadFormResponse: Fields and settings.
    """
    owner = require_account(user, account_id)
    service = LeadFormService()
    return _to_response(await service.get_form(owner, handle))


@router.put(
    "/{handle}",
    response_model=LeadFormResponse,
    summary="Save a lead form",
    description="Replaces the form's fields and settings.",
    responses={409: {"description": "Duplicate field key"}},
)
async def save_lead_form(handle: str, data: SaveLeadFormRequest, user: CurrentUser) -> LeadFormResponse:
    """Save the caller's lead form for a handle.

    Args:
        handle: Form scope handle.
        data: Account id, fields and settings.
        user: The authenticated user context.

    Returns:
        LeadFormResponse: The stored form.
    """
    owner = require_account(user, data.account_id)
    service = LeadFormService()
    return _to_response(await service.save_form(owner, handle, data.fields, data.settings))
