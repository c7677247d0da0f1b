"""Unauthenticated endpoints behind public profile pages."""

from fastapi import APIRouter

from src.api.deps import ClientKey
from src.schemas.lead import LeadSubmission, LeadSubmitResponse
from src.schemas.lead_form import PublicLeadFormField, PublicLeadFormResponse
from src.schemas.profile import AccountSummary, ProfileResponse, PublicProfileResponse
from src.services.lead_form_service import LeadFormService
from src.services.lead_service import LeadService
from src.services.profile_service import ProfileService

router = APIRouter(prefix="/public", tags=["public"])


@router.get(
    "/{handle}",
    response_model=PublicProfileResponse,
    summary="Public profile page data",
    description="Returns the active profile served at a handle, with visible links only.",
    responses={404: {"description": "No profile published under this handle"}},
)
async def get_public_profile(handle: str) -> PublicProfileResponse:
    """Get the profile shown at a public handle.

    Args:
        handle: Handle from the page URL.

    Returns:
        PublicProfileResponse: Account summary and profile.
    """
    service = ProfileService()
    result = await service.get_public_profile(handle)
    return PublicProfileResponse(
        account=AccountSummary(**result["account"]),
        profile=ProfileResponse(**result["profile"]),
    )


@router.get(
    "/{handle}/lead-form",
    response_model=PublicLeadFormResponse,
    summary="Public lead form",
    description="Returns the visible fields and settings of the lead form at a handle.",
    responses={404: {"description": "Unknown handle"}},
)
async def get_public_lead_form(handle: str) -> PublicLeadFormResponse:
    """Get the lead form shown on a public page.

    Args:
        handle: Handle from the page URL.

    Returns:
        PublicLeadFormResponse: Fields and settings.
    """
    service = LeadFormService()
    form = await service.get_public_form(handle)
    return PublicLeadFormResponse(
        handle=form["handle"],
        fields=[PublicLeadFormField.model_validate(field) for field in form["fields"]],
        settings=form["settings"],
    )


@router.post(
    "/{handle}/leads",
    response_model=LeadSubmitResponse,
    summary="Submit a lead",
    description="Stores a visitor's answers to the lead form at a handle.",
    responses={
        404: {"description": "Unknown handle"},
        422: {"description": "Answers do not satisfy the form"},
        429: {"description": "Too many submissions"},
    },
)
async def submit_lead(handle: str, data: LeadSubmission, client_key: ClientKey) -> LeadSubmitResponse:
    """Capture a lead from a public page.

    Args:
        handle: Handle from the page URL.
        data: The visitor's answers.
        client_key: Sender identity for rate limiting.

    Returns:
        LeadSubmitResponse: Message and optional redirect for the visitor.
    """
    service = LeadService()
    result = await service.submit_lead(handle, data, client_key=client_key)
    return LeadSubmitResponse(**result)
