"""HTTP client for the Linket API."""

import logging
from typing import Any
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0


class LinketApiError(Exception):
    """Non-2xx response; ``message`` is the server's own message."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(message)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail") or body.get("error")
        if isinstance(message, str):
            return message
    return response.reason_phrase


class LinketApiClient:
    """Calls the Linket API on behalf of one signed-in account.

    Args:
        base_url: API root, e.g. ``https://api.linket.app``.
        access_token: Supabase access token of the account.
        account_id: The account's user id.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass an ASGI or mock transport).
    """

    def __init__(
        self,
        base_url: str,
        access_token: str,
        account_id: UUID | str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.account_id = str(account_id)
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/api/v1",
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "LinketApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise LinketApiError(504, "Request timed out") from e
        except httpx.RequestError as e:
            raise LinketApiError(503, f"Network error: {e}") from e

        if response.is_error:
            message = _error_message(response)
            logger.debug("%s %s failed with %d: %s", method, path, response.status_code, message)
            raise LinketApiError(response.status_code, message)
        if response.status_code == 204 or not response.content:
            return None
        if response.headers.get("content-type", "").startswith("application/json"):
            return response.json()
        return response.text

    # Account and profiles

    async def get_account_handle(self) -> dict[str, Any]:
        return await self._request("GET", "/account/handle", params={"userId": self.account_id})

    async def list_profiles(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/profiles", params={"accountId": self.account_id})

    async def save_profile(self, profile: dict[str, Any]) -> dict[str, Any]:
        """Create or fully replace a profile and its links."""
        return await self._request(
            "POST", "/profiles", json={"accountId": self.account_id, "profile": profile}
        )

    async def delete_profile(self, profile_id: UUID | str) -> None:
        await self._request("DELETE", f"/profiles/{profile_id}", params={"accountId": self.account_id})

    async def activate_profile(self, profile_id: UUID | str) -> dict[str, Any]:
        return await self._request(
            "POST", f"/profiles/{profile_id}/activate", params={"accountId": self.account_id}
        )

    async def get_public_profile(self, handle: str) -> dict[str, Any]:
        return await self._request("GET", f"/public/{handle}")

    # Lead forms and leads

    async def get_lead_form(self, handle: str) -> dict[str, Any]:
        return await self._request("GET", f"/lead-forms/{handle}", params={"accountId": self.account_id})

    async def save_lead_form(
        self, handle: str, fields: list[dict[str, Any]], settings: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"accountId": self.account_id, "fields": fields}
        if settings is not None:
            body["settings"] = settings
        return await self._request("PUT", f"/lead-forms/{handle}", json=body)

    async def list_lead_form_templates(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/lead-forms/templates")

    async def get_public_lead_form(self, handle: str) -> dict[str, Any]:
        return await self._request("GET", f"/public/{handle}/lead-form")

    async def submit_lead(self, handle: str, submission: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"/public/{handle}/leads", json=submission)

    async def list_leads(self, handle: str | None = None) -> dict[str, Any]:
        params = {"accountId": self.account_id}
        if handle:
            params["handle"] = handle
        return await self._request("GET", "/leads", params=params)

    # Tags and analytics

    async def list_linkets(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/linkets", params={"accountId": self.account_id})
        return data["linkets"]

    async def claim_linket(self, code: str, nickname: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"accountId": self.account_id, "code": code}
        if nickname is not None:
            body["nickname"] = nickname
        return await self._request("POST", "/linkets/claim", json=body)

    async def update_linket(self, assignment_id: UUID | str, **changes: Any) -> dict[str, Any]:
        """PATCH a tag; pass ``profileId``, ``nickname`` and/or ``action``."""
        return await self._request(
            "PATCH", f"/linkets/{assignment_id}", json={"accountId": self.account_id, **changes}
        )

    async def get_analytics(self, days: int = 30) -> dict[str, Any]:
        return await self._request(
            "GET", "/analytics", params={"accountId": self.account_id, "days": days}
        )
