"""The signed-in account as seen by route handlers."""

from uuid import UUID

from pydantic import BaseModel, Field


class UserContext(BaseModel):
    """Account behind a dashboard request.

    ``user_id`` is the account id that owns profiles, links, leads,
    lead forms, vCards and claimed tags.
    """

    user_id: UUID
    email: str | None = None
    role: str | None = None


class TokenPayload(BaseModel):
    """Claims read from a Supabase session token. Unknown claims are ignored."""

    sub: str = Field(description="Account UUID")
    exp: int
    iat: int
    email: str | None = None
    role: str | None = None
    aud: str | None = None
    iss: str | None = None

    def to_user_context(self) -> UserContext:
        return UserContext(user_id=UUID(self.sub), email=self.email, role=self.role)


class AuthenticatedResponse(BaseModel):
    """Body of ``GET /health/auth``."""

    authenticated: bool = True
    user_id: str
    email: str | None = None
