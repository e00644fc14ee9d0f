from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field


class ZohoTokenResponse(BaseModel):
    """Body of a successful /oauth/v2/token call."""

    access_token: str
    expires_in: int = 3600
    token_type: str = "Bearer"
    api_domain: str | None = None
    scope: str | None = None
    # only present on the authorization_code grant
    refresh_token: str | None = None


class Credential(BaseModel):
    """Access/refresh token pair plus the client that owns them.

    Instances are immutable; a refresh produces a new Credential that replaces the
    old one in a single assignment, so no caller ever observes a half-updated pair.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str | None = Field(default=None, repr=False)
    expires_at: datetime | None = None
    refresh_token: str = Field(repr=False)
    client_id: str
    client_secret: str = Field(repr=False)

    def is_valid(self, margin: timedelta, now: datetime | None = None) -> bool:
        """True when there is an access token that outlives ``now + margin``."""
        if not self.access_token or self.expires_at is None:
            return False
        now = now or datetime.now(UTC)
        return self.expires_at - margin > now

    def refreshed(self, token_response: ZohoTokenResponse, now: datetime | None = None) -> "Credential":
        now = now or datetime.now(UTC)
        return self.model_copy(
            update={
                "access_token": token_response.access_token,
                "expires_at": now + timedelta(seconds=token_response.expires_in),
                "refresh_token": token_response.refresh_token or self.refresh_token,
            }
        )
