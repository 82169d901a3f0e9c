from dataclasses import dataclass, field, fields
from typing import Any, Optional


@dataclass
class GrantRequest:
    grant_type: str
    redirect_uri: Optional[str] = None
    code: Optional[str] = None
    refresh_token: Optional[str] = None

    @classmethod
    def client_credentials(cls) -> "GrantRequest":
        return cls(grant_type="client_credentials")

    @classmethod
    def authorization_code(cls, code: str, redirect_uri: str) -> "GrantRequest":
        return cls(grant_type="authorization_code", redirect_uri=redirect_uri, code=code)

    @classmethod
    def refresh(cls, refresh_token: str) -> "GrantRequest":
        return cls(grant_type="refresh_token", refresh_token=refresh_token)

    def as_form(self) -> dict[str, str]:
        """Form fields for the token endpoint, leaving out anything unset."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class TokenResponse:
    access_token: str
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None

    @classmethod
    def from_json(cls, payload: Any) -> "TokenResponse":
        # Imported here, errors builds responses out of this module
        from .errors import UpstreamError

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise UpstreamError(
                200,
                str(payload),
                msg="Received a token response without an access token from Spotify.",
            )
        return cls(
            access_token=payload["access_token"],
            expires_in=payload.get("expires_in"),
            token_type=payload.get("token_type"),
            refresh_token=payload.get("refresh_token"),
            scope=payload.get("scope"),
        )


@dataclass
class BrokerResponse:
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)
