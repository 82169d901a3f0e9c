from typing import Any, Mapping, Optional

from . import crypto
from .client import SpotifyTokenClient
from .config import BrokerConfig
from .errors import BrokerError, DecryptionError, ValidationError, error_response
from .types import BrokerResponse, GrantRequest

OPERATIONS = ("client_token", "exchange_code", "exchange_code_protocol", "refresh_token")


class TokenBroker:
    """The three grant flows, mapped onto one Spotify token endpoint.

    Each operation either returns the success body or raises a BrokerError;
    `handle` is the only place those errors become HTTP responses.
    """

    def __init__(self, config: BrokerConfig, client: Optional[SpotifyTokenClient] = None):
        self.config = config
        self.client = client if client is not None else SpotifyTokenClient(config)

    # ------------------------------- Operations -------------------------------
    def client_token(self) -> dict[str, Any]:
        token = self.client.request_token(GrantRequest.client_credentials())
        return {
            "access_token": token.access_token,
            "expires_in": token.expires_in,
        }

    def exchange_code(self, code: Optional[str], callback_url: Optional[str] = None) -> dict[str, Any]:
        """Trade an authorization code, defaulting to the web callback URL."""
        return self._exchange(code, callback_url or self.config.callback_url)

    def exchange_code_protocol(self, code: Optional[str], callback_url: Optional[str] = None) -> dict[str, Any]:
        """Trade an authorization code, defaulting to the native-app protocol callback."""
        return self._exchange(code, callback_url or self.config.callback_protocol_url)

    def refresh_token(self, refresh_token: Optional[str]) -> dict[str, Any]:
        if not refresh_token:
            raise ValidationError("Missing 'refresh_token' parameter")

        try:
            raw_token = crypto.decrypt(refresh_token, self.config.encryption_secret)
        except DecryptionError as e:
            raise DecryptionError("Invalid 'refresh_token' parameter") from e

        token = self.client.request_token(GrantRequest.refresh(raw_token))
        return {
            "access_token": token.access_token,
            "expires_in": token.expires_in,
            "success": True,
        }

    def _exchange(self, code: Optional[str], redirect_uri: str) -> dict[str, Any]:
        if not code:
            raise ValidationError("Missing 'code' parameter")

        token = self.client.request_token(GrantRequest.authorization_code(code, redirect_uri))
        refresh_token = None
        if token.refresh_token is not None:
            refresh_token = crypto.encrypt(token.refresh_token, self.config.encryption_secret)
        return {
            "access_token": token.access_token,
            "expires_in": token.expires_in,
            "refresh_token": refresh_token,
            "token_type": token.token_type,
            "success": True,
        }

    # -------------------------------- Boundary --------------------------------
    def handle(self, operation: str, body: Optional[Mapping[str, Any]] = None) -> BrokerResponse:
        """Run one operation against a request body and shape the response."""
        if operation not in OPERATIONS:
            raise KeyError(f"Unknown operation '{operation}'")
        body = body or {}

        try:
            if operation == "client_token":
                payload = self.client_token()
            elif operation == "refresh_token":
                payload = self.refresh_token(_field(body, "refresh_token"))
            else:
                payload = getattr(self, operation)(_field(body, "code"), _field(body, "callbackUrl"))
        except BrokerError as e:
            return error_response(e)

        return BrokerResponse(status_code=200, body=payload)


def _field(body: Mapping[str, Any], name: str) -> Optional[str]:
    value = body.get(name)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"Invalid '{name}' parameter")
    return value
