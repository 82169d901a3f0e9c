from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from .config import BrokerConfig
from .errors import UpstreamError
from .types import GrantRequest, TokenResponse


def make_session(pool_maxsize: int = 10) -> requests.Session:
    """Long-lived session whose connections stay open between requests."""
    session = requests.Session()
    session.mount("https://", HTTPAdapter(pool_connections=1, pool_maxsize=pool_maxsize))
    session.headers.update({"Connection": "keep-alive"})
    return session


class SpotifyTokenClient:
    """POSTs grant requests to the Spotify token endpoint."""

    def __init__(self, config: BrokerConfig, session: Optional[requests.Session] = None):
        self.token_url = config.token_url
        self.timeout = config.timeout
        self.session = session if session is not None else make_session()
        self._headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": f"Basic {config.auth_key}",
        }

    def request_token(self, grant: GrantRequest) -> TokenResponse:
        try:
            response = self.session.post(
                self.token_url,
                data=grant.as_form(),
                headers=self._headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError(None, str(e)) from e

        if not response.ok:
            raise UpstreamError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(
                response.status_code,
                response.text,
                msg="Received a non-JSON token response from Spotify.",
            ) from e

        return TokenResponse.from_json(payload)

    def close(self) -> None:
        self.session.close()
