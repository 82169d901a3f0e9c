import base64
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError

SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

# Environment variable -> BrokerConfig field
REQUIRED_ENV = {
    "SPOTIFY_CLIENT_ID": "client_id",
    "SPOTIFY_CLIENT_SECRET": "client_secret",
    "SPOTIFY_CLIENT_CALLBACK_URL": "callback_url",
    "SPOTIFY_CLIENT_CALLBACK_PROTOCOL_URL": "callback_protocol_url",
    "SPOTIFY_ENC_SECRET": "encryption_secret",
}


@dataclass(frozen=True)
class BrokerConfig:
    """Process-wide settings, built once and handed to the broker and client."""

    client_id: str
    client_secret: str
    callback_url: str
    callback_protocol_url: str
    encryption_secret: str
    token_url: str = SPOTIFY_TOKEN_URL
    timeout: Optional[float] = None

    @property
    def auth_key(self) -> str:
        """Value for the `Authorization: Basic ...` header sent to Spotify."""
        return base64.b64encode(f"{self.client_id}:{self.client_secret}".encode()).decode()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BrokerConfig":
        """Read the broker settings from the environment.

        Raises:
            ConfigError: if any required variable is unset or empty, or
                SPOTIFY_TIMEOUT is not a number.
        """
        env = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_ENV if not env.get(name)]
        if missing:
            raise ConfigError(f"Server mis-configuration: missing {', '.join(missing)}")

        timeout = None
        raw_timeout = env.get("SPOTIFY_TIMEOUT")
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise ConfigError(f"Server mis-configuration: invalid SPOTIFY_TIMEOUT '{raw_timeout}'")

        return cls(
            **{attr: env[name] for name, attr in REQUIRED_ENV.items()},
            timeout=timeout,
        )
