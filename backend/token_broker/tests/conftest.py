import pytest

from ..config import BrokerConfig
from ..errors import UpstreamError
from ..grants import TokenBroker
from ..types import TokenResponse

TEST_SECRET = "test-encryption-secret"


class FakeTokenClient:
    """Stands in for SpotifyTokenClient; records every grant it is asked for."""

    def __init__(self, payload=None, upstream_status=None):
        self.payload = payload or {"access_token": "AT", "expires_in": 3600}
        self.upstream_status = upstream_status
        self.grants = []

    def request_token(self, grant):
        self.grants.append(grant)
        if self.upstream_status is not None:
            raise UpstreamError(self.upstream_status, '{"error": "invalid_grant"}')
        return TokenResponse.from_json(self.payload)


@pytest.fixture
def config():
    return BrokerConfig(
        client_id="client-id",
        client_secret="client-secret",
        callback_url="https://app.example.com/callback",
        callback_protocol_url="musicapp://callback",
        encryption_secret=TEST_SECRET,
    )


@pytest.fixture
def fake_client():
    return FakeTokenClient()


@pytest.fixture
def broker(config, fake_client):
    return TokenBroker(config, client=fake_client)
