"""Tests for the grant handlers and their error boundary."""

import pytest

from ..crypto import decrypt, encrypt
from ..grants import TokenBroker
from ..types import GrantRequest
from .conftest import TEST_SECRET, FakeTokenClient


class TestClientToken:
    def test_success(self, broker, fake_client):
        response = broker.handle("client_token", {})

        assert response.status_code == 200
        assert response.body == {"access_token": "AT", "expires_in": 3600}
        assert fake_client.grants == [GrantRequest.client_credentials()]

    def test_upstream_failure(self, config):
        broker = TokenBroker(config, client=FakeTokenClient(upstream_status=503))

        response = broker.handle("client_token")

        assert response.status_code == 500
        assert response.body == {
            "success": False,
            "msg": "Received invalid status code '503' from Spotify.",
        }


class TestExchangeCode:
    UPSTREAM = {"access_token": "AT", "expires_in": 3600, "token_type": "Bearer", "refresh_token": "RT"}

    def test_missing_code_never_calls_upstream(self, broker, fake_client):
        response = broker.handle("exchange_code", {"callbackUrl": "https://cb"})

        assert response.status_code == 400
        assert response.body == {"success": False, "msg": "Missing 'code' parameter"}
        assert fake_client.grants == []

    def test_empty_code_is_missing(self, broker, fake_client):
        response = broker.handle("exchange_code_protocol", {"code": ""})

        assert response.status_code == 400
        assert fake_client.grants == []

    def test_success_encrypts_refresh_token(self, config):
        client = FakeTokenClient(payload=self.UPSTREAM)
        broker = TokenBroker(config, client=client)

        response = broker.handle("exchange_code", {"code": "the-code"})

        assert response.status_code == 200
        body = response.body
        assert body["success"] is True
        assert body["access_token"] == "AT"
        assert body["expires_in"] == 3600
        assert body["token_type"] == "Bearer"
        assert body["refresh_token"] != "RT"
        assert decrypt(body["refresh_token"], TEST_SECRET) == "RT"

    def test_default_callback_urls(self, config):
        client = FakeTokenClient(payload=self.UPSTREAM)
        broker = TokenBroker(config, client=client)

        broker.handle("exchange_code", {"code": "c"})
        broker.handle("exchange_code_protocol", {"code": "c"})

        assert client.grants[0].redirect_uri == "https://app.example.com/callback"
        assert client.grants[1].redirect_uri == "musicapp://callback"

    def test_explicit_callback_gives_identical_requests(self, config):
        client = FakeTokenClient(payload=self.UPSTREAM)
        broker = TokenBroker(config, client=client)
        body = {"code": "the-code", "callbackUrl": "https://other.example/cb"}

        broker.handle("exchange_code", body)
        broker.handle("exchange_code_protocol", body)

        assert client.grants[0] == client.grants[1]
        assert client.grants[0].as_form() == {
            "grant_type": "authorization_code",
            "redirect_uri": "https://other.example/cb",
            "code": "the-code",
        }

    def test_upstream_without_refresh_token(self, config):
        broker = TokenBroker(config, client=FakeTokenClient(payload={"access_token": "AT", "expires_in": 60}))

        response = broker.handle("exchange_code", {"code": "c"})

        assert response.status_code == 200
        assert response.body["refresh_token"] is None

    def test_upstream_failure(self, config):
        broker = TokenBroker(config, client=FakeTokenClient(upstream_status=400))

        response = broker.handle("exchange_code", {"code": "expired"})

        assert response.status_code == 500
        assert response.body["success"] is False
        assert "400" in response.body["msg"]


class TestRefreshToken:
    def test_missing_refresh_token_never_calls_upstream(self, broker, fake_client):
        response = broker.handle("refresh_token", {})

        assert response.status_code == 400
        assert response.body == {"success": False, "msg": "Missing 'refresh_token' parameter"}
        assert fake_client.grants == []

    def test_decrypts_before_sending_upstream(self, broker, fake_client):
        envelope = encrypt("RT", TEST_SECRET)

        response = broker.handle("refresh_token", {"refresh_token": envelope})

        assert response.status_code == 200
        assert response.body == {"access_token": "AT", "expires_in": 3600, "success": True}
        assert fake_client.grants == [GrantRequest.refresh("RT")]

    def test_refresh_token_is_not_returned(self, config):
        client = FakeTokenClient(payload={"access_token": "AT2", "expires_in": 3600, "refresh_token": "RT2"})
        broker = TokenBroker(config, client=client)

        response = broker.handle("refresh_token", {"refresh_token": encrypt("RT", TEST_SECRET)})

        assert "refresh_token" not in response.body

    def test_invalid_envelope_is_client_error(self, broker, fake_client):
        response = broker.handle("refresh_token", {"refresh_token": encrypt("RT", "another-secret")})

        assert response.status_code == 400
        assert response.body == {"success": False, "msg": "Invalid 'refresh_token' parameter"}
        assert fake_client.grants == []

    def test_upstream_failure(self, config):
        broker = TokenBroker(config, client=FakeTokenClient(upstream_status=401))

        response = broker.handle("refresh_token", {"refresh_token": encrypt("RT", TEST_SECRET)})

        assert response.status_code == 500
        assert "'401'" in response.body["msg"]


class TestHandle:
    def test_unknown_operation(self, broker):
        with pytest.raises(KeyError):
            broker.handle("revoke_token", {})

    @pytest.mark.parametrize("operation,body,name", [
        ("refresh_token", {"refresh_token": 123}, "refresh_token"),
        ("exchange_code", {"code": {"nested": True}}, "code"),
        ("exchange_code_protocol", {"code": "c", "callbackUrl": 42}, "callbackUrl"),
    ])
    def test_non_string_fields_are_rejected(self, broker, fake_client, operation, body, name):
        response = broker.handle(operation, body)

        assert response.status_code == 400
        assert response.body == {"success": False, "msg": f"Invalid '{name}' parameter"}
        assert fake_client.grants == []

    def test_failures_are_logged(self, config, capsys):
        broker = TokenBroker(config, client=FakeTokenClient(upstream_status=502))

        broker.handle("client_token")

        out = capsys.readouterr().out
        assert "UpstreamError" in out
        assert "'502'" in out
