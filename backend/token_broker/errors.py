from .types import BrokerResponse


class BrokerError(Exception):
    """Base class for failures that end a request with a JSON error body."""

    status_code: int = 500

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg


class ValidationError(BrokerError):
    status_code = 400


class DecryptionError(BrokerError):
    status_code = 400


class ConfigError(BrokerError):
    status_code = 500


class OriginNotAllowed(BrokerError):
    status_code = 403


class UpstreamError(BrokerError):
    """Spotify answered with a non-success status, or could not be reached."""

    status_code = 500

    def __init__(self, upstream_status: int | None, body: str = "", msg: str | None = None):
        if msg is None and upstream_status is None:
            msg = f"Could not reach Spotify: {body}"
        elif msg is None:
            msg = f"Received invalid status code '{upstream_status}' from Spotify."
        super().__init__(msg)
        self.upstream_status = upstream_status
        self.body = body


def error_response(error: BrokerError) -> BrokerResponse:
    """Log the failure and turn it into the uniform `{success, msg}` shape."""
    detail = ""
    if isinstance(error, UpstreamError) and error.body:
        detail = f" | body: {error.body[:200]}"
    elif error.__cause__ is not None:
        detail = f" | cause: {error.__cause__}"
    print(f"[token_broker] {type(error).__name__} ({error.status_code}): {error.msg}{detail}")
    return BrokerResponse(
        status_code=error.status_code,
        body={"success": False, "msg": error.msg},
    )
