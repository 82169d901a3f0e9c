import json
import threading
import traceback
from http.server import BaseHTTPRequestHandler
from typing import Any, Optional
from urllib.parse import parse_qsl, urlparse

from .config import BrokerConfig
from .cors import OriginPolicy
from .errors import ConfigError, OriginNotAllowed, error_response
from .grants import TokenBroker
from .types import BrokerResponse

# Path -> broker operation, for servers that host every endpoint at once
ROUTES = {
    "/api/client_token": "client_token",
    "/api/exchange_code": "exchange_code",
    "/api/exchange_code_protocol": "exchange_code_protocol",
    "/api/refresh_token": "refresh_token",
}


def parse_body(raw_body: bytes, content_type: str = "") -> dict[str, Any]:
    """Parse a JSON or form-encoded body; anything unreadable counts as empty."""
    if not raw_body:
        return {}

    if content_type.startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(raw_body.decode(errors="replace")))

    try:
        body = json.loads(raw_body.decode())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


class BrokerRequestHandler(BaseHTTPRequestHandler):
    """JSON-over-POST plumbing shared by the serverless token functions.

    Subclasses pin `operation`; when it is left unset the request path is
    looked up in ROUTES instead. The broker is built on first use and kept
    for the life of the process so the upstream connection pool is reused.
    """

    operation: Optional[str] = None
    broker: Optional[TokenBroker] = None
    origin_policy: Optional[OriginPolicy] = None
    _broker_lock = threading.Lock()

    @classmethod
    def get_broker(cls) -> TokenBroker:
        if cls.broker is None:
            with cls._broker_lock:
                if cls.broker is None:
                    cls.broker = TokenBroker(BrokerConfig.from_env())
        return cls.broker

    @classmethod
    def get_origin_policy(cls) -> OriginPolicy:
        if cls.origin_policy is None:
            cls.origin_policy = OriginPolicy.from_env()
        return cls.origin_policy

    # --------------------------------- Pre-flight ---------------------------------
    def do_OPTIONS(self):  # noqa: N802
        self.send_response(204)
        self._cors()
        self.end_headers()

    # ------------------------------------ POST ------------------------------------
    def do_POST(self):  # noqa: N802
        try:
            response = self._dispatch()
        except Exception as e:
            print(f"[token_broker] Unhandled error on {self.path}: {e}")
            traceback.print_exc()
            response = BrokerResponse(500, {"success": False, "msg": "Internal server error"})
        self._json_response(response.body, response.status_code)

    def _dispatch(self) -> BrokerResponse:
        origin = self.headers.get("Origin")
        if not self.get_origin_policy().is_allowed(origin):
            return error_response(OriginNotAllowed(f"Origin '{origin}' is not allowed"))

        operation = self.operation or ROUTES.get(urlparse(self.path).path.rstrip("/"))
        if operation is None:
            return BrokerResponse(404, {"success": False, "msg": "Not found"})

        body = self._read_body()
        try:
            broker = self.get_broker()
        except ConfigError as e:
            return error_response(e)
        return broker.handle(operation, body)

    # -----------------------------------------------------------------------------
    def _read_body(self) -> dict[str, Any]:
        try:
            content_length = int(self.headers.get("Content-Length", 0) or 0)
        except ValueError:
            content_length = 0
        raw_body = self.rfile.read(content_length) if content_length > 0 else b""
        return parse_body(raw_body, self.headers.get("Content-Type", ""))

    def _cors(self):
        for name, value in self.get_origin_policy().headers(self.headers.get("Origin")).items():
            self.send_header(name, value)

    def _json_response(self, payload: dict, status: int = 200):
        """Helper to write JSON response with CORS headers."""
        data = json.dumps(payload).encode()
        self.send_response(status)
        self._cors()
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)
