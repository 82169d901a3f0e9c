import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

ALLOW_METHODS = "POST, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization"


@dataclass(frozen=True)
class OriginPolicy:
    """Which browser origins may call the token endpoints.

    `"*"` reflects whatever origin the caller sent. Requests that carry no
    Origin header at all (curl, server-to-server) are always let through.
    """

    allowed_origins: tuple[str, ...] = ("*",)

    @property
    def allow_any(self) -> bool:
        return "*" in self.allowed_origins

    def is_allowed(self, origin: Optional[str]) -> bool:
        if not origin:
            return True
        return self.allow_any or origin in self.allowed_origins

    def headers(self, origin: Optional[str]) -> dict[str, str]:
        headers = {
            "Access-Control-Allow-Methods": ALLOW_METHODS,
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
            "Vary": "Origin",
        }
        if origin and self.is_allowed(origin):
            headers["Access-Control-Allow-Origin"] = origin
        return headers

    def middleware_options(self) -> dict[str, Any]:
        """Keyword arguments for FastAPI's CORSMiddleware."""
        options: dict[str, Any] = {
            "allow_methods": ["POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }
        if self.allow_any:
            options["allow_origin_regex"] = ".*"
        else:
            options["allow_origins"] = list(self.allowed_origins)
        return options

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OriginPolicy":
        env = os.environ if environ is None else environ
        raw = env.get("ALLOWED_ORIGINS", "").strip()
        if not raw:
            return cls()
        origins = tuple(o.strip().rstrip("/") for o in raw.split(",") if o.strip())
        return cls(allowed_origins=origins or ("*",))
