"""HTTP middleware: response hardening headers and optional Basic auth."""

import base64
import binascii
import logging
import secrets
from collections.abc import Iterable, Mapping

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import PlainTextResponse, Response

from cellzone.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

# Liveness checks must work without credentials
PUBLIC_PATHS = frozenset({"/health"})


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, headers: Mapping[str, str] | None = None):
        super().__init__(app)
        self.headers = dict(DEFAULT_HEADERS if headers is None else headers)

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response


def parse_basic_credentials(header: str) -> tuple[str, str] | None:
    """Split a ``Basic`` Authorization header into (username, password).

    Returns None when the header is missing, uses another scheme, is not
    valid base64/UTF-8 or has no colon separator.
    """
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Reject requests without matching Basic credentials.

    Paths in ``public_paths`` are served without a check.
    """

    def __init__(
        self,
        app,
        username: str,
        password: str,
        realm: str = "Cellzone",
        public_paths: Iterable[str] = PUBLIC_PATHS,
    ):
        super().__init__(app)
        self._expected = (username.encode("utf-8"), password.encode("utf-8"))
        self.realm = realm
        self.public_paths = frozenset(public_paths)

    def _accepts(self, credentials: tuple[str, str] | None) -> bool:
        if credentials is None:
            return False
        user, password = (part.encode("utf-8") for part in credentials)
        # Compare both halves so a wrong username costs the same as a wrong password
        user_ok = secrets.compare_digest(user, self._expected[0])
        password_ok = secrets.compare_digest(password, self._expected[1])
        return user_ok and password_ok

    async def dispatch(self, request, call_next):
        if request.url.path in self.public_paths:
            return await call_next(request)
        credentials = parse_basic_credentials(request.headers.get("Authorization", ""))
        if not self._accepts(credentials):
            return self.challenge()
        return await call_next(request)

    def challenge(self) -> Response:
        return PlainTextResponse(
            "Unauthorized",
            status_code=401,
            headers={"WWW-Authenticate": f'Basic realm="{self.realm}"'},
        )


def install_middleware(app: FastAPI, cfg: Settings) -> None:
    """Attach the hardening headers, plus Basic auth when a password is set."""
    app.add_middleware(SecurityHeadersMiddleware)
    if cfg.auth_password:
        app.add_middleware(
            BasicAuthMiddleware, username=cfg.auth_username, password=cfg.auth_password
        )
        logger.info("HTTP Basic Auth enabled for user '%s'", cfg.auth_username)
