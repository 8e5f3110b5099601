from __future__ import annotations

import http.cookies
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import format_datetime

from starlette.datastructures import Headers
from starlette.requests import cookie_parser

DEFAULT_COOKIE_NAME = "shelf_session_id"

logger = logging.getLogger(__name__)


class SessionCookieCodec:
    """Reads the session id from request headers and renders the outgoing cookie."""

    def __init__(self, name: str = DEFAULT_COOKIE_NAME) -> None:
        self.name = name

    def parse_cookies(self, headers: Headers | Mapping[str, str]) -> dict[str, str]:
        try:
            if not isinstance(headers, Headers):
                headers = Headers(headers=dict(headers))
            raw = headers.get("cookie")
            if not raw:
                return {}
            return cookie_parser(raw)
        except (ValueError, TypeError) as exc:
            # A broken Cookie header from a client is routine; treat it as absent.
            logger.debug("Ignoring malformed Cookie header: %s", exc)
            return {}

    def extract_session_id(self, headers: Headers | Mapping[str, str]) -> str | None:
        value = self.parse_cookies(headers).get(self.name)
        return value or None

    def build_cookie(
        self,
        session_id: str,
        expires: datetime,
        is_secure: bool,
        now: datetime | None = None,
    ) -> str:
        """Render a ``Set-Cookie`` header value for ``session_id``.

        ``Max-Age`` is the whole number of seconds between ``now`` and
        ``expires`` and goes negative for an expiry in the past.
        """
        now = now or datetime.now(timezone.utc)
        max_age = int((expires - now).total_seconds())

        cookie: http.cookies.BaseCookie[str] = http.cookies.SimpleCookie()
        cookie[self.name] = session_id
        morsel = cookie[self.name]
        morsel["path"] = "/"
        morsel["httponly"] = True
        if is_secure:
            morsel["secure"] = True
        morsel["max-age"] = max_age
        morsel["expires"] = format_datetime(expires.astimezone(timezone.utc), usegmt=True)
        return cookie.output(header="").strip()
