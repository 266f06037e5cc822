"""Transport-neutral view of an incoming HTTP request.

The auth and rate-limiting services only ever see a `RequestContext`; the
FastAPI boundary builds one per request (see `goongpt_api.api.request`).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from typing import Any

SESSION_COOKIE_NAME = "goongpt_session"
SESSION_COOKIE_MAX_AGE = 7 * 24 * 60 * 60

IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")
ANONYMOUS_IP = "anonymous"


def parse_cookie_header(raw: str | None) -> dict[str, str]:
    """Parse a `Cookie` header into a name -> value mapping.

    Malformed headers yield an empty mapping instead of an error.
    """
    if not raw:
        return {}
    jar: SimpleCookie = SimpleCookie()
    try:
        jar.load(raw)
    except CookieError:
        return {}
    return {name: morsel.value for name, morsel in jar.items()}


@dataclass(frozen=True)
class RequestContext:
    """Method, lower-cased headers, parsed JSON body and cookies of a request."""

    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    cookies: Mapping[str, str] = field(default_factory=dict)
    client_host: str | None = None
    scheme: str = "http"

    @classmethod
    def build(
        cls,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: Any = None,
        cookies: Mapping[str, str] | None = None,
        client_host: str | None = None,
        scheme: str = "http",
    ) -> RequestContext:
        """Normalise header names and fall back to the Cookie header for cookies."""
        normalized = {name.lower(): value for name, value in (headers or {}).items()}
        if cookies is None:
            cookies = parse_cookie_header(normalized.get("cookie"))
        return cls(
            method=method.upper(),
            headers=normalized,
            body=body,
            cookies=dict(cookies),
            client_host=client_host,
            scheme=scheme,
        )

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def json_field(self, name: str) -> Any:
        """Return a top-level field of a JSON object body, or None."""
        if isinstance(self.body, Mapping):
            return self.body.get(name)
        return None

    @property
    def session_cookie(self) -> str | None:
        return self.cookies.get(SESSION_COOKIE_NAME) or None

    @property
    def bearer_token(self) -> str | None:
        raw = self.header("authorization")
        if not raw or not raw.startswith("Bearer "):
            return None
        token = raw[len("Bearer "):].strip()
        return token or None

    @property
    def session_token(self) -> str | None:
        """Session token from the cookie, else from a bearer header."""
        return self.session_cookie or self.bearer_token

    @property
    def is_https(self) -> bool:
        forwarded_proto = self.header("x-forwarded-proto")
        if forwarded_proto:
            return forwarded_proto.split(",")[0].strip().lower() == "https"
        return self.scheme == "https"

    @property
    def client_ip(self) -> str:
        """Client address from proxy headers (first hop), else the socket peer."""
        for name in IP_HEADERS:
            raw = self.header(name)
            if raw:
                first = raw.split(",")[0].strip()
                if first:
                    return first
        return self.client_host or ANONYMOUS_IP
