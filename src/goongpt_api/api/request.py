"""Build a `RequestContext` from a Starlette request."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import Request

from goongpt_api.core.request import RequestContext

logger = logging.getLogger(__name__)


def context_from_request(request: Request, body: Any = None) -> RequestContext:
    """Snapshot headers, cookies and peer address; `body` is passed through."""
    return RequestContext.build(
        method=request.method,
        headers=dict(request.headers.items()),
        body=body,
        cookies=dict(request.cookies),
        client_host=request.client.host if request.client else None,
        scheme=request.url.scheme,
    )


async def read_json_body(request: Request) -> Any:
    """Return the parsed JSON body, or None when it is empty or not JSON."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.debug("Ignoring non-JSON body on %s %s", request.method, request.url.path)
        return None


async def build_request_context(request: Request) -> RequestContext:
    return context_from_request(request, await read_json_body(request))
