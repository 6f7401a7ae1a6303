"""Middleware for tenant hint extraction.

Collects the client's organization hint from the X-Organization-Id /
X-Organization-Slug headers or the request subdomain and attaches it to
request.state.org_hint. The hint is untrusted; it is only validated by
resolve_org_context.
"""

from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..config import get_settings
from .context import OrgHint

ORG_ID_HEADER = "X-Organization-Id"
ORG_SLUG_HEADER = "X-Organization-Slug"


def subdomain_slug(host: Optional[str], base_domain: Optional[str]) -> Optional[str]:
    """Extract "<slug>" from "<slug>.<base_domain>[:port]".

    Example:
        >>> subdomain_slug("acme.app.example.com:443", "app.example.com")
        'acme'
    """
    if not host or not base_domain:
        return None
    hostname = host.split(":", 1)[0].lower().rstrip(".")
    suffix = "." + base_domain.lower().strip(".")
    if not hostname.endswith(suffix):
        return None
    label = hostname[: -len(suffix)]
    if not label or "." in label:
        return None
    return label


def extract_org_hint(request: Request) -> Optional[OrgHint]:
    """Build an OrgHint from headers, falling back to the subdomain."""
    org_id = request.headers.get(ORG_ID_HEADER)
    org_slug = request.headers.get(ORG_SLUG_HEADER)
    if not org_id and not org_slug:
        org_slug = subdomain_slug(request.headers.get("host"), get_settings().BASE_DOMAIN)

    hint = OrgHint(org_id=org_id or None, org_slug=org_slug or None)
    return None if hint.is_empty() else hint


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Middleware to attach the org hint to request.state.

    Usage:
        app.add_middleware(TenantContextMiddleware)

        @app.get("/workspace/active")
        def active(request: Request):
            hint = request.state.org_hint  # OrgHint or None
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.org_hint = extract_org_hint(request)
        return await call_next(request)


def get_org_hint_from_request(request: Request) -> Optional[OrgHint]:
    """Return the hint set by TenantContextMiddleware, extracting it if absent."""
    if hasattr(request.state, "org_hint"):
        return request.state.org_hint
    return extract_org_hint(request)
