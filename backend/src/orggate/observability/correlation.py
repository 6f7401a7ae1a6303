"""Request correlation ids.

The id comes from the caller's X-Request-ID header when it is well formed
and is generated otherwise. It lives in a ContextVar so log records emitted
anywhere while handling the request carry it.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"

# Inbound ids are echoed into logs and response headers
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def accept_request_id(header_value: Optional[str]) -> str:
    """Reuse a well-formed client id, otherwise mint a new uuid4."""
    if header_value and _VALID_REQUEST_ID.match(header_value):
        return header_value
    return str(uuid.uuid4())


def get_request_id() -> str:
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
