"""Domain errors for tenant resolution and authorization.

Each error kind carries a fixed public message. The optional internal reason
is for logs and tests only; the API exception handler never serializes it,
so a caller cannot tell "not permitted" apart from "does not exist".
"""

from typing import Optional


class OrgGateError(Exception):
    """Base class for domain errors mapped to HTTP responses."""

    kind = "INTERNAL"
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, reason: Optional[str] = None, message: Optional[str] = None):
        self.reason = reason
        self.message = message or self.public_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class NotFoundError(OrgGateError):
    kind = "NOT_FOUND"
    status_code = 404
    public_message = "Resource not found"


class ForbiddenError(OrgGateError):
    """Access denied.

    organization_id is set when the denial concerns a known tenant so the
    caller can audit it against that tenant.
    """

    kind = "FORBIDDEN"
    status_code = 403
    public_message = "Access denied"

    def __init__(self, reason=None, message=None, organization_id=None):
        super().__init__(reason=reason, message=message)
        self.organization_id = organization_id


class NoMembershipError(ForbiddenError):
    """Principal holds no active membership and no lobby tenant is configured."""

    public_message = "No organization membership"


class BadRequestError(OrgGateError):
    kind = "BAD_REQUEST"
    status_code = 400
    public_message = "Multiple organizations available. Please select one."


class InternalError(OrgGateError):
    kind = "INTERNAL"
    status_code = 500
    public_message = "Failed to generate unique code"
