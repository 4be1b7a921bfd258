"""
Domain exceptions raised by the SOS services.

Each carries the HTTP status and a machine-readable code; `main.py` turns
them into JSON error responses.
"""

from typing import Optional


class SOSServiceError(Exception):
    status_code: int = 400
    code: str = "SOS_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class PolicyViolationError(SOSServiceError):
    """Expected business-rule rejection, e.g. the Spain rule."""

    status_code = 403
    code = "POLICY_VIOLATION"


class NotAuthorizedError(SOSServiceError):
    """Caller lacks the relationship required for the operation."""

    status_code = 403
    code = "NOT_AUTHORIZED"


class NotFoundError(SOSServiceError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidStateError(SOSServiceError):
    status_code = 409
    code = "INVALID_STATE"
