"""Error taxonomy for the NyumbaSure API.

Each error carries the HTTP status it maps to and a short message that is safe
to show to API clients.
"""

from typing import Optional


class NyumbaError(Exception):
    """Base exception for the NyumbaSure backend."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(NyumbaError):
    """Missing or malformed input."""

    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(NyumbaError):
    """No usable identity on the request."""

    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(NyumbaError):
    """Wrong role, or not the owner of the document."""

    status_code = 403
    default_message = "Not authorized"


class NotFoundError(NyumbaError):
    """Document absent, or its identifier is not a valid ObjectId."""

    status_code = 404
    default_message = "Not found"


class PersistenceError(NyumbaError):
    """Unexpected MongoDB failure."""

    status_code = 500
    default_message = "Database operation failed"
