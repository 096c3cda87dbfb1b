"""Error taxonomy for gateway operations.

Each error carries the HTTP status the API layer answers with.
"""


class GatewayOpsError(Exception):
    """Base class for all gatewayops errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GatewayOpsError):
    """A required parameter is missing."""

    status_code = 400


class AuthorizationError(GatewayOpsError):
    """A config path is not in the allowlist."""

    status_code = 403


class NotFoundError(GatewayOpsError):
    """A named process does not exist."""

    status_code = 404


class SandboxError(GatewayOpsError):
    """A sandbox call failed (transport error or non-2xx response)."""

    status_code = 500
