"""Error taxonomy shared by the REST handlers and the relay.

Every error carries the HTTP status it maps to and a short machine code.
REST handlers let these propagate to the exception handlers registered in
``secretcalc.main``; relay handlers catch them and reply (or stay silent)
per event.
"""


class RelayError(Exception):
    status_code = 500
    error = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.error)
        self.message = message or self.error


class ValidationError(RelayError):
    """A required field is missing or empty. Nothing was changed."""

    status_code = 400
    error = "validation_error"


class SelfPairingError(ValidationError):
    error = "self_pairing"


class AuthError(RelayError):
    """Missing, invalid or mismatched claim."""

    status_code = 401
    error = "unauthorized"


class ForbiddenError(RelayError):
    status_code = 403
    error = "forbidden"


class NotFoundError(RelayError):
    status_code = 404
    error = "not_found"


class ConflictError(RelayError):
    """Storage uniqueness violation, e.g. a pairing code collision."""

    status_code = 409
    error = "conflict"


class ExpiredError(RelayError):
    status_code = 410
    error = "expired"


class UpstreamError(RelayError):
    """Storage or transport failure. No partial state is assumed committed."""

    status_code = 500
    error = "server_error"
