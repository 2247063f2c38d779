# anonbox/core/errors.py

"""
Typed failures raised by the abuse-control core.

Each carries a stable ``code`` and the HTTP status it maps to, so the API
layer never has to re-derive semantics from message text.
"""


class AbuseControlError(Exception):
    code = "error"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(AbuseControlError):
    code = "validation_error"
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AbuseControlError):
    code = "unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(AbuseControlError):
    code = "forbidden"
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AbuseControlError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class ConflictError(AbuseControlError):
    code = "conflict"
    status_code = 400
    default_message = "This sender is already blocked"


class RateLimitError(AbuseControlError):
    code = "rate_limited"
    status_code = 429
    default_message = "Rate limit exceeded"

    def __init__(self, message: str | None = None, retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.retry_after is not None:
            body["retry_after"] = self.retry_after
        return body


class StoreUnavailable(AbuseControlError):
    code = "store_unavailable"
    status_code = 500
    default_message = "Internal server error"
