class ServiceError(Exception):
    """Base error raised by the service layer.

    ``reason`` is a stable machine-readable code the client branches on;
    the message is for humans.
    """

    kind = "internal"
    status_code = 500
    default_reason = "error"

    def __init__(self, message: str, *, reason: str | None = None):
        super().__init__(message)
        self.reason = reason or self.default_reason

    def to_detail(self) -> dict:
        return {"kind": self.kind, "reason": self.reason, "message": str(self)}


class NotFoundError(ServiceError):
    kind = "not_found"
    status_code = 404
    default_reason = "not_found"


class ConflictError(ServiceError):
    kind = "conflict"
    status_code = 409
    default_reason = "conflict"


class EventFullError(ConflictError):
    default_reason = "event_full"


class ValidationError(ServiceError):
    kind = "validation"
    status_code = 400
    default_reason = "invalid"


class InternalError(ServiceError):
    kind = "internal"
    status_code = 500
    default_reason = "store_failure"


class UnauthorizedError(ServiceError):
    kind = "unauthorized"
    status_code = 401
    default_reason = "not_authenticated"


class ForbiddenError(ServiceError):
    kind = "forbidden"
    status_code = 403
    default_reason = "forbidden"
