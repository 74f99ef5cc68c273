# dreamknot/domain/errors.py


class ServiceError(Exception):
    """Base for errors surfaced to API callers with a kind and a message."""

    status_code = 500
    kind = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    """Entity missing, or not owned by the caller."""

    status_code = 404
    kind = "NOT_FOUND_ERROR"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class ConflictError(ServiceError):
    status_code = 409
    kind = "CONFLICT_ERROR"


class ValidationError(ServiceError):
    status_code = 400
    kind = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ForbiddenError(ServiceError):
    status_code = 403
    kind = "FORBIDDEN_ERROR"


class GatewayError(ServiceError):
    """Payment gateway unreachable or answered with an error."""

    status_code = 502
    kind = "GATEWAY_ERROR"
