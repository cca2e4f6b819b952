class ServiceError(RuntimeError):
    """Recoverable service error; rendered as a stable JSON error by the app factory."""

    code = "service_error"
    status = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "code": self.status}


class NotFound(ServiceError):
    # Also raised when the caller does not own the parent estimate (anti-enumeration)
    code = "not_found"
    status = 404

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class ValidationFailed(ServiceError):
    code = "validation_error"
    status = 400


class Conflict(ServiceError):
    code = "conflict"
    status = 409


class Unauthorized(ServiceError):
    """Wrong password for a protected public view; existence is already disclosed."""
    code = "unauthorized"
    status = 401
