"""Custom exceptions for the QMS application."""


class QmsError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(QmsError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class ValidationError(BusinessLogicError):
    """Raised when a request body or query string fails schema validation."""
    def __init__(self, message="Validation failed", details=None):
        payload = {'details': details} if details is not None else None
        super().__init__(message, status_code=400, payload=payload)


class NotFoundError(QmsError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class ConflictError(BusinessLogicError):
    """Raised when a write collides with existing state (duplicates, references)."""
    def __init__(self, message, payload=None):
        super().__init__(message, status_code=409, payload=payload)


class InvalidStatusTransitionError(ConflictError):
    """Raised when a quotation is moved to a status its current one does not allow."""
    def __init__(self, current, requested, allowed=None):
        message = f"Cannot change quotation status from {current} to {requested}"
        super().__init__(message, payload={
            'currentStatus': current,
            'requestedStatus': requested,
            'allowedStatuses': sorted(allowed or ()),
        })


class AuthenticationError(QmsError):
    """Raised when credentials or bearer token are missing, invalid or expired."""
    def __init__(self, message="Unauthorized"):
        super().__init__(message, 401)


class ForbiddenError(QmsError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Forbidden"):
        super().__init__(message, 403)
