"""Custom exception classes for the service layer."""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        code: Error code for client identification
        message: Human-readable error message
        details: Optional additional error details
    """

    def __init__(self, message: str, code: str = 'SERVICE_ERROR', details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON response."""
        result = {
            'code': self.code,
            'message': self.message,
        }
        if self.details:
            result['details'] = self.details
        return result


class ValidationError(ServiceError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            details = details or {}
            details['field'] = field
        super().__init__(message, 'VALIDATION_ERROR', details)


class NotFoundError(ServiceError):
    """Raised when a lookup matches no row. Callers usually branch on it rather than fail."""

    def __init__(self, message: str, table: str | None = None, filters: dict | None = None):
        details = {}
        if table:
            details['table'] = table
        if filters:
            details['filters'] = filters
        super().__init__(message, 'NOT_FOUND', details if details else None)


class ExternalServiceError(ServiceError):
    """Raised when the remote store (Supabase, DynamoDB) fails a lookup, insert or procedure call."""

    def __init__(
        self,
        message: str,
        service: str,
        original_error: str | None = None,
        operation: str | None = None,
        remote_code: str | None = None,
    ):
        details = {'service': service}
        if operation:
            details['operation'] = operation
        if remote_code:
            details['remote_code'] = remote_code
        if original_error:
            details['original_error'] = original_error
        super().__init__(message, 'EXTERNAL_SERVICE_ERROR', details)


class ConfigurationError(ServiceError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, config_key: str | None = None):
        details = {}
        if config_key:
            details['config_key'] = config_key
        super().__init__(message, 'CONFIGURATION_ERROR', details if details else None)


class QuotaExceededError(ServiceError):
    """Raised when a usage quota has been exceeded."""

    def __init__(self, message: str = 'Quota exceeded', operation: str | None = None, limit: int | None = None):
        details = {}
        if operation:
            details['operation'] = operation
        if limit is not None:
            details['limit'] = limit
        super().__init__(message, 'QUOTA_EXCEEDED', details if details else None)
