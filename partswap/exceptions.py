"""Domain-specific exceptions with user-ready messages for the component database."""


class BusinessLogicException(Exception):
    """Base exception class for business logic errors.

    All business logic exceptions include user-ready messages that can be
    returned to API clients as-is.
    """

    def __init__(self, message: str, error_code: str) -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class RecordNotFoundException(BusinessLogicException):
    """Exception raised when a requested record is not found."""

    def __init__(self, resource_type: str, identifier: str | int) -> None:
        message = f"{resource_type} {identifier} was not found"
        super().__init__(message, error_code="RECORD_NOT_FOUND")


class ResourceConflictException(BusinessLogicException):
    """Exception raised when attempting to create a resource that already exists."""

    def __init__(self, resource_type: str, identifier: str | int) -> None:
        message = f"A {resource_type.lower()} with {identifier} already exists"
        super().__init__(message, error_code="RESOURCE_CONFLICT")


class PreconditionFailedException(BusinessLogicException):
    """Exception raised when a record lacks data an operation requires."""

    def __init__(self, operation: str, cause: str) -> None:
        self.operation = operation
        self.cause = cause
        message = f"Cannot {operation} because {cause}"
        super().__init__(message, error_code="PRECONDITION_FAILED")


class InvalidOperationException(BusinessLogicException):
    """Exception raised when an operation cannot be performed due to business rules."""

    def __init__(self, operation: str, cause: str) -> None:
        self.operation = operation
        self.cause = cause
        message = f"Cannot {operation} because {cause}"
        super().__init__(message, error_code="INVALID_OPERATION")


class UpstreamUnavailableException(BusinessLogicException):
    """Exception raised when a vendor API or datasheet host cannot be reached."""

    def __init__(self, upstream: str, detail: str) -> None:
        self.upstream = upstream
        self.detail = detail
        message = f"{upstream} is unavailable: {detail}"
        super().__init__(message, error_code="UPSTREAM_UNAVAILABLE")


class AIResponseException(BusinessLogicException):
    """Exception raised when the model returns no usable structured output."""

    def __init__(self, detail: str) -> None:
        message = f"AI response could not be used: {detail}"
        super().__init__(message, error_code="AI_RESPONSE_INVALID")
