"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input failed validation; names the offending field"""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class DataUnavailableError(DomainException):
    """Data store returned an error or is unavailable"""

    pass


class ReportRenderError(DomainException):
    """Report renderer answered with a body that is not a usable download location"""

    pass
