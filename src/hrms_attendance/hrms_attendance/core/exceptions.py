class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class MalformedPayloadError(DomainError):
    """Raised when a backend payload does not have any known shape."""


class ConfigurationError(DomainError):
    """Raised when required settings are missing or unusable."""
