class AnonymizationError(Exception):
    """Base exception for all anonymization-related errors."""


class UnsupportedContentError(AnonymizationError):
    """Raised when top-level content is not text, a record, or a sequence."""


class TraversalLimitError(AnonymizationError):
    """Raised when content nests too deeply or a string leaf is too long."""


class PolicyValidationError(AnonymizationError):
    """Raised when a policy document fails validation."""
