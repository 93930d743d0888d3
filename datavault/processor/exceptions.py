class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class UnsupportedFormatError(ProcessorError):
    """Raised when a content format cannot be determined or is not supported."""


class ContentParseError(ProcessorError):
    """Raised when a payload cannot be parsed in its declared format."""


class FileReadError(ProcessorError):
    """Raised when a file cannot be read from or written to disk."""
