"""Custom exceptions for randomfs-cli.

Every failure a command can hit is one of these. They all terminate the
current invocation; nothing here is retried.
"""


class RandomFSError(RuntimeError):
    """Base class for all randomfs-cli errors."""
    pass


# Local File Errors
class FileReadError(RandomFSError):
    """Input file missing or unreadable."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to read file {path}: {cause}")


class FileWriteError(RandomFSError):
    """Output file could not be written."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write output file {path}: {cause}")


class InvalidContentType(RandomFSError):
    """Content type override is not of the form type/subtype."""

    def __init__(self, content_type: str):
        self.content_type = content_type
        super().__init__(
            f"Invalid content type '{content_type}': must look like 'type/subtype'"
        )


# Locator Errors
class LocatorError(RandomFSError):
    """Base class for rd:// URL decoding errors."""
    pass


class InvalidScheme(LocatorError):
    """Scheme segment is not exactly 'rd'."""

    def __init__(self, url: str, scheme: str | None):
        self.url = url
        self.scheme = scheme
        if scheme is None:
            detail = "no scheme found"
        else:
            detail = f"scheme '{scheme}' is not 'rd'"
        super().__init__(f"Failed to parse rd:// URL '{url}': {detail}")


class MalformedURL(LocatorError):
    """Required segments missing or segment boundaries unclear."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to parse rd:// URL '{url}': {reason}")


class InvalidFieldEncoding(LocatorError):
    """Numeric metadata field present but not a valid non-negative integer."""

    def __init__(self, url: str, field: str, value: str):
        self.url = url
        self.field = field
        self.value = value
        super().__init__(
            f"Failed to parse rd:// URL '{url}': "
            f"{field} must be a non-negative integer, got '{value}'"
        )


# Engine Errors
class EngineError(RandomFSError):
    """Base class for storage engine failures."""
    pass


class EngineInitError(EngineError):
    """Storage engine could not be constructed."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to initialize RandomFS: {cause}")


class EngineStoreError(EngineError):
    """Engine rejected or failed a store request."""

    def __init__(self, file_name: str, cause: Exception):
        self.file_name = file_name
        self.cause = cause
        super().__init__(f"Failed to store file {file_name}: {cause}")


class EngineRetrievalError(EngineError):
    """Engine could not resolve a representation hash."""

    def __init__(self, rep_hash: str, cause: Exception):
        self.rep_hash = rep_hash
        self.cause = cause
        super().__init__(f"Failed to retrieve file {rep_hash}: {cause}")


class EngineStatsError(EngineError):
    """Engine could not report its statistics."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to read engine statistics: {cause}")


# Configuration Errors
class ConfigError(RandomFSError):
    """Configuration file or value is invalid."""
    pass
