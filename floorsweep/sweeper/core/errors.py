"""
Error types for the sweeper agent.

Startup errors (configuration, bootstrap files, storage) are fatal.
ParseError is fatal wherever it is raised. GatewayError is contained
per tick by the scheduler.
"""


class SweeperError(Exception):
    """Base class for all sweeper errors."""
    pass


class ConfigurationError(SweeperError):
    """Raised when configuration is invalid or missing."""
    pass


class BootstrapIoError(SweeperError):
    """Raised when an account bootstrap file cannot be read or written."""
    pass


class ParseError(SweeperError):
    """Raised when persisted data or a listing field is malformed."""
    pass


class GatewayError(SweeperError):
    """Raised when a listing query fails after all retries."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class StorageError(SweeperError):
    """Raised when account persistence fails."""
    pass
