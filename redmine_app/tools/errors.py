"""Error types raised by the Redmine client."""


class RedmineError(Exception):
    """Base class for every error raised by redmine_app."""


class ConfigurationError(RedmineError):
    """Invalid connection settings (address, API key, scheme)."""


class TransportError(RedmineError):
    """The request never produced a response (refused, reset, timed out)."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class ResponseError(RedmineError):
    """The server answered with a body we could not use."""
