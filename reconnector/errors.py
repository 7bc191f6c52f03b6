"""Exception types raised by reconnector."""


class ReconnectorError(Exception):
    """Base class for all errors raised by this package."""


class ConnectionNotConfiguredError(ReconnectorError):
    """Raised when a task runs (or is validated) without a connection client.

    This is a configuration error: the client must be injected before the
    first tick, and ideally checked once at startup.
    """
