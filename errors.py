# errors.py


class StartBlockError(Exception):
    """Base class for everything this tool raises on purpose."""


class FetchError(StartBlockError):
    """
    A ledger source could not answer a query.

    `height` is the block height being queried, or None for head-height queries.
    """

    def __init__(self, message, height=None):
        super().__init__(message)
        self.height = height


class ConnectivityError(FetchError):
    """Endpoint missing, unreachable, timed out or answering with a server error."""


class ProtocolError(FetchError):
    """Endpoint answered, but not with the shape we expected."""


class NotFoundError(FetchError):
    """The queried height has no block."""

    def __init__(self, height, message=None):
        super().__init__(message or f"block {height} not found", height=height)


class SearchError(FetchError):
    """
    A timestamp search was aborted by a failed fetch.

    The underlying FetchError is kept as `cause` (and chained as __cause__).
    """

    def __init__(self, message, height=None, cause=None):
        super().__init__(message, height=height)
        self.cause = cause


class ConfigError(StartBlockError):
    """The start block config document is missing or unparsable."""


class PersistError(StartBlockError):
    """The start block config document could not be written."""
