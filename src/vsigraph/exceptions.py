"""Exception types raised by VSIGraph."""


class VsiGraphError(Exception):
    """Base class for all VSIGraph errors."""


class ContractViolationError(VsiGraphError):
    """Raised when the data source hands over structurally invalid records.

    A record without an id is a bug upstream, not something to recover from.
    """


class DataSourceError(VsiGraphError):
    """Raised when records cannot be fetched or decoded."""
