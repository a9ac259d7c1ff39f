"""
Exception hierarchy for the profitability engine.

Exception Hierarchy:
    ProfitLedgerError (base)
    ├── CollaboratorError     - Upstream fetch / coverage join failed
    ├── SettingsStoreError    - Cost settings store unreachable
    └── PersistenceError      - Upsert rejected by the store

    InvalidWindowError        - Caller supplied a bad date window
"""


class ProfitLedgerError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class CollaboratorError(ProfitLedgerError):
    """
    A collaborator (metrics fetch, coverage join, client list) failed.

    Isolated to the client being processed.
    """

    def __init__(self, message: str, details: str = None, source: str = None):
        super().__init__(message, details)
        self.source = source


class SettingsStoreError(ProfitLedgerError):
    """Cost settings could not be read. Callers fall back to defaults."""


class PersistenceError(ProfitLedgerError):
    """
    The store rejected a write.

    str() is the underlying store error, verbatim, so it can be surfaced
    in the per-client error entry.
    """

    def __init__(self, message: str, table: str = None):
        super().__init__(message)
        self.table = table


class InvalidWindowError(Exception):
    """
    Caller-level validation failure for a date window.

    Raised before any client is processed.
    """

    def __init__(self, field: str, message: str, value=None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")
