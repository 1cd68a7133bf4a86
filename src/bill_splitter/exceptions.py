"""Custom exceptions for Bill Splitter."""


class BillSplitterError(Exception):
    """Base exception for all Bill Splitter errors."""

    pass


class ConfigurationError(BillSplitterError):
    """Raised when configuration is invalid or missing."""

    pass


class ValidationError(BillSplitterError):
    """Raised when a mutation would break the ledger's structural invariants."""

    pass


class SnapshotImportError(ValidationError):
    """Raised when imported snapshot data has an invalid structure."""

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or f"Invalid data format: {reason}")


class StorageError(BillSplitterError):
    """Raised when the snapshot file cannot be read or written."""

    pass
