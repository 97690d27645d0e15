"""Exceptions raised by the deployer."""


class DeployError(RuntimeError):
    """Base class for deployer failures."""


class ConfigurationError(DeployError):
    """Raised when deploy options are missing or malformed."""


class ReconciliationError(DeployError):
    """Raised when the remote key set cannot be reconciled."""


class ListingError(ReconciliationError):
    """Listing the bucket failed, so the remote key set is incomplete."""

    def __init__(self, message: str, partial_keys=None):
        super().__init__(message)
        self.partial_keys = list(partial_keys or [])


class DeletionError(ReconciliationError):
    """A batch delete request failed or reported per-key errors."""
