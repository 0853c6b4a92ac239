class SplitSyncError(Exception):
    """Base class for every error raised by splitsync."""


class RemoteServiceError(SplitSyncError, RuntimeError):
    """The remote authority answered with something we cannot use."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteUnavailableError(RemoteServiceError):
    """The remote authority timed out or could not be reached."""


class VaryDefinitionError(SplitSyncError, ValueError):
    """A ``vary`` declaration is structurally invalid. Always a caller bug."""


class SplitConfigurationError(SplitSyncError, ValueError):
    """The split registry cannot produce a variant for this split."""
