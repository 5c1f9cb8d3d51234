"""Error taxonomy for the Sensex Options Tracker."""


class TrackerError(Exception):
    """Base class for all tracker errors.

    Carries a human-readable message and renders as a structured
    error payload for callers that speak JSON.
    """

    code = "tracker_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Return the structured error payload."""
        return {"error": self.code, "message": self.message}


class ValidationError(TrackerError, ValueError):
    """A required input is missing, non-numeric or out of range."""

    code = "validation_error"


class NotFoundError(TrackerError, LookupError):
    """No tracked position has the requested id."""

    code = "not_found"

    def __init__(self, position_id):
        super().__init__(f"Option not found: {position_id}")
        self.position_id = position_id


class DataSourceError(TrackerError):
    """A single market data source failed to produce a quote."""

    code = "data_source_error"

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class SnapshotFailure(TrackerError):
    """Every data source, including the synthetic fallback, failed."""

    code = "snapshot_failure"


class StorageError(TrackerError):
    """The position store could not be opened, read or written."""

    code = "storage_error"
