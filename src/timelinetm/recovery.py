class TimelineError(Exception):
    """Base exception for all timelinetm errors."""
    pass

class RecoverableError(TimelineError):
    """An error the caller can recover from by changing its input."""
    pass

class FatalError(TimelineError):
    """An error that requires application termination or major intervention."""
    pass

class CorruptionError(FatalError):
    """Corrupted Data Error - broken hierarchy, duplicate ids, unparsable snapshots"""
    pass

class NotFoundError(RecoverableError):
    """An id did not resolve at the requested level."""

    def __init__(self, kind: str, entity_id):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")

class ValidationError(RecoverableError):
    """A payload is missing a required field or holds a malformed value."""
    pass

class FileOperationError(RecoverableError):
    """File operation failed but can be retried."""
    pass

class MigrationNeededError(RecoverableError):
    """ Snapshot is valid, but was written by a newer schema version """
    pass
