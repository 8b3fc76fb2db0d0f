# exceptions.py


class StorageError(Exception):
    """Any failure while talking to the remote storage. The provider error is kept as __cause__."""
    pass


class StorageConnectionError(StorageError):
    """The credential could not be refreshed or the account could not be reached."""
    pass


class NotFoundError(StorageError):
    """No remote object matched where exactly one was required."""
    pass


class AmbiguousMatchError(StorageError):
    """More than one remote object matched where at most one was allowed."""

    def __init__(self, message: str, count: int):
        super().__init__(message)
        self.count = count


class UploadError(StorageError):
    """The uploaded file could not be renamed from its staging name."""
    pass


class MoveError(StorageError):
    """A move/rename failed. `source` and `target` are "<folder id>:<name>" strings."""

    def __init__(self, source: str, target: str):
        super().__init__(f"Could not move file {source} to {target}")
        self.source = source
        self.target = target
