"""Error taxonomy for metadata reconciliation runs.

Errors are split by the scope they abort: configuration and publish errors
end the whole run, listing and filesystem errors end a single pass, and
chunk errors are absorbed by the fetcher.
"""

from __future__ import annotations


class MetasyncError(RuntimeError):
    """Base class for all metasync failures."""


class ConfigurationError(MetasyncError):
    """Raised when the configuration file or a named rule cannot be resolved."""


class RemoteListingError(MetasyncError):
    """Raised when the remote refuses or fails an id/lastUpdated listing."""

    def __init__(self, type_name: str, message: str) -> None:
        super().__init__(f"Listing {type_name} failed: {message}")
        self.type_name = type_name


class ChunkFetchError(MetasyncError):
    """Raised by a catalog client when one batch of full bodies fails."""

    def __init__(self, type_name: str, ids: list[str], message: str) -> None:
        super().__init__(f"Fetching {len(ids)} {type_name} failed: {message}")
        self.type_name = type_name
        self.ids = ids


class PartialFetchError(MetasyncError):
    """Raised in strict mode when some chunks of a fetch failed."""

    def __init__(self, logical_key: str, failed_chunks: int) -> None:
        super().__init__(
            f"{failed_chunks} chunk(s) failed while fetching {logical_key}"
        )
        self.logical_key = logical_key
        self.failed_chunks = failed_chunks


class FilesystemError(MetasyncError):
    """Raised when the mirror working tree cannot be written."""


class SnapshotWriteError(FilesystemError):
    """Raised when a snapshot file cannot be persisted."""


class MirrorWriteError(FilesystemError):
    """Raised when a mirrored object file cannot be persisted."""


class RepositoryError(MetasyncError):
    """Raised when a git operation on the mirror repository fails."""


class PublishError(RepositoryError):
    """Raised when the commit or push of a run fails."""
