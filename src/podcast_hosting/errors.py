from __future__ import annotations


class PodcastHostingError(Exception):
    """Base class for every error raised by the audio service."""


class ConfigError(PodcastHostingError):
    pass


class InvalidUploadError(PodcastHostingError):
    """The upload request is unusable; raised before any storage I/O."""


class UploadError(PodcastHostingError):
    """The blob write for an upload did not complete."""

    def __init__(
        self, message: str, *, audio_id: str | None = None, status: int | None = None
    ) -> None:
        super().__init__(message)
        self.audio_id = audio_id
        self.status = status


class StorageError(PodcastHostingError):
    """The blob backend was unreachable or rejected the operation."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class BlobNotFoundError(StorageError):
    pass


class PersistenceError(PodcastHostingError):
    """The metadata database rejected a read or write."""
