from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Iterator
from uuid import uuid4

from podcast_hosting.errors import (
    InvalidUploadError,
    PersistenceError,
    StorageError,
    UploadError,
)
from podcast_hosting.models.audio import AudioRecord
from podcast_hosting.services.repository import AudioRepository
from podcast_hosting.services.storage import BlobStore
from podcast_hosting.services.titles import compose_title

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".mp3"
DEFAULT_CONTENT_TYPE = "audio/mpeg"
CONTENT_TYPES = {
    ".mp3": "audio/mpeg",
    ".m4a": "audio/m4a",
    ".m4b": "audio/m4b",
}
MAX_TITLE_LENGTH = 255
MAX_EXTENSION_LENGTH = 15


def content_type_for(extension: str | None) -> str:
    if not extension:
        return DEFAULT_CONTENT_TYPE
    return CONTENT_TYPES.get(extension.lower(), DEFAULT_CONTENT_TYPE)


def _extension_of(file_name: str | None) -> str | None:
    # Everything from the last dot of the base name, so ".m4b" keeps its extension.
    name = PurePath(file_name or "").name
    dot = name.rfind(".")
    if dot < 0 or dot == len(name) - 1:
        return None
    return name[dot:]


def _md5_base64(data: bytes) -> str:
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


@dataclass(frozen=True)
class AudioDownload:
    record: AudioRecord
    content_type: str
    file_name: str
    chunks: Iterator[bytes]


class AudioService:
    """Upload, lookup, download and deletion of audio chapters.

    Blob writes and metadata writes are not transactional; a failed metadata
    insert is compensated by deleting the blob that was just written.
    """

    def __init__(self, blob_store: BlobStore, repository: AudioRepository) -> None:
        self.blob_store = blob_store
        self.repository = repository

    def list_audios(self) -> list[AudioRecord]:
        return self.repository.list_ordered_by_upload_time()

    def get_audio(self, audio_id: str) -> AudioRecord | None:
        return self.repository.find_by_id(audio_id)

    def upload(
        self,
        user: str | None,
        data: bytes | None,
        file_name: str | None,
        book_name: str | None,
        book_series: str | None = None,
        chapter_title: str | None = None,
        chapter_number: int | None = None,
    ) -> AudioRecord:
        if not data:
            raise InvalidUploadError("Please upload a file.")
        if book_name is None or not book_name.strip():
            raise InvalidUploadError("Book name is required.")

        audio_id = str(uuid4())
        extension = _extension_of(file_name)
        if extension is not None and len(extension) > MAX_EXTENSION_LENGTH:
            raise InvalidUploadError(f"File extension {extension!r} is too long.")
        display_title = compose_title(book_name, book_series, chapter_title, chapter_number)
        if len(display_title) > MAX_TITLE_LENGTH:
            raise InvalidUploadError(
                f"Title must be at most {MAX_TITLE_LENGTH} characters long."
            )

        try:
            result = self.blob_store.put(audio_id, data, overwrite=True)
        except StorageError as exc:
            logger.warning(
                "[audio-%s] File %s could not be uploaded: %s", audio_id, file_name, exc
            )
            raise UploadError(
                f"[audio-{audio_id}] Failed to upload file {file_name}: {exc}",
                audio_id=audio_id,
                status=exc.status,
            ) from exc

        if not result.ok:
            logger.warning(
                "[audio-%s] File %s could not be uploaded. Status: %s",
                audio_id,
                file_name,
                result.status,
            )
            raise UploadError(
                f"[audio-{audio_id}] Failed to upload file {file_name}. "
                f"Status: '{result.status}'",
                audio_id=audio_id,
                status=result.status,
            )
        logger.info("[audio-%s] File %s was uploaded successfully", audio_id, file_name)

        if result.content_md5:
            content_hash = base64.b64encode(result.content_md5).decode("ascii")
        else:
            logger.info("[audio-%s] Storage returned no hash, calculating it", audio_id)
            content_hash = _md5_base64(data)

        record = AudioRecord(
            id=audio_id,
            display_title=display_title,
            storage_locator=result.locator,
            content_hash=content_hash,
            size_bytes=len(data),
            extension=extension,
            uploaded_at=datetime.now(timezone.utc),
            uploaded_by=user,
        )
        try:
            self.repository.insert(record)
        except PersistenceError:
            self._discard_blob(audio_id)
            raise

        logger.info(
            "File %s uploaded successfully by %s", record.display_title, user or "unknown"
        )
        return record

    def _discard_blob(self, audio_id: str) -> None:
        try:
            self.blob_store.delete(audio_id)
        except StorageError as exc:
            logger.warning(
                "[audio-%s] Metadata insert failed and the blob could not be removed; "
                "orphaned blob left in storage: %s",
                audio_id,
                exc,
            )
        else:
            logger.info("[audio-%s] Removed blob after failed metadata insert", audio_id)

    def download(self, audio_id: str) -> AudioDownload | None:
        record = self.repository.find_by_id(audio_id)
        if record is None:
            return None
        chunks = self.blob_store.open(audio_id)
        extension = record.extension or DEFAULT_EXTENSION
        return AudioDownload(
            record=record,
            content_type=content_type_for(record.extension),
            file_name=f"{audio_id}{extension}",
            chunks=chunks,
        )

    def delete(self, audio_id: str) -> bool:
        record = self.repository.find_by_id(audio_id)
        if record is None:
            return False
        # Blob first: a crash in between leaves a dangling row, never an
        # unaccounted blob.
        if not self.blob_store.delete(audio_id):
            logger.info("[audio-%s] Blob was already absent", audio_id)
        self.repository.remove(audio_id)
        logger.info("[audio-%s] Deleted %s", audio_id, record.display_title)
        return True
