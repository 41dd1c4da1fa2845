from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, field_validator

from podcast_hosting.models.audio import AudioRecord
from podcast_hosting.services.services import content_type_for


class AudioRecordOut(BaseModel):
    id: str
    display_title: str
    storage_locator: str
    content_hash: str
    size_bytes: int
    extension: str | None
    content_type: str
    uploaded_at: datetime
    uploaded_by: str | None

    @field_validator("uploaded_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite returns naive datetimes; stored times are always UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_record(cls, record: AudioRecord) -> "AudioRecordOut":
        return cls(
            id=record.id,
            display_title=record.display_title,
            storage_locator=record.storage_locator,
            content_hash=record.content_hash,
            size_bytes=record.size_bytes,
            extension=record.extension,
            content_type=content_type_for(record.extension),
            uploaded_at=record.uploaded_at,
            uploaded_by=record.uploaded_by,
        )
