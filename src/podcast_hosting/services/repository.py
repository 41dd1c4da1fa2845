from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from podcast_hosting.errors import PersistenceError
from podcast_hosting.models.audio import AudioRecord


class AudioRepository:
    """Audio metadata rows, one session per operation."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def insert(self, record: AudioRecord) -> None:
        try:
            with self._session_factory() as session:
                session.add(record)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save audio {record.id}: {exc}") from exc

    def find_by_id(self, audio_id: str) -> AudioRecord | None:
        try:
            with self._session_factory() as session:
                return session.get(AudioRecord, audio_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load audio {audio_id}: {exc}") from exc

    def remove(self, audio_id: str) -> bool:
        try:
            with self._session_factory() as session:
                record = session.get(AudioRecord, audio_id)
                if record is None:
                    return False
                session.delete(record)
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to delete audio {audio_id}: {exc}") from exc
        return True

    def list_ordered_by_upload_time(self) -> list[AudioRecord]:
        # id breaks ties between uploads stamped with the same instant.
        statement = select(AudioRecord).order_by(
            AudioRecord.uploaded_at, AudioRecord.id
        )
        try:
            with self._session_factory() as session:
                return list(session.execute(statement).scalars().all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to list audios: {exc}") from exc
