from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from podcast_hosting.models.database import Base


class AudioRecord(Base):
    __tablename__ = "audio_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    display_title: Mapped[str] = mapped_column(String(255))
    storage_locator: Mapped[str] = mapped_column(String(255))
    content_hash: Mapped[str] = mapped_column(String(255))
    size_bytes: Mapped[int] = mapped_column(BigInteger)
    extension: Mapped[str | None] = mapped_column(String(15), nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    uploaded_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
