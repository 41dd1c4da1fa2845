from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import StreamingResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from podcast_hosting.api.schemas import AudioRecordOut
from podcast_hosting.errors import (
    InvalidUploadError,
    PersistenceError,
    StorageError,
    UploadError,
)
from podcast_hosting.services.feed import FEED_CONTENT_TYPE, build_feed
from podcast_hosting.services.services import AudioService
from podcast_hosting.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter()
public_router = APIRouter()
bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_audio_service(request: Request) -> AudioService:
    return request.app.state.audio_service


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> str:
    user = settings.API_TOKENS.get(credentials.credentials) if credentials else None
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def _upload_failure(status_code: int, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"field": "file", "message": message})


@router.get("/audios")
def list_audios(
    user: str = Depends(get_current_user),
    service: AudioService = Depends(get_audio_service),
) -> list[AudioRecordOut]:
    return [AudioRecordOut.from_record(record) for record in service.list_audios()]


@router.post("/audios", status_code=201)
async def upload_audio(
    file: UploadFile | None = File(None),
    book_name: str = Form(""),
    book_series: str | None = Form(None),
    chapter_title: str | None = Form(None),
    chapter_number: int | None = Form(None),
    user: str = Depends(get_current_user),
    service: AudioService = Depends(get_audio_service),
    settings: Settings = Depends(get_settings),
) -> AudioRecordOut:
    if file is not None and file.size is not None and file.size > settings.MAX_UPLOAD_BYTES:
        raise _upload_failure(413, "File is too large.")
    contents = await file.read() if file is not None else b""
    if len(contents) > settings.MAX_UPLOAD_BYTES:
        raise _upload_failure(413, "File is too large.")

    # The worker thread finishes (or rolls back) even if the request is cancelled.
    try:
        record = await asyncio.to_thread(
            service.upload,
            user,
            contents,
            file.filename if file is not None else None,
            book_name,
            book_series,
            chapter_title,
            chapter_number,
        )
    except InvalidUploadError as exc:
        raise _upload_failure(400, str(exc)) from exc
    except UploadError as exc:
        raise _upload_failure(502, str(exc)) from exc
    except PersistenceError as exc:
        logger.error("Upload of %s failed: %s", file.filename, exc)
        raise _upload_failure(500, "The audio could not be saved.") from exc
    return AudioRecordOut.from_record(record)


@router.get("/audios/{audio_id}")
def get_audio(
    audio_id: str,
    user: str = Depends(get_current_user),
    service: AudioService = Depends(get_audio_service),
) -> AudioRecordOut:
    record = service.get_audio(audio_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No audio with id {audio_id} was found.")
    return AudioRecordOut.from_record(record)


@router.delete("/audios/{audio_id}", status_code=204)
def delete_audio(
    audio_id: str,
    user: str = Depends(get_current_user),
    service: AudioService = Depends(get_audio_service),
) -> Response:
    try:
        deleted = service.delete(audio_id)
    except (StorageError, PersistenceError) as exc:
        logger.error("Deleting audio %s failed: %s", audio_id, exc)
        raise HTTPException(status_code=500, detail="The audio could not be deleted.") from exc
    if not deleted:
        raise HTTPException(status_code=404, detail=f"No audio with id {audio_id} was found.")
    logger.info("Audio %s deleted by %s", audio_id, user)
    return Response(status_code=204)


@public_router.get("/download/{audio_id}")
def download_audio(
    audio_id: str,
    service: AudioService = Depends(get_audio_service),
) -> StreamingResponse:
    try:
        download = service.download(audio_id)
    except (StorageError, PersistenceError) as exc:
        logger.error("Downloading audio %s failed: %s", audio_id, exc)
        raise HTTPException(status_code=500, detail="Internal server error") from exc
    if download is None:
        raise HTTPException(status_code=404, detail=f"No audio with id {audio_id} was found.")

    headers = {
        "Content-Disposition": f'attachment; filename="{download.file_name}"',
        "Content-Length": str(download.record.size_bytes),
    }
    return StreamingResponse(download.chunks, media_type=download.content_type, headers=headers)


@public_router.get("/feed.rss")
def get_feed(
    request: Request,
    service: AudioService = Depends(get_audio_service),
    settings: Settings = Depends(get_settings),
) -> Response:
    base_uri = settings.PUBLIC_BASE_URL or str(request.base_url)
    feed = build_feed(
        service.list_audios(),
        channel_title=settings.CHANNEL_TITLE,
        channel_description=settings.CHANNEL_DESCRIPTION,
        base_uri=base_uri,
    )
    return Response(content=feed, media_type=f"{FEED_CONTENT_TYPE}; charset=utf-8")


@public_router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
