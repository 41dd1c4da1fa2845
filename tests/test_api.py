"""Tests for the HTTP routes -- upload, listing, download, delete and feed."""

import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from fakes import FailingRepository, RejectingBlobStore
from podcast_hosting.api.schemas import AudioRecordOut
from podcast_hosting.main import create_app
from podcast_hosting.models.audio import AudioRecord
from podcast_hosting.services.services import AudioService

DATA = b"\x00\x01audio-bytes" * 100


def _upload(client, headers, filename="chapter.mp3", data=DATA, **fields):
    form = {"book_name": "Dune", **fields}
    return client.post(
        "/api/v1/audios",
        files={"file": (filename, data, "audio/mpeg")},
        data=form,
        headers=headers,
    )


class TestAuthentication:
    def test_upload_requires_token(self, client):
        response = _upload(client, headers={})
        assert response.status_code == 401

    def test_unknown_token_rejected(self, client):
        response = _upload(client, headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_listing_requires_token(self, client):
        assert client.get("/api/v1/audios").status_code == 401

    def test_feed_and_download_are_public(self, client):
        assert client.get("/feed.rss").status_code == 200
        assert client.get("/download/missing").status_code == 404


class TestUpload:
    def test_created(self, client, auth_headers):
        response = _upload(
            client,
            auth_headers,
            filename="01.m4b",
            book_series="Chronicles",
            chapter_title="Arrival",
            chapter_number="1",
        )

        assert response.status_code == 201
        body = response.json()
        assert body["display_title"] == "Dune [Chronicles] | 1 Arrival"
        assert body["size_bytes"] == len(DATA)
        assert body["extension"] == ".m4b"
        assert body["content_type"] == "audio/m4b"
        assert body["uploaded_by"] == "admin@example.com"

    def test_empty_file(self, client, auth_headers):
        response = _upload(client, auth_headers, data=b"")

        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "file"

    def test_missing_file(self, client, auth_headers):
        response = client.post("/api/v1/audios", data={"book_name": "Dune"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Please upload a file."

    def test_blank_book_name(self, client, auth_headers):
        response = _upload(client, auth_headers, book_name="  ")
        assert response.status_code == 400

    def test_too_large(self, settings, service, auth_headers):
        small = settings.model_copy(update={"MAX_UPLOAD_BYTES": 10})
        with TestClient(create_app(settings=small, service=service)) as client:
            response = _upload(client, auth_headers)
        assert response.status_code == 413

    def test_storage_failure(self, settings, repository, blob_root, auth_headers):
        service = AudioService(RejectingBlobStore(blob_root), repository)
        with TestClient(create_app(settings=settings, service=service)) as client:
            response = _upload(client, auth_headers)

        assert response.status_code == 502
        assert "503" in response.json()["detail"]["message"]

    def test_persistence_failure(self, settings, session_factory, blob_store, auth_headers):
        service = AudioService(blob_store, FailingRepository(session_factory))
        with TestClient(create_app(settings=settings, service=service)) as client:
            response = _upload(client, auth_headers)

        assert response.status_code == 500
        assert response.json()["detail"]["field"] == "file"


class TestReadAndDelete:
    def test_list_in_upload_order(self, client, auth_headers):
        first = _upload(client, auth_headers, chapter_title="One").json()
        second = _upload(client, auth_headers, chapter_title="Two").json()

        listed = client.get("/api/v1/audios", headers=auth_headers).json()
        assert [item["id"] for item in listed] == [first["id"], second["id"]]

    def test_get(self, client, auth_headers):
        created = _upload(client, auth_headers).json()

        response = client.get(f"/api/v1/audios/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_upload_time_carries_utc_offset(self, client, auth_headers):
        created = _upload(client, auth_headers).json()

        fetched = client.get(f"/api/v1/audios/{created['id']}", headers=auth_headers).json()
        listed = client.get("/api/v1/audios", headers=auth_headers).json()
        for value in (created["uploaded_at"], fetched["uploaded_at"], listed[0]["uploaded_at"]):
            assert value.endswith(("Z", "+00:00"))

    def test_naive_upload_time_is_read_as_utc(self):
        record = AudioRecord(
            id="abc",
            display_title="Dune | One",
            storage_locator="file:///blobs/abc",
            content_hash="AAAA",
            size_bytes=10,
            extension=".mp3",
            uploaded_at=datetime(2024, 10, 20, 17, 42, 43),
            uploaded_by=None,
        )

        out = AudioRecordOut.from_record(record)
        assert out.uploaded_at == datetime(2024, 10, 20, 17, 42, 43, tzinfo=timezone.utc)

    def test_get_missing(self, client, auth_headers):
        assert client.get("/api/v1/audios/missing", headers=auth_headers).status_code == 404

    def test_delete(self, client, auth_headers):
        created = _upload(client, auth_headers).json()

        response = client.delete(f"/api/v1/audios/{created['id']}", headers=auth_headers)
        assert response.status_code == 204
        assert client.get(f"/download/{created['id']}").status_code == 404

    def test_delete_missing(self, client, auth_headers):
        assert client.delete("/api/v1/audios/missing", headers=auth_headers).status_code == 404


class TestDownload:
    @pytest.mark.parametrize(
        "filename,content_type,suffix",
        [
            ("a.mp3", "audio/mpeg", ".mp3"),
            ("a.m4a", "audio/m4a", ".m4a"),
            ("a.m4b", "audio/m4b", ".m4b"),
            ("a", "audio/mpeg", ".mp3"),
        ],
    )
    def test_content(self, client, auth_headers, filename, content_type, suffix):
        created = _upload(client, auth_headers, filename=filename).json()

        response = client.get(f"/download/{created['id']}")
        assert response.status_code == 200
        assert response.content == DATA
        assert response.headers["content-type"] == content_type
        assert f'filename="{created["id"]}{suffix}"' in response.headers["content-disposition"]

    def test_missing_blob_is_generic_server_error(self, client, auth_headers, blob_root):
        created = _upload(client, auth_headers).json()
        (blob_root / created["id"]).unlink()

        response = client.get(f"/download/{created['id']}")
        assert response.status_code == 500
        assert response.json()["detail"] == "Internal server error"


class TestFeed:
    def test_feed_matches_catalog(self, client, auth_headers):
        first = _upload(client, auth_headers, filename="a.m4b").json()
        second = _upload(client, auth_headers, filename="b.mp3").json()

        response = client.get("/feed.rss")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/rss+xml; charset=utf-8"

        channel = ET.fromstring(response.content).find("channel")
        assert channel.findtext("title") == "Audiobooks"
        items = channel.findall("item")
        assert [item.findtext("guid") for item in items] == [first["id"], second["id"]]
        assert items[0].find("enclosure").get("url") == f"http://testserver/download/{first['id']}"

    def test_feed_and_download_agree_on_type(self, client, auth_headers):
        created = _upload(client, auth_headers, filename="chapter.m4b").json()

        download = client.get(f"/download/{created['id']}")
        item = ET.fromstring(client.get("/feed.rss").content).find("channel/item")
        assert item.find("enclosure").get("type") == download.headers["content-type"] == "audio/m4b"

    def test_public_base_url_overrides_request_host(self, settings, service):
        configured = settings.model_copy(update={"PUBLIC_BASE_URL": "https://cdn.example.com"})
        with TestClient(create_app(settings=configured, service=service)) as client:
            channel = ET.fromstring(client.get("/feed.rss").content).find("channel")

        assert channel.findtext("link") == "https://cdn.example.com/"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
