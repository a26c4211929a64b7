"""
Tests for bucket storage endpoints and stored file lifecycle.
"""
import io

import pytest
from fastapi import UploadFile
from httpx import AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.datastructures import Headers

from app.core.config import settings
from app.db import base as db_base
from app.services import storage


async def upload(client: AsyncClient, headers: dict, bucket: str = "media", name: str = "hello.txt",
                 content: bytes = b"Hello World", content_type: str = "text/plain"):
    return await client.post(
        f"/api/v1/storage/buckets/{bucket}/objects",
        files={"upload": (name, content, content_type)},
        headers=headers,
    )


class TestStorage:

    @pytest.mark.asyncio
    async def test_object_lifecycle(self, client: AsyncClient, admin_headers: dict, storage_dir):
        response = await upload(client, admin_headers)
        assert response.status_code == 201, response.text
        obj = response.json()
        assert obj["name"].endswith("_hello.txt")
        assert obj["size"] == 11
        assert obj["event_type"] == "document"
        assert obj["public_url"].endswith(f"/media/{obj['name']}")
        assert (storage_dir / "media" / obj["name"]).read_bytes() == b"Hello World"

        listing = await client.get("/api/v1/storage/buckets/media/objects", headers=admin_headers)
        assert [o["name"] for o in listing.json()] == [obj["name"]]

        download = await client.get(
            f"/api/v1/storage/buckets/media/objects/{obj['name']}/download", headers=admin_headers
        )
        assert download.status_code == 200
        assert download.content == b"Hello World"

        public = await client.get(f"/api/v1/storage/public/media/{obj['name']}")
        assert public.status_code == 200

        removed = await client.delete(
            f"/api/v1/storage/buckets/media/objects/{obj['name']}", headers=admin_headers
        )
        assert removed.status_code == 204
        assert not (storage_dir / "media" / obj["name"]).exists()

        listing = await client.get("/api/v1/storage/buckets/media/objects", headers=admin_headers)
        assert listing.json() == []

    @pytest.mark.asyncio
    async def test_bucket_sizes(self, client: AsyncClient, admin_headers: dict):
        await upload(client, admin_headers, content=b"x" * 1536)
        await upload(client, admin_headers, bucket="profiles", content=b"y" * 10)

        response = await client.get("/api/v1/storage/buckets", headers=admin_headers)
        assert response.status_code == 200
        sizes = {b["name"]: b for b in response.json()["items"]}
        assert sizes["media"]["size"] == 1536
        assert sizes["media"]["size_display"] == "1.5 KB"
        assert sizes["matangazo"]["size"] == 0
        assert response.json()["total_size"] == 1546

    @pytest.mark.asyncio
    async def test_archive_and_soft_delete(self, client: AsyncClient, admin_headers: dict):
        obj = (await upload(client, admin_headers)).json()
        url = f"/api/v1/storage/buckets/media/objects/{obj['name']}"

        archived = await client.patch(url, json={"is_archived": True}, headers=admin_headers)
        assert archived.json()["is_archived"] is True

        deleted = await client.patch(url, json={"is_deleted": True}, headers=admin_headers)
        assert deleted.json()["is_deleted"] is True

        visible = await client.get("/api/v1/storage/buckets/media/objects", headers=admin_headers)
        assert visible.json() == []
        everything = await client.get(
            "/api/v1/storage/buckets/media/objects?include_deleted=true", headers=admin_headers
        )
        assert len(everything.json()) == 1

        public = await client.get(f"/api/v1/storage/public/media/{obj['name']}")
        assert public.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_bucket(self, client: AsyncClient, admin_headers: dict):
        response = await upload(client, admin_headers, bucket="secrets")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_upload_limit(self, client: AsyncClient, admin_headers: dict, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 5)
        response = await upload(client, admin_headers)
        assert response.status_code == 413

    @pytest.mark.asyncio
    async def test_usage(self, client: AsyncClient, admin_headers: dict):
        await upload(client, admin_headers, name="a.png", content=b"1" * 100, content_type="image/png")
        await upload(client, admin_headers, name="b.mp4", content=b"2" * 40, content_type="video/mp4")

        response = await client.get("/api/v1/storage/usage", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_bytes"] == 140
        assert data["by_type"] == {"image": 100, "video": 40}
        assert sum(data["by_day"].values()) == 140

    @pytest.mark.asyncio
    async def test_cleanup_suggests_large_files(self, client: AsyncClient, admin_headers: dict, monkeypatch):
        monkeypatch.setattr(settings, "CLEANUP_LARGE_FILE_BYTES", 50)
        await upload(client, admin_headers, name="small.txt", content=b"s")
        await upload(client, admin_headers, name="big.bin", content=b"b" * 100,
                     content_type="application/octet-stream")

        response = await client.get("/api/v1/storage/cleanup", headers=admin_headers)
        suggestions = response.json()
        assert len(suggestions) == 1
        assert suggestions[0]["object"]["original_name"] == "big.bin"
        assert suggestions[0]["reasons"] == ["large"]

    @pytest.mark.asyncio
    async def test_storage_tab_required(self, client: AsyncClient, media_headers: dict):
        response = await client.get("/api/v1/storage/buckets", headers=media_headers)
        assert response.status_code == 403


def poster_upload(content: bytes = b"poster bytes") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename="poster.png",
        headers=Headers({"content-type": "image/png"}),
    )


class TestFileLifecycle:

    @pytest.mark.asyncio
    async def test_file_removed_when_metadata_insert_fails(self, db_session, storage_dir, monkeypatch):
        async def failing_flush(*args, **kwargs):
            raise SQLAlchemyError("insert failed")

        monkeypatch.setattr(db_session, "flush", failing_flush)

        with pytest.raises(SQLAlchemyError):
            await storage.save_upload(db_session, "media", poster_upload(), None)
        assert list((storage_dir / "media").iterdir()) == []

    @pytest.mark.asyncio
    async def test_file_removed_when_request_rolls_back(self, db_engine, storage_dir, monkeypatch):
        monkeypatch.setattr(
            db_base,
            "async_session_maker",
            async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False),
        )

        request_session = db_base.get_db()
        session = await request_session.__anext__()
        obj = await storage.save_upload(session, "media", poster_upload(), None)
        path = storage_dir / "media" / obj.name
        assert path.exists()

        with pytest.raises(RuntimeError):
            await request_session.athrow(RuntimeError("handler failed"))
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_file_kept_after_committed_request(self, db_engine, storage_dir, monkeypatch):
        monkeypatch.setattr(
            db_base,
            "async_session_maker",
            async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False),
        )

        request_session = db_base.get_db()
        session = await request_session.__anext__()
        obj = await storage.save_upload(session, "media", poster_upload(), None)
        with pytest.raises(StopAsyncIteration):
            await request_session.__anext__()

        assert (storage_dir / "media" / obj.name).exists()
        assert db_base.ROLLBACK_CALLBACKS_KEY not in session.info

    @pytest.mark.asyncio
    async def test_file_kept_when_removal_does_not_commit(self, db_session, storage_dir, monkeypatch):
        obj = await storage.save_upload(db_session, "media", poster_upload(), None)
        path = storage_dir / "media" / obj.name

        async def failing_commit():
            raise SQLAlchemyError("commit failed")

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(SQLAlchemyError):
            await storage.remove_object(db_session, obj)
        assert path.exists()
