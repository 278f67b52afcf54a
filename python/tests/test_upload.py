"""Tests for the upload pipeline (blob store -> metadata -> media index).

Tests cover:
- Bytes reach the blob store and the content hash is recorded
- Re-uploading identical bytes deduplicates
- Folder permission is checked before bytes are written
- Storage failures surface as E_STORAGE_ERROR
- The HTTP route accepts a raw request body
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from galera.app import create_app
from galera.auth.context import Actor
from galera.errors import ApiError, ApiErrorCode, InvalidRequestError, NotFoundError
from galera.services.upload import upload_media
from galera.storage.blobs import BlobStore, InMemoryBlobStore, StorageError, content_hash
from galera.storage.metadata import MediaMetadata, StaticMetadataExtractor
from tests.factories import create_user, root_folder_id
from tests.helpers import register_and_login

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"fake jpeg payload " * 100


class FailingBlobStore(BlobStore):
    def store(self, data: bytes) -> str:
        raise StorageError("disk full")

    def retrieve(self, hash_: str) -> bytes:
        raise StorageError("disk full")

    def exists(self, hash_: str) -> bool:
        return False


@pytest.fixture
def extractor() -> StaticMetadataExtractor:
    return StaticMetadataExtractor(MediaMetadata(width=1920, height=1080))


class TestUploadService:
    def test_upload_stores_bytes_and_indexes_media(
        self, db_session: Session, blob_store: InMemoryBlobStore, extractor
    ):
        actor = create_user(db_session)
        folder_id = root_folder_id(db_session, actor)

        out = upload_media(
            db_session, blob_store, extractor, actor, folder_id, "photo.jpg", JPEG_BYTES
        )

        assert out.content_hash == content_hash(JPEG_BYTES)
        assert blob_store.retrieve(out.content_hash) == JPEG_BYTES
        assert (out.width, out.height) == (1920, 1080)
        assert extractor.calls == [(len(JPEG_BYTES), "photo.jpg")]

    def test_reupload_returns_same_media(
        self, db_session: Session, blob_store: InMemoryBlobStore, extractor
    ):
        actor = create_user(db_session)
        folder_id = root_folder_id(db_session, actor)

        first = upload_media(
            db_session, blob_store, extractor, actor, folder_id, "a.jpg", JPEG_BYTES
        )
        second = upload_media(
            db_session, blob_store, extractor, actor, folder_id, "b.jpg", JPEG_BYTES
        )

        assert first.id == second.id
        assert len(blob_store) == 1

    def test_foreign_folder_rejected_before_writing(
        self, db_session: Session, blob_store: InMemoryBlobStore, extractor
    ):
        owner = create_user(db_session)
        stranger = create_user(db_session)

        with pytest.raises(NotFoundError):
            upload_media(
                db_session,
                blob_store,
                extractor,
                stranger,
                root_folder_id(db_session, owner),
                "photo.jpg",
                JPEG_BYTES,
            )

        assert len(blob_store) == 0

    def test_empty_upload_rejected(
        self, db_session: Session, blob_store: InMemoryBlobStore, extractor
    ):
        actor = create_user(db_session)
        folder_id = root_folder_id(db_session, actor)

        with pytest.raises(InvalidRequestError):
            upload_media(
                db_session, blob_store, extractor, actor, folder_id, "a.jpg", b""
            )

    def test_storage_failure(self, db_session: Session, extractor):
        actor = create_user(db_session)

        with pytest.raises(ApiError) as exc:
            upload_media(
                db_session,
                FailingBlobStore(),
                extractor,
                actor,
                root_folder_id(db_session, actor),
                "photo.jpg",
                JPEG_BYTES,
            )

        assert exc.value.code == ApiErrorCode.E_STORAGE_ERROR

    def test_anonymous_upload_rejected(
        self, db_session: Session, blob_store: InMemoryBlobStore, extractor
    ):
        actor = create_user(db_session)

        with pytest.raises(ApiError) as exc:
            upload_media(
                db_session,
                blob_store,
                extractor,
                Actor.anonymous(),
                root_folder_id(db_session, actor),
                "photo.jpg",
                JPEG_BYTES,
            )

        assert exc.value.code == ApiErrorCode.E_UNAUTHENTICATED


class TestUploadRoute:
    def _root(self, client: TestClient, headers: dict) -> str:
        response = client.get("/folders/root", headers=headers)
        assert response.status_code == 200
        return response.json()["data"]["id"]

    def test_upload_raw_body(self, client: TestClient, blob_store: InMemoryBlobStore):
        user = register_and_login(client)
        root_id = self._root(client, user["headers"])

        response = client.post(
            f"/folders/{root_id}/media",
            params={"filename": "photo.jpg"},
            content=JPEG_BYTES,
            headers={**user["headers"], "content-type": "application/octet-stream"},
        )

        assert response.status_code == 201, response.text
        data = response.json()["data"]
        assert data["filename"] == "photo.jpg"
        assert data["content_hash"] == content_hash(JPEG_BYTES)
        assert blob_store.exists(data["content_hash"])

        listed = client.get(f"/folders/{root_id}/media", headers=user["headers"])
        assert [m["id"] for m in listed.json()["data"]] == [data["id"]]

    def test_upload_requires_authentication(self, client: TestClient):
        user = register_and_login(client)
        root_id = self._root(client, user["headers"])

        response = client.post(
            f"/folders/{root_id}/media",
            params={"filename": "photo.jpg"},
            content=JPEG_BYTES,
            headers={"content-type": "application/octet-stream"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "E_UNAUTHENTICATED"


class TestAppWiring:
    def test_empty_injected_blob_store_is_kept(self, session_factory):
        store = InMemoryBlobStore()
        extractor = StaticMetadataExtractor(MediaMetadata())
        assert len(store) == 0

        app = create_app(
            session_factory=session_factory, blob_store=store, metadata_extractor=extractor
        )

        assert app.state.blob_store is store
        assert app.state.metadata_extractor is extractor
        assert app.state.session_factory is session_factory
