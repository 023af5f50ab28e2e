"""Tests for the article reference admin endpoints.

Tests cover:
- Upload with validation
- Listing in display order
- Reordering
- Download (redirect and stream strategies)
- Delete
- Partial update
- Authorization via the owning article
"""

from datetime import timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from article_admin.main import app
from article_admin.models import Article, ArticleReference
from article_admin.services.download_strategy import StreamDownloadStrategy, get_download_strategy
from article_admin.services.storage_base import StorageServiceError


def _references_url(article: Article) -> str:
    return f"/admin/article/{article.id}/references"


def _reference_url(reference: ArticleReference) -> str:
    return f"/admin/article/references/{reference.id}"


@pytest.mark.asyncio
class TestUploadReference:
    """Tests for POST /admin/article/{id}/references."""

    async def test_upload_success(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        mock_storage: MagicMock,
    ):
        """A valid upload stores the bytes and creates a reference."""
        response = await client.post(
            _references_url(test_article),
            headers=auth_headers,
            files={"reference": ("report.pdf", b"%PDF-1.4 content", "application/pdf")},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["filename"] == "report-65f1c2a9b3d4e.pdf"
        assert data["originalFilename"] == "report.pdf"
        assert data["mimeType"] == "application/pdf"
        assert data["position"] == 0
        assert set(data) == {"id", "filename", "originalFilename", "mimeType", "position"}

        mock_storage.upload_article_reference.assert_called_once_with(
            data=b"%PDF-1.4 content",
            original_filename="report.pdf",
            content_type="application/pdf",
        )

    async def test_upload_is_persisted(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_article: Article,
    ):
        """The created reference is linked to the article."""
        response = await client.post(
            _references_url(test_article),
            headers=auth_headers,
            files={"reference": ("photo.png", b"\x89PNG", "image/png")},
        )
        assert response.status_code == 201

        result = await db_session.execute(
            select(ArticleReference).where(ArticleReference.article_id == test_article.id)
        )
        references = result.scalars().all()
        assert len(references) == 1
        assert references[0].mime_type == "image/png"

    async def test_upload_appends_after_existing(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        test_references: list,
    ):
        """A new reference is positioned after the existing ones."""
        response = await client.post(
            _references_url(test_article),
            headers=auth_headers,
            files={"reference": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 201
        assert response.json()["position"] == 3

    async def test_upload_missing_file(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        mock_storage: MagicMock,
    ):
        """Missing file yields a single 'select a file' violation."""
        response = await client.post(
            _references_url(test_article),
            headers=auth_headers,
            data={"unrelated": "value"},
        )
        assert response.status_code == 400
        data = response.json()
        assert len(data["violations"]) == 1
        assert data["violations"][0]["propertyPath"] == "reference"
        assert "select a file" in data["violations"][0]["message"]
        mock_storage.upload_article_reference.assert_not_called()

    async def test_upload_too_large(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        mock_storage: MagicMock,
    ):
        """Files over 5 MB are rejected."""
        response = await client.post(
            _references_url(test_article),
            headers=auth_headers,
            files={"reference": ("big.pdf", b"x" * (5_000_001), "application/pdf")},
        )
        assert response.status_code == 400
        violations = response.json()["violations"]
        assert len(violations) == 1
        assert "too large" in violations[0]["message"]
        mock_storage.upload_article_reference.assert_not_called()

    async def test_upload_disallowed_type(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
    ):
        """MIME types outside the allow-list are rejected."""
        response = await client.post(
            _references_url(test_article),
            headers=auth_headers,
            files={"reference": ("archive.zip", b"PK", "application/zip")},
        )
        assert response.status_code == 400
        violations = response.json()["violations"]
        assert len(violations) == 1
        assert "mime type" in violations[0]["message"]

    async def test_upload_reports_every_violation(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        mock_storage: MagicMock,
    ):
        """An oversized file of a disallowed type gets one violation per constraint."""
        response = await client.post(
            _references_url(test_article),
            headers=auth_headers,
            files={"reference": ("big.zip", b"x" * (5_000_001), "application/zip")},
        )
        assert response.status_code == 400
        data = response.json()
        assert data["detail"] == "Validation Failed"
        assert len(data["violations"]) == 2
        mock_storage.upload_article_reference.assert_not_called()

    async def test_upload_storage_failure(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_article: Article,
        mock_storage: MagicMock,
    ):
        """Storage errors surface as 500 and no reference is created."""
        mock_storage.upload_article_reference.side_effect = StorageServiceError("bucket offline")

        response = await client.post(
            _references_url(test_article),
            headers=auth_headers,
            files={"reference": ("report.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 500
        assert response.json()["detail"] == "Storage backend error"

        result = await db_session.execute(select(ArticleReference))
        assert result.scalars().all() == []

    async def test_upload_content_type_with_parameters(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        mock_storage: MagicMock,
    ):
        """MIME parameters are ignored by the allow-list and not stored."""
        response = await client.post(
            _references_url(test_article),
            headers=auth_headers,
            files={"reference": ("notes.txt", b"hello", "text/plain; charset=utf-8")},
        )
        assert response.status_code == 201
        assert response.json()["mimeType"] == "text/plain"
        assert mock_storage.upload_article_reference.call_args.kwargs["content_type"] == "text/plain"

    async def test_upload_filename_too_long(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        mock_storage: MagicMock,
    ):
        """Client file names that do not fit the column are rejected before storing."""
        response = await client.post(
            _references_url(test_article),
            headers=auth_headers,
            files={"reference": ("a" * 300 + ".pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 400
        violations = response.json()["violations"]
        assert len(violations) == 1
        assert "file name is too long" in violations[0]["message"]
        mock_storage.upload_article_reference.assert_not_called()

    async def test_upload_unknown_article(self, client: AsyncClient, auth_headers: dict):
        """Uploading to a missing article returns 404."""
        response = await client.post(
            f"/admin/article/{uuid4()}/references",
            headers=auth_headers,
            files={"reference": ("report.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 404

    async def test_upload_unauthenticated(self, client: AsyncClient, test_article: Article):
        """Requests without a token are rejected."""
        response = await client.post(
            _references_url(test_article),
            files={"reference": ("report.pdf", b"%PDF", "application/pdf")},
        )
        assert response.status_code == 401


@pytest.mark.asyncio
class TestListReferences:
    """Tests for GET /admin/article/{id}/references."""

    async def test_list_empty(self, client: AsyncClient, auth_headers: dict, test_article: Article):
        response = await client.get(_references_url(test_article), headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == []

    async def test_list_in_position_order(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        test_references: list,
    ):
        """References are returned ordered by position, not creation order."""
        a, b, c = test_references
        response = await client.get(_references_url(test_article), headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert [item["id"] for item in data] == [str(b.id), str(c.id), str(a.id)]
        assert [item["position"] for item in data] == [0, 1, 2]

    async def test_list_only_own_article(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_user,
        test_article: Article,
        test_references: list,
    ):
        """References of other articles are not listed."""
        other = Article(id=uuid4(), title="Other", author_id=test_user.id)
        db_session.add(other)
        await db_session.commit()

        response = await client.get(_references_url(other), headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == []


@pytest.mark.asyncio
class TestReorderReferences:
    """Tests for POST /admin/article/{id}/references/reorder."""

    async def test_reorder_success(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        test_references: list,
    ):
        """Submitted order becomes positions 0..N-1 regardless of prior positions."""
        a, b, c = test_references
        response = await client.post(
            f"{_references_url(test_article)}/reorder",
            headers=auth_headers,
            json=[str(a.id), str(b.id), str(c.id)],
        )
        assert response.status_code == 200
        data = response.json()
        assert [(item["id"], item["position"]) for item in data] == [
            (str(a.id), 0),
            (str(b.id), 1),
            (str(c.id), 2),
        ]
        assert (a.position, b.position, c.position) == (0, 1, 2)

    async def test_reorder_invalid_json(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        test_references: list,
    ):
        response = await client.post(
            f"{_references_url(test_article)}/reorder",
            headers={**auth_headers, "Content-Type": "application/json"},
            content=b"not json",
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid body"}

    async def test_reorder_not_a_list(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        test_references: list,
    ):
        response = await client.post(
            f"{_references_url(test_article)}/reorder",
            headers=auth_headers,
            json={"order": []},
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid body"}

    async def test_reorder_missing_id(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        test_references: list,
    ):
        """Leaving out a reference is detected and nothing changes."""
        a, b, c = test_references
        response = await client.post(
            f"{_references_url(test_article)}/reorder",
            headers=auth_headers,
            json=[str(a.id), str(b.id)],
        )
        assert response.status_code == 400
        violations = response.json()["violations"]
        assert len(violations) == 1
        assert str(c.id) in violations[0]["message"]
        assert (a.position, b.position, c.position) == (2, 0, 1)

    async def test_reorder_duplicate_and_unknown_ids(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_article: Article,
        test_references: list,
    ):
        a, b, c = test_references
        response = await client.post(
            f"{_references_url(test_article)}/reorder",
            headers=auth_headers,
            json=[str(a.id), str(a.id), str(b.id), str(c.id), str(uuid4())],
        )
        assert response.status_code == 400
        data = response.json()
        assert data["detail"] == "Invalid reference order"
        assert len(data["violations"]) == 2

    async def test_reorder_forbidden(
        self,
        client: AsyncClient,
        auth_headers_2: dict,
        test_article: Article,
        test_references: list,
    ):
        a, b, c = test_references
        response = await client.post(
            f"{_references_url(test_article)}/reorder",
            headers=auth_headers_2,
            json=[str(a.id), str(b.id), str(c.id)],
        )
        assert response.status_code == 403
        assert (a.position, b.position, c.position) == (2, 0, 1)


@pytest.mark.asyncio
class TestDownloadReference:
    """Tests for GET /admin/article/references/{id}/download."""

    async def test_download_redirects_to_signed_url(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_article: Article,
        mock_storage: MagicMock,
    ):
        reference = ArticleReference(
            id=uuid4(),
            article_id=test_article.id,
            filename="report-65f1c2a9b3d4e.pdf",
            original_filename="report.pdf",
            mime_type="application/pdf",
            position=0,
        )
        db_session.add(reference)
        await db_session.commit()

        response = await client.get(f"{_reference_url(reference)}/download", headers=auth_headers)
        assert response.status_code == 302
        assert response.headers["location"] == "https://storage.example.com/signed-url"

        mock_storage.get_presigned_download_url.assert_called_once_with(
            object_name="article_reference/report-65f1c2a9b3d4e.pdf",
            expiry=timedelta(minutes=30),
            response_headers={
                "response-content-type": "application/pdf",
                "response-content-disposition": 'attachment; filename="report.pdf"',
            },
        )

    async def test_download_streams_file(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_references: list,
        mock_storage: MagicMock,
    ):
        """The stream strategy proxies bytes with attachment headers."""
        app.dependency_overrides[get_download_strategy] = lambda: StreamDownloadStrategy(mock_storage)
        reference = test_references[0]

        response = await client.get(f"{_reference_url(reference)}/download", headers=auth_headers)
        assert response.status_code == 200
        assert response.content == b"%PDF-1.4 reference content"
        assert response.headers["content-type"] == "application/pdf"
        # Original filename, not the storage key
        assert response.headers["content-disposition"] == 'attachment; filename="A report.pdf"'

        mock_storage.open_stream.assert_called_once_with(reference.file_path, chunk_size=64 * 1024)

    async def test_download_missing_object(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_references: list,
        mock_storage: MagicMock,
    ):
        app.dependency_overrides[get_download_strategy] = lambda: StreamDownloadStrategy(mock_storage)
        mock_storage.open_stream.side_effect = StorageServiceError("NoSuchKey")

        response = await client.get(f"{_reference_url(test_references[0])}/download", headers=auth_headers)
        assert response.status_code == 500

    async def test_download_not_found(self, client: AsyncClient, auth_headers: dict):
        response = await client.get(f"/admin/article/references/{uuid4()}/download", headers=auth_headers)
        assert response.status_code == 404

    async def test_download_forbidden(
        self,
        client: AsyncClient,
        auth_headers_2: dict,
        test_references: list,
        mock_storage: MagicMock,
    ):
        response = await client.get(f"{_reference_url(test_references[0])}/download", headers=auth_headers_2)
        assert response.status_code == 403
        mock_storage.get_presigned_download_url.assert_not_called()


@pytest.mark.asyncio
class TestDeleteReference:
    """Tests for DELETE /admin/article/references/{id}."""

    async def test_delete_success(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_article: Article,
        test_references: list,
        mock_storage: MagicMock,
    ):
        """The file is deleted once and the reference disappears from listings."""
        reference = test_references[0]
        reference_id = reference.id

        response = await client.delete(_reference_url(reference), headers=auth_headers)
        assert response.status_code == 204
        assert response.content == b""

        mock_storage.delete_file.assert_called_once_with("article_reference/a-65f1c2a9b3d4e.pdf")

        result = await db_session.execute(
            select(ArticleReference).where(ArticleReference.id == reference_id)
        )
        assert result.scalar_one_or_none() is None

        listing = await client.get(_references_url(test_article), headers=auth_headers)
        assert str(reference_id) not in [item["id"] for item in listing.json()]

    async def test_delete_storage_failure_keeps_record(
        self,
        client: AsyncClient,
        auth_headers: dict,
        db_session: AsyncSession,
        test_references: list,
        mock_storage: MagicMock,
    ):
        """When the file cannot be deleted the reference is kept."""
        mock_storage.delete_file.side_effect = StorageServiceError("permission denied")
        reference = test_references[0]

        response = await client.delete(_reference_url(reference), headers=auth_headers)
        assert response.status_code == 500

        result = await db_session.execute(
            select(ArticleReference).where(ArticleReference.id == reference.id)
        )
        assert result.scalar_one_or_none() is not None

    async def test_delete_not_found(self, client: AsyncClient, auth_headers: dict):
        response = await client.delete(f"/admin/article/references/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404

    async def test_delete_forbidden(
        self,
        client: AsyncClient,
        auth_headers_2: dict,
        db_session: AsyncSession,
        test_references: list,
        mock_storage: MagicMock,
    ):
        """Users who cannot manage the article are rejected before any deletion."""
        reference = test_references[0]
        response = await client.delete(_reference_url(reference), headers=auth_headers_2)
        assert response.status_code == 403
        mock_storage.delete_file.assert_not_called()

        result = await db_session.execute(
            select(ArticleReference).where(ArticleReference.id == reference.id)
        )
        assert result.scalar_one_or_none() is not None

    async def test_delete_as_admin(
        self,
        client: AsyncClient,
        admin_headers: dict,
        test_references: list,
    ):
        """Admins may manage articles they did not write."""
        response = await client.delete(_reference_url(test_references[0]), headers=admin_headers)
        assert response.status_code == 204


@pytest.mark.asyncio
class TestUpdateReference:
    """Tests for PUT /admin/article/references/{id}."""

    async def test_update_mime_type_only(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_references: list,
    ):
        """Only the supplied field changes."""
        reference = test_references[0]
        response = await client.put(
            _reference_url(reference),
            headers=auth_headers,
            json={"mimeType": "text/plain"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["mimeType"] == "text/plain"
        assert data["filename"] == "a-65f1c2a9b3d4e.pdf"
        assert data["originalFilename"] == "A report.pdf"
        assert data["position"] == 2

    async def test_update_original_filename(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_references: list,
    ):
        reference = test_references[1]
        response = await client.put(
            _reference_url(reference),
            headers=auth_headers,
            json={"originalFilename": "Renamed.pdf"},
        )
        assert response.status_code == 200
        assert response.json()["originalFilename"] == "Renamed.pdf"
        assert reference.original_filename == "Renamed.pdf"

    async def test_update_ignores_immutable_fields(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_references: list,
    ):
        """The storage key and position cannot be changed through update."""
        reference = test_references[0]
        response = await client.put(
            _reference_url(reference),
            headers=auth_headers,
            json={"filename": "hijack.pdf", "position": 99},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["filename"] == "a-65f1c2a9b3d4e.pdf"
        assert data["position"] == 2

    async def test_update_blank_filename(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_references: list,
    ):
        """Blank values are rejected and the reference is left unchanged."""
        reference = test_references[0]
        response = await client.put(
            _reference_url(reference),
            headers=auth_headers,
            json={"originalFilename": "   ", "mimeType": None},
        )
        assert response.status_code == 400
        violations = response.json()["violations"]
        assert {v["propertyPath"] for v in violations} == {"originalFilename", "mimeType"}
        assert reference.original_filename == "A report.pdf"
        assert reference.mime_type == "application/pdf"

    async def test_update_too_long(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_references: list,
    ):
        response = await client.put(
            _reference_url(test_references[0]),
            headers=auth_headers,
            json={"originalFilename": "x" * 256},
        )
        assert response.status_code == 400
        assert response.json()["violations"][0]["propertyPath"] == "originalFilename"

    async def test_update_malformed_body(
        self,
        client: AsyncClient,
        auth_headers: dict,
        test_references: list,
    ):
        response = await client.put(
            _reference_url(test_references[0]),
            headers={**auth_headers, "Content-Type": "application/json"},
            content=b"{broken",
        )
        assert response.status_code == 400
        assert len(response.json()["violations"]) >= 1

    async def test_update_forbidden(
        self,
        client: AsyncClient,
        auth_headers_2: dict,
        test_references: list,
    ):
        reference = test_references[0]
        response = await client.put(
            _reference_url(reference),
            headers=auth_headers_2,
            json={"mimeType": "text/plain"},
        )
        assert response.status_code == 403
        assert reference.mime_type == "application/pdf"
