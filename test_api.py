"""
End-to-end API tests: auth, upload, PIN-protected download, search.

Uses an in-memory SQLite database and a temporary blob directory
(see conftest.py).
"""
import base64

import pytest
from sqlalchemy import select

from conftest import TEST_PASSWORD, register_user
from docunest.config import get_settings
from docunest.models.models import Document

PDF_BYTES = b"%PDF-1.4\n" + b"quarterly numbers " * 20 + b"\n%%EOF"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def upload(client, headers, filename="doc.pdf", data=PDF_BYTES, content_type="application/pdf", **form):
    return client.post(
        "/api/files/upload",
        files={"file": (filename, data, content_type)},
        data=form,
        headers=headers,
    )


def upload_ok(client, headers, **kwargs) -> dict:
    response = upload(client, headers, **kwargs)
    assert response.status_code == 201, response.text
    return response.json()


def download(client, headers, document_id, pin=None, action="download"):
    params = {"pin": pin} if pin is not None else {}
    return client.get(f"/api/files/{document_id}/{action}", params=params, headers=headers)


# ─── Auth ────────────────────────────────────────────────────────────

def test_register_returns_token_and_user(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "carol", "email": "Carol@Example.com", "password": TEST_PASSWORD},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "carol@example.com"
    assert body["user"]["has_pin"] is False


def test_register_duplicate_rejected(client, alice):
    response = client.post(
        "/api/auth/register",
        json={"name": "alice2", "email": "alice@example.com", "password": TEST_PASSWORD},
    )
    assert response.status_code == 400


def test_register_weak_password_rejected(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "dave", "email": "dave@example.com", "password": "short"},
    )
    assert response.status_code == 422


def test_login(client, alice):
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": TEST_PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["name"] == "alice"

    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Wrong1234"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_me_requires_token(client, alice):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Token abc"}).status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401

    response = client.get("/api/auth/me", headers=alice)
    assert response.status_code == 200
    assert response.json()["email"] == "alice@example.com"


def test_set_pin(client, alice):
    response = client.post("/api/auth/set-pin", json={"pin": "5678"}, headers=alice)
    assert response.status_code == 200
    assert client.get("/api/auth/me", headers=alice).json()["has_pin"] is True


@pytest.mark.parametrize("pin", ["123", "1234567", "12a4", ""])
def test_set_pin_rejects_bad_format(client, alice, pin):
    assert client.post("/api/auth/set-pin", json={"pin": pin}, headers=alice).status_code == 422


# ─── Upload ──────────────────────────────────────────────────────────

def test_upload_stores_ciphertext_only(client, alice, storage, db_session):
    doc = upload_ok(client, alice, category="Work", tags="finance, 2024")

    assert doc["filename"] == "doc.pdf"
    assert doc["file_type"] == "pdf"
    assert doc["content_type"] == "application/pdf"
    assert doc["file_size"] == len(PDF_BYTES)
    assert doc["category"] == "Work"
    assert doc["tags"] == ["finance", "2024"]
    assert doc["requires_pin"] is False
    assert "wrapped_key" not in doc
    assert "storage_key" not in doc

    row = db_session.get(Document, doc["id"])
    blob = (storage.base_path / row.storage_key).read_bytes()
    assert blob != PDF_BYTES
    assert b"quarterly numbers" not in blob
    assert len(blob) % 16 == 0
    assert row.storage_key.startswith(f"documents/{row.owner_id}/")
    assert row.filename.endswith(".pdf.enc")


def test_upload_with_pin_marks_document_protected(client, alice, db_session):
    doc = upload_ok(client, alice, pin="1234")

    assert doc["requires_pin"] is True
    assert doc["has_file_pin"] is True
    row = db_session.get(Document, doc["id"])
    assert row.pin_hash and row.pin_hash != "1234"


def test_upload_rejects_mismatched_magic_bytes(client, alice, storage):
    response = upload(client, alice, filename="invoice.pdf", data=b"MZ\x90\x00 not a pdf")

    assert response.status_code == 422
    assert list(storage.base_path.rglob("*.enc")) == []


def test_upload_rejects_unsupported_type(client, alice):
    response = upload(client, alice, filename="script.exe", data=b"MZ\x90\x00", content_type="application/octet-stream")
    assert response.status_code == 422


def test_upload_rejects_empty_file(client, alice):
    assert upload(client, alice, data=b"").status_code == 422


def test_upload_rejects_bad_category(client, alice):
    response = upload(client, alice, category="Taxes")
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid category"


def test_upload_rejects_bad_pin(client, alice):
    response = upload(client, alice, pin="12ab")
    assert response.status_code == 400
    assert response.json()["detail"] == "PIN must be 4-6 digits"


@pytest.mark.parametrize("pin", ["１２３４", "١٢٣٤", "12 34"])
def test_upload_rejects_non_ascii_digit_pin(client, alice, pin):
    assert upload(client, alice, pin=pin).status_code == 400


def test_upload_pin_with_trailing_newline_still_unlocks(client, alice):
    doc = upload_ok(client, alice, pin="5678\n")
    assert doc["has_file_pin"] is True

    response = download(client, alice, doc["id"], pin="5678")
    assert response.status_code == 200
    assert response.content == PDF_BYTES


@pytest.mark.parametrize("pin", ["", "   "])
def test_upload_blank_pin_means_no_file_pin(client, alice, pin):
    doc = upload_ok(client, alice, pin=pin)

    assert doc["requires_pin"] is False
    assert doc["has_file_pin"] is False
    assert download(client, alice, doc["id"]).status_code == 200


def test_set_pin_with_trailing_newline_still_unlocks(client, alice):
    assert client.post("/api/auth/set-pin", json={"pin": "1234\n"}, headers=alice).status_code == 200
    doc = upload_ok(client, alice, requires_pin="true")

    assert download(client, alice, doc["id"], pin="1234").status_code == 200
    assert download(client, alice, doc["id"], pin="4321").status_code == 403


@pytest.mark.parametrize("pin", ["١٢٣٤", "１２３４"])
def test_set_pin_rejects_non_ascii_digits(client, alice, pin):
    assert client.post("/api/auth/set-pin", json={"pin": pin}, headers=alice).status_code == 422


def test_upload_rejects_oversized_file(client, alice, monkeypatch):
    monkeypatch.setattr(get_settings(), "max_upload_size", 16)
    assert upload(client, alice).status_code == 413


def test_upload_requires_auth(client):
    assert upload(client, {}).status_code == 401


# ─── Download / Preview ──────────────────────────────────────────────

def test_download_unprotected(client, alice):
    doc = upload_ok(client, alice)

    response = download(client, alice, doc["id"])

    assert response.status_code == 200
    assert response.content == PDF_BYTES
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == (
        "attachment; filename=\"doc.pdf\"; filename*=UTF-8''doc.pdf"
    )
    assert response.headers["x-content-type-options"] == "nosniff"


def test_preview_is_inline(client, alice):
    doc = upload_ok(client, alice, filename="scan.png", data=PNG_BYTES, content_type="image/png")

    response = download(client, alice, doc["id"], action="preview")

    assert response.status_code == 200
    assert response.content == PNG_BYTES
    assert response.headers["content-disposition"].startswith("inline")


@pytest.mark.parametrize("action,disposition", [("download", "attachment"), ("preview", "inline")])
def test_non_latin1_filename_is_served(client, alice, action, disposition):
    doc = upload_ok(client, alice, filename="文档.pdf")
    assert doc["filename"] == "文档.pdf"

    response = download(client, alice, doc["id"], action=action)

    assert response.status_code == 200
    assert response.content == PDF_BYTES
    assert response.headers["content-disposition"] == (
        f"{disposition}; filename=\"__.pdf\"; filename*=UTF-8''%E6%96%87%E6%A1%A3.pdf"
    )


def test_per_file_pin_flow(client, alice):
    doc = upload_ok(client, alice, pin="1234")

    ok = download(client, alice, doc["id"], pin="1234")
    assert ok.status_code == 200
    assert ok.content == PDF_BYTES

    wrong = download(client, alice, doc["id"], pin="9999")
    assert wrong.status_code == 403
    assert wrong.json()["detail"] == "Invalid PIN"

    missing = download(client, alice, doc["id"])
    assert missing.status_code == 403
    assert missing.json()["detail"] == "PIN required to access this file"

    empty = download(client, alice, doc["id"], pin="")
    assert empty.status_code == 400
    assert empty.json()["detail"] == "PIN cannot be empty"


def test_cross_file_pins_are_denied(client, alice):
    first = upload_ok(client, alice, filename="first.pdf", pin="1111")
    second = upload_ok(client, alice, filename="second.pdf", pin="2222")

    assert download(client, alice, first["id"], pin="2222").json()["detail"] == "Invalid PIN"
    assert download(client, alice, second["id"], pin="1111").json()["detail"] == "Invalid PIN"
    assert download(client, alice, first["id"], pin="1111").status_code == 200
    assert download(client, alice, second["id"], pin="2222").status_code == 200


def test_failed_encryption_stores_nothing(client, alice, storage, session_factory):
    from docunest.errors import EncryptionError
    from docunest.main import app
    from docunest.utils.dependencies import get_encryptor

    class BrokenEncryptor:
        def encrypt(self, data):
            raise EncryptionError("cipher rejected input")

    app.dependency_overrides[get_encryptor] = lambda: BrokenEncryptor()

    response = upload(client, alice)

    assert response.status_code == 500
    assert response.json()["detail"] == "File encryption failed"
    assert list(storage.base_path.rglob("*.enc")) == []
    with session_factory() as db:
        assert db.execute(select(Document)).scalars().all() == []


def test_per_file_pin_overrides_account_pin(client, alice):
    client.post("/api/auth/set-pin", json={"pin": "2222"}, headers=alice)
    doc = upload_ok(client, alice, pin="1111")

    # Neither the account PIN nor a guess works; only the file's own PIN
    assert download(client, alice, doc["id"], pin="2222").status_code == 403
    assert download(client, alice, doc["id"], pin="3333").status_code == 403
    assert download(client, alice, doc["id"], pin="1111").status_code == 200


def test_account_pin_fallback(client, alice):
    doc = upload_ok(client, alice, requires_pin="true")
    assert doc["requires_pin"] is True
    assert doc["has_file_pin"] is False

    # No PIN configured anywhere yet
    response = download(client, alice, doc["id"], pin="5678")
    assert response.status_code == 403
    assert response.json()["detail"] == "PIN not set for this file"

    client.post("/api/auth/set-pin", json={"pin": "5678"}, headers=alice)

    assert download(client, alice, doc["id"], pin="5678").content == PDF_BYTES
    assert download(client, alice, doc["id"], pin="1234").status_code == 403


def test_non_owner_sees_not_found(client, alice, bob):
    protected = upload_ok(client, alice, pin="1234")
    plain = upload_ok(client, alice, filename="plain.pdf")

    for doc in (protected, plain):
        for action in ("download", "preview"):
            response = download(client, bob, doc["id"], pin="1234", action=action)
            assert response.status_code == 404
            assert response.json()["detail"] == "File not found"

        assert client.get(f"/api/files/{doc['id']}", headers=bob).status_code == 404
        assert client.delete(f"/api/files/{doc['id']}", headers=bob).status_code == 404

    # Still there for the owner
    assert download(client, alice, plain["id"]).status_code == 200


def test_unknown_document_is_not_found(client, alice):
    response = download(client, alice, 9999)
    assert response.status_code == 404
    assert response.json()["detail"] == "File not found"


def test_corrupt_wrapped_iv_is_server_error(client, alice, session_factory):
    doc = upload_ok(client, alice)

    with session_factory() as db:
        row = db.get(Document, doc["id"])
        raw = bytearray(base64.b64decode(row.wrapped_iv))
        raw[15] ^= 0x01
        row.wrapped_iv = base64.b64encode(bytes(raw)).decode()
        db.commit()

    response = download(client, alice, doc["id"])
    assert response.status_code == 500
    assert response.json()["detail"] == "File decryption failed"


def test_missing_blob(client, alice, storage, db_session):
    doc = upload_ok(client, alice)
    row = db_session.get(Document, doc["id"])
    (storage.base_path / row.storage_key).unlink()

    response = download(client, alice, doc["id"])
    assert response.status_code == 404
    assert response.json()["detail"] == "File not found on server"


# ─── Listing / Metadata / Delete ─────────────────────────────────────

def test_list_is_owner_scoped_and_newest_first(client, alice, bob):
    first = upload_ok(client, alice, filename="first.pdf", category="Work")
    second = upload_ok(client, alice, filename="second.pdf", category="Education", tags="school")
    upload_ok(client, bob, filename="bobs.pdf")

    body = client.get("/api/files", headers=alice).json()
    assert body["count"] == 2
    assert [d["id"] for d in body["documents"]] == [second["id"], first["id"]]

    by_category = client.get("/api/files", params={"category": "Work"}, headers=alice).json()
    assert [d["filename"] for d in by_category["documents"]] == ["first.pdf"]

    by_tag = client.get("/api/files", params={"tag": "SCHOOL"}, headers=alice).json()
    assert [d["filename"] for d in by_tag["documents"]] == ["second.pdf"]


def test_document_metadata(client, alice):
    doc = upload_ok(client, alice, tags="id,passport")

    response = client.get(f"/api/files/{doc['id']}", headers=alice)
    assert response.status_code == 200
    assert response.json()["tags"] == ["id", "passport"]


def test_delete_removes_blob_and_row(client, alice, storage, session_factory):
    doc = upload_ok(client, alice)
    with session_factory() as db:
        storage_key = db.get(Document, doc["id"]).storage_key

    response = client.delete(f"/api/files/{doc['id']}", headers=alice)
    assert response.status_code == 200
    assert response.json() == {"message": "File deleted successfully"}

    assert not (storage.base_path / storage_key).exists()
    with session_factory() as db:
        assert db.execute(select(Document)).scalars().all() == []
    assert client.get(f"/api/files/{doc['id']}", headers=alice).status_code == 404


# ─── Search ──────────────────────────────────────────────────────────

def test_search(client, alice, bob):
    upload_ok(client, alice, filename="Tax Return.pdf", category="Other", tags="taxes")
    upload_ok(client, alice, filename="resume.pdf", category="Resume", tags="jobs,cv")
    upload_ok(client, bob, filename="tax-bob.pdf", tags="taxes")

    assert client.get("/api/search", headers=alice).status_code == 400

    by_name = client.get("/api/search", params={"q": "tax"}, headers=alice).json()
    assert [d["filename"] for d in by_name["documents"]] == ["Tax Return.pdf"]

    by_tag = client.get("/api/search", params={"q": "CV"}, headers=alice).json()
    assert [d["filename"] for d in by_tag["documents"]] == ["resume.pdf"]

    by_category = client.get("/api/search", params={"category": "Resume"}, headers=alice).json()
    assert by_category["count"] == 1


def test_categories_and_tags(client, alice):
    upload_ok(client, alice, filename="a.pdf", category="Work", tags="finance,2024")
    upload_ok(client, alice, filename="b.pdf", category="Work", tags="finance")
    upload_ok(client, alice, filename="c.pdf", category="ID")

    categories = client.get("/api/search/categories", headers=alice).json()
    assert {c["name"]: c["count"] for c in categories} == {"Work": 2, "ID": 1}

    tags = client.get("/api/search/tags", headers=alice).json()
    assert tags == [{"name": "finance", "count": 2}, {"name": "2024", "count": 1}]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_second_user_registration_helper(client):
    headers = register_user(client, "erin", "erin@example.com")
    assert client.get("/api/auth/me", headers=headers).json()["name"] == "erin"
