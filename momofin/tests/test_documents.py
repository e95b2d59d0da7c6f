"""
Test cases for the document integrity endpoints.
"""
import io

import pytest

from momofin.integrity import router as documents
from momofin.integrity.hmac_service import calculate_stream_hmac

DOCUMENT = b"%PDF-1.7\n" + b"signed agreement " * 400


@pytest.fixture
def user_headers(test_user, token_service):
    token = token_service.issue_token("testUser", "Momofin")
    return {"Authorization": f"Bearer {token}"}


def _expected_digest(content):
    return calculate_stream_hmac(io.BytesIO(content), "test-document-secret", "HmacSHA256")


@pytest.mark.asyncio
async def test_fingerprint_document(client, user_headers):
    response = await client.post("/documents/fingerprint", content=DOCUMENT, headers=user_headers)

    assert response.status_code == 200
    assert response.json() == {
        "digest": _expected_digest(DOCUMENT),
        "algorithm": "HmacSHA256"
    }


@pytest.mark.asyncio
async def test_verify_untouched_document(client, user_headers):
    headers = dict(user_headers, **{"X-Document-Hmac": _expected_digest(DOCUMENT)})
    response = await client.post("/documents/verify", content=DOCUMENT, headers=headers)

    assert response.status_code == 200
    assert response.json()["verified"] is True


@pytest.mark.asyncio
async def test_verify_tampered_document(client, user_headers):
    headers = dict(user_headers, **{"X-Document-Hmac": _expected_digest(DOCUMENT)})
    tampered = DOCUMENT.replace(b"signed", b"forged", 1)
    response = await client.post("/documents/verify", content=tampered, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["verified"] is False
    assert body["digest"] == _expected_digest(tampered)


@pytest.mark.asyncio
async def test_verify_requires_expected_digest(client, user_headers):
    response = await client.post("/documents/verify", content=DOCUMENT, headers=user_headers)
    assert response.status_code == 400
    assert response.json() == {"errorMessage": "Missing X-Document-Hmac header"}


@pytest.mark.asyncio
async def test_documents_require_token(client):
    response = await client.post("/documents/fingerprint", content=DOCUMENT)
    assert response.status_code == 401

    response = await client.post(
        "/documents/fingerprint",
        content=DOCUMENT,
        headers={"Authorization": "Bearer invalid.token.here"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("override", [
    {"hmac_secret": None},
    {"hmac_secret": ""},
    {"hmac_algorithm": "HmacFoo"},
])
async def test_misconfigured_hmac_is_a_server_error(client, user_headers, monkeypatch, override):
    settings = documents.document_service.settings.model_copy(update=override)
    monkeypatch.setattr(documents.document_service, "settings", settings)

    for path in ("/documents/fingerprint", "/documents/verify"):
        headers = dict(user_headers, **{"X-Document-Hmac": "0" * 64})
        response = await client.post(path, content=DOCUMENT, headers=headers)
        assert response.status_code == 500
        assert response.json() == {"errorMessage": "Document integrity service is not configured"}
