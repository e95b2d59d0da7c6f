"""
Document integrity router.

The request body is the document. It is streamed into the keyed hash chunk
by chunk and never held in memory as a whole.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from momofin.auth.models import User
from momofin.auth.router import get_current_user
from momofin.base_microservice import BaseMicroservice
from momofin.errors import DigestError
from momofin.integrity.hmac_service import digests_match, new_hmac

# Initialize router
router = APIRouter(tags=["documents"])
document_service = BaseMicroservice()


async def _digest_body(request: Request) -> str:
    settings = document_service.settings
    try:
        mac = new_hmac(settings.hmac_secret, settings.hmac_algorithm)
    except DigestError as e:
        document_service.log_error(e, context="Document HMAC configuration")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"errorMessage": "Document integrity service is not configured"}
        )
    async for chunk in request.stream():
        mac.update(chunk)
    return mac.hexdigest()


@router.post("/fingerprint")
async def fingerprint_document(
    request: Request,
    user: User = Depends(get_current_user)
):
    """Compute the keyed fingerprint of the uploaded document."""
    digest = await _digest_body(request)
    document_service.log_event("document.fingerprinted", {"username": user.username})
    return {"digest": digest, "algorithm": document_service.settings.hmac_algorithm}


@router.post("/verify")
async def verify_document(
    request: Request,
    user: User = Depends(get_current_user),
    expected: Optional[str] = Header(None, alias="X-Document-Hmac")
):
    """Check the uploaded document against a previously issued fingerprint."""
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"errorMessage": "Missing X-Document-Hmac header"}
        )

    digest = await _digest_body(request)
    verified = digests_match(digest, expected)
    document_service.log_event("document.verified", {
        "username": user.username,
        "verified": verified
    })
    return {
        "digest": digest,
        "algorithm": document_service.settings.hmac_algorithm,
        "verified": verified
    }
