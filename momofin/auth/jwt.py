"""
JWT token handling for authentication.

This module provides functionality for:
- Issuing signed, time-bounded JWT tokens
- Validating JWT tokens
- Extracting the subject of a valid token
"""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from fastapi import Header, HTTPException, status
from jwt.exceptions import PyJWTError
from pydantic import BaseModel

from momofin.config import get_settings
from momofin.errors import TokenInvalidError

REQUIRED_CLAIMS = ["sub", "iat", "exp"]


class TokenData(BaseModel):
    """Token payload model."""
    username: str
    organization: Optional[str] = None
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """
    Issues and validates HS256 tokens.

    The signing secret is fixed for the lifetime of the instance. Tokens are
    stateless: validity depends only on the signature and the ``exp`` claim.
    """

    def __init__(
        self,
        signing_secret: str,
        expires_delta: timedelta = timedelta(hours=24),
        algorithm: str = "HS256"
    ):
        if not signing_secret:
            raise ValueError("A non-empty signing secret is required")
        self._secret = signing_secret
        self._expires_delta = expires_delta
        self._algorithm = algorithm

    @property
    def expires_delta(self) -> timedelta:
        return self._expires_delta

    def issue_token(self, username: str, organization_name: Optional[str] = None) -> str:
        """
        Create a signed token for a user.

        Args:
            username: Subject of the token
            organization_name: Organization of the user, stored in the ``org`` claim

        Returns:
            Encoded JWT token string
        """
        issued_at = datetime.now(timezone.utc)
        to_encode: Dict[str, Any] = {
            "sub": username,
            "iat": issued_at,
            "exp": issued_at + self._expires_delta,
        }
        if organization_name is not None:
            to_encode["org"] = organization_name
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> TokenData:
        """
        Verify a token and return its data.

        Raises:
            TokenInvalidError: On a bad signature, malformed token,
                missing claims or expiry
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": REQUIRED_CLAIMS}
            )
        except PyJWTError as e:
            raise TokenInvalidError() from e

        username = payload.get("sub")
        if not isinstance(username, str) or not username:
            raise TokenInvalidError()

        return TokenData(
            username=username,
            organization=payload.get("org"),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    def validate_token(self, token: str) -> bool:
        """Return True only for a well-formed, correctly signed, unexpired token."""
        try:
            self.decode(token)
        except TokenInvalidError:
            return False
        return True

    def extract_username(self, token: str) -> str:
        """Return the subject of a valid token; raises ``TokenInvalidError`` otherwise."""
        return self.decode(token).username


@lru_cache()
def get_token_service() -> TokenService:
    """FastAPI dependency returning the token service built from configuration."""
    settings = get_settings()
    if not settings.signing_secret:
        raise RuntimeError("JWT_SECRET_KEY is not configured")
    return TokenService(
        signing_secret=settings.signing_secret,
        expires_delta=settings.access_token_expires,
        algorithm=settings.jwt_algorithm,
    )


async def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """
    FastAPI dependency extracting the token from ``Authorization: Bearer <token>``.

    Raises:
        HTTPException: 401 if the header is missing or not a bearer token
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"errorMessage": "Missing bearer token"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token.strip()
