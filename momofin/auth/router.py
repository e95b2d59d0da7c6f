"""
Authentication router.

This module provides FastAPI router for authentication endpoints:
- Login of an organization member
- Registration of new members by an organization admin
- Current user lookup
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from momofin.auth.jwt import TokenService, get_bearer_token, get_token_service
from momofin.auth.models import User
from momofin.auth.users import AuthRequest, RegisterRequest, UserOut, UserService
from momofin.base_microservice import LoggingService, get_db_session
from momofin.errors import (
    InvalidCredentialsError,
    InvalidPasswordError,
    OrganizationNotFoundError,
    TokenInvalidError,
    UserAlreadyExistsError,
)

# Create router
router = APIRouter(tags=["auth"])

# Create service instance
logging_service = LoggingService()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"errorMessage": message})


async def get_current_user(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db_session),
    token_service: TokenService = Depends(get_token_service)
) -> User:
    """
    FastAPI dependency resolving the user a bearer token was issued to.

    Raises:
        HTTPException: 401 if the token is rejected or its user no longer exists
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"errorMessage": "Invalid or expired token"},
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        token_data = token_service.decode(token)
    except TokenInvalidError:
        raise credentials_exception
    # Usernames repeat across organizations, so the token must name one
    if token_data.organization is None:
        raise credentials_exception

    user = await UserService.fetch_user_by_username(
        db, token_data.username, token_data.organization
    )
    if user is None:
        raise credentials_exception
    return user


# --- Basic Auth Endpoints ---

@router.post("/login", response_model=Dict[str, Any])
async def authenticate_user(
    auth_request: AuthRequest,
    db: AsyncSession = Depends(get_db_session),
    token_service: TokenService = Depends(get_token_service)
):
    """
    Authenticate a member of an organization and return a token.

    Returns:
        200 with ``{user, jwt}``, or 401 with ``{errorMessage}``
    """
    username = auth_request.username
    organization_name = auth_request.organization_name
    try:
        user = await UserService.authenticate(
            db, organization_name, username, auth_request.password
        )
    except (InvalidCredentialsError, OrganizationNotFoundError) as e:
        await logging_service.log(
            db,
            "ERROR",
            f"Failed login attempt for user: {username} from organization: {organization_name}",
            "/auth/login"
        )
        return _error(status.HTTP_401_UNAUTHORIZED, e.message)
    except Exception as e:
        logging_service.log_error(e, context="User login")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"errorMessage": "Login failed"}
        )

    jwt = token_service.issue_token(user.username, user.organization.name)
    response = {"user": UserOut.from_user(user), "jwt": jwt}

    await logging_service.log(
        db,
        "INFO",
        f"Successful login for user: {username} from organization: {organization_name}",
        "/auth/login"
    )
    return response


@router.post("/register", response_model=Dict[str, Any])
async def register_member(
    register_request: RegisterRequest,
    requester: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session)
):
    """
    Register a new member in the requesting admin's organization.

    Returns:
        200 with ``{user}``; 401 for a bad token, 403 for a non-admin
        requester, 409 with ``{errorMessage}`` if the email or username is taken
    """
    if not requester.is_admin:
        return _error(status.HTTP_403_FORBIDDEN, "Only organization admins can register members")

    organization = requester.organization
    organization_name = organization.name
    username = register_request.username
    try:
        new_user = await UserService.register_member(
            db,
            organization,
            username=username,
            password=register_request.password,
            email=register_request.email,
            name=register_request.name,
            position=register_request.position
        )
    except UserAlreadyExistsError as e:
        await logging_service.log(
            db,
            "ERROR",
            f"Failed registration of user: {username} to organization: {organization_name} ({e.message})",
            "/auth/register"
        )
        return _error(status.HTTP_409_CONFLICT, e.message)
    except InvalidPasswordError as e:
        return _error(status.HTTP_400_BAD_REQUEST, e.message)
    except Exception as e:
        logging_service.log_error(e, context="Member registration")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"errorMessage": "Registration failed"}
        )

    response = {"user": UserOut.from_user(new_user)}
    await logging_service.log(
        db,
        "INFO",
        f"Successful registration of user: {username} to organization: {organization_name}",
        "/auth/register"
    )
    return response


@router.get("/me", response_model=Dict[str, Any])
async def get_current_user_info(user: User = Depends(get_current_user)):
    """Get information about the current authenticated user."""
    return {"user": UserOut.from_user(user)}
