"""
User management service.

This module provides functionality for:
- User authentication within an organization
- Member registration
- Bootstrapping the default organization and admin
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from momofin.auth.models import MAX_PASSWORD_BYTES, Organization, User, verify_password
from momofin.auth.repository import OrganizationRepository, UserRepository
from momofin.base_microservice import AsyncSessionLocal, logger, settings
from momofin.errors import (
    InvalidCredentialsError,
    InvalidPasswordError,
    OrganizationNotFoundError,
    UserAlreadyExistsError,
)


class AuthRequest(BaseModel):
    """Model for user login."""
    model_config = ConfigDict(populate_by_name=True)

    organization_name: str = Field(..., alias="organizationName")
    username: str
    password: str


class RegisterRequest(BaseModel):
    """Model for member registration."""
    name: str = Field(..., min_length=1)
    email: EmailStr
    position: str = ""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must not be longer than {MAX_PASSWORD_BYTES} bytes")
        return value


class UserOut(BaseModel):
    """Model for user information returned to clients."""
    id: int
    username: str
    name: Optional[str] = None
    email: str
    position: Optional[str] = None
    organization: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.user_id,
            username=user.username,
            name=user.name,
            email=user.email,
            position=user.position,
            organization=user.organization.name if user.organization else None,
        )


_dummy_hash: Optional[str] = None


def _dummy_password_hash() -> str:
    # Compared against when the user does not exist, so both failure paths
    # spend the same bcrypt work.
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = User.get_password_hash("momofin-dummy-password")
    return _dummy_hash


class UserService:
    """
    Service for authentication and registration.
    """
    @staticmethod
    async def authenticate(
        db: AsyncSession,
        organization_name: str,
        username: str,
        password: str
    ) -> User:
        """
        Authenticate a member of an organization.

        Args:
            db: Database session
            organization_name: Name of the user's organization
            username: Username inside that organization
            password: Plaintext password

        Returns:
            The authenticated user

        Raises:
            OrganizationNotFoundError: If the organization does not exist
            InvalidCredentialsError: If the user does not exist or the password is wrong
        """
        organization = await OrganizationRepository.find_organization_by_name(db, organization_name)
        if organization is None:
            raise OrganizationNotFoundError(organization_name)

        user = await UserRepository.find_by_organization_and_username(db, organization, username)
        if user is None:
            verify_password(password, _dummy_password_hash())
            raise InvalidCredentialsError()
        if not user.verify_password(password):
            raise InvalidCredentialsError()

        return user

    @staticmethod
    async def register_member(
        db: AsyncSession,
        organization: Organization,
        username: str,
        password: str,
        email: str,
        name: str,
        position: str,
        is_admin: bool = False
    ) -> User:
        """
        Register a new member under an organization.

        The email is checked before the username, so a request colliding on
        both reports the email.

        Raises:
            UserAlreadyExistsError: If the email or the username is taken
            InvalidPasswordError: If the password is longer than bcrypt accepts
        """
        organization_id = organization.organization_id
        await UserService._check_available(db, organization_id, username, email)

        new_user = User(
            organization_id=organization_id,
            organization=organization,
            username=username,
            password=User.get_password_hash(password),
            email=email,
            name=name,
            position=position,
            is_admin=is_admin
        )
        try:
            return await UserRepository.save(db, new_user)
        except IntegrityError:
            # Lost a race with a concurrent registration
            await db.rollback()
            await UserService._check_available(db, organization_id, username, email)
            raise UserAlreadyExistsError(f"The username {username} is already in use")

    @staticmethod
    async def _check_available(
        db: AsyncSession,
        organization_id: int,
        username: str,
        email: str
    ) -> None:
        if await UserRepository.exists_by_email(db, email):
            raise UserAlreadyExistsError(f"The email {email} is already in use")
        if await UserRepository.exists_by_organization_and_username(db, organization_id, username):
            raise UserAlreadyExistsError(f"The username {username} is already in use")

    @staticmethod
    async def fetch_user_by_username(
        db: AsyncSession,
        username: str,
        organization_name: Optional[str] = None
    ) -> Optional[User]:
        """Get a user by username, narrowed to an organization when given."""
        return await UserRepository.find_by_username(db, username, organization_name)


async def init_default_organization():
    """Create the configured bootstrap organization and admin if missing."""
    if not settings.bootstrap_organization:
        return

    async with AsyncSessionLocal() as db:
        organization = await OrganizationRepository.find_organization_by_name(
            db, settings.bootstrap_organization
        )
        if organization is None:
            organization = await OrganizationRepository.save(
                db, Organization(name=settings.bootstrap_organization)
            )
            logger.info(f"Created organization: {organization.name}")

        username = settings.bootstrap_admin_username
        if not (username and settings.bootstrap_admin_password and settings.bootstrap_admin_email):
            return

        if await UserRepository.exists_by_organization_and_username(
            db, organization.organization_id, username
        ):
            return

        try:
            await UserService.register_member(
                db,
                organization,
                username=username,
                password=settings.bootstrap_admin_password,
                email=settings.bootstrap_admin_email,
                name=username,
                position="Administrator",
                is_admin=True
            )
        except InvalidPasswordError as e:
            logger.error(f"Admin {username} not created: {e.message}")
            return
        logger.info(f"Created admin {username} for organization: {organization.name}")
