"""
Lookups and persistence for organizations and users.
"""
from typing import Optional

from sqlalchemy import exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from momofin.auth.models import Organization, User


class OrganizationRepository:
    """Read access to organizations. Creation is limited to bootstrapping."""

    @staticmethod
    async def find_organization_by_name(db: AsyncSession, name: str) -> Optional[Organization]:
        result = await db.execute(
            select(Organization).where(Organization.name == name)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def save(db: AsyncSession, organization: Organization) -> Organization:
        db.add(organization)
        await db.commit()
        await db.refresh(organization)
        return organization


class UserRepository:
    """Credential store backing authentication and registration."""

    @staticmethod
    async def find_by_organization_and_username(
        db: AsyncSession,
        organization: Organization,
        username: str
    ) -> Optional[User]:
        result = await db.execute(
            select(User).where(
                User.organization_id == organization.organization_id,
                User.username == username
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def find_by_username(
        db: AsyncSession,
        username: str,
        organization_name: Optional[str] = None
    ) -> Optional[User]:
        """
        Find a user by username, optionally narrowed to one organization.

        Usernames are only unique inside an organization, so without an
        organization name the first match by id is returned.
        """
        query = select(User).where(User.username == username)
        if organization_name is not None:
            query = query.join(Organization, User.organization_id == Organization.organization_id)
            query = query.where(Organization.name == organization_name)
        result = await db.execute(query.order_by(User.user_id).limit(1))
        return result.scalars().first()

    @staticmethod
    async def exists_by_email(db: AsyncSession, email: str) -> bool:
        result = await db.execute(select(exists().where(User.email == email)))
        return bool(result.scalar())

    @staticmethod
    async def exists_by_organization_and_username(
        db: AsyncSession,
        organization_id: int,
        username: str
    ) -> bool:
        result = await db.execute(
            select(exists().where(
                User.organization_id == organization_id,
                User.username == username
            ))
        )
        return bool(result.scalar())

    @staticmethod
    async def save(db: AsyncSession, user: User) -> User:
        """Insert or update a user. Constraint violations propagate as ``IntegrityError``."""
        db.add(user)
        await db.commit()
        return user
