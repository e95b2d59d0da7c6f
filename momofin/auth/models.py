"""
Authentication models for Momofin Core.

This module defines SQLAlchemy models for:
- Organizations
- Users (members of an organization)
"""
from datetime import datetime

import bcrypt
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from momofin.base_microservice import Base, settings
from momofin.errors import InvalidPasswordError

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


class Organization(Base):
    """Organization that users register under."""
    __tablename__ = "organization"

    organization_id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)

    # Users point back at their organization; the organization does not
    # manage their lifecycle.
    users = relationship("User", back_populates="organization")


class User(Base):
    """Member of an organization."""
    __tablename__ = "app_user"
    __table_args__ = (
        UniqueConstraint("organization_id", "username", name="uq_user_organization_username"),
    )

    user_id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer, ForeignKey("organization.organization_id"), nullable=False, index=True
    )
    username = Column(String, nullable=False)
    password = Column(String, nullable=False)
    name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)
    position = Column(String, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Loaded eagerly so the organization name is available outside the session
    organization = relationship("Organization", back_populates="users", lazy="joined")

    def verify_password(self, password: str) -> bool:
        """Check if provided password matches the stored hash."""
        return verify_password(password, self.password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """
        Generate password hash using bcrypt.

        Raises:
            InvalidPasswordError: If the password is longer than bcrypt accepts
        """
        encoded = password.encode('utf-8')
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise InvalidPasswordError(
                f"Password must not be longer than {MAX_PASSWORD_BYTES} bytes"
            )
        return bcrypt.hashpw(
            encoded,
            bcrypt.gensalt(rounds=settings.bcrypt_rounds)
        ).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError):
        return False
