"""User SQLAlchemy model for admin authentication."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Uuid

from ..database import Base


class User(Base):
    """
    An account that can log in to the admin API.

    A user may manage the articles they authored; ``is_admin`` extends that
    to every article.

    Attributes:
        id: Unique identifier (UUID)
        email: Login name (unique)
        password_hash: bcrypt hash of the password
        display_name: Name shown in the admin UI
        is_admin: Grants MANAGE on every article
        last_login_at: Time of the last successful login, if any
        created_at: Timestamp when user was created
        updated_at: Timestamp when user was last updated
    """

    __tablename__ = "Users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)

    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    display_name = Column(String(100), nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)

    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        admin = ", admin" if self.is_admin else ""
        return f"<User({self.email}{admin})>"
