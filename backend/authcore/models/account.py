"""Account model"""

import uuid
from enum import Enum

from sqlalchemy import Column, String, Boolean, DateTime, Index, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from authcore.core.database import Base


class AuthOrigin(str, Enum):
    """How an account's identity was established"""
    LOCAL = "local"
    GOOGLE = "google"
    GITHUB = "github"


def _new_account_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    """Account model for authentication"""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=_new_account_id)
    email = Column(String(320), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    auth_origin = Column(String(20), default=AuthOrigin.LOCAL.value, nullable=False, index=True)
    federated_id = Column(String(255), nullable=True)
    email_confirmed = Column(Boolean, default=False, nullable=False)
    last_login_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("auth_origin", "federated_id", name="uq_accounts_origin_federated_id"),
        Index("idx_accounts_email_confirmed", "email_confirmed"),
    )

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    @property
    def is_federated(self) -> bool:
        return self.auth_origin != AuthOrigin.LOCAL.value

    def __repr__(self):
        return f"<Account(id={self.id}, auth_origin='{self.auth_origin}')>"
