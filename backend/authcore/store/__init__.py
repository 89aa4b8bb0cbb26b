"""Credential persistence"""

from authcore.store.base import CredentialStore
from authcore.store.sqlalchemy_store import SQLAlchemyCredentialStore

__all__ = ["CredentialStore", "SQLAlchemyCredentialStore"]
