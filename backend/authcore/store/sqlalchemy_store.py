"""SQLAlchemy implementation of the credential store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, sessionmaker

from authcore.core.exceptions import (
    ConflictError,
    DuplicateEmailError,
    InvalidInputError,
    NotFoundError,
    ProviderConflictError,
)
from authcore.models.account import Account
from authcore.models.security import RefreshToken

logger = logging.getLogger(__name__)

_EMAIL_CONSTRAINT_MARKERS = ("accounts.email", "accounts_email_key", "ix_accounts_email", "(email)")
_FEDERATED_CONSTRAINT_MARKERS = ("uq_accounts_origin_federated_id", "accounts.federated_id")


def violates(exc: IntegrityError, markers: Tuple[str, ...]) -> bool:
    """
    Check whether an IntegrityError comes from a given unique constraint.

    PostgreSQL reports the constraint name, SQLite the ``table.column``.
    """
    message = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
    return any(marker.lower() in message for marker in markers)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SQLAlchemyCredentialStore:
    """Credential store backed by a SQLAlchemy session factory.

    Each call runs in its own short session and commits before returning,
    so returned objects are detached snapshots.
    """

    _UPDATABLE_ACCOUNT_FIELDS = frozenset({
        "email",
        "password_hash",
        "first_name",
        "last_name",
        "avatar_url",
        "auth_origin",
        "federated_id",
        "email_confirmed",
        "last_login_at",
    })

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _translate_integrity_error(exc: IntegrityError) -> ConflictError:
        if violates(exc, _EMAIL_CONSTRAINT_MARKERS):
            return DuplicateEmailError()
        if violates(exc, _FEDERATED_CONSTRAINT_MARKERS):
            return ProviderConflictError("Federated identity is already linked to another account")
        return ConflictError("Account violates a uniqueness constraint")

    def _commit(self, db: Session) -> None:
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            error = self._translate_integrity_error(exc)
            logger.warning("Account write rejected: %s", error.message)
            raise error from exc

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(self, **fields: Any) -> Account:
        unknown = set(fields) - self._UPDATABLE_ACCOUNT_FIELDS
        if unknown:
            raise InvalidInputError(f"Cannot set fields: {', '.join(sorted(unknown))}")
        if fields.get("email"):
            fields["email"] = fields["email"].strip().lower()

        with self._session_factory() as db:
            account = Account(**fields)
            db.add(account)
            self._commit(db)
            db.refresh(account)
            return account

    def find_account_by_email(self, email: str) -> Optional[Account]:
        if not email:
            return None
        with self._session_factory() as db:
            return db.query(Account).filter(Account.email == email.strip().lower()).first()

    def find_account_by_id(self, account_id: str) -> Optional[Account]:
        if not account_id:
            return None
        with self._session_factory() as db:
            return db.get(Account, account_id)

    def find_account_by_federated_id(self, provider: str, external_id: str) -> Optional[Account]:
        if not provider or not external_id:
            return None
        with self._session_factory() as db:
            return (
                db.query(Account)
                .filter(Account.auth_origin == provider, Account.federated_id == external_id)
                .first()
            )

    def update_account(self, account_id: str, **fields: Any) -> Account:
        unknown = set(fields) - self._UPDATABLE_ACCOUNT_FIELDS
        if unknown:
            raise InvalidInputError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if fields.get("email"):
            fields["email"] = fields["email"].strip().lower()

        with self._session_factory() as db:
            account = db.get(Account, account_id) if account_id else None
            if account is None:
                raise NotFoundError("Account")
            for key, value in fields.items():
                setattr(account, key, value)
            self._commit(db)
            db.refresh(account)
            return account

    def delete_account(self, account_id: str) -> Account:
        with self._session_factory() as db:
            account = db.get(Account, account_id) if account_id else None
            if account is None:
                raise NotFoundError("Account")
            db.delete(account)
            db.commit()
            return account

    def _account_query(
        self,
        db: Session,
        *,
        search: Optional[str] = None,
        auth_origin: Optional[str] = None,
        email_confirmed: Optional[bool] = None,
    ):
        query = db.query(Account)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    Account.email.ilike(pattern),
                    Account.first_name.ilike(pattern),
                    Account.last_name.ilike(pattern),
                )
            )
        if auth_origin:
            query = query.filter(Account.auth_origin == auth_origin)
        if email_confirmed is not None:
            query = query.filter(Account.email_confirmed == email_confirmed)
        return query

    def list_accounts(
        self,
        *,
        search: Optional[str] = None,
        auth_origin: Optional[str] = None,
        email_confirmed: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Account], int]:
        with self._session_factory() as db:
            query = self._account_query(
                db, search=search, auth_origin=auth_origin, email_confirmed=email_confirmed
            )
            total = query.count()
            items = (
                query.order_by(Account.created_at.desc(), Account.id.asc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
            return items, total

    def count_accounts(
        self, *, auth_origin: Optional[str] = None, email_confirmed: Optional[bool] = None
    ) -> int:
        with self._session_factory() as db:
            return self._account_query(
                db, auth_origin=auth_origin, email_confirmed=email_confirmed
            ).count()

    # ------------------------------------------------------------------
    # Refresh tokens
    # ------------------------------------------------------------------

    def create_refresh_token(self, value: str, account_id: str, expires_at: datetime) -> RefreshToken:
        with self._session_factory() as db:
            record = RefreshToken(
                token=value,
                account_id=account_id,
                expires_at=expires_at,
                revoked=False,
            )
            db.add(record)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise ConflictError("Refresh token could not be stored") from exc
            db.refresh(record)
            return record

    def find_refresh_token_by_value(self, value: str) -> Optional[RefreshToken]:
        if not value:
            return None
        with self._session_factory() as db:
            return (
                db.query(RefreshToken)
                .options(joinedload(RefreshToken.account))
                .filter(RefreshToken.token == value)
                .first()
            )

    def revoke_refresh_token(
        self, value: str, *, active_at: Optional[datetime] = None, now: Optional[datetime] = None
    ) -> bool:
        with self._session_factory() as db:
            query = db.query(RefreshToken).filter(
                RefreshToken.token == value,
                RefreshToken.revoked == False,  # noqa: E712
            )
            if active_at is not None:
                query = query.filter(RefreshToken.expires_at > active_at)
            count = query.update(
                {RefreshToken.revoked: True, RefreshToken.revoked_at: now or _utcnow()},
                synchronize_session=False,
            )
            db.commit()
            return count == 1

    def revoke_all_refresh_tokens_for_account(self, account_id: str, *, now: Optional[datetime] = None) -> int:
        now = now or _utcnow()
        with self._session_factory() as db:
            count = (
                db.query(RefreshToken)
                .filter(
                    RefreshToken.account_id == account_id,
                    RefreshToken.revoked == False,  # noqa: E712
                    RefreshToken.expires_at > now,
                )
                .update(
                    {RefreshToken.revoked: True, RefreshToken.revoked_at: now},
                    synchronize_session=False,
                )
            )
            db.commit()
            return count

    def list_refresh_tokens_for_account(
        self, account_id: str, *, active_only: bool = False, now: Optional[datetime] = None
    ) -> List[RefreshToken]:
        with self._session_factory() as db:
            query = db.query(RefreshToken).filter(RefreshToken.account_id == account_id)
            if active_only:
                query = query.filter(
                    RefreshToken.revoked == False,  # noqa: E712
                    RefreshToken.expires_at > (now or _utcnow()),
                )
            return query.order_by(RefreshToken.id.asc()).all()

    def purge_expired_or_revoked(self, *, now: Optional[datetime] = None) -> int:
        with self._session_factory() as db:
            count = (
                db.query(RefreshToken)
                .filter(
                    or_(
                        RefreshToken.revoked == True,  # noqa: E712
                        RefreshToken.expires_at < (now or _utcnow()),
                    )
                )
                .delete(synchronize_session=False)
            )
            db.commit()
            return count
