"""Account service - profile management, passwords and listings"""

import logging
import math
from typing import Any, Dict, Iterable, Optional

from authcore.core.exceptions import (
    ConflictError,
    DuplicateEmailError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from authcore.core.logging import mask_email
from authcore.core.security import PasswordHasher
from authcore.models.account import Account, AuthOrigin
from authcore.schemas import (
    AccountPage,
    AccountResponse,
    AccountStats,
    ProfileUpdate,
    parse_input,
)
from authcore.services.session_manager import SessionManager
from authcore.store.base import CredentialStore

logger = logging.getLogger(__name__)


class AccountService:
    """Service for account management"""

    MAX_PAGE_SIZE = 100

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        sessions: SessionManager,
        providers: Iterable[str] = (AuthOrigin.GOOGLE.value,),
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.sessions = sessions
        self.origins = [AuthOrigin.LOCAL.value] + sorted(
            {p.strip().lower() for p in providers if p and p.strip()} - {AuthOrigin.LOCAL.value}
        )

    def _get(self, account_id: str) -> Account:
        if not account_id:
            raise InvalidInputError("Account ID is required")
        account = self.store.find_account_by_id(account_id)
        if account is None:
            raise NotFoundError("Account")
        return account

    def _check_new_password(self, password: str) -> None:
        report = self.hasher.assess_strength(password or "")
        if not report.ok:
            raise InvalidInputError(
                "Password does not meet strength requirements",
                details={"violations": report.violations},
            )

    def get_profile(self, account_id: str) -> AccountResponse:
        """
        Get account profile

        Args:
            account_id: Account ID

        Returns:
            Account profile (never includes the password hash)
        """
        return AccountResponse.model_validate(self._get(account_id))

    def update_profile(self, account_id: str, updates: Dict[str, Any]) -> AccountResponse:
        """
        Update profile fields

        Only first name, last name, email and avatar URL may change. A new
        email must be unused and resets email confirmation.

        Raises:
            InvalidInputError: Unknown field, bad value or nothing to update
            DuplicateEmailError: Email already in use
            NotFoundError: Account does not exist
        """
        if not isinstance(updates, dict):
            raise InvalidInputError("Updates must be an object")

        data = parse_input(ProfileUpdate, updates)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise InvalidInputError("No valid updates provided")

        account = self._get(account_id)

        new_email = changes.get("email")
        if new_email is not None:
            if new_email == account.email:
                del changes["email"]
            else:
                existing = self.store.find_account_by_email(new_email)
                if existing is not None and existing.id != account.id:
                    raise DuplicateEmailError()
                changes["email_confirmed"] = False

        if not changes:
            return AccountResponse.model_validate(account)

        account = self.store.update_account(account.id, **changes)
        logger.info(f"Updated profile of account {account.id}: {sorted(changes)}")
        return AccountResponse.model_validate(account)

    def change_password(self, account_id: str, current_password: str, new_password: str) -> int:
        """
        Replace the password of an account that already has one

        All refresh tokens are revoked afterwards.

        Returns:
            int: Number of sessions revoked
        """
        account = self._get(account_id)
        if not account.has_password:
            raise ConflictError("Account has no password; set one first")
        if not current_password or not self.hasher.compare(current_password, account.password_hash):
            logger.warning(f"Password change rejected for account {account.id}")
            raise UnauthorizedError("Current password is incorrect")

        self._check_new_password(new_password)
        if self.hasher.compare(new_password, account.password_hash):
            raise InvalidInputError("New password must differ from the current password")

        self.store.update_account(account.id, password_hash=self.hasher.hash(new_password))
        revoked = self.sessions.revoke_all_sessions(account.id)
        logger.info(f"Password changed for account {account.id}; revoked {revoked} session(s)")
        return revoked

    def set_password(self, account_id: str, new_password: str) -> AccountResponse:
        """Give a federated-only account a password so it can later unlink"""
        account = self._get(account_id)
        if account.has_password:
            raise ConflictError("Account already has a password")

        self._check_new_password(new_password)
        account = self.store.update_account(
            account.id, password_hash=self.hasher.hash(new_password)
        )
        logger.info(f"Password set for account {account.id}")
        return AccountResponse.model_validate(account)

    def delete_account(self, account_id: str) -> AccountResponse:
        """Delete an account together with all of its sessions"""
        if not account_id:
            raise InvalidInputError("Account ID is required")
        account = self.store.delete_account(account_id)
        logger.info(f"Deleted account {account.id} ({mask_email(account.email)})")
        return AccountResponse.model_validate(account)

    def list_accounts(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        auth_origin: Optional[str] = None,
        email_confirmed: Optional[bool] = None,
    ) -> AccountPage:
        """
        Paginated account listing

        Args:
            page: 1-based page number
            limit: Page size (1-100)
            search: Substring matched against email and names
            auth_origin: Restrict to one origin ("local" or a provider)
            email_confirmed: Restrict by confirmation state
        """
        if not isinstance(page, int) or isinstance(page, bool) or page < 1:
            raise InvalidInputError("Page must be a positive integer")
        if (
            not isinstance(limit, int)
            or isinstance(limit, bool)
            or limit < 1
            or limit > self.MAX_PAGE_SIZE
        ):
            raise InvalidInputError(f"Limit must be between 1 and {self.MAX_PAGE_SIZE}")
        if auth_origin is not None and auth_origin not in self.origins:
            raise InvalidInputError(f"Provider must be one of: {', '.join(self.origins)}")

        items, total = self.store.list_accounts(
            search=search,
            auth_origin=auth_origin,
            email_confirmed=email_confirmed,
            page=page,
            limit=limit,
        )
        return AccountPage(
            items=[AccountResponse.model_validate(a) for a in items],
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit) if total else 0,
        )

    def stats(self) -> AccountStats:
        """Account totals by origin and email confirmation"""
        total = self.store.count_accounts()
        confirmed = self.store.count_accounts(email_confirmed=True)
        by_origin = {origin: self.store.count_accounts(auth_origin=origin) for origin in self.origins}
        return AccountStats(
            total=total,
            by_origin=by_origin,
            confirmed=confirmed,
            unconfirmed=total - confirmed,
        )
