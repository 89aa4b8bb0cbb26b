"""Persistence contract for accounts and refresh tokens."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Protocol, Tuple

from authcore.models.account import Account
from authcore.models.security import RefreshToken


class CredentialStore(Protocol):
    """
    Thin persistence contract consumed by the session and linking services.

    No business rules live here. Every mutating call is atomic at the
    single-row level; nothing relies on cross-row transactions.
    """

    # -- accounts ---------------------------------------------------------

    def create_account(self, **fields: Any) -> Account:
        """Insert an account. Raises DuplicateEmailError on a taken email."""

    def find_account_by_email(self, email: str) -> Optional[Account]: ...

    def find_account_by_id(self, account_id: str) -> Optional[Account]: ...

    def find_account_by_federated_id(self, provider: str, external_id: str) -> Optional[Account]: ...

    def update_account(self, account_id: str, **fields: Any) -> Account:
        """Apply a partial update. Raises NotFoundError if no row matches."""

    def delete_account(self, account_id: str) -> Account:
        """Delete an account and, by cascade, its refresh tokens."""

    def list_accounts(
        self,
        *,
        search: Optional[str] = None,
        auth_origin: Optional[str] = None,
        email_confirmed: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Account], int]: ...

    def count_accounts(
        self, *, auth_origin: Optional[str] = None, email_confirmed: Optional[bool] = None
    ) -> int: ...

    # -- refresh tokens ---------------------------------------------------

    def create_refresh_token(self, value: str, account_id: str, expires_at: datetime) -> RefreshToken: ...

    def find_refresh_token_by_value(self, value: str) -> Optional[RefreshToken]:
        """Fetch a token row with its owning account loaded."""

    def revoke_refresh_token(
        self, value: str, *, active_at: Optional[datetime] = None, now: Optional[datetime] = None
    ) -> bool:
        """
        Conditionally flip ``revoked`` to true.

        Succeeds only if the row is still unrevoked (and, when ``active_at``
        is given, unexpired at that instant).

        :returns: True if this call performed the flip.
        """

    def revoke_all_refresh_tokens_for_account(self, account_id: str, *, now: Optional[datetime] = None) -> int: ...

    def list_refresh_tokens_for_account(
        self, account_id: str, *, active_only: bool = False, now: Optional[datetime] = None
    ) -> List[RefreshToken]: ...

    def purge_expired_or_revoked(self, *, now: Optional[datetime] = None) -> int: ...
