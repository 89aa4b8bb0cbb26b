"""Session lifecycle: registration, login, logout and refresh-token rotation."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from authcore.core.exceptions import (
    AlreadyRevokedError,
    DuplicateEmailError,
    FederatedAccountError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from authcore.core.logging import mask_email, mask_token
from authcore.core.security import PasswordHasher
from authcore.core.tokens import TokenClaims, TokenCodec, TokenSubject
from authcore.models.account import Account, AuthOrigin
from authcore.schemas import (
    AccountResponse,
    AuthResult,
    LoginRequest,
    RegisterRequest,
    SessionInfo,
    TokenPair,
    parse_input,
)
from authcore.store.base import CredentialStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """
    Orchestrates account sign-up, sign-in and the refresh-rotation protocol.

    Every refresh token row moves ACTIVE -> REVOKED or ACTIVE -> EXPIRED and
    never back. The flip out of ACTIVE is a conditional update in the store,
    so two concurrent callers presenting the same token cannot both win.
    """

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.codec = codec
        self._clock = clock or _utcnow

    @staticmethod
    def _as_utc(dt: Optional[datetime]) -> Optional[datetime]:
        return dt.replace(tzinfo=timezone.utc) if dt and dt.tzinfo is None else dt

    def _now(self) -> datetime:
        return self._as_utc(self._clock())

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue_session(self, account: Account) -> TokenPair:
        """
        Mint an access/refresh pair for an account and persist the refresh row

        Args:
            account: Account the session belongs to

        Returns:
            TokenPair: Fresh tokens
        """
        subject = TokenSubject(id=account.id, email=account.email)
        access_token = self.codec.issue_access(subject)
        refresh_token = self.codec.issue_refresh(subject)

        expires_at = self.codec.expires_at(refresh_token)
        self.store.create_refresh_token(refresh_token, account.id, expires_at)

        logger.debug(
            "Issued session for account %s (refresh %s)", account.id, mask_token(refresh_token)
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.codec.access_ttl.total_seconds()),
            refresh_expires_at=expires_at,
        )

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    def register(self, email: str, password: str, first_name: str, last_name: str) -> AuthResult:
        """
        Create a local account and open its first session

        Raises:
            InvalidInputError: Missing field, malformed email or weak password
            DuplicateEmailError: Email already registered
        """
        data = parse_input(
            RegisterRequest,
            {"email": email, "password": password, "first_name": first_name, "last_name": last_name},
        )

        report = self.hasher.assess_strength(data.password)
        if not report.ok:
            raise InvalidInputError(
                "Password does not meet strength requirements",
                details={"violations": report.violations},
            )

        if self.store.find_account_by_email(data.email) is not None:
            raise DuplicateEmailError()

        account = self.store.create_account(
            email=data.email,
            password_hash=self.hasher.hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            auth_origin=AuthOrigin.LOCAL.value,
            email_confirmed=False,
        )
        tokens = self.issue_session(account)

        logger.info("Registered account %s (%s)", account.id, mask_email(account.email))
        return AuthResult(account=AccountResponse.model_validate(account), tokens=tokens)

    def login(self, email: str, password: str) -> AuthResult:
        """
        Authenticate with email and password

        Unknown email and wrong password share one message so callers
        cannot probe for registered addresses.
        """
        data = parse_input(LoginRequest, {"email": email, "password": password})

        account = self.store.find_account_by_email(data.email)
        if account is None:
            logger.warning("Failed login for unknown email %s", mask_email(data.email))
            raise InvalidCredentialsError()

        if not account.has_password:
            logger.warning("Password login attempted on federated account %s", account.id)
            raise FederatedAccountError()

        if not self.hasher.compare(data.password, account.password_hash):
            logger.warning("Failed login for account %s", account.id)
            raise InvalidCredentialsError()

        account = self.store.update_account(account.id, last_login_at=self._now())
        tokens = self.issue_session(account)

        logger.info("Account %s logged in", account.id)
        return AuthResult(account=AccountResponse.model_validate(account), tokens=tokens)

    def authenticate(self, access_token: str) -> TokenClaims:
        """Statelessly verify an access token; the store is never consulted"""
        return self.codec.verify_access(access_token)

    # ------------------------------------------------------------------
    # Refresh-token lifecycle
    # ------------------------------------------------------------------

    def logout(self, refresh_token: str) -> bool:
        """
        Revoke one refresh token

        Other sessions of the same account are untouched.

        Raises:
            InvalidInputError: No token supplied
            UnauthorizedError: Token is invalid or unknown to the store
            AlreadyRevokedError: Token was revoked earlier
        """
        if not refresh_token:
            raise InvalidInputError("Refresh token is required")

        self.codec.verify_refresh(refresh_token)

        record = self.store.find_refresh_token_by_value(refresh_token)
        if record is None:
            logger.warning("Logout with unknown refresh token %s", mask_token(refresh_token))
            raise UnauthorizedError("Invalid refresh token")
        if record.revoked:
            raise AlreadyRevokedError()

        if not self.store.revoke_refresh_token(refresh_token, now=self._now()):
            # Lost a race with a concurrent logout or rotation.
            raise AlreadyRevokedError()

        logger.info("Account %s logged out", record.account_id)
        return True

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Rotate a refresh token

        The presented token is revoked and a new pair is issued for the same
        account. The old token is dead afterwards even if this call fails
        later on.

        Raises:
            InvalidInputError: No token supplied
            TokenExpiredError / TokenMalformedError / WrongTokenKindError:
                Token failed verification
            UnauthorizedError: Token is unknown, revoked, expired in the store
                or was consumed by a concurrent refresh
        """
        if not refresh_token:
            raise InvalidInputError("Refresh token is required")

        claims = self.codec.verify_refresh(refresh_token)

        record = self.store.find_refresh_token_by_value(refresh_token)
        if record is None:
            logger.warning("Refresh with unknown token %s", mask_token(refresh_token))
            raise UnauthorizedError("Invalid refresh token")

        if record.revoked:
            logger.warning(
                "Reuse of revoked refresh token %s for account %s",
                mask_token(refresh_token),
                record.account_id,
            )
            raise UnauthorizedError("Refresh token has been revoked")

        now = self._now()
        if self._as_utc(record.expires_at) <= now:
            raise UnauthorizedError("Refresh token has expired")

        account = record.account
        if account is None or account.id != claims.subject_id:
            raise UnauthorizedError("Invalid refresh token")

        if not self.store.revoke_refresh_token(refresh_token, active_at=now, now=now):
            logger.warning(
                "Concurrent refresh lost for token %s (account %s)",
                mask_token(refresh_token),
                account.id,
            )
            raise UnauthorizedError("Refresh token has been revoked")

        tokens = self.issue_session(account)
        logger.info("Rotated refresh token for account %s", account.id)
        return tokens

    def revoke_all_sessions(self, account_id: str) -> int:
        """
        Revoke every active refresh token of an account

        Returns:
            int: Number of sessions revoked
        """
        if self.store.find_account_by_id(account_id) is None:
            raise NotFoundError("Account")

        count = self.store.revoke_all_refresh_tokens_for_account(account_id, now=self._now())
        logger.info("Revoked %d session(s) for account %s", count, account_id)
        return count

    def list_sessions(self, account_id: str, active_only: bool = False) -> List[SessionInfo]:
        """List an account's refresh-token rows without exposing token values"""
        records = self.store.list_refresh_tokens_for_account(
            account_id, active_only=active_only, now=self._now()
        )
        return [SessionInfo.model_validate(record) for record in records]

    def purge_expired(self) -> int:
        """Delete revoked and expired refresh-token rows; active rows are never touched"""
        count = self.store.purge_expired_or_revoked(now=self._now())
        if count:
            logger.info("Purged %d expired or revoked refresh token(s)", count)
        return count
