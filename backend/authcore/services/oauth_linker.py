"""Federated sign-in: reconcile provider profiles with local accounts."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from authcore.core.exceptions import (
    InvalidInputError,
    NotFoundError,
    PasswordRequiredError,
    ProviderConflictError,
    UnauthorizedError,
)
from authcore.core.logging import mask_email
from authcore.models.account import Account, AuthOrigin
from authcore.schemas import AccountResponse, AuthResult, OAuthProfile, parse_input
from authcore.schemas.account import EMAIL_PATTERN
from authcore.services.session_manager import SessionManager
from authcore.store.base import CredentialStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_names(profile: OAuthProfile) -> Tuple[str, str]:
    """Pick first/last name from a provider profile.

    Falls back to splitting the display name, then to "User".
    """
    if profile.given_name or profile.family_name:
        return (profile.given_name or "").strip(), (profile.family_name or "").strip()

    display = (profile.display_name or "").strip()
    if display:
        first, _, rest = display.partition(" ")
        return first, rest.strip()

    return "User", ""


class OAuthLinker:
    """
    Resolve an externally verified identity to an account.

    Lookup order is federated id, then email, then account creation. Token
    issuance is delegated to the SessionManager.
    """

    def __init__(
        self,
        store: CredentialStore,
        sessions: SessionManager,
        providers: Iterable[str] = (AuthOrigin.GOOGLE.value,),
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.sessions = sessions
        self.providers = {p.strip().lower() for p in providers if p and p.strip()}
        self._clock = clock or _utcnow

    def _check_provider(self, provider: str) -> str:
        provider = (provider or "").strip().lower()
        if provider == AuthOrigin.LOCAL.value or provider not in self.providers:
            raise InvalidInputError(f"Unsupported OAuth provider: {provider or '<none>'}")
        return provider

    def authenticate(
        self, profile: Union[OAuthProfile, Dict[str, Any]], provider: str
    ) -> AuthResult:
        """
        Sign in with a provider profile

        Args:
            profile: Identity already verified by the provider
            provider: Provider tag, e.g. "google"

        Returns:
            AuthResult: Account plus a fresh session

        Raises:
            InvalidInputError: Unsupported provider or malformed profile
            UnauthorizedError: Profile carries no usable email
            ProviderConflictError: Email belongs to an account federated elsewhere
        """
        provider = self._check_provider(provider)
        profile = parse_input(OAuthProfile, profile)

        email = (profile.email or "").strip().lower()
        if not email or not EMAIL_PATTERN.match(email):
            logger.warning("OAuth profile from %s has no usable email", provider)
            raise UnauthorizedError("OAuth profile is missing an email address")

        now = self._clock()
        account = self._sync_existing(profile, provider, now)
        if account is None:
            account = self._link_by_email(profile, provider, email, now)
        if account is None:
            account = self._create(profile, provider, email, now)

        tokens = self.sessions.issue_session(account)
        return AuthResult(account=AccountResponse.model_validate(account), tokens=tokens)

    def _sync_existing(
        self, profile: OAuthProfile, provider: str, now: datetime
    ) -> Optional[Account]:
        account = self.store.find_account_by_federated_id(provider, profile.external_id)
        if account is None:
            return None

        updates: Dict[str, Any] = {"last_login_at": now}
        if profile.avatar_url and profile.avatar_url != account.avatar_url:
            updates["avatar_url"] = profile.avatar_url
        given_name = (profile.given_name or "").strip()[:50]
        family_name = (profile.family_name or "").strip()[:50]
        if given_name and given_name != account.first_name:
            updates["first_name"] = given_name
        if family_name and family_name != account.last_name:
            updates["last_name"] = family_name

        logger.info("OAuth login for account %s via %s", account.id, provider)
        return self.store.update_account(account.id, **updates)

    def _link_by_email(
        self, profile: OAuthProfile, provider: str, email: str, now: datetime
    ) -> Optional[Account]:
        account = self.store.find_account_by_email(email)
        if account is None:
            return None

        if account.federated_id or account.is_federated:
            logger.warning(
                "OAuth email %s via %s matches account %s already linked to %s",
                mask_email(email),
                provider,
                account.id,
                account.auth_origin,
            )
            raise ProviderConflictError()

        updates: Dict[str, Any] = {
            "auth_origin": provider,
            "federated_id": profile.external_id,
            "email_confirmed": True,
            "last_login_at": now,
        }
        if profile.avatar_url and not account.avatar_url:
            updates["avatar_url"] = profile.avatar_url

        logger.info("Linked account %s to %s", account.id, provider)
        return self.store.update_account(account.id, **updates)

    def _create(
        self, profile: OAuthProfile, provider: str, email: str, now: datetime
    ) -> Account:
        first_name, last_name = resolve_names(profile)
        account = self.store.create_account(
            email=email,
            first_name=first_name[:50],
            last_name=last_name[:50],
            avatar_url=profile.avatar_url,
            auth_origin=provider,
            federated_id=profile.external_id,
            email_confirmed=True,
            last_login_at=now,
        )
        logger.info("Created account %s from %s profile", account.id, provider)
        return account

    def unlink(self, account_id: str) -> AccountResponse:
        """
        Detach the federated identity from an account

        Raises:
            NotFoundError: Account does not exist
            PasswordRequiredError: Account has no password to fall back on
        """
        account = self.store.find_account_by_id(account_id)
        if account is None:
            raise NotFoundError("Account")
        if not account.has_password:
            raise PasswordRequiredError()

        account = self.store.update_account(
            account.id, auth_origin=AuthOrigin.LOCAL.value, federated_id=None
        )
        logger.info("Unlinked federated sign-in from account %s", account.id)
        return AccountResponse.model_validate(account)
