"""JWT issuance and verification for access and refresh tokens"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from authcore.config import Settings
from authcore.core.exceptions import (
    ConfigurationError,
    InvalidInputError,
    TokenExpiredError,
    TokenMalformedError,
    WrongTokenKindError,
)

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "user"


class TokenKind(str, Enum):
    """Token type discriminant carried in the ``typ`` claim"""
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenSubject:
    """Identity a token is minted for"""
    id: str
    email: str
    role: Optional[str] = None


@dataclass(frozen=True)
class TokenClaims:
    """Verified token contents"""
    subject_id: str
    subject_email: str
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime
    jti: str
    role: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """
    Sign and verify compact bearer tokens.

    Access and refresh tokens use separate secrets; every token binds the
    configured issuer and audience so tokens from another deployment are
    rejected.
    """

    def __init__(
        self,
        *,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        issuer: str = "auth-service",
        audience: str = "auth-client",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        self._secrets = {
            TokenKind.ACCESS: access_secret,
            TokenKind.REFRESH: refresh_secret,
        }
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCodec":
        return cls(
            access_secret=settings.JWT_ACCESS_SECRET,
            refresh_secret=settings.JWT_REFRESH_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        )

    def ttl_for(self, kind: TokenKind) -> timedelta:
        return self.access_ttl if kind is TokenKind.ACCESS else self.refresh_ttl

    def _secret(self, kind: TokenKind) -> str:
        secret = self._secrets[kind]
        if not secret:
            raise ConfigurationError(f"JWT_{kind.value.upper()}_SECRET is required")
        return secret

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def _issue(self, subject: TokenSubject, kind: TokenKind, now: Optional[datetime]) -> str:
        secret = self._secret(kind)
        if subject is None or not subject.id:
            raise InvalidInputError("Token subject must include an id")
        if not subject.email:
            raise InvalidInputError("Token subject must include an email")

        issued_at = now or _utcnow()
        to_encode: Dict[str, Any] = {
            "sub": str(subject.id),
            "email": subject.email,
            "typ": kind.value,
            "iat": issued_at,
            "exp": issued_at + self.ttl_for(kind),
            "iss": self.issuer,
            "aud": self.audience,
            "jti": secrets.token_urlsafe(16),
        }
        if kind is TokenKind.ACCESS:
            to_encode["role"] = subject.role or DEFAULT_ROLE

        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def issue_access(self, subject: TokenSubject, *, now: Optional[datetime] = None) -> str:
        """
        Create a short-lived access token

        Args:
            subject: Identity to embed
            now: Issuance instant (defaults to current UTC time)

        Returns:
            str: Encoded JWT
        """
        return self._issue(subject, TokenKind.ACCESS, now)

    def issue_refresh(self, subject: TokenSubject, *, now: Optional[datetime] = None) -> str:
        """Create a long-lived refresh token (no role claim)"""
        return self._issue(subject, TokenKind.REFRESH, now)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def _signed_as(self, token: str, kind: TokenKind) -> bool:
        """True if the token carries a valid signature and ``typ`` for ``kind``; expiry is ignored."""
        secret = self._secrets[kind]
        if not secret:
            return False
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_exp": False},
            )
        except JWTError:
            return False
        return payload.get("typ") == kind.value

    def _verify(self, token: str, expected: TokenKind) -> TokenClaims:
        if not token or not isinstance(token, str):
            raise TokenMalformedError("Token must be a non-empty string")

        try:
            payload = jwt.decode(
                token,
                self._secret(expected),
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError(f"{expected.value.capitalize()} token has expired") from exc
        except JWTError as exc:
            other = TokenKind.REFRESH if expected is TokenKind.ACCESS else TokenKind.ACCESS
            if self._signed_as(token, other):
                raise WrongTokenKindError(expected.value) from exc
            raise TokenMalformedError(f"Invalid {expected.value} token") from exc

        if payload.get("typ") != expected.value:
            raise WrongTokenKindError(expected.value)

        try:
            return TokenClaims(
                subject_id=str(payload["sub"]),
                subject_email=str(payload["email"]),
                kind=expected,
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
                jti=str(payload["jti"]),
                role=payload.get("role"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenMalformedError(f"Malformed {expected.value} token payload") from exc

    def verify_access(self, token: str) -> TokenClaims:
        """
        Verify an access token

        Raises:
            TokenExpiredError: Token is past its expiry
            TokenMalformedError: Bad signature, issuer, audience or structure
            WrongTokenKindError: A refresh token was presented
        """
        return self._verify(token, TokenKind.ACCESS)

    def verify_refresh(self, token: str) -> TokenClaims:
        """Verify a refresh token; same failure modes as verify_access"""
        return self._verify(token, TokenKind.REFRESH)

    # ------------------------------------------------------------------
    # Non-authoritative inspection
    # ------------------------------------------------------------------

    def peek(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Decode without verifying signature or expiry.

        Never use the result for authorization decisions.
        """
        if not token or not isinstance(token, str):
            return None
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            return None

    def expires_at(self, token: str) -> Optional[datetime]:
        payload = self.peek(token)
        if not payload or "exp" not in payload:
            return None
        try:
            return datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (TypeError, ValueError):
            return None

    def is_expired(self, token: str) -> bool:
        expiry = self.expires_at(token)
        return expiry is None or expiry <= _utcnow()
