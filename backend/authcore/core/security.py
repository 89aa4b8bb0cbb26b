"""Password hashing and strength policy"""

import re
from dataclasses import dataclass, field
from typing import List

import bcrypt

from authcore.core.exceptions import InvalidInputError

# bcrypt only consumes the first 72 bytes of a secret.
_BCRYPT_MAX_BYTES = 72

_SYMBOL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


@dataclass
class StrengthReport:
    """Outcome of a password strength assessment"""
    ok: bool
    violations: List[str] = field(default_factory=list)


class PasswordHasher:
    """One-way salted password hashing with bcrypt"""

    MIN_STRONG_LENGTH = 8
    MAX_STRONG_LENGTH = 128

    def __init__(self, rounds: int = 12, min_length: int = 6) -> None:
        self.rounds = rounds
        self.min_length = min_length

    @staticmethod
    def _encode(plaintext: str) -> bytes:
        return plaintext.encode("utf-8")[:_BCRYPT_MAX_BYTES]

    def hash(self, plaintext: str) -> str:
        """
        Hash a password using bcrypt

        Args:
            plaintext: Plain text password

        Returns:
            str: Hashed password

        Raises:
            InvalidInputError: If the password is empty or too short
        """
        if not plaintext or not isinstance(plaintext, str):
            raise InvalidInputError("Password must be a non-empty string")
        if len(plaintext) < self.min_length:
            raise InvalidInputError(f"Password must be at least {self.min_length} characters long")

        return bcrypt.hashpw(
            self._encode(plaintext),
            bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def compare(self, plaintext: str, hashed: str) -> bool:
        """
        Verify a password against its hash

        Args:
            plaintext: Plain text password
            hashed: Hashed password

        Returns:
            bool: True if password matches; a mismatch is not an error
        """
        if not plaintext or not isinstance(plaintext, str):
            raise InvalidInputError("Plain password must be a non-empty string")
        if not hashed or not isinstance(hashed, str):
            raise InvalidInputError("Hashed password must be a non-empty string")

        try:
            return bcrypt.checkpw(self._encode(plaintext), hashed.encode("utf-8"))
        except ValueError as exc:
            raise InvalidInputError("Stored password hash is malformed") from exc

    def assess_strength(self, plaintext: str) -> StrengthReport:
        """
        Check a password against the strength policy

        Every violated rule is reported so callers can show them all at once.

        Args:
            plaintext: Candidate password

        Returns:
            StrengthReport: ok flag plus the list of violations
        """
        if not isinstance(plaintext, str):
            return StrengthReport(ok=False, violations=["Password must be a string"])

        violations: List[str] = []
        if len(plaintext) < self.MIN_STRONG_LENGTH:
            violations.append(f"Password must be at least {self.MIN_STRONG_LENGTH} characters long")
        if len(plaintext) > self.MAX_STRONG_LENGTH:
            violations.append(f"Password must be at most {self.MAX_STRONG_LENGTH} characters long")
        if not re.search(r"[a-z]", plaintext):
            violations.append("Password must contain at least one lowercase letter")
        if not re.search(r"[A-Z]", plaintext):
            violations.append("Password must contain at least one uppercase letter")
        if not re.search(r"\d", plaintext):
            violations.append("Password must contain at least one number")
        if not _SYMBOL_RE.search(plaintext):
            violations.append("Password must contain at least one special character")

        return StrengthReport(ok=not violations, violations=violations)
