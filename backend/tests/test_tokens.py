from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from authcore.core.exceptions import (
    ConfigurationError,
    InvalidInputError,
    TokenExpiredError,
    TokenMalformedError,
    UnauthorizedError,
    WrongTokenKindError,
)
from authcore.core.tokens import TokenCodec, TokenKind, TokenSubject


def _codec(**overrides):
    values = {
        "access_secret": "access-secret",
        "refresh_secret": "refresh-secret",
    }
    values.update(overrides)
    return TokenCodec(**values)


SUBJECT = TokenSubject(id="acc-1", email="a@x.com")


def test_access_token_round_trip():
    codec = _codec()
    claims = codec.verify_access(codec.issue_access(SUBJECT))
    assert claims.subject_id == "acc-1"
    assert claims.subject_email == "a@x.com"
    assert claims.kind is TokenKind.ACCESS
    assert claims.role == "user"
    assert claims.expires_at - claims.issued_at == timedelta(minutes=15)


def test_refresh_token_has_no_role():
    codec = _codec()
    token = codec.issue_refresh(SUBJECT)
    claims = codec.verify_refresh(token)
    assert claims.kind is TokenKind.REFRESH
    assert claims.role is None
    assert "role" not in codec.peek(token)
    assert claims.expires_at - claims.issued_at == timedelta(days=7)


def test_explicit_role_is_carried():
    codec = _codec()
    token = codec.issue_access(TokenSubject(id="acc-1", email="a@x.com", role="admin"))
    assert codec.verify_access(token).role == "admin"


def test_tokens_issued_together_are_distinct():
    codec = _codec()
    assert codec.issue_refresh(SUBJECT) != codec.issue_refresh(SUBJECT)


def test_token_kind_isolation():
    codec = _codec()
    with pytest.raises(WrongTokenKindError):
        codec.verify_access(codec.issue_refresh(SUBJECT))
    with pytest.raises(WrongTokenKindError):
        codec.verify_refresh(codec.issue_access(SUBJECT))


def test_expired_token():
    codec = _codec()
    issued = datetime.now(timezone.utc) - timedelta(hours=1)
    token = codec.issue_access(SUBJECT, now=issued)
    with pytest.raises(TokenExpiredError):
        codec.verify_access(token)
    assert codec.is_expired(token) is True


def test_tampered_and_garbage_tokens_are_malformed():
    codec = _codec()
    token = codec.issue_access(SUBJECT)
    with pytest.raises(TokenMalformedError):
        codec.verify_access(token[:-4] + "abcd")
    with pytest.raises(TokenMalformedError):
        codec.verify_access("not-a-jwt")
    with pytest.raises(TokenMalformedError):
        codec.verify_access("")


def test_forged_token_is_malformed_not_wrong_kind():
    codec = _codec()
    now = datetime.now(timezone.utc)
    claims = {
        "sub": "acc-1",
        "email": "a@x.com",
        "typ": "access",
        "iat": now,
        "exp": now + timedelta(minutes=15),
        "iss": "auth-service",
        "aud": "auth-client",
        "jti": "forged",
    }
    forged = jwt.encode(claims, "attacker", algorithm="HS256")
    with pytest.raises(TokenMalformedError):
        codec.verify_refresh(forged)
    with pytest.raises(TokenMalformedError):
        codec.verify_access(forged)


def test_expired_token_of_wrong_kind_is_wrong_kind():
    codec = _codec()
    issued = datetime.now(timezone.utc) - timedelta(hours=1)
    with pytest.raises(WrongTokenKindError):
        codec.verify_refresh(codec.issue_access(SUBJECT, now=issued))


def test_secrets_are_not_interchangeable():
    issuer = _codec()
    other = _codec(access_secret="different-secret")
    with pytest.raises(TokenMalformedError):
        other.verify_access(issuer.issue_access(SUBJECT))


def test_issuer_and_audience_are_bound():
    codec = _codec()
    token = codec.issue_access(SUBJECT)
    with pytest.raises(TokenMalformedError):
        _codec(issuer="another-service").verify_access(token)
    with pytest.raises(TokenMalformedError):
        _codec(audience="another-client").verify_access(token)


def test_token_errors_are_unauthorized():
    codec = _codec()
    with pytest.raises(UnauthorizedError) as excinfo:
        codec.verify_refresh(codec.issue_access(SUBJECT))
    assert excinfo.value.public_kind.value == "unauthorized"
    assert excinfo.value.kind.value == "wrong_kind"


def test_missing_secret_is_configuration_error():
    codec = _codec(refresh_secret="")
    codec.issue_access(SUBJECT)
    with pytest.raises(ConfigurationError):
        codec.issue_refresh(SUBJECT)


def test_subject_requires_id_and_email():
    codec = _codec()
    with pytest.raises(InvalidInputError):
        codec.issue_access(TokenSubject(id="", email="a@x.com"))
    with pytest.raises(InvalidInputError):
        codec.issue_refresh(TokenSubject(id="acc-1", email=""))


def test_peek_does_not_verify():
    codec = _codec()
    token = _codec(access_secret="elsewhere").issue_access(SUBJECT)
    payload = codec.peek(token)
    assert payload["sub"] == "acc-1"
    assert payload["typ"] == "access"
    assert codec.peek("garbage") is None
    assert codec.peek("") is None


def test_expires_at_reads_exp_claim():
    codec = _codec()
    now = datetime.now(timezone.utc).replace(microsecond=0)
    token = codec.issue_refresh(SUBJECT, now=now)
    assert codec.expires_at(token) == now + timedelta(days=7)
    assert codec.is_expired(token) is False
    assert codec.expires_at("garbage") is None
    assert codec.is_expired("garbage") is True
