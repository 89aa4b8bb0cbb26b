import pytest

from authcore.core.exceptions import (
    ConflictError,
    DuplicateEmailError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)

PASSWORD = "Aa1!aaaa"
NEW_PASSWORD = "Bb2@bbbb"


def _register(sessions, email="a@x.com"):
    return sessions.register(email, PASSWORD, "A", "B")


def test_get_profile(accounts, sessions):
    registered = _register(sessions)
    profile = accounts.get_profile(registered.account.id)
    assert profile.email == "a@x.com"
    assert "password_hash" not in profile.model_dump()

    with pytest.raises(NotFoundError):
        accounts.get_profile("missing")
    with pytest.raises(InvalidInputError):
        accounts.get_profile("")


def test_update_profile_fields(accounts, sessions):
    registered = _register(sessions)
    updated = accounts.update_profile(
        registered.account.id,
        {"first_name": "  Alice ", "avatar_url": "https://img.example.com/a.png"},
    )
    assert updated.first_name == "Alice"
    assert updated.last_name == "B"
    assert updated.avatar_url == "https://img.example.com/a.png"


def test_update_profile_email_resets_confirmation(accounts, sessions, store):
    registered = _register(sessions)
    store.update_account(registered.account.id, email_confirmed=True)

    updated = accounts.update_profile(registered.account.id, {"email": "New@X.com"})
    assert updated.email == "new@x.com"
    assert updated.email_confirmed is False


def test_update_profile_same_email_keeps_confirmation(accounts, sessions, store):
    registered = _register(sessions)
    store.update_account(registered.account.id, email_confirmed=True)

    updated = accounts.update_profile(registered.account.id, {"email": "A@x.com"})
    assert updated.email_confirmed is True


def test_update_profile_rejects_taken_email(accounts, sessions):
    _register(sessions, email="taken@x.com")
    registered = _register(sessions)
    with pytest.raises(DuplicateEmailError):
        accounts.update_profile(registered.account.id, {"email": "taken@x.com"})


@pytest.mark.parametrize(
    "updates",
    [
        {},
        {"password_hash": "x"},
        {"auth_origin": "google"},
        {"first_name": ""},
        {"last_name": "x" * 51},
        {"email": "not-an-email"},
        {"avatar_url": "https://" + "x" * 500},
    ],
)
def test_update_profile_rejects_invalid_updates(accounts, sessions, updates):
    registered = _register(sessions)
    with pytest.raises(InvalidInputError):
        accounts.update_profile(registered.account.id, updates)


def test_update_profile_requires_mapping(accounts, sessions):
    registered = _register(sessions)
    with pytest.raises(InvalidInputError):
        accounts.update_profile(registered.account.id, ["first_name"])


def test_change_password_revokes_every_session(accounts, sessions, store):
    registered = _register(sessions)
    sessions.login("a@x.com", PASSWORD)

    assert accounts.change_password(registered.account.id, PASSWORD, NEW_PASSWORD) == 2
    assert store.list_refresh_tokens_for_account(registered.account.id, active_only=True) == []

    with pytest.raises(UnauthorizedError):
        sessions.refresh(registered.tokens.refresh_token)
    with pytest.raises(UnauthorizedError):
        sessions.login("a@x.com", PASSWORD)
    assert sessions.login("a@x.com", NEW_PASSWORD).account.id == registered.account.id


def test_change_password_checks_current_and_strength(accounts, sessions):
    registered = _register(sessions)
    with pytest.raises(UnauthorizedError):
        accounts.change_password(registered.account.id, "Wrong1!pw", NEW_PASSWORD)
    with pytest.raises(InvalidInputError):
        accounts.change_password(registered.account.id, PASSWORD, "weak")
    with pytest.raises(InvalidInputError):
        accounts.change_password(registered.account.id, PASSWORD, PASSWORD)


def test_set_password_for_federated_account(accounts, oauth, sessions):
    result = oauth.authenticate({"external_id": "g-1", "email": "fed@x.com"}, "google")

    updated = accounts.set_password(result.account.id, NEW_PASSWORD)
    assert updated.has_password is True
    assert oauth.unlink(result.account.id).auth_origin == "local"
    assert sessions.login("fed@x.com", NEW_PASSWORD).account.id == result.account.id

    with pytest.raises(ConflictError):
        accounts.set_password(result.account.id, NEW_PASSWORD)


def test_change_password_without_existing_password(accounts, oauth):
    result = oauth.authenticate({"external_id": "g-1", "email": "fed@x.com"}, "google")
    with pytest.raises(ConflictError):
        accounts.change_password(result.account.id, PASSWORD, NEW_PASSWORD)


def test_delete_account_removes_sessions(accounts, sessions, store):
    registered = _register(sessions)

    deleted = accounts.delete_account(registered.account.id)
    assert deleted.id == registered.account.id
    assert store.find_refresh_token_by_value(registered.tokens.refresh_token) is None

    with pytest.raises(NotFoundError):
        accounts.delete_account(registered.account.id)


def test_list_accounts_pagination(accounts, sessions):
    for i in range(5):
        _register(sessions, email=f"user{i}@x.com")

    page = accounts.list_accounts(page=1, limit=2)
    assert page.total == 5
    assert page.pages == 3
    assert len(page.items) == 2

    last = accounts.list_accounts(page=3, limit=2)
    assert len(last.items) == 1

    empty = accounts.list_accounts(page=10, limit=2)
    assert empty.items == []
    assert empty.total == 5


@pytest.mark.parametrize(
    "kwargs",
    [
        {"page": 0},
        {"page": -1},
        {"limit": 0},
        {"limit": 101},
        {"auth_origin": "facebook"},
    ],
)
def test_list_accounts_rejects_bad_filters(accounts, kwargs):
    with pytest.raises(InvalidInputError):
        accounts.list_accounts(**kwargs)


def test_list_accounts_filters(accounts, sessions, oauth):
    _register(sessions, email="local@x.com")
    oauth.authenticate({"external_id": "g-1", "email": "fed@x.com"}, "google")

    google = accounts.list_accounts(auth_origin="google")
    assert [a.email for a in google.items] == ["fed@x.com"]

    confirmed = accounts.list_accounts(email_confirmed=True)
    assert [a.email for a in confirmed.items] == ["fed@x.com"]

    searched = accounts.list_accounts(search="local")
    assert [a.email for a in searched.items] == ["local@x.com"]


def test_stats(accounts, sessions, oauth):
    _register(sessions, email="one@x.com")
    _register(sessions, email="two@x.com")
    oauth.authenticate({"external_id": "g-1", "email": "fed@x.com"}, "google")

    stats = accounts.stats()
    assert stats.total == 3
    assert stats.by_origin == {"local": 2, "github": 0, "google": 1}
    assert stats.confirmed == 1
    assert stats.unconfirmed == 2
