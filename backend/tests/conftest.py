import pytest

from authcore.config import Settings
from authcore.main import create_auth_core


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "sqlite:///:memory:",
        "JWT_ACCESS_SECRET": "test-access-secret",
        "JWT_REFRESH_SECRET": "test-refresh-secret",
        "PASSWORD_HASH_ROUNDS": 4,
        "OAUTH_PROVIDERS": ["google", "github"],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def core(settings):
    auth_core = create_auth_core(settings, configure_logs=False)
    yield auth_core
    auth_core.close()


@pytest.fixture
def store(core):
    return core.store


@pytest.fixture
def sessions(core):
    return core.sessions


@pytest.fixture
def oauth(core):
    return core.oauth


@pytest.fixture
def accounts(core):
    return core.accounts


@pytest.fixture
def codec(core):
    return core.codec


@pytest.fixture
def hasher(core):
    return core.hasher


@pytest.fixture
def settings_factory():
    return make_settings
