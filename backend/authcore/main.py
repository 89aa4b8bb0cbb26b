"""Composition root: wire settings, database, store and services"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from authcore.config import Settings, get_settings
from authcore.core.database import create_session_factory, engine_from_settings, init_db
from authcore.core.logging import configure_logging
from authcore.core.security import PasswordHasher
from authcore.core.tokens import TokenCodec
from authcore.services.account_service import AccountService
from authcore.services.oauth_linker import OAuthLinker
from authcore.services.session_manager import SessionManager
from authcore.services.token_purge_worker import TokenPurgeWorker
from authcore.store.sqlalchemy_store import SQLAlchemyCredentialStore

logger = logging.getLogger(__name__)


@dataclass
class AuthCore:
    """Fully wired service graph; one instance per process or test"""
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    store: SQLAlchemyCredentialStore
    hasher: PasswordHasher
    codec: TokenCodec
    sessions: SessionManager
    oauth: OAuthLinker
    accounts: AccountService
    purge_worker: TokenPurgeWorker = field(repr=False)

    def close(self) -> None:
        """Stop the purge worker and release pooled connections"""
        self.purge_worker.stop()
        self.engine.dispose()


def create_auth_core(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    configure_logs: bool = True,
) -> AuthCore:
    """
    Build the auth core from settings

    Args:
        settings: Settings to use (defaults to environment-derived settings)
        engine: Pre-built engine; created from settings when omitted
        configure_logs: Whether to install root logging handlers

    Returns:
        AuthCore: Wired services

    Raises:
        ConfigurationError: Signing secrets missing or unsafe
    """
    settings = settings or get_settings()
    settings.validate_security_settings()

    if configure_logs:
        configure_logging(settings)

    engine = engine or engine_from_settings(settings)
    init_db(engine)
    session_factory = create_session_factory(engine)

    store = SQLAlchemyCredentialStore(session_factory)
    hasher = PasswordHasher(
        rounds=settings.PASSWORD_HASH_ROUNDS,
        min_length=settings.PASSWORD_MIN_LENGTH,
    )
    codec = TokenCodec.from_settings(settings)
    sessions = SessionManager(store, hasher, codec)
    oauth = OAuthLinker(store, sessions, providers=settings.OAUTH_PROVIDERS)
    accounts = AccountService(store, hasher, sessions, providers=settings.OAUTH_PROVIDERS)
    purge_worker = TokenPurgeWorker(sessions, interval_seconds=settings.TOKEN_PURGE_INTERVAL_SECONDS)

    logger.info(
        f"{settings.APP_NAME} v{settings.APP_VERSION} ready "
        f"(environment={settings.ENVIRONMENT}, database={engine.dialect.name})"
    )
    return AuthCore(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        store=store,
        hasher=hasher,
        codec=codec,
        sessions=sessions,
        oauth=oauth,
        accounts=accounts,
        purge_worker=purge_worker,
    )
