"""Logging setup and redaction helpers"""

import logging
from pathlib import Path
from typing import List, Optional

from authcore.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """
    Configure root logging from settings

    Args:
        settings: Application settings (LOG_LEVEL, LOG_FILE)
    """
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    log_file = settings.get_log_file()
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def mask_token(token: Optional[str]) -> str:
    """Render a token for logs without exposing it"""
    if not token:
        return "<none>"
    return f"{token[:6]}...({len(token)} chars)"


def mask_email(email: Optional[str]) -> str:
    """Render an email for logs with the local part hidden"""
    if not email or "@" not in email:
        return "<none>"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"
