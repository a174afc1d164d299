"""
Gatekeeper - Service Wiring

Builds the authentication services from Settings once, at startup.

Usage:
    from gatekeeper.app import configure_logging, create_auth_service

    configure_logging(get_settings())     # optional, from the host's entry point
    auth = create_auth_service(store)     # raises ConfigurationError without SECRET_KEY
    result = await auth.login(LoginRequest(...))

A missing SECRET_KEY is fatal here, so the host process fails at boot
rather than on the first login. create_auth_service() never touches logging
configuration; that belongs to the host.
"""

import logging
from typing import Optional

from gatekeeper.auth.password import PasswordService
from gatekeeper.auth.service import AuthService
from gatekeeper.auth.store import UserStore
from gatekeeper.auth.tokens import Clock, TokenService
from gatekeeper.config import Settings, get_settings


logger = logging.getLogger("gatekeeper.app")


def configure_logging(settings: Settings) -> None:
    """
    Opt-in logging setup for hosts without their own.

    Installs a root handler (no-op if one already exists) and sets the
    "gatekeeper" logger to settings.LOG_LEVEL.
    """
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("gatekeeper").setLevel(settings.LOG_LEVEL)


def create_auth_service(
    store: UserStore,
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> AuthService:
    """
    Construct AuthService and its collaborators.

    Args:
        store: User persistence collaborator
        settings: Override settings (defaults to get_settings())
        clock: Override the token clock (tests)

    Returns:
        Ready-to-use AuthService

    Raises:
        ConfigurationError: If SECRET_KEY is not configured
    """
    settings = settings or get_settings()

    tokens = TokenService(settings, clock=clock)
    passwords = PasswordService(iterations=settings.PASSWORD_HASH_ITERATIONS)

    logger.info(
        "Auth service ready (issuer=%s, audience=%s, algorithm=%s)",
        settings.JWT_ISSUER,
        settings.JWT_AUDIENCE,
        settings.JWT_ALGORITHM,
    )
    return AuthService(store, passwords, tokens)
