"""
Gatekeeper - Configuration Management

Centralized configuration using Pydantic Settings.
All secrets are loaded from environment variables (or a local .env file).

Security: No secrets are hardcoded. SECRET_KEY has no default; services that
sign tokens refuse to start without it.
"""

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger("gatekeeper.config")


class ConfigurationError(Exception):
    """Raised when required configuration is missing. Fatal at startup."""
    pass


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        SECRET_KEY: Symmetric key used to sign bearer tokens
        JWT_ALGORITHM: HMAC signature algorithm for tokens
        JWT_ISSUER: Value written to and required in the `iss` claim
        JWT_AUDIENCE: Value written to and required in the `aud` claim
        ACCESS_TOKEN_EXPIRE_MINUTES: Lifetime of a normal login token
        REMEMBER_ME_EXPIRE_DAYS: Lifetime of a "remember me" login token
        EMAIL_CONFIRMATION_EXPIRE_HOURS: Lifetime of an email-confirmation token
        PASSWORD_HASH_ITERATIONS: PBKDF2 iteration count
        LOG_LEVEL: Level applied by configure_logging() when the host opts in
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Token signing
    SECRET_KEY: str = ""  # Must be set via environment
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "gatekeeper"
    JWT_AUDIENCE: str = "gatekeeper-users"

    # Token lifetimes
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REMEMBER_ME_EXPIRE_DAYS: int = 30
    EMAIL_CONFIRMATION_EXPIRE_HOURS: int = 24

    # Password hashing
    PASSWORD_HASH_ITERATIONS: int = 10_000

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def hmac_algorithm(cls, v: str) -> str:
        """Only symmetric HMAC algorithms make sense with a shared secret."""
        v = v.upper()
        if v not in {"HS256", "HS384", "HS512"}:
            raise ValueError("JWT_ALGORITHM must be one of HS256, HS384, HS512")
        return v

    @field_validator(
        "ACCESS_TOKEN_EXPIRE_MINUTES",
        "REMEMBER_ME_EXPIRE_DAYS",
        "EMAIL_CONFIRMATION_EXPIRE_HOURS",
        "PASSWORD_HASH_ITERATIONS",
    )
    @classmethod
    def positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return v

    def require_secret_key(self) -> str:
        """
        Return SECRET_KEY or fail hard.

        Raises:
            ConfigurationError: If SECRET_KEY is empty
        """
        if not self.SECRET_KEY:
            logger.critical("SECRET_KEY is not configured; token signing is unavailable")
            raise ConfigurationError(
                "SECRET_KEY is required. Set SECRET_KEY in your environment or .env file."
            )
        return self.SECRET_KEY


@lru_cache
def get_settings() -> Settings:
    """
    Return the process-wide Settings instance.

    Settings are read once. Tests that change the environment should call
    get_settings.cache_clear() or pass a Settings object explicitly.
    """
    return Settings()
