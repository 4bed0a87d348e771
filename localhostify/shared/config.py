"""Centralized configuration management for LocalHostify."""

import os
from functools import lru_cache

from .errors import ConfigurationError

# Environment values that could not be parsed, reported by Config.validate()
INVALID_ENV: dict = {}


def env_number(name: str, default, cast=int):
    """Read a numeric environment variable, falling back to ``default`` when malformed."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        INVALID_ENV[name] = raw
        return default


class Config:
    """Configuration class with all environment variables."""

    # Server Configuration
    SERVER_HOST: str = os.getenv('SERVER_HOST', '0.0.0.0')
    DEFAULT_PORT: int = env_number('DEFAULT_PORT', 8080)
    KEEP_ALIVE_TIMEOUT: int = env_number('KEEP_ALIVE_TIMEOUT', 5)
    SHUTDOWN_TIMEOUT: float = env_number('SHUTDOWN_TIMEOUT', 2.0, float)

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Proxy Configuration
    PROXY_CONNECT_TIMEOUT: float = env_number('PROXY_CONNECT_TIMEOUT', 5.0, float)
    PROXY_REQUEST_TIMEOUT: float = env_number('PROXY_REQUEST_TIMEOUT', 30.0, float)
    PROXY_MAX_BODY_SIZE: int = env_number('PROXY_MAX_BODY_SIZE', 50 * 1024 * 1024)

    # Certificate Configuration
    TLS_HOSTNAME: str = os.getenv('TLS_HOSTNAME', 'localhost')
    TLS_HANDSHAKE_TIMEOUT: float = env_number('TLS_HANDSHAKE_TIMEOUT', 5.0, float)
    RSA_KEY_SIZE: int = env_number('RSA_KEY_SIZE', 2048)
    SELF_SIGNED_DAYS: int = env_number('SELF_SIGNED_DAYS', 365)

    # Network info
    PUBLIC_IP_TIMEOUT: float = env_number('PUBLIC_IP_TIMEOUT', 5.0, float)

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        errors = [f"{name} must be a number, got {raw!r}" for name, raw in INVALID_ENV.items()]

        if not cls.SERVER_HOST:
            errors.append("SERVER_HOST is required")

        if not (1 <= cls.DEFAULT_PORT <= 65535):
            errors.append(f"DEFAULT_PORT must be between 1 and 65535, got {cls.DEFAULT_PORT}")

        # Check timeout hierarchy
        if cls.PROXY_CONNECT_TIMEOUT <= 0:
            errors.append("PROXY_CONNECT_TIMEOUT must be positive")

        for name in ('SHUTDOWN_TIMEOUT', 'TLS_HANDSHAKE_TIMEOUT', 'PUBLIC_IP_TIMEOUT'):
            if getattr(cls, name) <= 0:
                errors.append(f"{name} must be positive")

        if cls.PROXY_CONNECT_TIMEOUT > cls.PROXY_REQUEST_TIMEOUT:
            errors.append("PROXY_CONNECT_TIMEOUT must not exceed PROXY_REQUEST_TIMEOUT")

        if cls.PROXY_MAX_BODY_SIZE <= 0:
            errors.append(f"PROXY_MAX_BODY_SIZE must be positive, got {cls.PROXY_MAX_BODY_SIZE}")

        if cls.RSA_KEY_SIZE < 2048:
            errors.append(f"RSA_KEY_SIZE must be at least 2048, got {cls.RSA_KEY_SIZE}")

        if cls.SELF_SIGNED_DAYS < 1:
            errors.append("SELF_SIGNED_DAYS must be at least 1")

        if errors:
            raise ConfigurationError(f"Configuration errors: {'; '.join(errors)}")


@lru_cache()
def get_config() -> Config:
    """Get validated configuration instance."""
    config = Config()
    config.validate()
    return config
