"""
Configuration Module
====================

Centralized configuration management using Pydantic Settings.
Loads from environment variables with type validation and defaults.

Usage:
    from attestkit.config import settings

    print(settings.environment)
    print(settings.zk.proof_cache_ttl_seconds)
"""

from attestkit.config.settings import (
    ChallengeSettings,
    Environment,
    LogLevel,
    Settings,
    ZKSettings,
    get_settings,
)


# Global settings instance (singleton)
settings = get_settings()

__all__ = [
    "Settings",
    "ZKSettings",
    "ChallengeSettings",
    "get_settings",
    "settings",
    "Environment",
    "LogLevel",
]
