"""Конфигурация приложения."""
import os
from functools import lru_cache

from .constants import GAME_JOIN_TOKEN_TTL_SECONDS, RESUME_TOKEN_TTL_SECONDS


@lru_cache
def get_config():
    return type("Config", (), {
        "debug": os.environ.get("DEBUG", "0").lower() in ("1", "true", "yes"),
        "allowed_origins": os.environ.get("ALLOWED_ORIGINS", "*").split(","),
        "host": os.environ.get("HOST", "0.0.0.0"),
        "port": int(os.environ.get("PORT", "3000")),
        "resume_token_ttl": int(os.environ.get("RESUME_TOKEN_TTL", RESUME_TOKEN_TTL_SECONDS)),
        "game_join_token_ttl": int(os.environ.get("GAME_JOIN_TOKEN_TTL", GAME_JOIN_TOKEN_TTL_SECONDS)),
    })()
