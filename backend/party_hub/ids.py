"""
Генерация идентификаторов: короткие коды партий и непредсказуемые id игроков/сессий.
"""
import secrets
import uuid
from collections.abc import Container

from .constants import PARTY_CODE_BYTES, PARTY_CODE_FALLBACK_BYTES, PARTY_CODE_MAX_ATTEMPTS


def new_party_code(existing: Container[str], max_attempts: int = PARTY_CODE_MAX_ATTEMPTS) -> str:
    """
    Короткий код партии (6 hex-символов), не совпадающий с живыми партиями.
    После max_attempts коллизий возвращает длинный код (12 символов).
    Проверка и вставка не атомарны: корректно только в одном event loop.
    """
    for _ in range(max_attempts):
        code = secrets.token_hex(PARTY_CODE_BYTES).upper()
        if code not in existing:
            return code
    return secrets.token_hex(PARTY_CODE_FALLBACK_BYTES).upper()


def new_player_id() -> str:
    return str(uuid.uuid4())


def new_session_id() -> str:
    return str(uuid.uuid4())
