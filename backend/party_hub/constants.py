"""Константы лобби: статусы, типы сообщений, коды ошибок, лимиты."""
from enum import Enum


class PartyStatus(str, Enum):
    LOBBY = "lobby"
    IN_GAME = "in_game"


NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 50

PARTY_CODE_BYTES = 3  # 6 hex-символов
PARTY_CODE_FALLBACK_BYTES = 6  # 12 hex-символов
PARTY_CODE_MAX_ATTEMPTS = 10

RESUME_TOKEN_TTL_SECONDS = 24 * 60 * 60
GAME_JOIN_TOKEN_TTL_SECONDS = 60 * 60

# Клиент -> сервер
MSG_CREATE = "party:create"
MSG_JOIN = "party:join"
MSG_LEAVE = "party:leave"
MSG_SET_ROLE = "party:setRole"
MSG_SELECT_GAME = "party:selectGame"
MSG_START = "party:start"

# Сервер -> клиент
MSG_JOINED = "party:joined"
MSG_STATE = "party:state"
MSG_ERROR = "party:error"
MSG_GAME_STARTED = "party:gameStarted"

ERR_CREATE_FAILED = "CREATE_FAILED"
ERR_JOIN_FAILED = "JOIN_FAILED"
ERR_NOT_IN_PARTY = "NOT_IN_PARTY"
ERR_SET_ROLE_FAILED = "SET_ROLE_FAILED"
ERR_SELECT_GAME_FAILED = "SELECT_GAME_FAILED"
ERR_START_FAILED = "START_FAILED"

# Закрытие старого соединения, когда игрок вернулся с нового
CLOSE_CODE_REPLACED = 4000
