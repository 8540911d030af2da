"""
Эфемерные учётные данные партии: resume-токен (возврат в партию после обрыва)
и game-join токен (вход конкретного игрока в игровую сессию).
Токены — непрозрачные случайные строки, смысл им придаёт только хранилище.
"""
import logging
import secrets
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .constants import GAME_JOIN_TOKEN_TTL_SECONDS, RESUME_TOKEN_TTL_SECONDS

logger = logging.getLogger(__name__)


class CredentialKind(str, Enum):
    RESUME = "resume"
    GAME_JOIN = "game_join"


class UnauthenticatedError(Exception):
    """Токен отсутствует, неизвестен, просрочен или выдан не для этой цели."""


@dataclass(frozen=True)
class Credential:
    kind: CredentialKind
    party_id: str
    player_id: str
    issued_at: float
    is_host: bool | None = None  # только для RESUME
    session_id: str | None = None  # только для GAME_JOIN


def _short(token: str) -> str:
    return token[:4] + "..."


class CredentialStore:
    """
    In-memory таблица токенов.
    Срок жизни проверяется лениво при каждой валидации, фоновой очистки нет:
    просроченный токен живёт до первой проверки или до отзыва всей партии.
    """

    def __init__(
        self,
        resume_ttl: float = RESUME_TOKEN_TTL_SECONDS,
        game_join_ttl: float = GAME_JOIN_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._credentials: dict[str, Credential] = {}
        self._ttl = {
            CredentialKind.RESUME: resume_ttl,
            CredentialKind.GAME_JOIN: game_join_ttl,
        }
        self._clock = clock

    def __len__(self) -> int:
        return len(self._credentials)

    def _issue(self, credential: Credential) -> str:
        token = secrets.token_urlsafe(24)
        self._credentials[token] = credential
        logger.debug(
            "Issued %s token %s party=%s player=%s",
            credential.kind.value, _short(token), credential.party_id, credential.player_id,
        )
        return token

    def issue_resume(self, party_id: str, player_id: str, is_host: bool) -> str:
        return self._issue(Credential(
            kind=CredentialKind.RESUME,
            party_id=party_id,
            player_id=player_id,
            issued_at=self._clock(),
            is_host=is_host,
        ))

    def issue_game_join(self, party_id: str, player_id: str, session_id: str) -> str:
        return self._issue(Credential(
            kind=CredentialKind.GAME_JOIN,
            party_id=party_id,
            player_id=player_id,
            issued_at=self._clock(),
            session_id=session_id,
        ))

    def validate(self, token: str | None) -> Credential | None:
        """Вернуть учётные данные, если токен известен и не просрочен. Просроченный удаляется."""
        if not token:
            return None
        credential = self._credentials.get(token)
        if credential is None:
            logger.info("Unknown token presented: %s", _short(token))
            return None
        if self._clock() - credential.issued_at >= self._ttl[credential.kind]:
            del self._credentials[token]
            logger.info("Expired %s token %s purged", credential.kind.value, _short(token))
            return None
        return credential

    def validate_resume(self, token: str | None) -> Credential | None:
        credential = self.validate(token)
        if credential is None or credential.kind is not CredentialKind.RESUME:
            return None
        return credential

    def validate_game_join(self, token: str | None) -> Credential | None:
        credential = self.validate(token)
        if credential is None or credential.kind is not CredentialKind.GAME_JOIN:
            return None
        return credential

    def require_game_join(self, token: str | None, session_id: str | None = None) -> Credential:
        """
        Строгая проверка для входа в игру: в отличие от resume при подключении,
        отсутствие или невалидность токена — явная ошибка.
        """
        credential = self.validate_game_join(token)
        if credential is None:
            raise UnauthenticatedError("Invalid or expired join token")
        if session_id is not None and credential.session_id != session_id:
            raise UnauthenticatedError("Join token was issued for another session")
        return credential

    def revoke(self, token: str) -> bool:
        return self._credentials.pop(token, None) is not None

    def revoke_all_for_party(self, party_id: str) -> int:
        stale = [t for t, c in self._credentials.items() if c.party_id == party_id]
        for token in stale:
            del self._credentials[token]
        if stale:
            logger.info("Revoked %d tokens of party %s", len(stale), party_id)
        return len(stale)
