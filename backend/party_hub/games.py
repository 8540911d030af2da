"""
Реестр игр. Игры регистрируют здесь обработчики своих неймспейсов (/g/<gameId>).
Для старта партии реестр носит рекомендательный характер: незарегистрированная
игра всё равно стартует (заглушка на клиенте).
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from fastapi import FastAPI

from .auth import CredentialStore

logger = logging.getLogger(__name__)


def game_namespace(game_id: str) -> str:
    return f"/g/{game_id}"


@dataclass
class GameDefinition:
    id: str
    name: str
    min_players: int
    max_players: int
    roles: list[str] | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "minPlayers": self.min_players,
            "maxPlayers": self.max_players,
            "roles": self.roles,
        }


class GameHandler(ABC):
    """Серверная часть игры. register монтирует её эндпоинт на namespace."""

    definition: GameDefinition

    @abstractmethod
    def register(self, app: FastAPI, namespace: str, credentials: CredentialStore) -> None:
        ...


class GameRegistry:
    def __init__(self):
        self._handlers: dict[str, GameHandler] = {}

    def register(self, handler: GameHandler) -> None:
        self._handlers[handler.definition.id] = handler
        logger.info("Registered game: %s (%s)", handler.definition.name, handler.definition.id)

    def get(self, game_id: str) -> GameHandler | None:
        return self._handlers.get(game_id)

    def is_registered(self, game_id: str) -> bool:
        return game_id in self._handlers

    def definitions(self) -> list[GameDefinition]:
        return [h.definition for h in self._handlers.values()]

    def mount_all(self, app: FastAPI, credentials: CredentialStore) -> None:
        if not self._handlers:
            logger.info("No games registered, running without game namespaces")
            return
        for game_id, handler in self._handlers.items():
            namespace = game_namespace(game_id)
            handler.register(app, namespace, credentials)
            logger.info("Initialized namespace: %s", namespace)
