"""
Обработка сообщений WebSocket лобби: create/join/leave/setRole/selectGame/start.
Связывает соединения с (партия, игрок), вызывает PartyStore и рассылает снимок
партии всем её соединениям.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect

from .auth import CredentialStore
from .constants import (
    CLOSE_CODE_REPLACED,
    ERR_CREATE_FAILED,
    ERR_JOIN_FAILED,
    ERR_NOT_IN_PARTY,
    ERR_SELECT_GAME_FAILED,
    ERR_SET_ROLE_FAILED,
    ERR_START_FAILED,
    MSG_CREATE,
    MSG_ERROR,
    MSG_GAME_STARTED,
    MSG_JOIN,
    MSG_JOINED,
    MSG_LEAVE,
    MSG_SELECT_GAME,
    MSG_SET_ROLE,
    MSG_START,
    MSG_STATE,
)
from .games import GameRegistry, game_namespace
from .party import NotFoundError, Party, PartyError, PartyStore
from .schemas import CreatePartyRequest, JoinPartyRequest, SelectGameRequest, SetRoleRequest
from .ws_manager import ConnectionManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionContext:
    """Кто стоит за соединением. is_host — на момент привязки, права проверяет PartyStore."""
    connection_id: str
    party_id: str
    player_id: str
    is_host: bool


def _room(party_id: str) -> str:
    return f"party:{party_id}"


def _state_payload(party: Party) -> dict[str, Any]:
    return {"type": MSG_STATE, **party.to_dict()}


def _describe(e: ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(part) for part in err["loc"])
    return f"{loc}: {err['msg']}" if loc else err["msg"]


class PartyRouter:
    def __init__(
        self,
        store: PartyStore,
        credentials: CredentialStore,
        manager: ConnectionManager,
        games: GameRegistry,
    ):
        self.store = store
        self.credentials = credentials
        self.manager = manager
        self.games = games
        self._contexts: dict[str, ConnectionContext] = {}

    def context(self, connection_id: str) -> ConnectionContext | None:
        return self._contexts.get(connection_id)

    async def serve(self, ws: WebSocket) -> None:
        """
        Цикл одного соединения. Resume-токен (если есть) берётся из query-параметра
        token при рукопожатии; невалидный токен не ошибка — соединение просто
        остаётся анонимным до create/join.
        """
        connection_id = None
        try:
            await ws.accept()
            connection_id = self.manager.connect(ws).id
            logger.info("WS: accepted %s from %s", connection_id, ws.client)
            await self.resume(connection_id, ws.query_params.get("token"))
            while True:
                raw = await ws.receive_text()
                await self.handle_message(connection_id, raw)
        except WebSocketDisconnect as e:
            logger.info("WS: client disconnected code=%s connection=%s", e.code, connection_id)
        except Exception as e:
            logger.exception("WS: error connection=%s: %s", connection_id, e)
        finally:
            if connection_id:
                await self.release(connection_id)
                self.manager.disconnect(connection_id)
                logger.info("WS: closed connection=%s", connection_id)

    async def resume(self, connection_id: str, token: str | None) -> bool:
        credential = self.credentials.validate_resume(token)
        if credential is None:
            return False
        try:
            party = self.store.reconnect(credential.party_id, credential.player_id)
        except NotFoundError as e:
            logger.info("WS: resume failed connection=%s: %s", connection_id, e)
            return False
        replaced = self._bind(connection_id, party.id, credential.player_id, party.host_id == credential.player_id)
        state = _state_payload(party)
        await self.manager.send(connection_id, state)
        await self.manager.broadcast(_room(party.id), state, exclude=connection_id)
        for other_id in replaced:
            await self.manager.close(other_id, CLOSE_CODE_REPLACED)
            logger.info("WS: connection %s replaced by %s", other_id, connection_id)
        logger.info("WS: player %s resumed party %s", credential.player_id, party.id)
        return True

    async def handle_message(self, connection_id: str, raw: str) -> None:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("WS: invalid JSON from %s: %s", connection_id, e)
            return
        if not isinstance(data, dict):
            logger.warning("WS: non-object message from %s", connection_id)
            return
        t = data.get("type")
        logger.info("WS: msg from %s type=%s", connection_id, t)
        if t == MSG_CREATE:
            await self._create(connection_id, data)
        elif t == MSG_JOIN:
            await self._join(connection_id, data)
        elif t == MSG_LEAVE:
            await self.release(connection_id)
        elif t == MSG_SET_ROLE:
            await self._set_role(connection_id, data)
        elif t == MSG_SELECT_GAME:
            await self._select_game(connection_id, data)
        elif t == MSG_START:
            await self._start(connection_id)
        else:
            logger.info("WS: unknown message type %s from %s", t, connection_id)

    async def release(self, connection_id: str) -> None:
        """Отвязать соединение от партии (явный leave или обрыв транспорта)."""
        party = self._disconnect(self._unbind(connection_id))
        if party:
            await self._broadcast_state(party)

    def _disconnect(self, ctx: ConnectionContext | None) -> Party | None:
        """Пометить игрока отвязанного соединения отключённым. None — рассылать некому."""
        if ctx is None:
            return None
        try:
            return self.store.disconnect(ctx.party_id, ctx.player_id)
        except NotFoundError as e:
            logger.info("WS: release %s: %s", ctx.connection_id, e)
            return None

    def _bind(self, connection_id: str, party_id: str, player_id: str, is_host: bool) -> list[str]:
        """
        Привязать соединение к игроку и комнате без await, чтобы рассылки
        и start между шагами не видели полупривязанное состояние.
        Возвращает старые соединения этого игрока: их закрывают без disconnect.
        """
        replaced = []
        for other_id, other in list(self._contexts.items()):
            if other_id != connection_id and other.party_id == party_id and other.player_id == player_id:
                self._unbind(other_id)
                replaced.append(other_id)
        self._contexts[connection_id] = ConnectionContext(connection_id, party_id, player_id, is_host)
        self.manager.join_room(connection_id, _room(party_id))
        return replaced

    def _unbind(self, connection_id: str) -> ConnectionContext | None:
        ctx = self._contexts.pop(connection_id, None)
        if ctx:
            self.manager.leave_room(connection_id, _room(ctx.party_id))
        return ctx

    async def _error(self, connection_id: str, code: str, message: str) -> None:
        await self.manager.send(connection_id, {"type": MSG_ERROR, "code": code, "message": message})

    async def _broadcast_state(self, party: Party) -> None:
        await self.manager.broadcast(_room(party.id), _state_payload(party))

    async def _joined(self, connection_id: str, party: Party, player_id: str, is_host: bool) -> None:
        token = self.credentials.issue_resume(party.id, player_id, is_host)
        previous = self._disconnect(self._unbind(connection_id))
        self._bind(connection_id, party.id, player_id, is_host)
        await self.manager.send(connection_id, {
            "type": MSG_JOINED,
            "partyId": party.id,
            "playerId": player_id,
            "token": token,
        })
        await self._broadcast_state(party)
        if previous:
            await self._broadcast_state(previous)

    async def _create(self, connection_id: str, data: dict) -> None:
        try:
            req = CreatePartyRequest.model_validate(data)
        except ValidationError as e:
            await self._error(connection_id, ERR_CREATE_FAILED, _describe(e))
            return
        party, player = self.store.create(req.name, req.game_id)
        await self._joined(connection_id, party, player.id, True)

    async def _join(self, connection_id: str, data: dict) -> None:
        try:
            req = JoinPartyRequest.model_validate(data)
        except ValidationError as e:
            await self._error(connection_id, ERR_JOIN_FAILED, _describe(e))
            return
        try:
            party, player = self.store.join(req.party_id, req.name)
        except PartyError as e:
            await self._error(connection_id, ERR_JOIN_FAILED, str(e))
            return
        await self._joined(connection_id, party, player.id, False)

    async def _set_role(self, connection_id: str, data: dict) -> None:
        try:
            req = SetRoleRequest.model_validate(data)
        except ValidationError as e:
            await self._error(connection_id, ERR_SET_ROLE_FAILED, _describe(e))
            return
        ctx = self._contexts.get(connection_id)
        if ctx is None:
            await self._error(connection_id, ERR_NOT_IN_PARTY, "You are not in a party")
            return
        try:
            party = self.store.set_role(ctx.party_id, req.player_id, req.role, ctx.player_id)
        except PartyError as e:
            await self._error(connection_id, ERR_SET_ROLE_FAILED, str(e))
            return
        await self._broadcast_state(party)

    async def _select_game(self, connection_id: str, data: dict) -> None:
        try:
            req = SelectGameRequest.model_validate(data)
        except ValidationError as e:
            await self._error(connection_id, ERR_SELECT_GAME_FAILED, _describe(e))
            return
        ctx = self._contexts.get(connection_id)
        if ctx is None:
            await self._error(connection_id, ERR_NOT_IN_PARTY, "You are not in a party")
            return
        try:
            party = self.store.select_game(ctx.party_id, req.game_id, ctx.player_id)
        except PartyError as e:
            await self._error(connection_id, ERR_SELECT_GAME_FAILED, str(e))
            return
        await self._broadcast_state(party)

    async def _start(self, connection_id: str) -> None:
        ctx = self._contexts.get(connection_id)
        if ctx is None:
            await self._error(connection_id, ERR_NOT_IN_PARTY, "You are not in a party")
            return
        try:
            party, session_id = self.store.start(ctx.party_id, ctx.player_id)
        except PartyError as e:
            await self._error(connection_id, ERR_START_FAILED, str(e))
            return
        if not self.games.is_registered(party.game_id):
            logger.info("Starting unregistered game %s for party %s (placeholder)", party.game_id, party.id)
        namespace = game_namespace(party.game_id)
        # Каждому свой joinToken, только лично
        for member_id in self.manager.room_members(_room(party.id)):
            member = self._contexts.get(member_id)
            if member is None:
                continue
            join_token = self.credentials.issue_game_join(party.id, member.player_id, session_id)
            await self.manager.send(member_id, {
                "type": MSG_GAME_STARTED,
                "gameId": party.game_id,
                "sessionId": session_id,
                "wsNamespace": namespace,
                "joinToken": join_token,
            })
        await self._broadcast_state(party)
