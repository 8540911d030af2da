"""
Менеджер WebSocket: живые соединения по connection_id и группы рассылки (комнаты).
Ничего не знает о партиях — только кому и что отправить.
"""
import logging
import uuid
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, ws: WebSocket, connection_id: str):
        self.ws = ws
        self.id = connection_id


class ConnectionManager:
    def __init__(self):
        self._by_id: dict[str, Connection] = {}
        self._rooms: dict[str, list[str]] = {}

    def connect(self, ws: WebSocket) -> Connection:
        conn = Connection(ws, uuid.uuid4().hex)
        self._by_id[conn.id] = conn
        return conn

    def disconnect(self, connection_id: str) -> None:
        self._by_id.pop(connection_id, None)
        for room in list(self._rooms):
            self.leave_room(connection_id, room)

    def join_room(self, connection_id: str, room: str) -> None:
        members = self._rooms.setdefault(room, [])
        if connection_id not in members:
            members.append(connection_id)

    def leave_room(self, connection_id: str, room: str) -> None:
        members = self._rooms.get(room)
        if not members or connection_id not in members:
            return
        members.remove(connection_id)
        if not members:
            del self._rooms[room]

    def room_members(self, room: str) -> list[str]:
        return list(self._rooms.get(room, []))

    async def send(self, connection_id: str, payload: dict[str, Any]) -> bool:
        conn = self._by_id.get(connection_id)
        if not conn:
            return False
        try:
            await conn.ws.send_json(payload)
            return True
        except Exception as e:
            # упавшее соединение уберёт его собственный цикл приёма
            logger.warning("send to %s: %s", connection_id, e)
            return False

    async def broadcast(self, room: str, payload: dict[str, Any], exclude: str | None = None) -> None:
        for connection_id in self.room_members(room):
            if connection_id != exclude:
                await self.send(connection_id, payload)

    async def close(self, connection_id: str, code: int) -> None:
        conn = self._by_id.get(connection_id)
        if not conn:
            return
        try:
            await conn.ws.close(code=code)
        except Exception as e:
            logger.debug("close %s: %s", connection_id, e)
