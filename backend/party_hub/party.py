"""
Партии (лобби) в памяти: состав, хост, выбор игры и переход в игру.
Все операции синхронные и либо полностью применяются, либо бросают PartyError
без изменения состояния.
"""
import logging
from dataclasses import dataclass, field

from .auth import CredentialStore
from .constants import PartyStatus
from .ids import new_party_code, new_player_id, new_session_id

logger = logging.getLogger(__name__)


class PartyError(Exception):
    pass


class NotFoundError(PartyError):
    pass


class ForbiddenError(PartyError):
    pass


class InvalidStateError(PartyError):
    pass


@dataclass
class Player:
    id: str
    name: str
    role: str | None = None
    connected: bool = True

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role, "connected": self.connected}


@dataclass
class Party:
    id: str
    owner_id: str  # создатель, не меняется
    host_id: str  # текущий хост, может мигрировать
    status: PartyStatus = PartyStatus.LOBBY
    game_id: str | None = None
    players: list[Player] = field(default_factory=list)
    session_id: str | None = None  # выдаётся при start

    def get_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def connected_players(self) -> list[Player]:
        return [p for p in self.players if p.connected]

    def to_dict(self) -> dict:
        """Снимок партии для party:state."""
        return {
            "id": self.id,
            "status": self.status.value,
            "ownerId": self.owner_id,
            "hostId": self.host_id,
            "gameId": self.game_id,
            "players": [p.to_dict() for p in self.players],
        }


class PartyStore:
    """Реестр партий. При удалении партии отзывает все её токены."""

    def __init__(self, credentials: CredentialStore):
        self._parties: dict[str, Party] = {}
        self._credentials = credentials

    def __contains__(self, party_id: str) -> bool:
        return party_id in self._parties

    def __len__(self) -> int:
        return len(self._parties)

    def get(self, party_id: str) -> Party | None:
        return self._parties.get(party_id)

    def _require_party(self, party_id: str) -> Party:
        party = self._parties.get(party_id)
        if party is None:
            raise NotFoundError(f"Party {party_id} not found")
        return party

    def _require_player(self, party: Party, player_id: str) -> Player:
        player = party.get_player(player_id)
        if player is None:
            raise NotFoundError(f"Player {player_id} is not in party {party.id}")
        return player

    def _require_host(self, party: Party, requester_id: str, action: str) -> None:
        if party.host_id != requester_id:
            raise ForbiddenError(f"Only the host can {action}.")

    def create(self, name: str, game_id: str | None = None) -> tuple[Party, Player]:
        player = Player(id=new_player_id(), name=name)
        party = Party(
            id=new_party_code(self._parties),
            owner_id=player.id,
            host_id=player.id,
            game_id=game_id,
            players=[player],
        )
        self._parties[party.id] = party
        logger.info("Party %s created by %s (game=%s)", party.id, player.id, game_id)
        return party, player

    def join(self, party_id: str, name: str) -> tuple[Party, Player]:
        party = self._require_party(party_id)
        if party.status is not PartyStatus.LOBBY:
            raise InvalidStateError("Party is not in lobby state")
        player = Player(id=new_player_id(), name=name)
        party.players.append(player)
        logger.info("Player %s joined party %s", player.id, party.id)
        return party, player

    def reconnect(self, party_id: str, player_id: str) -> Party:
        """Вернуть игрока в партию. Владелец при возврате забирает роль хоста."""
        party = self._require_party(party_id)
        player = self._require_player(party, player_id)
        player.connected = True
        if player_id == party.owner_id and party.host_id != player_id:
            logger.info("Party %s: host returns to owner %s from %s", party.id, player_id, party.host_id)
            party.host_id = player_id
        logger.info("Player %s reconnected to party %s", player_id, party.id)
        return party

    def disconnect(self, party_id: str, player_id: str) -> Party | None:
        """
        Пометить игрока отключённым (запись не удаляется: место и роль сохраняются).
        Возвращает None, если отключились все и партия удалена.
        """
        party = self._require_party(party_id)
        player = self._require_player(party, player_id)
        player.connected = False
        connected = party.connected_players()
        if not connected:
            self.delete(party.id)
            return None
        if party.host_id == player_id:
            party.host_id = connected[0].id
            logger.info("Party %s: host migrated from %s to %s", party.id, player_id, party.host_id)
        logger.info("Player %s disconnected from party %s", player_id, party.id)
        return party

    def set_role(self, party_id: str, player_id: str, role: str | None, requester_id: str) -> Party:
        party = self._require_party(party_id)
        self._require_host(party, requester_id, "assign roles")
        player = self._require_player(party, player_id)
        player.role = role
        return party

    def select_game(self, party_id: str, game_id: str, requester_id: str) -> Party:
        party = self._require_party(party_id)
        self._require_host(party, requester_id, "select a game")
        if party.status is not PartyStatus.LOBBY:
            raise InvalidStateError("Game can only be changed in the lobby")
        party.game_id = game_id
        logger.info("Party %s selected game %s", party.id, game_id)
        return party

    def start(self, party_id: str, requester_id: str) -> tuple[Party, str]:
        """Lobby -> InGame. Возвращает партию и новый id игровой сессии."""
        party = self._require_party(party_id)
        self._require_host(party, requester_id, "start the game")
        if party.status is not PartyStatus.LOBBY:
            raise InvalidStateError("Game has already started")
        if not party.game_id:
            raise InvalidStateError("Please select a game before starting.")
        party.status = PartyStatus.IN_GAME
        party.session_id = new_session_id()
        logger.info("Party %s started game %s session=%s", party.id, party.game_id, party.session_id)
        return party, party.session_id

    def delete(self, party_id: str) -> bool:
        self._credentials.revoke_all_for_party(party_id)
        existed = self._parties.pop(party_id, None) is not None
        if existed:
            logger.info("Party %s deleted", party_id)
        return existed
