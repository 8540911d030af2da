"""Модели входящих сообщений лобби (валидация до обращения к PartyStore)."""
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import NAME_MAX_LENGTH, NAME_MIN_LENGTH


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CreatePartyRequest(_Request):
    name: str = Field(min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    game_id: str | None = Field(default=None, alias="gameId", min_length=1)


class JoinPartyRequest(_Request):
    party_id: str = Field(alias="partyId", min_length=1)
    name: str = Field(min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)

    @field_validator("party_id")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        # коды партий — hex в верхнем регистре
        return v.strip().upper()


class SetRoleRequest(_Request):
    player_id: str = Field(alias="playerId", min_length=1)
    role: str | None = Field(min_length=1)  # None снимает роль


class SelectGameRequest(_Request):
    game_id: str = Field(alias="gameId", min_length=1)
