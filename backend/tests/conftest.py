"""
Shared fixtures for party hub tests.
"""

import pytest
from fastapi.testclient import TestClient

from party_hub.auth import CredentialStore
from party_hub.main import create_app
from party_hub.party import PartyStore


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credentials(clock: FakeClock) -> CredentialStore:
    return CredentialStore(resume_ttl=100, game_join_ttl=10, clock=clock)


@pytest.fixture
def store(credentials: CredentialStore) -> PartyStore:
    return PartyStore(credentials)


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    # One portal for all sockets of a test: a single event loop, as in production
    with TestClient(app) as c:
        yield c

