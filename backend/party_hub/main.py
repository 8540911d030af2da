"""
Party Hub API и WebSocket лобби.
"""
import logging

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .auth import CredentialStore
from .config import get_config
from .games import GameRegistry
from .party import PartyStore
from .ws_handlers import PartyRouter
from .ws_manager import ConnectionManager

logging.basicConfig(
    level=logging.DEBUG if get_config().debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def create_app(config=None, games: GameRegistry | None = None) -> FastAPI:
    """Собрать приложение. Всё состояние живёт в объектах на app.state, а не в модулях."""
    if config is None:
        config = get_config()
    if games is None:
        games = GameRegistry()
    credentials = CredentialStore(
        resume_ttl=config.resume_token_ttl,
        game_join_ttl=config.game_join_token_ttl,
    )
    store = PartyStore(credentials)
    router = PartyRouter(store, credentials, ConnectionManager(), games)

    app = FastAPI(title="Party Hub API")
    app.state.credentials = credentials
    app.state.parties = store
    app.state.router = router
    app.state.games = games

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/games")
    def list_games():
        return {"games": [d.to_dict() for d in games.definitions()]}

    @app.websocket("/platform")
    async def platform_endpoint(ws: WebSocket):
        logger.info("WS: connection attempt from %s", ws.client)
        await router.serve(ws)

    games.mount_all(app, credentials)
    return app


app = create_app()


def run() -> None:
    config = get_config()
    uvicorn.run(app, host=config.host, port=config.port)
