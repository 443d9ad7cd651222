from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

from bridge.api.routes import router
from bridge.config import BridgeConfig
from bridge.engine import EngineFactory
from bridge.websocket_hub import SessionHub

logger = logging.getLogger(__name__)

_pkg_dir = Path(__file__).resolve().parent
_project_root = _pkg_dir.parent


def create_app(*, config: BridgeConfig | None = None, engine_factory: EngineFactory | None = None) -> FastAPI:
    env_path = _project_root / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)

    config = config or BridgeConfig.from_env()
    logging.basicConfig(level=config.log_level)

    hub = SessionHub()

    @asynccontextmanager
    async def _lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
        yield
        await hub.close_all()

    app = FastAPI(title="nethack-web-bridge", version="0.1.0", lifespan=_lifespan)
    app.state.config = config
    app.state.engine_factory = engine_factory
    app.state.hub = hub
    app.include_router(router)

    # Serve the browser client when it is shipped alongside; don't fail without it.
    static_dir = _project_root / "public"
    if static_dir.exists():
        app.mount("/ui", StaticFiles(directory=str(static_dir), html=True), name="ui")

        @app.get("/")
        async def _root() -> RedirectResponse:
            return RedirectResponse(url="/ui/")

    @app.get("/info")
    async def info() -> dict[str, object]:
        return {"name": "nethack-web-bridge", "version": "0.1.0", "sessions": hub.count}

    return app


app = create_app()
