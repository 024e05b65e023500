"""FastAPI application factory.

The engine is owned by the application: the lifespan builds it, stores it
on ``app.state.engine`` and stops it on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eternity.api.engine_manager import EngineManager
from eternity.api.routes import api_router
from eternity.config import SimulationConfig
from eternity.utils.logging import bind_tick_source, setup_logging

logger = logging.getLogger(__name__)

_TAGS = [
    ("State", "Entities, formations, stockpiles and the event feed, read from the latest snapshot."),
    ("Map", "Terrain grid and legend. Static for the lifetime of a world."),
    ("Visibility", "Per-civilization fog of war: 0 unexplored, 1 explored, 2 visible."),
    ("Control", "Start, pause, resume, single-step and reset the engine; change its tick rate."),
    ("Commands", "Orders for individual entities, applied between ticks."),
    ("Formations", "Group units into formations, march them and change their shape."),
    ("Config", "The configuration the running world was built from."),
]


def create_app(config: SimulationConfig | None = None, autostart: bool = True) -> FastAPI:
    """Build the API around a fresh engine.

    With ``autostart=False`` the world is built but no background thread
    runs; ``POST /control/step`` then advances it one tick per call.
    """
    config = config or SimulationConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(config.log_level)
        manager = EngineManager(config)
        bind_tick_source(lambda: manager.tick)
        app.state.engine = manager
        if autostart:
            manager.start()
        logger.info(
            "Engine ready: %dx%d world, seed %d, %s",
            config.grid_width, config.grid_height, config.world_seed,
            "running" if autostart else "stopped",
        )
        try:
            yield
        finally:
            manager.stop()
            app.state.engine = None
            bind_tick_source(None)
            logger.info("Engine shut down at tick %d.", manager.tick)

    app = FastAPI(
        title="Eternity RTS Engine",
        description="Simulation core of a real-time strategy game: read the world, issue orders, drive the clock.",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[{"name": name, "description": text} for name, text in _TAGS],
    )

    # Renderers are served from other origins during development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app
