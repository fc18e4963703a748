from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from tortoise import Tortoise, connections

from .constants import DB_URL, FRONTEND_DIR
from .logger import get_logger, setup_logging
from .room_manager import RoomManager
from .routers import rooms as rooms_router
from .routers import users as users_router
from .routers import websockets as ws_router

logger = get_logger(__name__)

# -----------------------------
# Lifecycle
# -----------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await Tortoise.init(db_url=DB_URL, modules={"models": ["fakester.models"]})
    await Tortoise.generate_schemas()
    # One room manager per process, drained before the database goes away.
    app.state.room_manager = RoomManager()
    logger.info("Fakester started (db=%s)", DB_URL)
    try:
        yield
    finally:
        await app.state.room_manager.shutdown()
        await connections.close_all()


# -----------------------------
# FastAPI app instance
# -----------------------------

app = FastAPI(title="Fakester Backend", lifespan=lifespan)

# Allow all origins during development – adjust for production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users_router.router)
app.include_router(rooms_router.router)
app.include_router(ws_router.router)


@app.get("/health")
async def health(request: Request):
    return {"status": "ok", "rooms": len(request.app.state.room_manager)}

# -----------------------------
# Static file mounting
# -----------------------------

# Custom StaticFiles variant that disables caching for the SPA assets.
class NoCacheStaticFiles(StaticFiles):
    async def get_response(self, path: str, scope):  # type: ignore[override]
        response = await super().get_response(path, scope)
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return response

# Mount the built frontend (index.html etc.) at root path when present.
if Path(FRONTEND_DIR).is_dir():
    app.mount("/", NoCacheStaticFiles(directory=FRONTEND_DIR, html=True), name="frontend")

__all__ = ["app"]
