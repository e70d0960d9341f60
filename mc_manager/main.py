from __future__ import annotations

import logging
import os

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.mods import router as mods_router
from .api.pack import router as pack_router
from .api.server import router as server_router
from .config import get_settings

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="mc-manager", version="1.0.0")

# CORS – keep wide open for now; you can tighten later
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    """
    Validate config on process start so a bad env fails loudly.
    """
    settings = get_settings()
    logging.getLogger(__name__).info(
        "Managing %s (unit %s), backups in %s, extra mods in %s",
        settings.server_location,
        settings.systemd_service,
        settings.backup_location,
        settings.extra_mods_dir,
    )


# The routers define their own "server", "pack" prefixes; everything is
# mounted under /api so the final paths are /api/server/..., /api/pack/...
app.include_router(server_router, prefix="/api")
app.include_router(mods_router, prefix="/api")
app.include_router(pack_router, prefix="/api")


def run() -> None:
    host = os.environ.get("UVICORN_HOST", "0.0.0.0")
    port = int(os.environ.get("UVICORN_PORT", "8000"))
    reload_enabled = os.environ.get("UVICORN_RELOAD", "false").lower() == "true"

    target = "mc_manager.main:app" if reload_enabled else app
    uvicorn.run(target, host=host, port=port, reload=reload_enabled)


if __name__ == "__main__":
    run()
