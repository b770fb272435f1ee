"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from depwatch import __version__
from depwatch.web.api import router


def create_app() -> FastAPI:
    app = FastAPI(title="depwatch", version=__version__)
    app.include_router(router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
