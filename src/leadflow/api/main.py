"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leadflow.api.routes import auth, leads
from leadflow.auth import Authenticator, build_authenticator
from leadflow.config import Config, load_config
from leadflow.gateway import LeadGateway, build_gateway
from leadflow.logging_config import configure_logging
from leadflow.store import PipelineStore

log = logging.getLogger(__name__)


def create_app(
    config: Config | None = None,
    gateway: LeadGateway | None = None,
    authenticator: Authenticator | None = None,
) -> FastAPI:
    """Composition root: one gateway, one store, one authenticator per app."""
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.config = config
        app.state.gateway = gateway or build_gateway(config)
        app.state.store = PipelineStore(app.state.gateway)
        app.state.authenticator = authenticator or build_authenticator(config)

        await app.state.store.load()
        log.info(
            "Loaded %d lead(s) from the %s store",
            len(app.state.store.leads), app.state.gateway.name,
        )

        yield

        await app.state.gateway.aclose()

    app = FastAPI(title="Leadflow API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(leads.router, prefix="/api/leads", tags=["leads"])

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def run() -> None:
    """``leadflow-api [port]``"""
    import uvicorn

    config = load_config()
    configure_logging(config.log_level, config.log_format)
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8000
    uvicorn.run(create_app(config), host="127.0.0.1", port=port)


if __name__ == "__main__":
    run()
