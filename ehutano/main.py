# ehutano/main.py
from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ehutano.api.exception_handlers import register_exception_handlers
from ehutano.api.router import api_router
from ehutano.core.auth import StaticTokenAuth
from ehutano.core.config import Settings, settings as default_settings
from ehutano.services.dispensing_workflow import DispensingWorkflow
from ehutano.services.pending_poller import PendingPrescriptionPoller
from ehutano.services.pharmacy_api import PharmacyApiClient

logger = logging.getLogger("ehutano")


# -------------------------------------------------------------------
#  Logging
# -------------------------------------------------------------------
def setup_logging(cfg: Settings) -> None:
    root = logging.getLogger("ehutano")
    if getattr(root, "_ehutano_configured", False):
        return
    level = getattr(logging, cfg.LOG_LEVEL, logging.INFO)
    root.setLevel(level)

    # Console handler
    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter(
        "[%(asctime)s] [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(ch)

    # File handler
    if cfg.LOG_FILE:
        fh = logging.FileHandler(cfg.LOG_FILE, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root.addHandler(fh)

    root._ehutano_configured = True


# -------------------------------------------------------------------
#  App
# -------------------------------------------------------------------
def create_app(cfg: Optional[Settings] = None,
               api: Optional[PharmacyApiClient] = None) -> FastAPI:
    cfg = cfg or default_settings
    setup_logging(cfg)

    auth = StaticTokenAuth(cfg.PHARMACY_API_TOKEN)
    api = api or PharmacyApiClient(cfg.PHARMACY_API_BASE_URL, auth,
                                   timeout=cfg.REQUEST_TIMEOUT_SECONDS)
    poller = PendingPrescriptionPoller(api, interval=cfg.PENDING_POLL_SECONDS)
    workflow = DispensingWorkflow(api, settings=cfg, poller=poller)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if cfg.PENDING_POLL_ENABLED:
            poller.start()
        logger.info("%s ready (upstream %s)", cfg.PROJECT_NAME, cfg.PHARMACY_API_BASE_URL)
        yield
        poller.stop()

    app = FastAPI(
        title=cfg.PROJECT_NAME,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.auth = auth
    app.state.workflow = workflow

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=cfg.API_V1_STR)

    # Health
    @app.get("/")
    def root():
        return {"message": f"{cfg.PROJECT_NAME} running", "version": "v1"}

    return app


app = create_app()
