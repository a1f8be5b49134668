from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.sessions import SessionMiddleware

from eventhub.config import Config
from eventhub.db import init_db
from eventhub.errors import register_exception_handlers
from eventhub.views import analytics, auth, companies, events, registrations, users


def configure_logging() -> None:
    level = getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO)
    debug_flag = os.environ.get("SQLSTRATUM_DEBUG", "").lower()
    if debug_flag in {"1", "true", "yes"}:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if level == logging.DEBUG:
        logging.getLogger("sqlstratum").setLevel(logging.DEBUG)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="EventHub", lifespan=lifespan)
    app.add_middleware(SessionMiddleware, secret_key=Config.SECRET_KEY, same_site="lax")
    register_exception_handlers(app)
    for module in (auth, users, companies, events, registrations, analytics):
        app.include_router(module.router)

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    return app


configure_logging()

app = create_app()
