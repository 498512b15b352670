import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from svip_subscription_svc.config import Settings, get_settings
from svip_subscription_svc.models import Base
from svip_subscription_svc.models.base import build_engine, build_session_factory
from svip_subscription_svc.responses import register_exception_handlers
from svip_subscription_svc.routers import stripe_router

PORT = 3000


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    engine = build_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.db_auto_create:
            Base.metadata.create_all(bind=engine)
        yield
        engine.dispose()

    app = FastAPI(title="SVIP Subscription Service", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.resolved_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
        expose_headers=["WWW-Authenticate", "Server-Authorization"],
        max_age=5,
    )

    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.dependency_overrides[get_settings] = lambda: settings

    register_exception_handlers(app, expose_errors=not settings.is_production)
    app.include_router(stripe_router.router)
    return app


def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    logging.info(f"Server is running on http://localhost:{PORT}")
    uvicorn.run(create_app(settings), host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    main()
