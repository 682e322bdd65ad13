"""FastAPI application fronting the request desk core"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from request_desk import __version__
from request_desk.app import RequestDeskApp
from request_desk.utils.config import Settings
from request_desk.utils.exceptions import RequestDeskError
from request_desk.utils.logger import get_logger

from .admin_routes import router as admin_router
from .auth_routes import router as auth_router
from .request_routes import router as request_router

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI app around an initialized RequestDeskApp.

    Run with ``uvicorn web.main:create_app --factory``.
    """
    desk = RequestDeskApp(settings).initialize()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        desk.shutdown()

    app = FastAPI(
        title=desk.settings.app.name,
        description="Role-scoped service request tracker",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.desk = desk

    # Cookies are same-site strict; cross-origin access must be opted into
    cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(RequestDeskError)
    async def request_desk_error_handler(request: Request, exc: RequestDeskError):
        logger.warning("Unhandled request desk error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    app.include_router(auth_router)
    app.include_router(request_router)
    app.include_router(admin_router)
    return app
