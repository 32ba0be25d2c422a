import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from worthwatch.core.auth import AuthorizationGate, authorization_middleware, build_authorization_gate
from worthwatch.core.config import get_settings
from worthwatch.core.exceptions import BaseAppException
from worthwatch.routers import health, movies, shows, users, watchlists
from worthwatch import models  # ensure entity kinds are registered

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(auth_gate: Optional[AuthorizationGate] = None) -> FastAPI:
    app = FastAPI(
        title="WorthWatch API",
        description="Curated movie and show watchlists",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.auth_gate = auth_gate or build_authorization_gate()

    # Gate first, CORS last so that it wraps the gate and answers preflights
    app.add_middleware(BaseHTTPMiddleware, dispatch=authorization_middleware)

    origins_env = settings.CORS_ALLOW_ORIGINS or ""
    origins = [o.strip() for o in origins_env.split(",") if o.strip()] or [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(BaseAppException)
    async def app_exception_handler(request: Request, exc: BaseAppException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.error_code} - {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "VALIDATION_ERROR", "message": "Request validation failed", "details": details},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "INTERNAL_ERROR", "message": "An internal server error occurred"},
        )

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(watchlists.router)
    app.include_router(movies.router)
    app.include_router(shows.router)
    return app


app = create_app()
