"""
Main application entry point - FastAPI app instance and configuration.
This is where the ASGI application is created and configured.
Run with: uvicorn cardscan.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request  # The FastAPI framework
from fastapi.middleware.cors import CORSMiddleware  # Cross-Origin Resource Sharing
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cardscan.core import logging_config  # noqa: F401  (configures "cardscan" loggers)
from cardscan.core.config import settings  # Application settings
from cardscan.db.session import init_db
from cardscan.environments.base import APIError, EnvironmentError
from cardscan.routers import auth, cards  # Route handlers (endpoints)
from cardscan.schemas.api import HealthResponse
from cardscan.services.session_store import get_session_store


logger = logging.getLogger("cardscan.main")


# ---------------------------------------------------------------------------
# LIFESPAN
# ---------------------------------------------------------------------------
# Builds the session store at startup so a misconfigured SESSION_BACKEND
# fails immediately. The database backend also creates its table here.
@asynccontextmanager
async def lifespan(app: FastAPI):
    store = get_session_store()
    if store.backend_name == "database":
        init_db()
    logger.info(f"{settings.APP_NAME} started", extra={"session_backend": store.backend_name})
    yield


# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS MIDDLEWARE
# ---------------------------------------------------------------------------
# The front end runs on another origin and sends the session cookie.
# Credentials are only allowed with an explicit origin list (CORS_ORIGINS).
cors_origins = settings.get_cors_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials="*" not in cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# EXCEPTION HANDLERS
# ---------------------------------------------------------------------------
# Every error leaves the API as {"error": "<message>"}.
@app.exception_handler(EnvironmentError)
async def environment_error_handler(request: Request, exc: EnvironmentError):
    if isinstance(exc, APIError) and exc.upstream_status:
        logger.error(
            f"Upstream failure on {request.url.path}: {exc}",
            extra={"upstream_status": exc.upstream_status},
        )
    elif exc.status_code >= 500:
        logger.error(f"Request failed on {request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# auth.router: /api/auth/google, /api/oauth2callback, /api/user, /api/logout
# cards.router: /api/extract-card-info, /api/save-to-sheets, /api/list-cards,
#               /api/add-to-contacts
app.include_router(auth.router)
app.include_router(cards.router)


# ---------------------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ---------------------------------------------------------------------------
@app.get("/api/health", tags=["health"], response_model=HealthResponse)
def health_check():
    """
    Simple health check endpoint.

    Does NOT call Google or Gemini.

    Returns:
        {"status": "ok"}
    """
    return HealthResponse()
