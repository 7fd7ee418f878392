from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Core
from core.config import settings
from core.config_validator import validate_config_on_startup
from core.errors import AccessControlError
from core.logging_config import logger

# -------------------------------------------------
# Routers
# -------------------------------------------------
from routers.access import router as access_router
from routers.roles import router as roles_router
from routers.conditional_permissions import router as conditional_permissions_router
from routers.health import router as health_router
from routers.dev_auth import router as dev_auth_router


# -------------------------------------------------
# Create the Application
# -------------------------------------------------
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Role hierarchy and permission resolution for the pharmaceutical supply-chain dashboard",
    )

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------
    # Startup
    # -------------------------------------------------
    @app.on_event("startup")
    async def on_startup():
        validate_config_on_startup()
        logger.info(
            f"🚀 Starting {settings.PROJECT_NAME} "
            f"(store={settings.ACCESS_STORE_BACKEND}, env={settings.ENV})"
        )

    # -------------------------------------------------
    # Error handling
    # -------------------------------------------------
    @app.exception_handler(AccessControlError)
    async def handle_access_error(request: Request, exc: AccessControlError):
        logger.warning(f"{exc.__class__.__name__} at {request.url} — {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": exc.__class__.__name__},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (401, 403, 500, 503):
            logger.warning(
                f"HTTP {exc.status_code} at {request.url} — {exc.detail}"
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.error("Unhandled error at %s", request.url, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # -------------------------------------------------
    # Register Routers
    # -------------------------------------------------
    app.include_router(access_router)
    app.include_router(roles_router)
    app.include_router(conditional_permissions_router)
    app.include_router(health_router)

    # Dev tokens only exist for the in-memory store
    if settings.ACCESS_STORE_BACKEND == "memory" and settings.ENV != "production":
        app.include_router(dev_auth_router)

    return app


# Create the global FastAPI instance
app = create_app()
