import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from lastbite.access.middleware import AccessControlMiddleware
from lastbite.config import settings
from lastbite.core.context import BackendContext
from lastbite.core.errors import LastBiteError
from lastbite.core.rate_limit import limiter
from lastbite.modules.admin import routes as admin_routes
from lastbite.modules.auth import routes as auth_routes
from lastbite.modules.buyer import routes as buyer_routes
from lastbite.modules.profiles import routes as profiles_routes
from lastbite.modules.seller import routes as seller_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + [
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ]
            await send(message)

        await self.app(scope, receive, send_with_headers)


def _field_name(loc) -> str:
    # drop the leading "body"/"query" segment
    parts = [str(part) for part in loc[1:]] or [str(part) for part in loc]
    return ".".join(parts)


def _clean_message(message: str) -> str:
    prefix = "Value error, "
    return message[len(prefix):] if message.startswith(prefix) else message


def create_app(context: Optional[BackendContext] = None) -> FastAPI:
    app_settings = context.settings if context is not None else settings
    app = FastAPI(
        title=app_settings.app_name,
        debug=app_settings.debug,
        redirect_slashes=False,
    )
    app.state.limiter = limiter
    if context is not None:
        app.state.backend = context
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(LastBiteError)
    async def lastbite_error_handler(request: Request, exc: LastBiteError):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_name(error.get("loc", ())), "message": _clean_message(error.get("msg", ""))}
            for error in exc.errors()
        ]
        return JSONResponse(status_code=422, content={"detail": "Validation failed", "errors": errors})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        if app_settings.is_production:
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    # Added innermost first: access control sees requests after rate limiting, headers and CORS
    app.add_middleware(AccessControlMiddleware)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_routes.router)
    app.include_router(auth_routes.session_router)
    app.include_router(buyer_routes.router)
    app.include_router(seller_routes.router)
    app.include_router(profiles_routes.router)
    app.include_router(profiles_routes.dashboard_router)
    app.include_router(admin_routes.router)

    @app.on_event("startup")
    async def startup_event():
        if getattr(app.state, "backend", None) is None:
            app.state.backend = BackendContext.from_settings(app_settings)
        logger.info("Application startup")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Application shutdown")

    @app.get("/")
    async def root():
        return {"message": "Welcome to lastbite-backend", "status": "healthy"}

    @app.get("/health")
    @limiter.exempt
    async def health():
        return {"status": "healthy"}

    @app.get("/ready")
    @limiter.exempt
    async def ready():
        """Readiness probe: the backend context is built at startup."""
        if getattr(app.state, "backend", None) is None:
            return JSONResponse(status_code=503, content={"status": "starting"})
        return {"status": "ready"}

    return app


app = create_app()
