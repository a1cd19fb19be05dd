"""
Entry point de la API
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import get_settings
from app.database import Database, create_indexes

from app.controllers.health_controller import router as health_router
from app.controllers.scores_controller import router as scores_router

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("app")

# Parse CORS origins
CORS_ORIGINS = settings.cors_origin_list

# Headers estilo helmet que se agregan a todas las respuestas
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'self'; object-src 'none'",
}


def is_allowed_origin(origin: str) -> bool:
    """Check if origin is in the explicit allow list."""
    if not origin:
        return False
    return origin in CORS_ORIGINS


class CORSMiddleware(BaseHTTPMiddleware):
    """
    Custom CORS middleware that handles OPTIONS preflight BEFORE routing.

    Preflights never reach the API key or rate limit dependencies.
    """

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin", "")

        # Handle preflight OPTIONS request IMMEDIATELY
        if request.method == "OPTIONS":
            if is_allowed_origin(origin):
                return Response(
                    status_code=204,
                    headers={
                        "Access-Control-Allow-Origin": origin,
                        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
                        "Access-Control-Allow-Headers": "Content-Type, Accept, Origin, X-App-Key, X-Requested-With",
                        "Access-Control-Max-Age": "86400",  # Cache preflight for 24 hours
                        "Vary": "Origin",
                    }
                )
            else:
                # Origin not allowed
                return Response(status_code=403, content="Origin not allowed")

        # For non-OPTIONS requests, proceed normally and add CORS headers to response
        response = await call_next(request)

        if is_allowed_origin(origin):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the security headers to every response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RateLimitHeadersMiddleware(BaseHTTPMiddleware):
    """
    Copies the RateLimit-* headers left by enforce_rate_limit onto the
    response, including error responses raised after the limiter ran.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        rate_limit_headers = getattr(request.state, "rate_limit_headers", None) or {}
        for name, value in rate_limit_headers.items():
            response.headers.setdefault(name, value)
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One line per request: METHOD path status content-length - ms"""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.info(
            f"{request.method} {request.url.path} {response.status_code} "
            f"{response.headers.get('content-length', '-')} - {elapsed_ms:.3f} ms"
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    await Database.connect()
    await create_indexes(Database.get_db())
    yield
    await Database.disconnect()

# Creo la app
app = FastAPI(
    title="Rhythm Ranking API",
    description="Ledger de scores y ranking top-N por chart",
    version="1.0.0",
    lifespan=lifespan
)

# El último agregado es el más externo: el log ve la respuesta final
app.add_middleware(RateLimitHeadersMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(CORSMiddleware)
app.add_middleware(AccessLogMiddleware)

# Agrego todos los routers de los controllers al app
app.include_router(health_router)
app.include_router(scores_router)


@app.get("/")
async def root():
    # Endpoint raíz, sirve para verificar que la API está levantada
    return {
        "name": "Rhythm Ranking API",
        "version": "1.0.0",
        "docs": "/docs"  # Link a la documentación interactiva de Swagger
    }
