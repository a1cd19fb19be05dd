"""
Dependencies de FastAPI: clave compartida, rate limiting, caller e inyeccion de servicios
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import Settings, get_settings
from app.core.rate_limiter import RateLimiter
from app.core.security import UnauthorizedError, client_ip, verify_api_key
from app.database import get_database
from app.services.ranking_service import RankingService
from app.services.score_service import CallerInfo, ScoreService
from app.services.score_validator import ScoreValidator

# Esquema de seguridad: espera un header "X-App-Key: <clave>"
api_key_header = APIKeyHeader(name="X-App-Key", auto_error=False)

AppSettings = Annotated[Settings, Depends(get_settings)]
Database = Annotated[AsyncIOMotorDatabase, Depends(get_database)]


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    """Un solo limiter por proceso, configurado desde Settings"""
    settings = get_settings()
    return RateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


async def enforce_rate_limit(
    request: Request,
    settings: AppSettings,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)]
) -> None:
    """
    Limita requests por IP. Deja los headers RateLimit-* en request.state
    (RateLimitHeadersMiddleware los agrega a cualquier respuesta, incluso errores)
    y responde 429 cuando se supera el límite.
    """
    key = client_ip(request, settings.trust_proxy_headers)
    allowed, remaining, reset_seconds = await limiter.hit(key)

    headers = {
        "RateLimit-Limit": str(limiter.max_requests),
        "RateLimit-Remaining": str(remaining),
        "RateLimit-Reset": str(reset_seconds),
    }

    request.state.rate_limit_headers = headers

    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests, please try again later.",
            headers={**headers, "Retry-After": str(reset_seconds)},
        )


async def require_api_key(
    settings: AppSettings,
    provided_key: Annotated[Optional[str], Depends(api_key_header)]
) -> None:
    """
    Dependency que valida la clave compartida del cliente.

    Se usa en todos los endpoints bajo /api.
    """
    try:
        verify_api_key(provided_key, settings.app_api_key)
    except UnauthorizedError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Missing or invalid API key.",
        )


async def get_caller(request: Request, settings: AppSettings) -> CallerInfo:
    """IP y user-agent del transporte, para el hash de integridad"""
    return CallerInfo(
        ip=client_ip(request, settings.trust_proxy_headers),
        user_agent=request.headers.get("user-agent", ""),
    )


def get_ranking_service(db: Database, settings: AppSettings) -> RankingService:
    return RankingService(
        db,
        max_ranking_size=settings.max_ranking_size,
        max_retries=settings.ranking_max_retries,
        retry_backoff_ms=settings.ranking_retry_backoff_ms,
    )


def get_score_service(
    db: Database,
    settings: AppSettings,
    ranking_service: Annotated[RankingService, Depends(get_ranking_service)]
) -> ScoreService:
    validator = ScoreValidator(banned_words=settings.banned_word_list)
    return ScoreService(db, validator, ranking_service)


# Alias de tipos para que se vea mas limpio en los endpoints
Caller = Annotated[CallerInfo, Depends(get_caller)]
Rankings = Annotated[RankingService, Depends(get_ranking_service)]
Scores = Annotated[ScoreService, Depends(get_score_service)]
