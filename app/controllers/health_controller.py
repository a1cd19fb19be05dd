"""
Controlador de salud - Endpoint de comprobación del servicio
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.dependencies import enforce_rate_limit, require_api_key
from app.database import Database


router = APIRouter(
    prefix="/api",
    tags=["health"],
    dependencies=[Depends(enforce_rate_limit), Depends(require_api_key)],
)


class HealthResponse(BaseModel):
    """Respuesta del chequeo de estado."""
    ok: bool = True
    status: str
    database: str


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Endpoint de verificación de estado.

    No toca la base de datos, solo informa si hay conexión abierta.
    """
    db_status = "connected" if Database.db is not None else "disconnected"

    return HealthResponse(
        status="available",
        database=db_status
    )
