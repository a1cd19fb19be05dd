"""
Controlador de scores - Envío de puntajes y lectura del ranking por chart

Lectura: sirve el top-N cacheado del chart.
Escritura: valida, registra en el ledger y actualiza el ranking.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.core.dependencies import Caller, Rankings, Scores, enforce_rate_limit, require_api_key
from app.models.ranking import RankEntry
from app.repositories.errors import StoreUnavailableError
from app.services.score_service import LeaderboardUpdateError
from app.services.score_validator import ValidationError


router = APIRouter(
    prefix="/api/scores",
    tags=["scores"],
    dependencies=[Depends(enforce_rate_limit), Depends(require_api_key)],
)


class RankingResponse(BaseModel):
    """Top del chart, ya ordenado."""
    ok: bool = True
    top: list[RankEntry]


class SubmitScoreResponse(BaseModel):
    """Id del registro en el ledger y posición lograda (-1 si no entró al top)."""
    ok: bool = True
    id: str
    rank: int


@router.get("", response_model=RankingResponse)
async def get_ranking(
    rankings: Rankings,
    chart_id: Optional[str] = Query(None, alias="chartId", description="Chart to read"),
    limit: Optional[int] = Query(None, ge=0, description="Max entries (capped at 100)")
):
    """
    Obtener el ranking cacheado de un chart.

    Un chart sin submissions devuelve una lista vacía.
    """
    if not chart_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"rule": "chart_id", "message": "`chartId` query parameter is required."}
        )

    try:
        top = await rankings.get_top(chart_id, limit)
    except StoreUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error while fetching ranking."
        )

    return RankingResponse(top=top)


@router.post("", response_model=SubmitScoreResponse, status_code=status.HTTP_201_CREATED)
async def submit_score(
    scores: Scores,
    caller: Caller,
    payload: Any = Body(None)
):
    """
    Enviar un score.

    El score queda en el ledger aunque no entre al top del chart.
    """
    try:
        result = await scores.submit(payload, caller)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"rule": e.rule, "message": e.message}
        )
    except LeaderboardUpdateError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": "Score was recorded but the ranking could not be updated.",
                "id": e.record_id,
            }
        )
    except StoreUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error while submitting score."
        )

    return SubmitScoreResponse(id=result.record_id, rank=result.rank)
