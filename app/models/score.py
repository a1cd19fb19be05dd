from datetime import datetime
from typing import Union
from pydantic import BaseModel, Field


class ScoreCreate(BaseModel):
    """Submission ya validada, lista para el ledger y el ranking"""

    nickname: str
    chart_id: str = Field(..., alias="chartId")

    score: Union[int, float]
    accuracy: Union[int, float]
    max_combo: Union[int, float] = Field(..., alias="maxCombo")

    client_at: int = Field(..., alias="clientAt")  # epoch millis reportado por el cliente

    class Config:
        populate_by_name = True


class ScoreSubmission(BaseModel):
    """Registro inmutable del ledger (colección scores)"""

    nickname: str
    chart_id: str

    score: Union[int, float]
    accuracy: Union[int, float]
    max_combo: Union[int, float]

    client_at: int  # no confiable para ordenar
    created_at: datetime  # asignado por el servidor

    integrity_hash: str  # sha256(ip + user-agent), nunca se expone
    user_agent: str

    class Config:
        populate_by_name = True
