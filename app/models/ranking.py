from datetime import datetime
from typing import Optional, Union
from pydantic import BaseModel, Field


class RankEntry(BaseModel):
    """Elemento del top cacheado de un chart"""

    nickname: str
    score: Union[int, float]
    accuracy: Union[int, float]
    max_combo: Union[int, float] = Field(..., alias="maxCombo")

    created_at: int = Field(..., alias="createdAt")  # epoch millis del servidor, desempata

    class Config:
        populate_by_name = True


class ChartLeaderboard(BaseModel):
    """Top-N de un chart (colección rankings, _id = chartId)"""

    chart_id: str = Field(..., alias="_id")

    top: list[RankEntry] = []
    submission_count: int = 0  # todas las submissions aceptadas, no solo las del top

    updated_at: Optional[datetime] = None
    version: int = 0  # fencing token para la escritura condicional

    class Config:
        populate_by_name = True
