"""
🏆 RankingRepository - top-N cacheado por chart

Un documento por chart (_id = chartId). Cada escritura es condicional sobre
`version`: si otro writer la cambió entre el read y el write, se lanza
ConflictError y el caller decide si reintentar.
"""

from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.models.ranking import ChartLeaderboard, RankEntry
from app.repositories.errors import ConflictError, StoreUnavailableError


class RankingRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["rankings"]

    async def get(self, chart_id: str) -> Optional[ChartLeaderboard]:
        """Snapshot actual del chart (con su version), o None si no existe"""
        try:
            doc = await self.collection.find_one({"_id": chart_id})
        except PyMongoError as e:
            raise StoreUnavailableError("rankings", str(e)) from e

        return ChartLeaderboard(**doc) if doc else None

    async def create(
        self,
        chart_id: str,
        top: list[RankEntry],
        now: datetime
    ) -> None:
        """
        Crea el ranking de un chart con su primera submission

        Si otro writer lo creó primero, lanza ConflictError.
        """
        doc = {
            "_id": chart_id,
            "top": [entry.model_dump() for entry in top],
            "submission_count": 1,
            "updated_at": now,
            "version": 1,
        }

        try:
            await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise ConflictError(f"Ranking for {chart_id} was created concurrently") from e
        except PyMongoError as e:
            raise StoreUnavailableError("rankings", str(e)) from e

    async def update_if_version(
        self,
        chart_id: str,
        version: int,
        top: list[RankEntry],
        now: datetime
    ) -> None:
        """
        Reemplaza el top e incrementa submission_count, solo si la version
        sigue siendo la que se leyó.
        """
        try:
            result = await self.collection.update_one(
                {"_id": chart_id, "version": version},
                {
                    "$set": {
                        "top": [entry.model_dump() for entry in top],
                        "updated_at": now,
                    },
                    "$inc": {"submission_count": 1, "version": 1},
                }
            )
        except PyMongoError as e:
            raise StoreUnavailableError("rankings", str(e)) from e

        if result.matched_count == 0:
            raise ConflictError(f"Ranking for {chart_id} changed since version {version}")
