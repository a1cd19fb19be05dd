"""
📒 ScoreRepository - ledger append-only de submissions

Cada submission aceptada se inserta una sola vez y nunca se modifica ni
se borra desde aquí (la retención es un tema externo).
"""

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.models.score import ScoreSubmission
from app.repositories.errors import StoreUnavailableError


class ScoreRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["scores"]

    async def append(self, submission: ScoreSubmission) -> str:
        """Inserta el registro y retorna el id generado (como string)"""
        try:
            result = await self.collection.insert_one(submission.model_dump())
        except PyMongoError as e:
            raise StoreUnavailableError("ledger", str(e)) from e

        return str(result.inserted_id)
