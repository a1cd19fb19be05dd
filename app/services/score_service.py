"""
ScoreService - Flujo completo de una submission.

validar -> registrar en el ledger -> mezclar en el ranking del chart.

El ledger es la fuente de verdad: si el ranking falla después del append,
el registro se queda y el error lleva su id.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from app.core.security import integrity_hash
from app.models.ranking import RankEntry
from app.models.score import ScoreSubmission
from app.repositories.errors import ConflictError, StoreUnavailableError
from app.repositories.score_repository import ScoreRepository
from app.services.ranking_service import RankingService, now_millis
from app.services.score_validator import ScoreValidator

logger = logging.getLogger(__name__)


class ScoreServiceError(Exception):
    """Base exception for score service errors."""
    pass


class LeaderboardUpdateError(ScoreServiceError):
    """Raised when the score was ledgered but the ranking could not be updated."""

    def __init__(self, record_id: str, message: str):
        super().__init__(message)
        self.record_id = record_id


class CallerInfo(BaseModel):
    """Datos del transporte, no del payload"""
    ip: str
    user_agent: str = ""


class SubmissionResult(BaseModel):
    record_id: str
    rank: int


class ScoreService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        validator: ScoreValidator,
        ranking_service: RankingService
    ):
        self.score_repo = ScoreRepository(db)
        self.validator = validator
        self.ranking_service = ranking_service

    async def submit(self, payload: Any, caller: CallerInfo) -> SubmissionResult:
        """
        Procesa una submission.

        Lanza:
        - ValidationError antes de tocar la base de datos
        - StoreUnavailableError si falla el append al ledger
        - LeaderboardUpdateError si el ledger quedó escrito pero el ranking no
        """
        received_at = now_millis()
        score = self.validator.validate(payload, received_at)

        submission = ScoreSubmission(
            nickname=score.nickname,
            chart_id=score.chart_id,
            score=score.score,
            accuracy=score.accuracy,
            max_combo=score.max_combo,
            client_at=score.client_at,
            created_at=datetime.now(timezone.utc),
            integrity_hash=integrity_hash(caller.ip, caller.user_agent),
            user_agent=caller.user_agent,
        )

        try:
            record_id = await self.score_repo.append(submission)
        except StoreUnavailableError:
            logger.exception(f"Ledger append failed for chart {score.chart_id}")
            raise

        entry = RankEntry(
            nickname=score.nickname,
            score=score.score,
            accuracy=score.accuracy,
            max_combo=score.max_combo,
            created_at=now_millis(),
        )

        try:
            result = await self.ranking_service.submit_entry(score.chart_id, entry)
        except (ConflictError, StoreUnavailableError) as e:
            logger.exception(
                f"Leaderboard update failed for chart {score.chart_id} (score {record_id} is ledgered)"
            )
            raise LeaderboardUpdateError(record_id, str(e)) from e

        logger.info(
            f"Score {record_id}: {score.nickname} {score.score} on {score.chart_id} -> rank {result.rank}"
        )
        return SubmissionResult(record_id=record_id, rank=result.rank)
