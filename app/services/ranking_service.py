"""
RankingService - Mantiene y sirve el top-N cacheado de cada chart.

El merge es una función pura (merge_entry). submit_entry la envuelve en un
read-modify-write optimista sobre el documento del chart: si otro writer
cambia la version entre el read y el write, se vuelve a leer y a mezclar.
"""

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from app.models.ranking import RankEntry
from app.repositories.errors import ConflictError
from app.repositories.ranking_repository import RankingRepository

logger = logging.getLogger(__name__)

NOT_RANKED = -1
DEFAULT_MAX_RANKING_SIZE = 100
MAX_BACKOFF_MS = 1000
MAX_QUERY_LIMIT = 100  # tope duro de lectura, aunque el top guardado sea mayor


_last_millis = 0


def now_millis() -> int:
    """
    Reloj del servidor en epoch millis; solo se usa para desempatar.

    Nunca retrocede: si el reloj del sistema se ajusta hacia atrás,
    repite el último valor entregado.
    """
    global _last_millis
    _last_millis = max(_last_millis, time.time_ns() // 1_000_000)
    return _last_millis


class MergeResult(BaseModel):
    rank: int
    top: list[RankEntry]


def merge_entry(
    top: list[RankEntry],
    candidate: RankEntry,
    max_size: int = DEFAULT_MAX_RANKING_SIZE
) -> tuple[list[RankEntry], int]:
    """
    Mezcla `candidate` en `top` y retorna (nuevo_top, rank).

    - Un nickname aparece una sola vez: la entrada existente solo se
      reemplaza si el candidato tiene un score estrictamente mayor.
    - Orden: score desc, y a igual score gana el que lo logró antes.
    - rank es la posición 1-based de la entrada con el nickname y el score
      del candidato, o NOT_RANKED si no quedó en el top.
    """
    entries = list(top)

    existing_index = next(
        (i for i, e in enumerate(entries) if e.nickname == candidate.nickname),
        None
    )

    if existing_index is not None:
        if candidate.score > entries[existing_index].score:
            entries[existing_index] = candidate
    else:
        entries.append(candidate)

    # sort es estable: a igual score y created_at se mantiene el orden previo
    entries.sort(key=lambda e: (-e.score, e.created_at))
    entries = entries[:max_size]

    for idx, entry in enumerate(entries):
        if entry.nickname == candidate.nickname and entry.score == candidate.score:
            return entries, idx + 1

    return entries, NOT_RANKED


class RankingService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        max_ranking_size: int = DEFAULT_MAX_RANKING_SIZE,
        max_retries: int = 5,
        retry_backoff_ms: int = 20
    ):
        self.ranking_repo = RankingRepository(db)
        self.max_ranking_size = max_ranking_size
        self.max_retries = max_retries
        self.retry_backoff_ms = retry_backoff_ms

    async def submit_entry(self, chart_id: str, entry: RankEntry) -> MergeResult:
        """
        Mezcla una entrada en el ranking del chart de forma transaccional.

        submission_count sube 1 por llamada aunque la entrada no quede en el top.
        Lanza ConflictError si se agotan los reintentos.
        """
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            snapshot = await self.ranking_repo.get(chart_id)
            current_top = snapshot.top if snapshot else []

            new_top, rank = merge_entry(current_top, entry, self.max_ranking_size)
            now = datetime.now(timezone.utc)

            try:
                if snapshot is None:
                    await self.ranking_repo.create(chart_id, new_top, now)
                else:
                    await self.ranking_repo.update_if_version(
                        chart_id, snapshot.version, new_top, now
                    )
            except ConflictError:
                if attempt + 1 >= attempts:
                    logger.error(
                        f"Ranking update for chart {chart_id} gave up after {attempts} attempts"
                    )
                    raise

                delay = self._backoff_seconds(attempt)
                logger.warning(
                    f"Write conflict on chart {chart_id} (attempt {attempt + 1}/{attempts}), "
                    f"retrying in {delay * 1000:.0f}ms"
                )
                await asyncio.sleep(delay)
                continue

            return MergeResult(rank=rank, top=new_top)

        # Solo se llega aquí con max_retries < 0
        raise ConflictError(f"Ranking update for chart {chart_id} did not run")

    async def get_top(
        self,
        chart_id: str,
        limit: Optional[int] = None
    ) -> list[RankEntry]:
        """
        Retorna el top cacheado, cortado a min(limit, max_ranking_size, 100).

        Un chart sin submissions devuelve [] (no es un error).
        """
        cap = min(self.max_ranking_size, MAX_QUERY_LIMIT)
        limit = cap if limit is None else max(0, min(limit, cap))

        snapshot = await self.ranking_repo.get(chart_id)
        if not snapshot:
            return []

        return snapshot.top[:limit]

    def _backoff_seconds(self, attempt: int) -> float:
        # Exponencial con jitter, con tope MAX_BACKOFF_MS
        base = min(self.retry_backoff_ms * (2 ** attempt), MAX_BACKOFF_MS)
        return random.uniform(base / 2, base) / 1000
