from .score_repository import ScoreRepository
from .ranking_repository import RankingRepository

__all__ = [
    "ScoreRepository",
    "RankingRepository",
]
