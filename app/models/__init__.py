from .score import ScoreCreate, ScoreSubmission
from .ranking import RankEntry, ChartLeaderboard

__all__ = [
    "ScoreCreate",
    "ScoreSubmission",
    "RankEntry",
    "ChartLeaderboard",
]
