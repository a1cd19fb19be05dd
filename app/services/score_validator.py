"""
ScoreValidator - Gate de formato/rango/contenido para las submissions.

Sin I/O. Las reglas se evalúan en orden y la primera que falla gana.
"""

import math
import re
from typing import Any, Iterable, Optional

from app.models.score import ScoreCreate


NICKNAME_PATTERN = re.compile(r"[A-Za-z0-9_가-힣]+")

MIN_NICKNAME_LENGTH = 2
MAX_NICKNAME_LENGTH = 12
MAX_SCORE = 1_000_000
MAX_ACCURACY = 100

# BSON solo guarda enteros de 8 bytes
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class ValidationError(Exception):
    """Raised when a submission breaks a rule. `rule` names the rule."""

    def __init__(self, rule: str, message: str):
        super().__init__(message)
        self.rule = rule
        self.message = message


def _is_number(value: Any) -> bool:
    # bool es subclase de int, pero true/false no es un score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float):
        return math.isfinite(value)
    return True


def _fits_int64(value: Any) -> bool:
    return INT64_MIN <= value <= INT64_MAX


def _storable(value: Any) -> Any:
    """Enteros fuera de int64 se guardan como float; None si ni así caben"""
    if isinstance(value, int) and not _fits_int64(value):
        try:
            return float(value)
        except OverflowError:
            return None
    return value


class ScoreValidator:
    def __init__(self, banned_words: Iterable[str] = ("admin", "root", "system")):
        self.banned_words = [w.lower() for w in banned_words if w]

    def validate(self, payload: Any, received_at: int) -> ScoreCreate:
        """
        Valida el payload crudo de una submission.

        `received_at` (epoch millis) se usa como clientAt si el cliente no lo manda.
        Lanza ValidationError con la primera regla que falle.
        """
        if not isinstance(payload, dict):
            raise ValidationError("payload", "Request body must be a JSON object.")

        nickname = payload.get("nickname")
        if (
            not isinstance(nickname, str)
            or not MIN_NICKNAME_LENGTH <= len(nickname) <= MAX_NICKNAME_LENGTH
        ):
            raise ValidationError("nickname_length", "Nickname must be 2-12 characters.")

        if not NICKNAME_PATTERN.fullmatch(nickname) or self._has_banned_word(nickname):
            raise ValidationError(
                "nickname_content",
                "Nickname contains invalid characters or banned words."
            )

        chart_id = payload.get("chartId")
        if not isinstance(chart_id, str) or not chart_id:
            raise ValidationError("chart_id", "Invalid `chartId`.")

        score = payload.get("score")
        if not _is_number(score) or score <= 0 or score > MAX_SCORE:
            raise ValidationError("score_range", "Score is out of range.")

        accuracy = payload.get("accuracy")
        if not _is_number(accuracy) or accuracy < 0 or accuracy > MAX_ACCURACY:
            raise ValidationError("accuracy_range", "Accuracy is out of range.")

        max_combo = payload.get("maxCombo")
        if not _is_number(max_combo) or max_combo < 0:
            raise ValidationError("max_combo", "Invalid `maxCombo`.")

        max_combo = _storable(max_combo)
        if max_combo is None:
            raise ValidationError("max_combo", "Invalid `maxCombo`.")

        return ScoreCreate(
            nickname=nickname,
            chart_id=chart_id,
            score=score,
            accuracy=accuracy,
            max_combo=max_combo,
            client_at=self._client_at(payload.get("clientAt"), received_at),
        )

    def _has_banned_word(self, nickname: str) -> bool:
        lowered = nickname.lower()
        return any(word in lowered for word in self.banned_words)

    @staticmethod
    def _client_at(value: Optional[Any], received_at: int) -> int:
        """clientAt no se valida: si no es un número usable, cuenta la hora del servidor"""
        if _is_number(value) and 0 < value <= INT64_MAX:
            return int(value)
        return received_at
