"""
Rate limiting en memoria por caller (ventana deslizante)

Cada proceso lleva su propia cuenta; con varias réplicas el límite efectivo
se multiplica por el número de réplicas.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Limita a `max_requests` por `window_seconds` para cada key (IP).

    Guarda los timestamps de cada request en un deque por key. Las keys
    sin requests vigentes se borran en un barrido por ventana.
    """

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._requests: dict[str, deque] = {}
        self._last_sweep: Optional[float] = None
        self._lock = asyncio.Lock()

    async def hit(self, key: str, now: Optional[float] = None) -> tuple[bool, int, int]:
        """
        Registra un request para `key`.

        Retorna (allowed, remaining, reset_seconds).
        """
        if self.max_requests <= 0 or self.window_seconds <= 0:
            return False, 0, self.window_seconds

        now = time.monotonic() if now is None else now

        async with self._lock:
            self._sweep(now)

            window = self._requests.get(key)
            if window is not None:
                self._expire(window, now)

            reset_seconds = self.window_seconds
            if window:
                reset_seconds = max(1, int(window[0] + self.window_seconds - now) + 1)

            if not window or len(window) < self.max_requests:
                window = self._requests.setdefault(key, deque())
                window.append(now)
                return True, self.max_requests - len(window), reset_seconds

        logger.warning(f"Rate limit exceeded for {key}")
        return False, 0, reset_seconds

    def reset(self) -> None:
        """Olvida todas las ventanas (útil en tests)"""
        self._requests.clear()
        self._last_sweep = None

    def key_count(self) -> int:
        """Cuántas keys tienen ventana abierta"""
        return len(self._requests)

    def _expire(self, window: deque, now: float) -> None:
        # Limpio los requests que ya salieron de la ventana
        while window and window[0] <= now - self.window_seconds:
            window.popleft()

    def _sweep(self, now: float) -> None:
        """Una vez por ventana, borra las keys que ya no tienen requests vigentes"""
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now

        stale = [
            key for key, window in self._requests.items()
            if not window or window[-1] <= now - self.window_seconds
        ]
        for key in stale:
            del self._requests[key]
