import logging
import threading
from typing import Callable, Dict, Optional, Tuple


class RoundTimer:
    """Fire-once round deadlines, one pending deadline per lobby.

    - Disabled timers (TESTING) only record what would have been scheduled;
      tests fire the callback themselves via ``pending``.
    - ``cancel`` is best-effort: a worker that already woke up is stopped by
      the generation check here and again by the callback's own state check.
    - A worker only ever clears its own entry, never a newer generation's.
    """

    def __init__(self, socketio, grace_sec: float = 0.25, enabled: bool = True,
                 logger: Optional[logging.Logger] = None):
        self.socketio = socketio
        self.grace_sec = grace_sec
        self.enabled = enabled
        self.logger = logger or logging.getLogger(__name__)
        self._pending: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def schedule(self, code: str, generation: int, delay: float,
                 callback: Callable[[str, int], None]) -> None:
        with self._lock:
            self._pending[code] = (generation, delay)
        self.logger.info(
            f"[timer-set] lobby={code} generation={generation} delay={delay + self.grace_sec:.2f}s"
        )
        if not self.enabled:
            return
        self.socketio.start_background_task(self._worker, code, generation, delay, callback)

    def cancel(self, code: str) -> None:
        with self._lock:
            dropped = self._pending.pop(code, None)
        if dropped is not None:
            self.logger.info(f"[timer-cancel] lobby={code}")

    def pending(self, code: str) -> Optional[Tuple[int, float]]:
        with self._lock:
            return self._pending.get(code)

    def _claim(self, code: str, generation: int) -> bool:
        with self._lock:
            scheduled = self._pending.get(code)
            if scheduled is None or scheduled[0] != generation:
                return False
            del self._pending[code]
            return True

    def _worker(self, code: str, generation: int, delay: float,
                callback: Callable[[str, int], None]) -> None:
        self.socketio.sleep(max(0.0, delay) + self.grace_sec)
        if not self._claim(code, generation):
            self.logger.info(f"[timer-abort] lobby={code} generation={generation} superseded")
            return
        self.logger.info(f"[timer-fire] lobby={code} generation={generation}")
        try:
            callback(code, generation)
        except Exception:
            # Background task: nothing above us would report it
            self.logger.exception(f"[timer-error] lobby={code} generation={generation}")
