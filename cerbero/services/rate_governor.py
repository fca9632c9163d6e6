import logging
import threading
import time
from typing import Callable, Dict

from cerbero import config

logger = logging.getLogger(__name__)


class RateGovernor:
    """Admits at most one request per ``min_interval`` seconds per client.

    A fixed window of one: no burst allowance, no decay beyond elapsed time.
    Client identity is the remote host, so clients sharing a NAT or proxy
    share one budget.
    """

    def __init__(
        self,
        min_interval: float = config.DEFAULT_RATE_LIMIT_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = config.RATE_LIMIT_SWEEP_THRESHOLD,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sweep_threshold = sweep_threshold
        self._last_access: Dict[str, float] = {}
        self._lock = threading.Lock()

    def admit(self, client_id: str) -> bool:
        """Record the access and return True, or return False if too soon."""
        if self.min_interval <= 0:
            return True

        with self._lock:
            now = self._clock()
            last = self._last_access.get(client_id)
            if last is not None and now - last < self.min_interval:
                return False
            self._last_access[client_id] = now
            if len(self._last_access) > self._sweep_threshold:
                self._sweep(now)
        return True

    def _sweep(self, now: float) -> None:
        """Drop clients whose next request would be admitted anyway. Caller holds the lock."""
        stale = [cid for cid, last in self._last_access.items() if now - last >= self.min_interval]
        for cid in stale:
            del self._last_access[cid]
        logger.debug(f"Rate limiter swept {len(stale)} idle clients, {len(self._last_access)} tracked")

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._last_access)
