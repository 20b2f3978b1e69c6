"""
Sidebar notification badge.

One poller thread per signed-in user refreshes the overdue count on a fixed
interval. Every browser session of that user reads the same badge. A poller is
stopped on logout, at exit, and once its user has not been seen for longer
than ``idle_ttl`` seconds; the thread checks that itself, so it also ends when
no requests arrive at all.
"""

import atexit
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BadgeInfo:
    total: int = 0
    is_critical: bool = False


EMPTY_BADGE = BadgeInfo()


class BadgePoller:
    """Runs ``fetch`` now and then every ``interval`` seconds until stopped or expired."""

    def __init__(self, fetch: Callable[[], BadgeInfo], interval: float, name: str = "badge-poller",
                 expired: Optional[Callable[[], bool]] = None,
                 on_expired: Optional[Callable[["BadgePoller"], None]] = None):
        self._fetch = fetch
        self.interval = interval
        self._expired = expired
        self._on_expired = on_expired
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._lock = threading.Lock()
        self._info = EMPTY_BADGE
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def info(self) -> BadgeInfo:
        with self._lock:
            return self._info

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> "BadgePoller":
        self._thread.start()
        return self

    def poll_once(self) -> BadgeInfo:
        try:
            info = self._fetch()
        except Exception as exc:  # keep polling; the badge just goes blank
            logger.error("badge_refresh_failed", error=str(exc))
            info = EMPTY_BADGE
        if self._stop.is_set():
            return self.info
        with self._lock:
            self._info = info
        return info

    def _run(self) -> None:
        while not self._stop.is_set():
            if self._expired is not None and self._expired():
                logger.info("badge_poller_expired", name=self._thread.name)
                self._stop.set()
                if self._on_expired is not None:
                    self._on_expired(self)
                break
            self.poll_once()
            self._wake.wait(self.interval)
            self._wake.clear()

    def trigger_refresh(self) -> None:
        self._wake.set()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        self._wake.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)


class BadgePollers:
    """Registry of pollers keyed by user id, with last-seen tracking."""

    def __init__(self, idle_ttl: Optional[float] = None):
        self.idle_ttl = idle_ttl
        self._lock = threading.Lock()
        self._pollers: Dict[str, BadgePoller] = {}
        self._last_seen: Dict[str, float] = {}
        atexit.register(self.stop_all)

    def init_app(self, app) -> None:
        self.idle_ttl = app.config.get("SESSION_IDLE_TTL")
        app.extensions["badge_pollers"] = self

    # ---------- activity ----------
    def touch(self, key: str, now: Optional[float] = None) -> None:
        with self._lock:
            self._last_seen[key] = time.monotonic() if now is None else now

    def is_expired(self, key: str, now: Optional[float] = None) -> bool:
        if not self.idle_ttl:
            return False
        with self._lock:
            seen = self._last_seen.get(key)
        if seen is None:
            return True
        current = time.monotonic() if now is None else now
        return current - seen > self.idle_ttl

    def sweep(self, now: Optional[float] = None) -> List[str]:
        """Stop and drop every poller whose user has been idle past ``idle_ttl``."""
        if not self.idle_ttl:
            return []
        current = time.monotonic() if now is None else now
        with self._lock:
            expired = [k for k, seen in self._last_seen.items() if current - seen > self.idle_ttl]
            pollers = [self._pollers.pop(k, None) for k in expired]
            for key in expired:
                del self._last_seen[key]
        for poller in pollers:
            if poller is not None:
                poller.stop()
        if expired:
            logger.info("badge_pollers_swept", count=len(expired))
        return expired

    def _drop_expired(self, key: str, poller: BadgePoller) -> None:
        with self._lock:
            if self._pollers.get(key) is poller:
                del self._pollers[key]
                self._last_seen.pop(key, None)

    # ---------- pollers ----------
    def start_for(self, key: str, fetch: Callable[[], BadgeInfo], interval: float) -> BadgePoller:
        self.stop_for(key)
        self.touch(key)
        poller = BadgePoller(
            fetch, interval, name=f"badge-poller-{key}",
            expired=lambda: self.is_expired(key),
            on_expired=lambda p: self._drop_expired(key, p),
        )
        with self._lock:
            self._pollers[key] = poller
        return poller.start()

    def get(self, key: str) -> Optional[BadgePoller]:
        with self._lock:
            return self._pollers.get(key)

    def running(self) -> List[BadgePoller]:
        with self._lock:
            return [p for p in self._pollers.values() if p.is_running]

    def info_for(self, key: str) -> Optional[BadgeInfo]:
        poller = self.get(key)
        return poller.info if poller else None

    def trigger_refresh(self, key: str) -> None:
        poller = self.get(key)
        if poller is not None:
            poller.trigger_refresh()

    def stop_for(self, key: str) -> None:
        with self._lock:
            poller = self._pollers.pop(key, None)
            self._last_seen.pop(key, None)
        if poller is not None:
            poller.stop()

    def stop_all(self) -> None:
        with self._lock:
            pollers = list(self._pollers.values())
            self._pollers.clear()
            self._last_seen.clear()
        for poller in pollers:
            poller.stop()
