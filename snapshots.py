"""
Per-session local copies of the part views.

A snapshot is advisory: the next full fetch always replaces it. Actions that
reduce stock register as in-flight while the API call runs (one per control)
and may only write back into the snapshot generation they started from.
Owners not seen for longer than the idle TTL are dropped by ``sweep``.
"""

import itertools
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple


@dataclass
class Snapshot:
    rows: List
    generation: int
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ActionToken:
    owner: str
    view: str
    target_id: str
    generation: Optional[int]


class SnapshotStore:
    def __init__(self):
        self._lock = threading.RLock()
        self._snapshots: Dict[Tuple[str, str], Snapshot] = {}
        self._in_flight: Set[Tuple[str, str, str]] = set()
        self._last_seen: Dict[str, float] = {}
        self._generations = itertools.count(1)

    def get(self, owner: str, view: str) -> Optional[Snapshot]:
        with self._lock:
            return self._snapshots.get((owner, view))

    def put(self, owner: str, view: str, rows: List) -> Snapshot:
        with self._lock:
            snap = Snapshot(rows=list(rows), generation=next(self._generations))
            self._snapshots[(owner, view)] = snap
            self._last_seen.setdefault(owner, time.monotonic())
            return snap

    def owners(self) -> Set[str]:
        with self._lock:
            return {owner for owner, _ in self._snapshots}

    def discard(self, owner: str, view: Optional[str] = None) -> None:
        with self._lock:
            if view is not None:
                self._snapshots.pop((owner, view), None)
                return
            for key in [k for k in self._snapshots if k[0] == owner]:
                del self._snapshots[key]
            self._last_seen.pop(owner, None)

    # ---------- idle owners ----------
    def touch(self, owner: str, now: Optional[float] = None) -> None:
        with self._lock:
            self._last_seen[owner] = time.monotonic() if now is None else now

    def sweep(self, idle_ttl: Optional[float], now: Optional[float] = None) -> List[str]:
        """Discard every owner not touched within ``idle_ttl`` seconds."""
        if not idle_ttl:
            return []
        current = time.monotonic() if now is None else now
        with self._lock:
            idle = [o for o, seen in self._last_seen.items() if current - seen > idle_ttl]
            for owner in idle:
                self.discard(owner)
        return idle

    # ---------- in-flight actions ----------
    def begin(self, owner: str, view: str, target_id: str) -> Optional[ActionToken]:
        """Claim the control for ``target_id``; None while a request for it is in flight."""
        key = (owner, view, target_id)
        with self._lock:
            if key in self._in_flight:
                return None
            self._in_flight.add(key)
            snap = self._snapshots.get((owner, view))
            return ActionToken(owner, view, target_id, snap.generation if snap else None)

    def end(self, token: ActionToken) -> None:
        with self._lock:
            self._in_flight.discard((token.owner, token.view, token.target_id))

    def is_in_flight(self, owner: str, view: str, target_id: str) -> bool:
        with self._lock:
            return (owner, view, target_id) in self._in_flight

    def apply(self, token: ActionToken, update: Callable[[List], List]) -> bool:
        """Write ``update(rows)`` back only if the snapshot the action started from is still current."""
        with self._lock:
            snap = self._snapshots.get((token.owner, token.view))
            if snap is None or token.generation is None or snap.generation != token.generation:
                return False
            snap.rows = update(snap.rows)
            return True

    def clear(self) -> None:
        with self._lock:
            self._snapshots.clear()
            self._in_flight.clear()
            self._last_seen.clear()
