"""touchzone/sim/events.py — Host event bus.

The sandbox host queues its raw notifications here and delivers them
in one serial pass per ``drain()``, which is exactly the per-volume
ordering a zone relies on::

    bus.emit(ContactBegan(volume=arena, surface=left_foot))
    sub = bus.subscribe("ContactBegan", handler)
    bus.drain()          # calls handlers for pending events
    sub.disconnect()

Design rules:
  - Events are plain dataclasses — no behaviour.
  - ``emit()`` is O(1) (just appends).
  - ``drain()`` processes all queued events in FIFO order.
  - Handlers may emit new events; those are processed in the same drain.
  - A handler disconnected mid-drain receives nothing further.
"""

from __future__ import annotations
import traceback
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

from touchzone.diagnostics import DevLog, report


# ═══════════════════════════════════════════════════════════════════
#  Event definitions
# ═══════════════════════════════════════════════════════════════════

@dataclass
class ContactBegan:
    """A surface started overlapping a volume."""
    volume: int
    surface: int


@dataclass
class ContactEnded:
    """A surface stopped overlapping a volume."""
    volume: int
    surface: int


@dataclass
class EntityDied:
    """An entity's HP dropped to zero."""
    eid: int


# ═══════════════════════════════════════════════════════════════════
#  Event Bus
# ═══════════════════════════════════════════════════════════════════

class Subscription:
    """Handle returned by ``EventBus.subscribe``."""

    def __init__(self, bus: EventBus, event_type: str, handler: Callable):
        self._bus = bus
        self.event_type = event_type
        self.handler = handler
        self.active = True

    def disconnect(self) -> None:
        if not self.active:
            return
        self.active = False
        self._bus._unsubscribe(self)


class EventBus:
    """Queued, serially drained event bus."""

    def __init__(self, log: DevLog | None = None):
        self.log = log
        self._queue: list[Any] = []
        self._subs: dict[str, list[Subscription]] = defaultdict(list)
        self._stats: dict[str, int] = defaultdict(int)

    # ── Public API ───────────────────────────────────────────────────

    def emit(self, event) -> None:
        """Queue an event for processing on next ``drain()``."""
        self._queue.append(event)

    def subscribe(self, event_type: str, handler: Callable) -> Subscription:
        """Register *handler* to receive events of *event_type*.

        *event_type* is the class name, e.g. ``"EntityDied"``.
        """
        sub = Subscription(self, event_type, handler)
        self._subs[event_type].append(sub)
        return sub

    def drain(self) -> int:
        """Process all queued events.  Returns number processed.

        Handlers may emit new events — those are processed in the
        same drain pass (breadth-first).
        """
        processed = 0
        safety = 1000  # prevent infinite loops
        while self._queue and safety > 0:
            batch = self._queue[:]
            self._queue.clear()
            for event in batch:
                name = type(event).__name__
                self._stats[name] += 1
                for sub in list(self._subs.get(name, [])):
                    if not sub.active:
                        continue
                    try:
                        sub.handler(event)
                    except Exception as exc:
                        report(self.log, "event",
                               f"handler error for {name}: {exc}",
                               traceback=traceback.format_exc())
            processed += len(batch)
            safety -= 1
        return processed

    def clear(self) -> None:
        """Discard all pending events."""
        self._queue.clear()

    def stats(self) -> dict[str, int]:
        """Return cumulative event counts by type."""
        return dict(self._stats)

    def pending_count(self) -> int:
        """Number of events waiting to be drained."""
        return len(self._queue)

    def handler_count(self, event_type: str) -> int:
        return len(self._subs.get(event_type, []))

    def __repr__(self) -> str:
        return f"EventBus(pending={len(self._queue)}, subs={len(self._subs)})"

    # ── Internals ────────────────────────────────────────────────────

    def _unsubscribe(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.event_type)
        if subs and sub in subs:
            subs.remove(sub)
