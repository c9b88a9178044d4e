"""touchzone.diagnostics — Ring-buffer log of zone / signal anomalies.

Misuse of a zone (enabling it twice, reading members while asleep,
destroying it again) is never fatal.  It is reported here instead:

    from touchzone.diagnostics import DEV_LOG, report
    report(DEV_LOG, "zone", "Enable: Zone is already enabled", volume="Arena")

Each entry is a dict:
    {"t": float, "cat": str, "msg": str, "details": dict | None}

When ``[diagnostics] echo`` is on (the default) every report is also
printed as ``[TOUCHZONE] <msg>``.
"""

from __future__ import annotations
import threading
import time
from dataclasses import dataclass, field

from touchzone import tuning


@dataclass
class DevLog:
    """Ring-buffer of diagnostics, safe to record into from any thread."""

    entries: list[dict] = field(default_factory=list)
    max_entries: int = 500
    _paused: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    # If non-empty, only entries whose ``cat`` is in the set are kept.
    cat_filter: set[str] = field(default_factory=set)

    def record(self, cat: str, msg: str, *,
               t: float | None = None,
               details: dict | None = None) -> None:
        if self._paused:
            return
        if self.cat_filter and cat not in self.cat_filter:
            return
        entry = {
            "t": time.monotonic() if t is None else t,
            "cat": cat,
            "msg": msg,
            "details": details,
        }
        with self._lock:
            self.entries.append(entry)
            if len(self.entries) > self.max_entries:
                self.entries = self.entries[-self.max_entries:]

    def clear(self):
        with self._lock:
            self.entries.clear()

    def pause(self):
        self._paused = True

    def resume(self):
        self._paused = False

    def recent(self, n: int = 50) -> list[dict]:
        """Return the *n* most recent entries (newest last)."""
        with self._lock:
            return self.entries[-n:]

    def for_cat(self, cat: str, n: int = 50) -> list[dict]:
        """Return last *n* entries in a category."""
        with self._lock:
            return [e for e in self.entries if e["cat"] == cat][-n:]

    def messages(self, cat: str | None = None) -> list[str]:
        with self._lock:
            return [e["msg"] for e in self.entries
                    if cat is None or e["cat"] == cat]


def new_log() -> DevLog:
    """Build a DevLog sized from ``[diagnostics] max_entries``."""
    return DevLog(max_entries=int(tuning.get("diagnostics", "max_entries", 500)))


# Process-wide fallback used when no log is injected.
DEV_LOG = DevLog()


def report(log: DevLog | None, cat: str, msg: str, **details) -> None:
    """Record *msg* into *log* (or ``DEV_LOG``) and echo it to stdout."""
    (log if log is not None else DEV_LOG).record(cat, msg, details=details or None)
    if tuning.get("diagnostics", "echo", True):
        print(f"[TOUCHZONE] {msg}")
