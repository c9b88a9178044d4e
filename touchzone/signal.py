"""touchzone/signal.py — Publish / subscribe / wait event channel.

A Signal is the one thing a zone hands to its callers.  Consumers
connect a callable and get a Connection back::

    conn = zone.on_enter.connect(lambda entity: print("hello", entity))
    ...
    conn.disconnect()

or block the calling thread until the next fire::

    entity = zone.on_enter.wait(5.0)     # None on timeout / destroy

Design rules:
  - ``fire()`` never runs a callback itself.  Every callback gets its
    own worker thread, so a slow or failing callback can't hold up the
    caller or its siblings.
  - ``wait()`` is a one-shot connection that disconnects itself; a
    fire and the timeout can race, but the waiter resumes exactly once.
  - ``destroy()`` is terminal: pending waiters resume with ``None`` and
    every later connect / fire / wait is a no-op.
"""

from __future__ import annotations
import threading
import traceback
from typing import Any, Callable

from touchzone import tuning
from touchzone.diagnostics import DevLog, report


class Connection:
    """Handle for one registered callback.

    Holds a plain back-reference to its Signal; the Signal owns the
    registration entry.
    """

    def __init__(self, signal: Signal):
        self._signal = signal

    @property
    def connected(self) -> bool:
        return self._signal._is_registered(self)

    def disconnect(self) -> None:
        """Stop receiving fires.  Safe to call any number of times."""
        self._signal._remove(self)

    def __repr__(self) -> str:
        return f"Connection(signal={self._signal.name!r}, connected={self.connected})"


class _Waiter:
    """One blocked ``wait()`` call."""

    def __init__(self):
        self.event = threading.Event()
        self.done = False
        self.result: Any = None


class Signal:
    """Generic event channel with connect, fire, wait and destroy."""

    def __init__(self, name: str = "signal", log: DevLog | None = None):
        self.name = name
        self.log = log
        self._lock = threading.RLock()
        self._active = True
        self._subs: dict[Connection, Callable] = {}
        self._waiters: set[_Waiter] = set()
        self._threads: list[threading.Thread] = []
        self._fired = 0

    # ── Public API ───────────────────────────────────────────────────

    @property
    def active(self) -> bool:
        return self._active

    def connect(self, callback: Callable) -> Connection | None:
        """Register *callback*.  Returns ``None`` once destroyed."""
        with self._lock:
            if not self._active:
                return None
            conn = Connection(self)
            self._subs[conn] = callback
            return conn

    def fire(self, *args) -> None:
        """Dispatch *args* to every connected callback.

        Returns immediately; each callback runs on its own thread and
        all of them see the same argument tuple.
        """
        with self._lock:
            if not self._active:
                return
            callbacks = list(self._subs.values())
            self._fired += 1
            self._threads = [t for t in self._threads if t.is_alive()]
            daemon = bool(tuning.get("signal", "daemon_threads", True))
            prefix = tuning.get("signal", "thread_prefix", "touchzone")
            for callback in callbacks:
                t = threading.Thread(
                    target=self._invoke, args=(callback, args),
                    name=f"{prefix}-{self.name}", daemon=daemon,
                )
                self._threads.append(t)
                t.start()

    def wait(self, timeout: float | None = None) -> Any:
        """Block until the next fire or until *timeout* seconds pass.

        Returns the fired argument (or the tuple of them when the fire
        carried zero or several), ``None`` on timeout or destroy.
        """
        waiter = _Waiter()
        with self._lock:
            if not self._active:
                return None
            conn = Connection(self)
            self._subs[conn] = lambda *args: self._resume(waiter, conn, args)
            self._waiters.add(waiter)

        waiter.event.wait(timeout)
        # Timed out (or woke spuriously): claim the waiter for ``None``.
        # A no-op if a fire or destroy already resumed it.
        self._resume(waiter, conn, None)
        return waiter.result

    def flush(self, timeout: float | None = None) -> bool:
        """Join callback threads started so far.

        Returns True when none of them is still running.
        """
        with self._lock:
            pending = list(self._threads)
        for t in pending:
            if t is not threading.current_thread():
                t.join(timeout)
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            return not any(t is not threading.current_thread() for t in self._threads)

    def destroy(self) -> None:
        """Deactivate, cancel every waiter with ``None``, drop callbacks."""
        with self._lock:
            if not self._active:
                return
            self._active = False
            waiters = list(self._waiters)
            self._waiters.clear()
            for waiter in waiters:
                if not waiter.done:
                    waiter.done = True
                    waiter.result = None
                    waiter.event.set()
            self._subs.clear()

    def connection_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def fire_count(self) -> int:
        """Number of fires dispatched while active."""
        return self._fired

    def __repr__(self) -> str:
        return (f"Signal({self.name!r}, active={self._active}, "
                f"connections={len(self._subs)}, waiters={len(self._waiters)})")

    # ── Internals ────────────────────────────────────────────────────

    def _is_registered(self, conn: Connection) -> bool:
        with self._lock:
            return conn in self._subs

    def _remove(self, conn: Connection) -> None:
        with self._lock:
            self._subs.pop(conn, None)

    def _resume(self, waiter: _Waiter, conn: Connection, args: tuple | None) -> None:
        with self._lock:
            if waiter.done:
                return
            waiter.done = True
            self._subs.pop(conn, None)
            self._waiters.discard(waiter)
            if args is None:
                waiter.result = None
            elif len(args) == 1:
                waiter.result = args[0]
            else:
                waiter.result = args
        waiter.event.set()

    def _invoke(self, callback: Callable, args: tuple) -> None:
        try:
            callback(*args)
        except Exception as exc:
            report(self.log, "signal",
                   f"{self.name}: callback error: {exc}",
                   traceback=traceback.format_exc())
