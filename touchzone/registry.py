"""touchzone/registry.py — One zone per volume.

The registry is the only way zones are created, so it can guarantee
that no two zones ever claim the same volume::

    from touchzone import install, new_zone, fetch_zone
    install(host)                       # process-wide default registry
    zone = new_zone(volume, my_filter)  # → Active zone
    assert fetch_zone(volume) is zone

Tests (and anything else that wants isolation) build their own
``ZoneRegistry(host)`` and pass ``registry=`` explicitly.
"""

from __future__ import annotations
import threading
from typing import Any, Callable

from touchzone.diagnostics import DevLog, report
from touchzone.host import Host
from touchzone.zone import Zone


class ZoneRegistry:
    """Thread-safe ``volume → Zone`` mapping bound to one host."""

    def __init__(self, host: Host, log: DevLog | None = None):
        self.host = host
        self.log = log
        self._lock = threading.RLock()
        self._zones: dict[Any, Zone] = {}

    # ── Public API ───────────────────────────────────────────────────

    def create(self, volume: Any,
               filter: Callable[[Any, Any], bool] | None = None) -> Zone:
        """Create, register and enable a zone for *volume*.

        Raises ``ValueError`` for an invalid or already-zoned volume and
        ``TypeError`` for a filter that isn't callable.
        """
        if not self.host.is_volume(volume):
            raise ValueError("touchzone | new_zone: argument 1 must be a volume")
        if filter is not None and not callable(filter):
            raise TypeError("touchzone | new_zone: argument 2 must be callable or None")

        name = self.host.describe(volume)
        with self._lock:
            if volume in self._zones:
                raise ValueError(
                    f"touchzone | new_zone: volume \"{name}\" already has a zone attached")
            zone = Zone(volume, self.host, filter, registry=self, log=self.log)
            self._zones[volume] = zone

        try:
            zone.enable()
        except Exception:
            zone.destroy()          # also releases the volume
            raise

        report(self.log, "registry", f"Initialized zone for volume \"{name}\"")
        return zone

    def fetch(self, volume: Any) -> Zone | None:
        """Return the zone attached to *volume*, if any."""
        if not self.host.is_volume(volume):
            raise ValueError("touchzone | fetch_zone: argument 1 must be a volume")
        with self._lock:
            return self._zones.get(volume)

    def release(self, volume: Any, zone: Zone) -> None:
        """Forget *volume* if it still maps to *zone*."""
        with self._lock:
            if self._zones.get(volume) is zone:
                del self._zones[volume]

    def zones(self) -> list[Zone]:
        with self._lock:
            return list(self._zones.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._zones)

    def __contains__(self, volume: Any) -> bool:
        with self._lock:
            return volume in self._zones

    def __repr__(self) -> str:
        return f"ZoneRegistry(zones={len(self._zones)})"


# ── Process-wide default ─────────────────────────────────────────────

_default: ZoneRegistry | None = None
_default_lock = threading.Lock()


def install(host: Host, log: DevLog | None = None) -> ZoneRegistry:
    """Create the process-wide registry for *host* and make it the default."""
    global _default
    with _default_lock:
        _default = ZoneRegistry(host, log=log)
        return _default


def default_registry() -> ZoneRegistry:
    with _default_lock:
        if _default is None:
            raise RuntimeError("touchzone | no registry installed (call install(host) first)")
        return _default


def new_zone(volume: Any, filter: Callable[[Any, Any], bool] | None = None, *,
             registry: ZoneRegistry | None = None) -> Zone:
    """Create an Active zone for *volume* (see ``ZoneRegistry.create``)."""
    reg = registry if registry is not None else default_registry()
    return reg.create(volume, filter)


def fetch_zone(volume: Any, *, registry: ZoneRegistry | None = None) -> Zone | None:
    """Return the existing zone for *volume*, or None."""
    reg = registry if registry is not None else default_registry()
    return reg.fetch(volume)
