"""touchzone/sim/scenario.py — Scripted contact timelines.

A scenario file is ordinary loader TOML (one table per entity) plus two
arrays of tables:

    [[zone]]
    volume = "doorway"
    reject = ["harlan_hat"]        # surface keys (prefixes) the filter refuses

    [[step]]
    op = "touch"                   # touch | untouch | kill | enable |
    volume = "doorway"             # disable | destroy | drain
    surfaces = ["harlan_foot", "harlan_hand"]

Every step is delivered through the host bus and the zone signals are
flushed before the next one, so ``run()`` returns a transcript of
``(kind, zone_key, entity_key)`` tuples, one step after another.  Enter /
leave records produced by the same step are sorted, since their
callbacks run concurrently.
"""

from __future__ import annotations
import threading
from pathlib import Path
try:
    import tomllib
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib

from touchzone import tuning
from touchzone.diagnostics import DevLog
from touchzone.registry import ZoneRegistry
from touchzone.sim.data import DataLoader
from touchzone.sim.ecs import World
from touchzone.sim.world_host import WorldHost
from touchzone.zone import Zone

OPS = ("touch", "untouch", "kill", "enable", "disable", "destroy", "drain")


class Scenario:
    def __init__(self, data: dict, log: DevLog | None = None):
        self.data = data
        self.log = log
        self.world = World()
        self.host = WorldHost(self.world)
        self.registry = ZoneRegistry(self.host, log=log)
        self.ids: dict[str, int] = {}
        self.keys: dict[int, str] = {}
        self.zones: dict[str, Zone] = {}
        self._pending: list[tuple[str, str, str]] = []
        self._pending_lock = threading.Lock()

    @classmethod
    def from_file(cls, path: str | Path, log: DevLog | None = None) -> Scenario:
        with open(Path(path), "rb") as f:
            return cls(tomllib.load(f), log=log)

    # ── Setup ────────────────────────────────────────────────────────

    def build(self) -> None:
        """Spawn entities and create the zones."""
        loader = DataLoader(self.world).register_defaults()
        self.ids = loader.load_dict(self.data)
        loader.link_parents(self.ids)
        self.keys = {eid: key for key, eid in self.ids.items()}

        for entry in self.data.get("zone", []):
            key = entry["volume"]
            zone = self.registry.create(self.ids[key],
                                        self._make_filter(entry.get("reject", [])))
            zone.on_enter.connect(lambda e, k=key: self._record("enter", k, e))
            zone.on_leave.connect(lambda e, k=key: self._record("leave", k, e))
            self.zones[key] = zone

    def _make_filter(self, reject: list[str]):
        if not reject:
            return None
        prefixes = tuple(reject)

        def _filter(entity, surface) -> bool:
            return not self.keys.get(surface, "").startswith(prefixes)
        return _filter

    def _record(self, kind: str, zone_key: str, entity: int) -> None:
        with self._pending_lock:
            self._pending.append((kind, zone_key, self.keys.get(entity, str(entity))))

    # ── Playback ─────────────────────────────────────────────────────

    def run(self) -> list[tuple[str, str, str]]:
        if not self.ids:
            self.build()
        transcript: list[tuple[str, str, str]] = []
        for step in self.data.get("step", []):
            self.apply(step)
            self.host.step()
            self.flush()
            with self._pending_lock:
                transcript.extend(sorted(self._pending))
                self._pending.clear()
        return transcript

    def apply(self, step: dict) -> None:
        op = step.get("op")
        if op not in OPS:
            raise ValueError(f"unknown scenario op {op!r}")
        if op in ("touch", "untouch"):
            volume = self.ids[step["volume"]]
            surfaces = step.get("surfaces") or [step["surface"]]
            for key in surfaces:
                if op == "touch":
                    self.host.touch(volume, self.ids[key])
                else:
                    self.host.untouch(volume, self.ids[key])
        elif op == "kill":
            self.host.kill(self.ids[step["entity"]])
        elif op in ("enable", "disable", "destroy"):
            getattr(self.zones[step["zone"]], op)()
        # "drain" needs nothing beyond the host step run() always does

    def flush(self) -> None:
        timeout = float(tuning.get("scenario", "flush_timeout", 1.0))
        for zone in self.zones.values():
            zone.on_enter.flush(timeout)
            zone.on_leave.flush(timeout)

    def members(self, zone_key: str) -> list[str] | None:
        found = self.zones[zone_key].get_members()
        if found is None:
            return None
        return [self.keys[e] for e in found]
