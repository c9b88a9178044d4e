"""
touchzone/sim/data.py — TOML → ECS loader

Reads scenario files and spawns entities with the right components.
The mapping from TOML keys to component constructors lives here.

Usage:
    loader = DataLoader(world)
    loader.register("identity", Identity)   # maps TOML key → component class
    loader.register("health", Health)
    ids = loader.load("data/scenarios/doorway.toml")   # {name: entity_id}
    loader.link_parents(ids)

In the TOML file:

    [harlan.identity]
    name = "Harlan"

    [harlan_foot.parent]
    name = "harlan"         # resolved to harlan's entity id by link_parents
"""

from __future__ import annotations
try:
    import tomllib
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib
from pathlib import Path
from dataclasses import fields

from touchzone.sim.components import Identity, Health, Parent, Volume, Surface
from touchzone.sim.ecs import World


class DataLoader:
    def __init__(self, world: World):
        self.world = world
        self._registry: dict[str, type] = {}

    def register(self, key: str, comp_type: type):
        """Map a TOML section name to a component class.

        With register("health", Health), ``[harlan.health] current = 50``
        creates Health(current=50) on harlan's entity.
        """
        self._registry[key] = comp_type

    def register_defaults(self) -> DataLoader:
        """Register every sandbox component under its lower-case name."""
        for key, comp_type in (("identity", Identity), ("health", Health),
                               ("parent", Parent), ("volume", Volume),
                               ("surface", Surface)):
            self.register(key, comp_type)
        return self

    def load(self, path: str | Path) -> dict[str, int]:
        """Load a TOML file. Each top-level table becomes an entity.
        Returns {name: entity_id} so you can reference them."""
        path = Path(path)
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return self.load_dict(data)

    def load_dict(self, data: dict) -> dict[str, int]:
        ids: dict[str, int] = {}

        for name, section in data.items():
            if not isinstance(section, dict):
                continue

            eid = self.world.spawn()
            ids[name] = eid

            for key, value in section.items():
                if key in self._registry and isinstance(value, dict):
                    # Nested table → component with kwargs
                    comp_type = self._registry[key]
                    comp = _build_component(comp_type, value)
                    self.world.add(eid, comp)
                elif key in self._registry:
                    # Bare value → component with single positional arg
                    comp_type = self._registry[key]
                    comp = comp_type(value)
                    self.world.add(eid, comp)

            if not self.world.has(eid, Identity):
                self.world.add(eid, Identity(name=name))

        return ids

    def link_parents(self, ids: dict[str, int]) -> None:
        """Resolve ``Parent.name`` references into entity ids.

        A bare ``parent = "harlan"`` arrives as ``Parent(eid="harlan")``
        and is treated the same way.  Raises ``KeyError`` for a name that
        isn't in *ids*.
        """
        for eid in ids.values():
            link = self.world.get(eid, Parent)
            if link is None:
                continue
            if isinstance(link.eid, str):
                link.name, link.eid = link.eid, None
            if link.eid is not None or not link.name:
                continue
            if link.name not in ids:
                raise KeyError(f"unknown parent {link.name!r}")
            link.eid = ids[link.name]


def _build_component(comp_type: type, kwargs: dict):
    """Build a dataclass instance, skipping unknown fields."""
    valid = {f.name for f in fields(comp_type)} if hasattr(comp_type, '__dataclass_fields__') else set()
    if valid:
        filtered = {k: v for k, v in kwargs.items() if k in valid}
        return comp_type(**filtered)
    return comp_type(**kwargs)
