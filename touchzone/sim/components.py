"""touchzone.sim.components — Component dataclasses for the sandbox host.

An entity boundary is anything carrying ``Health``: surfaces hang off it
through ``Parent`` links, and its liveness is ``Health.current > 0``.
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class Identity:
    name: str = "unnamed"
    kind: str = "object"       # "character", "part", "volume", "object"


@dataclass
class Health:
    current: float = 100.0     # HP
    maximum: float = 100.0     # HP


@dataclass
class Parent:
    """Hierarchy link.  ``name`` is only used until the loader links it."""
    eid: int | None = None
    name: str = ""


@dataclass
class Volume:
    """Marks an entity as a region zones can monitor."""
    label: str = ""


@dataclass
class Surface:
    """Marks an entity as a physical contact surface (a body part, a prop)."""
    solid: bool = True
