"""touchzone/host.py — What a zone needs from the host simulation.

The zone never looks at geometry.  It is driven entirely by the host:

    is_volume(volume)                       → bool
    connect_contact_began(volume, handler)  → subscription
    connect_contact_ended(volume, handler)  → subscription
    resolve_entity(surface)                 → entity | None
    is_alive(entity)                        → bool
    connect_died(entity, handler)           → subscription
    query_overlapping(volume)               → iterable of surfaces

A *subscription* is any object with an idempotent ``disconnect()``.
Contact handlers are called as ``handler(surface)`` and must be
delivered serially per volume; death handlers as ``handler()``.

``touchzone.sim.world_host.WorldHost`` is the in-repo implementation.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Protocol


class Subscription(Protocol):
    def disconnect(self) -> None: ...


class Host(ABC):
    """Abstract host simulation a Zone attaches to."""

    @abstractmethod
    def is_volume(self, volume: Any) -> bool:
        """Return True if *volume* is a handle a zone can monitor."""
        ...

    @abstractmethod
    def connect_contact_began(self, volume: Any,
                              handler: Callable[[Any], None]) -> Subscription:
        """Call ``handler(surface)`` whenever a surface starts touching *volume*."""
        ...

    @abstractmethod
    def connect_contact_ended(self, volume: Any,
                              handler: Callable[[Any], None]) -> Subscription:
        """Call ``handler(surface)`` whenever a surface stops touching *volume*."""
        ...

    @abstractmethod
    def resolve_entity(self, surface: Any) -> Any | None:
        """Return the logical entity owning *surface*, or None."""
        ...

    @abstractmethod
    def is_alive(self, entity: Any) -> bool:
        ...

    @abstractmethod
    def connect_died(self, entity: Any, handler: Callable[[], None]) -> Subscription:
        """Call ``handler()`` once when *entity* dies."""
        ...

    @abstractmethod
    def query_overlapping(self, volume: Any) -> Iterable[Any]:
        """Return every surface currently overlapping *volume*."""
        ...

    def describe(self, handle: Any) -> str:
        """Human-readable name for diagnostics."""
        return repr(handle)
