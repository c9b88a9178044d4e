"""touchzone/sim/world_host.py — Host implementation over the sandbox World.

The driver decides what touches what; this module only turns those
decisions into the notifications a Zone consumes:

    host = WorldHost(world)
    host.touch(arena, left_foot)     # queues ContactBegan
    host.kill(harlan)                # queues EntityDied
    host.step()                      # delivers everything, in order

Entity resolution walks ``Parent`` links upward from the surface and
stops at the first ancestor carrying ``Health``.  A surface with no
such ancestor belongs to no entity.
"""

from __future__ import annotations
from typing import Callable, Iterable

from touchzone.host import Host
from touchzone.sim.components import Health, Identity, Volume
from touchzone.sim.ecs import World
from touchzone.sim.events import (
    EventBus, Subscription, ContactBegan, ContactEnded, EntityDied,
)


class WorldHost(Host):
    """Drives zones from a World plus an EventBus."""

    def __init__(self, world: World, bus: EventBus | None = None):
        self.world = world
        self.bus = bus if bus is not None else EventBus()
        # volume → surfaces currently overlapping it (dict keeps touch order)
        self._touching: dict[int, dict[int, None]] = {}

    # ── Driver API ───────────────────────────────────────────────────

    def touch(self, volume: int, surface: int) -> bool:
        """Record that *surface* overlaps *volume*.  False if it already did."""
        overlapping = self._touching.setdefault(volume, {})
        if surface in overlapping:
            return False
        overlapping[surface] = None
        self.bus.emit(ContactBegan(volume=volume, surface=surface))
        return True

    def untouch(self, volume: int, surface: int) -> bool:
        """Record that *surface* left *volume*.  False if it wasn't touching."""
        overlapping = self._touching.get(volume, {})
        if surface not in overlapping:
            return False
        del overlapping[surface]
        self.bus.emit(ContactEnded(volume=volume, surface=surface))
        return True

    def kill(self, eid: int) -> None:
        """Zero the entity's health, mark it dead and announce it."""
        health = self.world.get(eid, Health)
        if health is not None:
            health.current = 0.0
        self.world.kill(eid)
        self.bus.emit(EntityDied(eid=eid))

    def step(self) -> int:
        """Deliver every queued notification.  Returns the number delivered."""
        return self.bus.drain()

    # ── Host contract ────────────────────────────────────────────────

    def is_volume(self, volume) -> bool:
        return (isinstance(volume, int) and self.world.alive(volume)
                and self.world.has(volume, Volume))

    def connect_contact_began(self, volume: int,
                              handler: Callable[[int], None]) -> Subscription:
        def _on(event: ContactBegan):
            if event.volume == volume:
                handler(event.surface)
        return self.bus.subscribe("ContactBegan", _on)

    def connect_contact_ended(self, volume: int,
                              handler: Callable[[int], None]) -> Subscription:
        def _on(event: ContactEnded):
            if event.volume == volume:
                handler(event.surface)
        return self.bus.subscribe("ContactEnded", _on)

    def resolve_entity(self, surface: int) -> int | None:
        for node in self.world.ancestors(surface):
            if self.world.has(node, Health):
                return node
        return None

    def is_alive(self, entity: int) -> bool:
        if not self.world.alive(entity):
            return False
        health = self.world.get(entity, Health)
        return health is not None and health.current > 0

    def connect_died(self, entity: int, handler: Callable[[], None]) -> Subscription:
        sub: Subscription

        def _on(event: EntityDied):
            if event.eid == entity:
                sub.disconnect()
                handler()
        sub = self.bus.subscribe("EntityDied", _on)
        return sub

    def query_overlapping(self, volume: int) -> Iterable[int]:
        return list(self._touching.get(volume, {}))

    def describe(self, handle) -> str:
        ident = self.world.get(handle, Identity) if isinstance(handle, int) else None
        return ident.name if ident is not None else repr(handle)
