"""touchzone/zone.py — Per-volume membership state machine.

A Zone turns the host's per-surface contact notifications into
per-entity membership and announces changes on two Signals::

    zone = new_zone(arena_volume, lambda entity, surface: True)
    zone.on_enter.connect(lambda e: print("entered", e))
    zone.on_leave.connect(lambda e: print("left", e))

States
------
Active  contact notifications are tracked, enter / leave fire
Sleep   host subscriptions dropped, membership cleared
Dead    terminal; signals destroyed, volume free for a new zone

One entity may touch the volume through several surfaces at once.  It
enters with the first surface that passes the filter and leaves when
the last of its recorded surfaces ends, or when it dies.  Disable and
Destroy clear membership without firing ``on_leave``.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, TYPE_CHECKING

from touchzone.diagnostics import DevLog, report
from touchzone.host import Host, Subscription
from touchzone.signal import Signal

if TYPE_CHECKING:
    from touchzone.registry import ZoneRegistry


class ZoneState(Enum):
    ACTIVE = "Active"
    SLEEP = "Sleep"
    DEAD = "Dead"


@dataclass
class _Contact:
    """Contact-table row for one member entity."""
    order: int                                   # index into Zone._members
    surfaces: set = field(default_factory=set)   # surfaces that passed the filter
    death_sub: Subscription | None = None


class Zone:
    """Tracks which entities currently occupy one volume."""

    def __init__(self, volume: Any, host: Host,
                 filter: Callable[[Any, Any], bool] | None = None, *,
                 registry: ZoneRegistry | None = None,
                 log: DevLog | None = None):
        self.volume = volume
        self.host = host
        self.filter = filter
        self.log = log
        self._registry = registry
        self._state = ZoneState.SLEEP
        self._lock = threading.RLock()
        self._host_subs: list[Subscription] = []
        self._contacts: dict[Any, _Contact] = {}
        self._members: list[Any] = []

        name = host.describe(volume)
        self.on_enter = Signal(f"{name}.on_enter", log=log)
        self.on_leave = Signal(f"{name}.on_leave", log=log)

    # ── Queries ──────────────────────────────────────────────────────

    def get_state(self) -> ZoneState:
        return self._state

    def get_members(self) -> list | None:
        """Entities currently inside, in enter order.

        ``None`` (plus a diagnostic) while the zone is asleep or dead.
        """
        with self._lock:
            if self._state is ZoneState.DEAD:
                self._warn("GetMembers: Zone has been destroyed")
                return None
            if self._state is ZoneState.SLEEP:
                self._warn("GetMembers: Zone has been disabled")
                return None
            return list(self._members)

    # ── Lifecycle ────────────────────────────────────────────────────

    def enable(self) -> None:
        """Subscribe to the host and silently register current occupants."""
        with self._lock:
            if self._state is ZoneState.DEAD:
                self._warn("Enable: Zone has been destroyed")
                return
            if self._state is ZoneState.ACTIVE:
                self._warn("Enable: Zone is already enabled")
                return
            self._state = ZoneState.ACTIVE
            try:
                self._host_subs.append(
                    self.host.connect_contact_began(self.volume, self._on_contact_began))
                self._host_subs.append(
                    self.host.connect_contact_ended(self.volume, self._on_contact_ended))
                for surface in list(self.host.query_overlapping(self.volume)):
                    self._surface_touched(surface, initial=True)
            except Exception:
                # Back to Sleep with nothing subscribed.
                self._state = ZoneState.SLEEP
                self._clear()
                raise

    def disable(self) -> None:
        """Drop host subscriptions and forget members (no ``on_leave``)."""
        with self._lock:
            if self._state is ZoneState.DEAD:
                self._warn("Disable: Zone has been destroyed")
                return
            if self._state is ZoneState.SLEEP:
                self._warn("Disable: Zone is already disabled")
                return
            self._state = ZoneState.SLEEP
            self._clear()

    def destroy(self) -> None:
        """Tear the zone down for good and free its volume."""
        with self._lock:
            if self._state is ZoneState.DEAD:
                self._warn("Destroy: Zone has already been destroyed")
                return
            self._state = ZoneState.DEAD
            self._clear()
            self.on_enter.destroy()
            self.on_leave.destroy()
        if self._registry is not None:
            self._registry.release(self.volume, self)

    def __repr__(self) -> str:
        return (f"Zone({self.host.describe(self.volume)!r}, "
                f"state={self._state.value}, members={len(self._members)})")

    # ── Host notifications ───────────────────────────────────────────

    def _on_contact_began(self, surface: Any) -> None:
        with self._lock:
            if self._state is ZoneState.ACTIVE:
                self._surface_touched(surface)

    def _on_contact_ended(self, surface: Any) -> None:
        with self._lock:
            for entity, contact in self._contacts.items():
                if surface in contact.surfaces:
                    contact.surfaces.discard(surface)
                    if not contact.surfaces and self._state is ZoneState.ACTIVE:
                        self._remove_entity(entity)
                    break

    def _on_died(self, entity: Any) -> None:
        with self._lock:
            if self._state is ZoneState.ACTIVE:
                self._remove_entity(entity)

    # ── Membership ───────────────────────────────────────────────────

    def _surface_touched(self, surface: Any, initial: bool = False) -> None:
        if surface is None:
            return
        entity = self.host.resolve_entity(surface)
        if entity is None or not self.host.is_alive(entity):
            return
        if self.filter is not None and not self.filter(entity, surface):
            return

        contact = self._contacts.get(entity)
        if contact is None:
            contact = _Contact(order=len(self._members))
            self._contacts[entity] = contact
            self._members.append(entity)
            contact.death_sub = self.host.connect_died(
                entity, lambda: self._on_died(entity))
            if not initial:
                self.on_enter.fire(entity)
        contact.surfaces.add(surface)

    def _remove_entity(self, entity: Any) -> None:
        contact = self._contacts.pop(entity, None)
        if contact is None:
            return
        if contact.death_sub is not None:
            contact.death_sub.disconnect()
        del self._members[contact.order]
        # Keep every remaining order equal to its list index.
        for i in range(contact.order, len(self._members)):
            self._contacts[self._members[i]].order = i
        self.on_leave.fire(entity)

    def _clear(self) -> None:
        for sub in self._host_subs:
            sub.disconnect()
        self._host_subs.clear()
        for contact in self._contacts.values():
            if contact.death_sub is not None:
                contact.death_sub.disconnect()
        self._contacts = {}
        self._members = []

    def _warn(self, msg: str) -> None:
        report(self.log, "zone", msg, volume=self.host.describe(self.volume))
