"""
touchzone/sim/ecs.py — Entity-Component store for the sandbox host

Entities are ints. Components are any object, stored by type.
Entities form a hierarchy through ``Parent`` components.

    w = World()
    body = w.spawn()
    w.add(body, Health(100))
    arm = w.spawn()
    w.add(arm, Parent(body))

    for eid, hp in w.query(Health):
        hp.current -= 5
"""

from __future__ import annotations
from typing import Any, Iterator

from touchzone.sim.components import Identity, Parent


class World:
    def __init__(self):
        self._next_id = 0
        self._stores: dict[type, dict[int, Any]] = {}
        self._dead: set[int] = set()

    # -- Entities --

    def spawn(self) -> int:
        self._next_id += 1
        return self._next_id

    def kill(self, eid: int):
        self._dead.add(eid)

    def alive(self, eid: int) -> bool:
        return 0 < eid <= self._next_id and eid not in self._dead

    def purge(self):
        """Remove dead entities from all stores."""
        for store in self._stores.values():
            for eid in self._dead:
                store.pop(eid, None)

    # -- Components --

    def add(self, eid: int, comp: Any):
        t = type(comp)
        if t not in self._stores:
            self._stores[t] = {}
        self._stores[t][eid] = comp

    def get(self, eid: int, comp_type: type) -> Any | None:
        return self._stores.get(comp_type, {}).get(eid)

    def has(self, eid: int, comp_type: type) -> bool:
        return eid in self._stores.get(comp_type, {})

    def remove(self, eid: int, comp_type: type):
        store = self._stores.get(comp_type)
        if store and eid in store:
            del store[eid]

    # -- Hierarchy --

    def parent_of(self, eid: int) -> int | None:
        link = self.get(eid, Parent)
        return link.eid if link is not None else None

    def ancestors(self, eid: int) -> Iterator[int]:
        """Yield parent, grandparent, ... up to the top of the hierarchy."""
        seen = {eid}
        node = self.parent_of(eid)
        while node is not None and node not in seen:
            yield node
            seen.add(node)
            node = self.parent_of(node)

    def find(self, name: str) -> int | None:
        """First living entity whose Identity is called *name*."""
        for eid, ident in self.all_of(Identity):
            if ident.name == name:
                return eid
        return None

    # -- Queries --

    def query(self, *types: type) -> Iterator[tuple]:
        """Yield (eid, comp1, comp2, ...) for entities that have ALL types."""
        if not types:
            return
        # Iterate over the smallest bucket
        buckets = [(t, self._stores.get(t, {})) for t in types]
        buckets.sort(key=lambda b: len(b[1]))
        smallest = buckets[0][1]
        for eid in list(smallest):
            if eid in self._dead:
                continue
            if all(eid in b for _, b in buckets):
                yield (eid, *(self._stores[t][eid] for t in types))

    def query_one(self, *types: type) -> tuple | None:
        """Return first match or None."""
        for result in self.query(*types):
            return result
        return None

    def all_of(self, comp_type: type) -> Iterator[tuple[int, Any]]:
        """Yield (eid, component) for every entity with this type."""
        for eid, comp in list(self._stores.get(comp_type, {}).items()):
            if eid not in self._dead:
                yield eid, comp

    def count(self, comp_type: type) -> int:
        return sum(1 for _ in self.all_of(comp_type))

    # -- Resources (singletons, not tied to entities) --

    def set_res(self, resource: Any):
        t = type(resource)
        if t not in self._stores:
            self._stores[t] = {}
        self._stores[t][-1] = resource

    def res(self, res_type: type) -> Any | None:
        return self._stores.get(res_type, {}).get(-1)
