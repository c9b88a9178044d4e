"""test_registry.py — One zone per volume.

Construction errors, fetch, release on destroy, the process-wide
default registry and concurrent creation races.

Run:  python test_registry.py      (or: pytest test_registry.py)
"""
from __future__ import annotations
import sys, threading, traceback

# ── Bootstrap ────────────────────────────────────────────────────────
from touchzone.tuning import load as _load_tuning
_load_tuning()

import touchzone.registry as registry_mod
from touchzone import (
    ZoneRegistry, ZoneState, install, default_registry, new_zone, fetch_zone,
)
from touchzone.diagnostics import DevLog
from touchzone.sim.components import Identity, Health, Parent, Volume, Surface
from touchzone.sim.ecs import World
from touchzone.sim.world_host import WorldHost


# ── Test harness ─────────────────────────────────────────────────────

_passed = 0
_failed = 0

def ok(label: str):
    global _passed
    _passed += 1
    print(f"  [PASS] {label}")


def _expect(exc_type, fn, *args, **kwargs) -> Exception:
    try:
        fn(*args, **kwargs)
    except exc_type as exc:
        return exc
    raise AssertionError(f"{fn.__name__} did not raise {exc_type.__name__}")


def _rig():
    w = World()
    host = WorldHost(w)
    log = DevLog()
    reg = ZoneRegistry(host, log=log)
    vol = w.spawn()
    w.add(vol, Identity("Vault", "volume"))
    w.add(vol, Volume("vault"))
    return w, host, reg, vol, log


def _character(w: World, name: str) -> tuple[int, int]:
    eid = w.spawn()
    w.add(eid, Identity(name, "character"))
    w.add(eid, Health())
    foot = w.spawn()
    w.add(foot, Surface())
    w.add(foot, Parent(eid))
    return eid, foot


# ════════════════════════════════════════════════════════════════════════
#  1 — create / fetch
# ════════════════════════════════════════════════════════════════════════

def test_create_and_fetch():
    print("\n=== 1: create / fetch ===")
    w, host, reg, vol, log = _rig()
    zone = reg.create(vol)
    assert zone.get_state() is ZoneState.ACTIVE
    assert reg.fetch(vol) is zone
    assert vol in reg and len(reg) == 1
    assert reg.zones() == [zone]
    assert 'Initialized zone for volume "Vault"' in log.messages("registry")
    ok("new zone is Active, registered and announced")

    other = w.spawn()
    w.add(other, Volume())
    assert reg.fetch(other) is None
    ok("fetch on an unzoned volume returns None")


def test_duplicate_volume_rejected():
    print("\n=== 2: duplicate volume ===")
    w, host, reg, vol, log = _rig()
    zone = reg.create(vol)
    harlan, foot = _character(w, "harlan")
    host.touch(vol, foot)
    host.step()
    assert zone.on_enter.flush(2.0)
    conns = zone.on_enter.connection_count()

    exc = _expect(ValueError, reg.create, vol, lambda e, s: False)
    assert "already has a zone" in str(exc)
    assert reg.fetch(vol) is zone
    assert zone.get_state() is ZoneState.ACTIVE
    assert zone.get_members() == [harlan]
    assert zone.filter is None
    assert zone.on_enter.connection_count() == conns
    assert host.bus.handler_count("ContactBegan") == 1
    ok("second create fails and leaves the first zone untouched")


def test_invalid_arguments():
    print("\n=== 3: invalid arguments ===")
    w, host, reg, vol, log = _rig()
    harlan, foot = _character(w, "harlan")
    _expect(ValueError, reg.create, harlan)          # no Volume component
    _expect(ValueError, reg.create, "vault")
    _expect(ValueError, reg.create, None)
    _expect(ValueError, reg.fetch, "vault")
    ok("non-volume handles rejected by create and fetch")

    _expect(TypeError, reg.create, vol, "not a function")
    assert vol not in reg
    ok("non-callable filter rejected without registering")

    w.kill(vol)
    _expect(ValueError, reg.create, vol)
    ok("dead volume is no longer a valid handle")


def test_destroy_frees_volume():
    print("\n=== 4: destroy frees the volume ===")
    w, host, reg, vol, log = _rig()
    first = reg.create(vol)
    first.destroy()
    assert reg.fetch(vol) is None
    second = reg.create(vol)
    assert second is not first
    assert second.get_state() is ZoneState.ACTIVE

    first.destroy()                     # stale zone must not evict the new one
    assert reg.fetch(vol) is second
    ok("volume reusable after destroy; stale destroy doesn't evict")


def test_failed_enable_rolls_back():
    print("\n=== 5: enable failure rolls back ===")

    class _BrokenHost(WorldHost):
        """Overlap query fails while ``broken`` is set."""
        broken = True
        zones: list = []

        def connect_contact_began(self, volume, handler):
            self.zones.append(handler.__self__)
            return super().connect_contact_began(volume, handler)

        def query_overlapping(self, volume):
            if self.broken:
                raise RuntimeError("overlap query failed")
            return super().query_overlapping(volume)

    w = World()
    host = _BrokenHost(w)
    host.zones = []
    reg = ZoneRegistry(host, log=DevLog())
    vol = w.spawn()
    w.add(vol, Volume())
    _expect(RuntimeError, reg.create, vol)
    assert vol not in reg
    ok("volume left unregistered after enable raised")

    failed = host.zones[0]
    assert failed.get_state() is ZoneState.DEAD
    assert not failed.on_enter.active
    assert host.bus.handler_count("ContactBegan") == 0
    assert host.bus.handler_count("ContactEnded") == 0
    ok("failed zone destroyed with no host subscriptions left")

    host.broken = False
    zone = reg.create(vol)
    assert reg.fetch(vol) is zone
    assert host.bus.handler_count("ContactBegan") == 1
    ok("volume can be zoned again afterwards")

    # A filter that raises during the initial scan
    w2, host2, reg2, vol2, _ = _rig()
    harlan, foot = _character(w2, "harlan")
    host2.touch(vol2, foot)
    host2.step()

    def _bad_filter(entity, surface):
        raise KeyError("no such part")

    _expect(KeyError, reg2.create, vol2, _bad_filter)
    assert vol2 not in reg2
    assert host2.bus.handler_count("ContactBegan") == 0
    assert host2.bus.handler_count("EntityDied") == 0

    zone2 = reg2.create(vol2)
    assert zone2.get_members() == [harlan]
    assert host2.bus.handler_count("ContactBegan") == 1
    entered: list = []
    zone2.on_enter.connect(entered.append)
    mara, mfoot = _character(w2, "mara")
    host2.touch(vol2, mfoot)
    host2.step()
    assert zone2.on_enter.flush(2.0)
    assert entered == [mara]
    ok("raising filter leaves no second zone listening on the volume")


# ════════════════════════════════════════════════════════════════════════
#  2 — default registry / concurrency
# ════════════════════════════════════════════════════════════════════════

def test_default_registry():
    print("\n=== 6: process-wide default ===")
    saved = registry_mod._default
    try:
        registry_mod._default = None
        _expect(RuntimeError, default_registry)
        w, host, _, vol, _ = _rig()
        _expect(RuntimeError, new_zone, vol)
        ok("no default registry → RuntimeError")

        reg = install(host, log=DevLog())
        assert default_registry() is reg
        zone = new_zone(vol)
        assert fetch_zone(vol) is zone
        _expect(ValueError, new_zone, vol)
        ok("new_zone / fetch_zone route to the installed registry")

        isolated = ZoneRegistry(host, log=DevLog())
        other = new_zone(vol, registry=isolated)
        assert other is not zone
        assert fetch_zone(vol, registry=isolated) is other
        assert len(isolated) == 1
        ok("explicit registry stays isolated from the default")
    finally:
        registry_mod._default = saved


def test_concurrent_create_single_winner():
    print("\n=== 7: concurrent create ===")
    for _ in range(10):
        w, host, reg, vol, log = _rig()
        barrier = threading.Barrier(8)
        made: list = []
        refused: list = []
        lock = threading.Lock()

        def _race():
            barrier.wait()
            try:
                z = reg.create(vol)
            except ValueError:
                with lock:
                    refused.append(1)
            else:
                with lock:
                    made.append(z)

        threads = [threading.Thread(target=_race) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5.0)
        assert len(made) == 1, made
        assert len(refused) == 7
        assert reg.fetch(vol) is made[0]
    ok("10 rounds × 8 threads: exactly one zone per volume")


# ═══════════════════════════════════════════════════════════════════════
#  MAIN
# ═══════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    sections = [
        ("Create / fetch", test_create_and_fetch),
        ("Duplicate", test_duplicate_volume_rejected),
        ("Invalid arguments", test_invalid_arguments),
        ("Destroy frees volume", test_destroy_frees_volume),
        ("Rollback", test_failed_enable_rolls_back),
        ("Default registry", test_default_registry),
        ("Concurrent create", test_concurrent_create_single_winner),
    ]

    for name, fn in sections:
        try:
            fn()
        except Exception:
            _failed += 1
            print(f"\n  [FAIL] {name}")
            traceback.print_exc()

    total = _passed + _failed
    print(f"\n{'=' * 60}")
    print(f"  Registry Tests: {_passed} passed, {_failed} failed  (total {total})")
    print(f"{'=' * 60}")
    sys.exit(1 if _failed else 0)
