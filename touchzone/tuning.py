"""touchzone/tuning.py — Runtime knobs from ``data/tuning.toml``.

Three tables are read, each with a fallback in the calling code:

    [diagnostics]  echo, max_entries        (touchzone.diagnostics)
    [signal]       daemon_threads, thread_prefix   (touchzone.signal)
    [scenario]     flush_timeout            (touchzone.sim.scenario)

Nothing is read at import time; until ``load()`` runs, ``get`` hands
back the caller's default.
"""

from __future__ import annotations
from pathlib import Path
try:
    import tomllib
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib

DEFAULT_PATH = Path(__file__).resolve().parent.parent / "data" / "tuning.toml"
SECTIONS = ("diagnostics", "signal", "scenario")

_tables: dict[str, dict] = {}


def load(path: str | Path | None = None) -> None:
    """Replace the current knobs with the tables found in *path*.

    A missing file leaves every knob at its default.  Tables other than
    ``SECTIONS`` are ignored.
    """
    global _tables
    path = DEFAULT_PATH if path is None else Path(path)
    if not path.exists():
        print(f"[TUNING] {path} not found, using defaults")
        _tables = {}
        return

    with open(path, "rb") as f:
        raw = tomllib.load(f)
    _tables = {name: dict(raw[name]) for name in SECTIONS
               if isinstance(raw.get(name), dict)}
    knobs = sum(len(t) for t in _tables.values())
    print(f"[TUNING] {knobs} knobs in {len(_tables)} tables from {path.name}")


def reset() -> None:
    """Drop every loaded knob."""
    global _tables
    _tables = {}


def get(table: str, key: str, default=None):
    """``[table] key`` from the loaded file, else *default*."""
    return _tables.get(table, {}).get(key, default)


def section(table: str) -> dict:
    """Copy of one loaded table (empty if absent)."""
    return dict(_tables.get(table, {}))
