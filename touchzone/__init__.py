"""touchzone — Enter / leave tracking for spatial volumes.

Submodules
----------
signal        Signal, Connection
zone          Zone, ZoneState
registry      ZoneRegistry, install, new_zone, fetch_zone
host          Host (what the host simulation must provide)
diagnostics   DevLog, report
tuning        data/tuning.toml access
sim           headless entity-component host used by the demo and tests

All public names are re-exported here::

    from touchzone import install, new_zone
"""

from touchzone.signal import Signal, Connection
from touchzone.zone import Zone, ZoneState
from touchzone.registry import (
    ZoneRegistry, install, default_registry, new_zone, fetch_zone,
)
from touchzone.host import Host
from touchzone.diagnostics import DevLog, DEV_LOG, report

__all__ = [
    "Signal", "Connection",
    "Zone", "ZoneState",
    "ZoneRegistry", "install", "default_registry", "new_zone", "fetch_zone",
    "Host",
    "DevLog", "DEV_LOG", "report",
]

__version__ = "1.4.0"
