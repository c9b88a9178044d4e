"""touchzone.sim — Headless host simulation for demos and tests.

Submodules
----------
components   Identity, Health, Parent, Volume, Surface
ecs          World
events       EventBus, ContactBegan, ContactEnded, EntityDied
world_host   WorldHost (the Host implementation)
data         DataLoader (TOML → ECS)
scenario     Scenario (scripted contact timelines)
"""

from touchzone.sim.components import Identity, Health, Parent, Volume, Surface
from touchzone.sim.ecs import World
from touchzone.sim.events import EventBus, ContactBegan, ContactEnded, EntityDied
from touchzone.sim.world_host import WorldHost
from touchzone.sim.data import DataLoader
from touchzone.sim.scenario import Scenario

__all__ = [
    "Identity", "Health", "Parent", "Volume", "Surface",
    "World",
    "EventBus", "ContactBegan", "ContactEnded", "EntityDied",
    "WorldHost",
    "DataLoader",
    "Scenario",
]
