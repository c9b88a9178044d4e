"""
main.py — Headless demo

1. Load tuning values
2. Load a scenario (default: data/scenarios/doorway.toml)
3. Play it back through the sandbox host
4. Print every enter / leave the zones announced

Run:  python main.py [path/to/scenario.toml]
"""

from __future__ import annotations
import sys
from pathlib import Path

from touchzone import tuning
from touchzone.sim import Scenario

DEFAULT_SCENARIO = Path(__file__).resolve().parent / "data" / "scenarios" / "doorway.toml"


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    tuning.load()

    path = Path(argv[0]) if argv else DEFAULT_SCENARIO
    if not path.exists():
        print(f"[MAIN] scenario {path} not found")
        return 1

    scenario = Scenario.from_file(path)
    transcript = scenario.run()

    describe = scenario.host.describe
    for kind, zone_key, entity_key in transcript:
        verb = "entered" if kind == "enter" else "left"
        print(f"[ZONE] {describe(scenario.ids[entity_key])} {verb} "
              f"{describe(scenario.ids[zone_key])}")

    print(f"[MAIN] {len(transcript)} zone events from {path.name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
