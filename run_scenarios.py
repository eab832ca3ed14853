"""
Headless batch runner

- Evolves generations until a scenario is solved or the generation budget is spent
- Reports the generation of the first landing, fuel used and elapsed time

Usage:
  python run_scenarios.py                                  # built-in scenarios
  python run_scenarios.py --sim sim.json --settings settings.yaml -n 500
"""
from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from errors import ConfigurationError
from terrain import Terrain
from physics import State
from settings import Scenario, SolverSettings, load_scenario, load_settings
from solver import Solver

logger = logging.getLogger("run_scenarios")


@dataclass
class NamedScenario:
    name: str
    points: List[Tuple[float, float]]  # terrain points
    start: State

    def build(self) -> Scenario:
        return Scenario(self.start, Terrain.from_points(self.points))


def make_default_scenarios() -> List[NamedScenario]:
    # Flat ground at y=100, lander right above the middle
    points1 = [(0.0, 100.0), (7000.0, 100.0)]
    start1 = State(x=3500.0, y=1500.0, vx=0.0, vy=0.0, fuel=800, angle=0.0, power=0)

    # Plateau to the right of a hill
    points2 = [(0.0, 100.0), (1000.0, 500.0), (1500.0, 1500.0), (3000.0, 1000.0),
               (4000.0, 150.0), (5500.0, 150.0), (6999.0, 800.0)]
    start2 = State(x=2500.0, y=2700.0, vx=0.0, vy=0.0, fuel=550, angle=0.0, power=0)

    return [
        NamedScenario("Flat100_Center", points1, start1),
        NamedScenario("Plateau_Right", points2, start2),
    ]


def run_one(name: str, scenario: Scenario, settings: SolverSettings, max_generations: int) -> bool:
    t0 = time.perf_counter()
    solver = Solver(scenario, settings)
    solved = solver.is_solved or solver.run(max_generations)
    dt = time.perf_counter() - t0

    if solved:
        route = solver.solution()
        print(
            f"[OK] {name}: Landed in generation {solver.generation_id}, {route.ticks} s, "
            f"fuel used {route.fuel_used:.0f}, time {dt*1000:.1f} ms"
        )
        return True
    best = solver.best_route()
    fs = best.final_state
    print(
        f"[X] {name}: No landing after {solver.generation_id} generations, best {best.outcome.value} "
        f"at ({fs.x:.0f}, {fs.y:.0f}) vx={fs.vx:.1f} vy={fs.vy:.1f}"
    )
    return False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Evolve lander command sequences until a landing is found")
    parser.add_argument("--sim", help="Simulation (scenario) JSON/YAML file; built-in scenarios when omitted")
    parser.add_argument("--settings", help="Solver settings JSON/YAML file")
    parser.add_argument("-n", "--iterations-max", type=int, default=1000, help="Maximal number of generations")
    parser.add_argument("--seed", type=int, help="Random seed (overrides the settings file)")
    parser.add_argument("--workers", type=int, help="Simulation threads (overrides the settings file)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every generation")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.settings) if args.settings else SolverSettings()
        overrides = {}
        if args.seed is not None:
            overrides["seed"] = args.seed
        if args.workers is not None:
            overrides["workers"] = args.workers
        settings = replace(settings, **overrides).validate()

        if args.sim:
            scenarios = [(args.sim, load_scenario(args.sim))]
        else:
            scenarios = [(s.name, s.build()) for s in make_default_scenarios()]

        results = [run_one(name, scn, settings, args.iterations_max) for name, scn in scenarios]
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    return 0 if all(results) else 1


if __name__ == "__main__":
    sys.exit(main())
