"""
Core-facing service contract used by the request layer of the debugging front end.

The transport (HTTP routes /terrain, /population, /next, /reset in the original GUI)
lives elsewhere; this module only serialises access to one Solver and projects its
state into plain JSON-ready structures.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Sequence

from physics import Command, Gene
from route import Route, FlightOutcome, CrashReason
from solver import Solver

logger = logging.getLogger(__name__)

_CRASH_NAMES = {
    CrashReason.WRONG_TERRAIN: "CrashedWrongTerrain",
    CrashReason.NOT_VERTICAL: "CrashedNotVertical",
    CrashReason.TOO_FAST_VERTICAL: "CrashedTooFastVertical",
    CrashReason.TOO_FAST_HORIZONTAL: "CrashedTooFastHorizontal",
    CrashReason.NON_FINITE: "CrashedNonFinite",
}


def flight_state_name(route: Route) -> str:
    outcome = route.outcome
    if outcome is FlightOutcome.FLYING:
        return "Flying"
    if outcome is FlightOutcome.LANDED_CORRECTLY:
        return "LandedCorrectly"
    if outcome is FlightOutcome.CRASHED:
        return _CRASH_NAMES[route.crash_reason or CrashReason.WRONG_TERRAIN]
    if outcome is FlightOutcome.OUT_OF_BOUNDS:
        return "OutOfBounds"
    if outcome is FlightOutcome.OUT_OF_FUEL:
        return "OutOfFuel"
    raise ValueError(f"Unhandled flight outcome: {outcome!r}")


def commands_to_dict(commands: Sequence[Command] | Sequence[Gene]) -> Dict[str, List[float]]:
    return {
        "angles": [c[0] for c in commands],
        "thrusts": [c[1] for c in commands],
    }


def route_to_dict(route: Route) -> Dict[str, Any]:
    states = route.states
    return {
        "positions": [[s.x, s.y] for s in states],
        "flight_state": flight_state_name(route),
        "telemetry": {
            "vx": [s.vx for s in states],
            "vy": [s.vy for s in states],
            "fuel": [s.fuel for s in states],
            "angle": [s.angle for s in states],
            "power": [s.power for s in states],
        },
    }


class LanderService:
    """Single-writer access to a Solver: one advance/reset at a time, reads take a consistent snapshot."""

    def __init__(self, solver: Solver) -> None:
        self.solver = solver
        self._lock = threading.Lock()

    def get_terrain(self) -> List[List[float]]:
        return [[x, y] for x, y in self.solver.terrain.points]

    def get_current_population(self) -> Dict[str, Any]:
        # Population and status must come from the same generation
        with self._lock:
            pop = self.solver.current_population
            status = self.solver.status
        return {
            "id": pop.generation_id,
            "status": status.value,
            "routes": [route_to_dict(r) for r in pop.routes],
            "fitness": pop.fitness,
            "commands": [commands_to_dict(r.genes) for r in pop.routes],
            "commands_accumulated": [commands_to_dict(r.accumulated) for r in pop.routes],
        }

    def get_route(self, index: int) -> Dict[str, Any]:
        """Drill into one route of the current generation by its index."""
        with self._lock:
            pop = self.solver.current_population
        if not 0 <= index < len(pop.routes):
            raise IndexError(f"Route index {index} out of range for population of {len(pop.routes)}")
        route = pop.routes[index]
        out = route_to_dict(route)
        out["id"] = pop.generation_id
        out["index"] = index
        out["fitness"] = route.fitness
        out["commands"] = commands_to_dict(route.genes)
        out["commands_accumulated"] = commands_to_dict(route.accumulated)
        return out

    def advance_generation(self) -> bool:
        with self._lock:
            solved = self.solver.advance_generation()
        logger.debug("Advanced to generation %d (solved=%s)", self.solver.generation_id, solved)
        return solved

    def reset(self) -> None:
        with self._lock:
            self.solver.reset()
        logger.info("Solver reset to generation 0")
