from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Tuple, Optional, Sequence

from errors import OutOfRangeError
from terrain import Terrain, Point
from physics import State, Gene, Command, Limits, G, DT, accumulate, step


class FlightOutcome(Enum):
    FLYING = "flying"
    LANDED_CORRECTLY = "landed_correctly"
    CRASHED = "crashed"
    OUT_OF_BOUNDS = "out_of_bounds"
    OUT_OF_FUEL = "out_of_fuel"


class CrashReason(Enum):
    WRONG_TERRAIN = "wrong_terrain"
    TOO_FAST_HORIZONTAL = "too_fast_horizontal"
    TOO_FAST_VERTICAL = "too_fast_vertical"
    NOT_VERTICAL = "not_vertical"
    NON_FINITE = "non_finite"


class OutOfFuelPolicy(Enum):
    ZERO_THRUST = "zero_thrust"  # thrust silently forced to zero, flight goes on
    CRASH = "crash"              # flight ends with FlightOutcome.OUT_OF_FUEL


@dataclass(frozen=True)
class LandingTolerances:
    angle: float = 0.0
    vx: float = 20.0
    vy: float = 40.0


@dataclass(frozen=True)
class Route:
    """One chromosome bound to its simulated flight. Never mutated once built."""
    genes: Tuple[Gene, ...]
    accumulated: Tuple[Command, ...]  # one legal absolute command per gene
    states: Tuple[State, ...]         # initial state first, one entry per simulated tick
    outcome: FlightOutcome
    crash_reason: Optional[CrashReason] = None
    fitness: float = 0.0

    @property
    def positions(self) -> List[Point]:
        return [(s.x, s.y) for s in self.states]

    @property
    def final_state(self) -> State:
        return self.states[-1]

    @property
    def ticks(self) -> int:
        return len(self.states) - 1

    @property
    def landed(self) -> bool:
        return self.outcome is FlightOutcome.LANDED_CORRECTLY

    @property
    def fuel_used(self) -> float:
        return self.states[0].fuel - self.states[-1].fuel

    def with_fitness(self, fitness: float) -> "Route":
        return replace(self, fitness=float(fitness))


def _classify_touch(s: State, on_zone: bool, tol: LandingTolerances) -> Optional[CrashReason]:
    """Crash reason for a touchdown, or None for a correct landing."""
    if not on_zone:
        return CrashReason.WRONG_TERRAIN
    if abs(s.vx) > tol.vx:
        return CrashReason.TOO_FAST_HORIZONTAL
    if abs(s.vy) > tol.vy:
        return CrashReason.TOO_FAST_VERTICAL
    if abs(s.angle) > tol.angle:
        return CrashReason.NOT_VERTICAL
    return None


def simulate(
    genes: Sequence[Gene],
    terrain: Terrain,
    s0: State,
    limits: Limits = Limits(),
    tolerances: LandingTolerances = LandingTolerances(),
    dt: float = DT,
    gravity: float = G,
    out_of_fuel: OutOfFuelPolicy = OutOfFuelPolicy.ZERO_THRUST,
) -> Route:
    """
    Simulate a chromosome from s0 tick by tick until the lander touches the terrain, leaves
    the playable area, runs dry under the crash policy, or the genes run out.
    The returned Route carries fitness 0.0; scoring is done by evaluation.FitnessEvaluator.
    """
    genes_t = tuple(genes)
    commands = tuple(accumulate(genes_t, s0.angle, s0.power, limits))
    states: List[State] = [s0]

    def finish(outcome: FlightOutcome, reason: Optional[CrashReason] = None) -> Route:
        return Route(genes_t, commands, tuple(states), outcome, reason)

    prev = s0
    for cmd in commands:
        if cmd[1] > 0.0 and prev.fuel < cmd[1] * dt:
            # Not enough fuel left to pay for a full tick at the demanded thrust
            if out_of_fuel is OutOfFuelPolicy.CRASH:
                return finish(FlightOutcome.OUT_OF_FUEL)
            cmd = (cmd[0], 0.0)

        nxt = step(prev, cmd, dt, gravity)
        if not nxt.is_finite():
            return finish(FlightOutcome.CRASHED, CrashReason.NON_FINITE)

        hit = terrain.segment_crosses((prev.x, prev.y), (nxt.x, nxt.y))
        if hit is not None:
            touch = replace(nxt, x=hit.point[0], y=hit.point[1])
            states.append(touch)
            reason = _classify_touch(touch, hit.on_landing_zone, tolerances)
            if reason is None:
                return finish(FlightOutcome.LANDED_CORRECTLY)
            return finish(FlightOutcome.CRASHED, reason)

        try:
            ground = terrain.height_at(nxt.x)
        except OutOfRangeError:
            states.append(nxt)
            return finish(FlightOutcome.OUT_OF_BOUNDS)
        if nxt.y > terrain.ceiling:
            states.append(nxt)
            return finish(FlightOutcome.OUT_OF_BOUNDS)
        if nxt.y < ground:
            # Slipped through a vertex without a reported crossing; touch down where it is
            touch = replace(nxt, y=ground)
            states.append(touch)
            reason = _classify_touch(touch, terrain.zone.contains_x(nxt.x) and ground == terrain.zone.y, tolerances)
            if reason is None:
                return finish(FlightOutcome.LANDED_CORRECTLY)
            return finish(FlightOutcome.CRASHED, reason)

        states.append(nxt)
        prev = nxt

    return finish(FlightOutcome.FLYING)
