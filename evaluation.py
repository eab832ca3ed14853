from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Sequence

from errors import ConfigurationError
from terrain import Terrain
from physics import State, Gene, Limits, G, DT
from route import Route, FlightOutcome, CrashReason, LandingTolerances, OutOfFuelPolicy, simulate


@dataclass(frozen=True)
class FitnessWeights:
    """
    Weights for the scalar fitness (higher is better). landing_bonus must dominate every
    deduction a landed route can receive so that any landing outranks any non-landing.
    """
    w_dist: float = 1.0          # distance from final position to the landing zone center
    w_vx: float = 5.0            # |vx| above tolerance, near the zone only
    w_vy: float = 5.0            # |vy| above tolerance, near the zone only
    w_angle: float = 2.0         # |angle|, near the zone only
    near_margin: float = 200.0   # how far beyond the zone edges speed/angle terms apply
    w_fuel: float = 0.0          # reward for fuel left, landed routes only

    landing_bonus: float = 1_000_000.0
    out_of_bounds_penalty: float = 3000.0
    out_of_fuel_penalty: float = 3000.0

    floor: float = -1.0e12       # fitness of a numerically broken route

    def validate(self) -> List[str]:
        problems = []
        for name in ("w_dist", "w_vx", "w_vy", "w_angle", "near_margin", "w_fuel",
                     "out_of_bounds_penalty", "out_of_fuel_penalty"):
            v = getattr(self, name)
            if not math.isfinite(v) or v < 0.0:
                problems.append(f"fitness.{name} must be a non-negative number, got {v}")
        if not math.isfinite(self.landing_bonus) or self.landing_bonus <= 0.0:
            problems.append("fitness.landing_bonus must be positive")
        if not math.isfinite(self.floor) or self.floor >= 0.0:
            problems.append("fitness.floor must be a negative number")
        return problems


class FitnessEvaluator:
    """Scores simulated routes against one terrain."""

    def __init__(
        self,
        terrain: Terrain,
        weights: FitnessWeights = FitnessWeights(),
        tolerances: LandingTolerances = LandingTolerances(),
    ) -> None:
        problems = weights.validate()
        if problems:
            raise ConfigurationError("; ".join(problems))
        self.terrain = terrain
        self.weights = weights
        self.tolerances = tolerances
        zone = terrain.landing_zone()
        # Largest deduction a correct landing can get: off-center distance plus residual tilt
        worst_landed = weights.w_dist * zone.half_width + weights.w_angle * tolerances.angle
        if weights.landing_bonus <= worst_landed + 1.0:
            raise ConfigurationError(
                f"landing_bonus {weights.landing_bonus} does not dominate the worst landed deduction {worst_landed}"
            )

    def _near_zone(self, x: float) -> bool:
        zone = self.terrain.zone
        return abs(x - zone.center) <= zone.half_width + self.weights.near_margin

    def score(self, route: Route) -> float:
        w = self.weights
        tol = self.tolerances
        st: State = route.final_state

        if route.crash_reason is CrashReason.NON_FINITE:
            return w.floor

        fit = -w.w_dist * self.terrain.distance_to_zone_center(st.x, st.y)
        if self._near_zone(st.x):
            fit -= w.w_vx * max(0.0, abs(st.vx) - tol.vx)
            fit -= w.w_vy * max(0.0, abs(st.vy) - tol.vy)
            fit -= w.w_angle * abs(st.angle)

        outcome = route.outcome
        if outcome is FlightOutcome.LANDED_CORRECTLY:
            fit += w.landing_bonus + w.w_fuel * st.fuel
        elif outcome is FlightOutcome.OUT_OF_BOUNDS:
            fit -= w.out_of_bounds_penalty
        elif outcome is FlightOutcome.OUT_OF_FUEL:
            fit -= w.out_of_fuel_penalty
        elif outcome is FlightOutcome.CRASHED or outcome is FlightOutcome.FLYING:
            pass
        else:
            raise ValueError(f"Unhandled flight outcome: {outcome!r}")

        if not math.isfinite(fit):
            return w.floor
        return max(w.floor, fit)


def evaluate_sequence(
    s0: State,
    chromosome: Sequence[Gene],
    terrain: Terrain,
    evaluator: FitnessEvaluator,
    limits: Limits = Limits(),
    dt: float = DT,
    gravity: float = G,
    out_of_fuel: OutOfFuelPolicy = OutOfFuelPolicy.ZERO_THRUST,
) -> Route:
    """Convenience function: simulate a chromosome and attach its fitness."""
    route = simulate(chromosome, terrain, s0, limits, evaluator.tolerances, dt, gravity, out_of_fuel)
    return route.with_fitness(evaluator.score(route))
