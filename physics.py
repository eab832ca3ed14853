from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple, Sequence

G = 3.711  # gravity (m/s^2)
DT = 1.0   # one game second per tick


@dataclass(frozen=True)
class State:
    """Lander dynamic state; angle/power are the actually applied controls of the last tick."""
    x: float
    y: float
    vx: float
    vy: float
    fuel: float
    angle: float  # degrees, measured from vertical, counter-clockwise positive; 0 = upright
    power: float  # thrust, within the legal power range

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.vx, self.vy, self.fuel, self.angle, self.power))


Gene = Tuple[int, int]        # (rotation delta, thrust delta)
Command = Tuple[float, float]  # (absolute angle, absolute power)


@dataclass(frozen=True)
class Limits:
    """Legal control ranges and the per-tick rate limits."""
    angle_min: float = -90.0
    angle_max: float = 90.0
    power_min: float = 0.0
    power_max: float = 4.0
    angle_step: float = 15.0
    power_step: float = 1.0

    def validate(self) -> List[str]:
        problems = []
        if not self.angle_min < self.angle_max:
            problems.append(f"angle range [{self.angle_min}, {self.angle_max}] is empty")
        if not 0.0 <= self.power_min < self.power_max:
            problems.append(f"power range [{self.power_min}, {self.power_max}] is invalid")
        if self.angle_step <= 0.0:
            problems.append("angle_step must be positive")
        if self.power_step <= 0.0:
            problems.append("power_step must be positive")
        return problems


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def accumulate_gene(prev: Command, gene: Gene, limits: Limits) -> Command:
    """Turn one raw gene into a legal absolute command relative to the previous command."""
    d_angle = clamp(gene[0], -limits.angle_step, limits.angle_step)
    d_power = clamp(gene[1], -limits.power_step, limits.power_step)
    angle = clamp(prev[0] + d_angle, limits.angle_min, limits.angle_max)
    power = clamp(prev[1] + d_power, limits.power_min, limits.power_max)
    return (angle, power)


def accumulate(genes: Sequence[Gene], angle0: float, power0: float, limits: Limits) -> List[Command]:
    """
    Accumulate a chromosome into absolute commands, one per gene. This is the single
    place that re-legalizes genes, so operators may emit any deltas.
    """
    out: List[Command] = []
    prev: Command = (clamp(angle0, limits.angle_min, limits.angle_max),
                     clamp(power0, limits.power_min, limits.power_max))
    for gene in genes:
        prev = accumulate_gene(prev, gene, limits)
        out.append(prev)
    return out


def step(state: State, command: Command, dt: float = DT, gravity: float = G) -> State:
    """
    Advance the state by one tick of length dt with constant acceleration, applying the
    (already legal) absolute command. Fuel is burnt at power per second and clamped at 0.
    """
    ang, powf = command

    theta = math.radians(ang)
    # Positive rotation (counter-clockwise, left tilt) accelerates left (negative X).
    ax = -powf * math.sin(theta)
    ay = powf * math.cos(theta) - gravity

    vx_prev, vy_prev = state.vx, state.vy
    x = state.x + vx_prev * dt + 0.5 * ax * dt * dt
    y = state.y + vy_prev * dt + 0.5 * ay * dt * dt
    vx = vx_prev + ax * dt
    vy = vy_prev + ay * dt

    fuel = max(0.0, state.fuel - powf * dt)

    return State(x=x, y=y, vx=vx, vy=vy, fuel=fuel, angle=ang, power=powf)
