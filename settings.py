"""
Scenario and solver settings loading.

Scenario files describe the initial lander state and the terrain; settings files describe
the search. Both may be JSON or YAML. The original CamelCase keys
(``Lander``/``Terrain``, ``PopulationSize``/``ChromosomeSize``/``Elitism``/``MutationProb``)
and snake_case keys are accepted.

Every inconsistency is reported as a ConfigurationError at load time; the solver never
starts from an invalid configuration.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from errors import ConfigurationError, OutOfRangeError
from terrain import Terrain, DEFAULT_CEILING
from physics import State, Limits, G, DT
from route import LandingTolerances, OutOfFuelPolicy
from evaluation import FitnessWeights

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_LANDER_KEYS = {
    "x": ("X", "x"),
    "y": ("Y", "y"),
    "vx": ("HSpeed", "vx"),
    "vy": ("VSpeed", "vy"),
    "fuel": ("Fuel", "fuel"),
    "angle": ("Angle", "angle"),
    "power": ("Power", "power"),
}

_SETTINGS_ALIASES = {
    "PopulationSize": "population_size",
    "ChromosomeSize": "chromosome_size",
    "Elitism": "elitism",
    "MutationProb": "mutation_prob",
}


@dataclass(frozen=True)
class SolverSettings:
    population_size: int = 100
    chromosome_size: int = 60
    elitism: int = 10
    mutation_prob: float = 0.01
    dt: float = DT
    gravity: float = G
    limits: Limits = field(default_factory=Limits)
    tolerances: LandingTolerances = field(default_factory=LandingTolerances)
    weights: FitnessWeights = field(default_factory=FitnessWeights)
    out_of_fuel: OutOfFuelPolicy = OutOfFuelPolicy.ZERO_THRUST
    generation_cap: Optional[int] = None
    seed: Optional[int] = None
    reseed_on_reset: bool = True
    workers: int = 1

    def validate(self) -> "SolverSettings":
        problems: List[str] = []
        if self.population_size < 1:
            problems.append("population_size must be at least 1")
        if self.chromosome_size < 1:
            problems.append("chromosome_size must be at least 1")
        if not 1 <= self.elitism <= self.population_size:
            problems.append(f"elitism must be within [1, population_size], got {self.elitism}")
        if not 0.0 <= self.mutation_prob <= 1.0:
            problems.append(f"mutation_prob must be within [0, 1], got {self.mutation_prob}")
        if not (math.isfinite(self.dt) and self.dt > 0.0):
            problems.append("dt must be positive")
        if not (math.isfinite(self.gravity) and self.gravity >= 0.0):
            problems.append("gravity must be non-negative")
        if self.generation_cap is not None and self.generation_cap < 1:
            problems.append("generation_cap must be at least 1 when given")
        if self.workers < 1:
            problems.append("workers must be at least 1")
        for name in ("angle", "vx", "vy"):
            if getattr(self.tolerances, name) < 0.0:
                problems.append(f"landing.{name} tolerance must be non-negative")
        problems.extend(self.limits.validate())
        problems.extend(self.weights.validate())
        if problems:
            raise ConfigurationError("Invalid solver settings: " + "; ".join(problems))
        return self


@dataclass(frozen=True)
class Scenario:
    initial_state: State
    terrain: Terrain

    def validate(self, limits: Limits) -> "Scenario":
        s = self.initial_state
        t = self.terrain
        if not s.is_finite():
            raise ConfigurationError(f"Initial lander state is not finite: {s}")
        if s.fuel < 0:
            raise ConfigurationError("Initial fuel must be non-negative")
        if not limits.angle_min <= s.angle <= limits.angle_max:
            raise ConfigurationError(f"Initial angle {s.angle} outside the legal range")
        if not limits.power_min <= s.power <= limits.power_max:
            raise ConfigurationError(f"Initial power {s.power} outside the legal range")
        try:
            ground = t.height_at(s.x)
        except OutOfRangeError as e:
            raise ConfigurationError(f"Initial lander position is outside the terrain: {e}")
        if s.y <= ground:
            raise ConfigurationError(f"Initial lander altitude {s.y} is not above the ground ({ground})")
        if s.y > t.ceiling:
            raise ConfigurationError(f"Initial lander altitude {s.y} is above the ceiling ({t.ceiling})")
        return self


def read_document(path: PathLike) -> Dict[str, Any]:
    """Load a JSON or YAML mapping from disk."""
    path = Path(path)
    try:
        with open(path, "r") as f:
            if path.suffix.lower() == ".json":
                doc = json.load(f)
            else:
                doc = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"File not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}")
    if not isinstance(doc, dict):
        raise ConfigurationError(f"{path} must contain a mapping at top level")
    return doc


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{key} must be numeric, got {value!r}")
    return float(value)


def _integer(value: Any, key: str) -> int:
    v = _number(value, key)
    if not v.is_integer():
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    return int(v)


def _section(cls, data: Any, name: str):
    """Build a frozen numeric dataclass from a mapping, rejecting unknown keys."""
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{name} must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown {name} keys: {', '.join(sorted(unknown))}")
    return cls(**{k: _number(v, f"{name}.{k}") for k, v in data.items()})


def parse_scenario(doc: Mapping[str, Any]) -> Scenario:
    lander = doc.get("Lander", doc.get("lander"))
    if not isinstance(lander, Mapping):
        raise ConfigurationError("Scenario lacks a Lander mapping")
    values: Dict[str, float] = {}
    for attr, keys in _LANDER_KEYS.items():
        raw = next((lander[k] for k in keys if k in lander), None)
        if raw is None:
            if attr in ("angle", "power"):
                raw = 0
            else:
                raise ConfigurationError(f"Couldn't find Lander/{keys[0]}")
        values[attr] = _number(raw, f"Lander/{keys[0]}")

    points = doc.get("Terrain", doc.get("terrain"))
    if not isinstance(points, list):
        raise ConfigurationError("Scenario lacks a Terrain point list")
    for p in points:
        if not isinstance(p, (list, tuple)) or len(p) != 2:
            raise ConfigurationError(f"Terrain has to contain [x, y] points, got {p!r}")
    ceiling = _number(doc.get("Ceiling", doc.get("ceiling", DEFAULT_CEILING)), "Ceiling")
    terrain = Terrain.from_points([(_number(x, "Terrain/x"), _number(y, "Terrain/y")) for x, y in points], ceiling)
    return Scenario(State(**values), terrain)


def parse_settings(doc: Mapping[str, Any]) -> SolverSettings:
    data = {_SETTINGS_ALIASES.get(k, k): v for k, v in doc.items()}
    known = {f.name for f in fields(SolverSettings)} | {"limits", "landing", "fitness"}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown settings keys: {', '.join(sorted(unknown))}")

    kwargs: Dict[str, Any] = {}
    for key in ("population_size", "chromosome_size", "workers"):
        if key in data:
            kwargs[key] = _integer(data[key], key)
    for key in ("mutation_prob", "dt", "gravity"):
        if key in data:
            kwargs[key] = _number(data[key], key)
    for key in ("generation_cap", "seed"):
        if data.get(key) is not None:
            kwargs[key] = _integer(data[key], key)
    if "reseed_on_reset" in data:
        if not isinstance(data["reseed_on_reset"], bool):
            raise ConfigurationError("reseed_on_reset must be a boolean")
        kwargs["reseed_on_reset"] = data["reseed_on_reset"]
    if "out_of_fuel" in data:
        try:
            kwargs["out_of_fuel"] = OutOfFuelPolicy(data["out_of_fuel"])
        except ValueError:
            choices = ", ".join(p.value for p in OutOfFuelPolicy)
            raise ConfigurationError(f"out_of_fuel must be one of: {choices}")

    if "elitism" in data:
        elitism = _number(data["elitism"], "elitism")
        if 0.0 < elitism < 1.0:
            # Fraction of the population, as in the original settings files
            pop = kwargs.get("population_size", SolverSettings.population_size)
            kwargs["elitism"] = max(1, int(round(elitism * pop)))
        else:
            kwargs["elitism"] = _integer(elitism, "elitism")

    kwargs["limits"] = _section(Limits, data.get("limits"), "limits")
    kwargs["tolerances"] = _section(LandingTolerances, data.get("landing"), "landing")
    kwargs["weights"] = _section(FitnessWeights, data.get("fitness"), "fitness")
    return SolverSettings(**kwargs).validate()


def load_scenario(path: PathLike) -> Scenario:
    scenario = parse_scenario(read_document(path))
    zone = scenario.terrain.landing_zone()
    logger.info(
        "Loaded scenario %s: %d terrain points, landing zone [%g, %g] at y=%g",
        path, len(scenario.terrain.points), zone.x_min, zone.x_max, zone.y,
    )
    return scenario


def load_settings(path: PathLike) -> SolverSettings:
    settings = parse_settings(read_document(path))
    logger.info(
        "Loaded settings %s: population %d, chromosome %d, elitism %d, mutation %g",
        path, settings.population_size, settings.chromosome_size, settings.elitism, settings.mutation_prob,
    )
    return settings
