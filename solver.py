from __future__ import annotations

import logging
import random
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from terrain import Terrain
from physics import Gene
from route import Route
from evaluation import FitnessEvaluator, evaluate_sequence
from ga import GA, Chromosome
from settings import Scenario, SolverSettings

logger = logging.getLogger(__name__)


class SolverStatus(Enum):
    INITIALIZED = "initialized"
    EVOLVING = "evolving"
    SOLVED = "solved"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Population:
    """One evaluated generation; route indices are stable for the generation's lifetime."""
    generation_id: int
    routes: Tuple[Route, ...]

    @property
    def fitness(self) -> List[float]:
        return [r.fitness for r in self.routes]

    def __len__(self) -> int:
        return len(self.routes)

    def best_index(self) -> int:
        best = 0
        for i, r in enumerate(self.routes):
            if r.fitness > self.routes[best].fitness:
                best = i
        return best

    def best(self) -> Route:
        return self.routes[self.best_index()]

    def solution(self) -> Optional[Route]:
        """First correctly landed route, if any."""
        for r in self.routes:
            if r.landed:
                return r
        return None


class Solver:
    """
    Owns the current generation and the seeded random source, and drives
    evaluation + evolution one generation at a time. Callers only read populations;
    writes (advance_generation / reset) must not overlap.
    """

    def __init__(self, scenario: Scenario, settings: SolverSettings = SolverSettings()) -> None:
        self.settings = settings.validate()
        self.scenario = scenario.validate(settings.limits)
        self.evaluator = FitnessEvaluator(scenario.terrain, settings.weights, settings.tolerances)
        self.rng = random.Random(settings.seed)
        self.ga = GA(
            pop_size=settings.population_size,
            chromosome_size=settings.chromosome_size,
            elitism=settings.elitism,
            pm=settings.mutation_prob,
            limits=settings.limits,
            rng=self.rng,
        )
        self.status = SolverStatus.INITIALIZED
        self._population: Optional[Population] = None
        self.reset()

    @property
    def terrain(self) -> Terrain:
        return self.scenario.terrain

    @property
    def current_population(self) -> Population:
        if self._population is None:
            raise RuntimeError("No population has been evaluated yet")
        return self._population

    @property
    def generation_id(self) -> int:
        return self.current_population.generation_id

    @property
    def is_solved(self) -> bool:
        return self.status is SolverStatus.SOLVED

    def best_route(self) -> Route:
        return self.current_population.best()

    def solution(self) -> Optional[Route]:
        return self.current_population.solution()

    # ---------- evaluation ----------
    def _evaluate_one(self, chrom: Sequence[Gene]) -> Route:
        s = self.settings
        return evaluate_sequence(
            self.scenario.initial_state,
            chrom,
            self.scenario.terrain,
            self.evaluator,
            limits=s.limits,
            dt=s.dt,
            gravity=s.gravity,
            out_of_fuel=s.out_of_fuel,
        )

    def _evaluate(self, generation_id: int, chromosomes: List[Chromosome]) -> Population:
        workers = self.settings.workers
        if workers > 1:
            # map() keeps input order, so indices survive the pool
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="lander-sim") as pool:
                routes = list(pool.map(self._evaluate_one, chromosomes))
        else:
            routes = [self._evaluate_one(c) for c in chromosomes]
        return Population(generation_id, tuple(routes))

    def _update_status(self) -> None:
        pop = self.current_population
        cap = self.settings.generation_cap
        if pop.solution() is not None:
            self.status = SolverStatus.SOLVED
            logger.info("Solved in generation %d (fitness %.3f)", pop.generation_id, pop.solution().fitness)
        elif cap is not None and pop.generation_id >= cap:
            self.status = SolverStatus.EXHAUSTED
            logger.info("Generation cap %d reached without a landing", cap)
        elif pop.generation_id > 0:
            self.status = SolverStatus.EVOLVING

    # ---------- public operations ----------
    def reset(self) -> None:
        """Discard the current population and start again from a random generation 0."""
        s = self.settings
        if self._population is not None and s.reseed_on_reset and s.seed is not None:
            self.rng.seed(s.seed)
        self.status = SolverStatus.INITIALIZED
        self._population = self._evaluate(0, self.ga.init_population())
        logger.debug("Generation 0: best fitness %.3f", self._population.best().fitness)
        self._update_status()

    def advance_generation(self) -> bool:
        """
        Evaluate one more generation. Returns True iff the resulting population holds a
        correct landing. Once SOLVED or EXHAUSTED this is a no-op reporting that status.
        """
        if self.status is SolverStatus.SOLVED:
            return True
        if self.status is SolverStatus.EXHAUSTED:
            return False

        pop = self.current_population
        chromosomes = self.ga.next_generation([r.genes for r in pop.routes], pop.fitness)
        self._population = self._evaluate(pop.generation_id + 1, chromosomes)
        logger.debug(
            "Generation %d: best fitness %.3f", self._population.generation_id, self._population.best().fitness
        )
        self._update_status()
        return self.status is SolverStatus.SOLVED

    def run(self, max_generations: Optional[int] = None) -> bool:
        """Advance until solved, exhausted, or max_generations more generations were evaluated."""
        if max_generations is None and self.settings.generation_cap is None:
            raise ValueError("run() needs max_generations when no generation_cap is configured")
        done = 0
        while self.status not in (SolverStatus.SOLVED, SolverStatus.EXHAUSTED):
            if max_generations is not None and done >= max_generations:
                break
            self.advance_generation()
            done += 1
        return self.is_solved
