from __future__ import annotations

import bisect
import math
import random
from typing import List, Sequence

from physics import Gene, Limits


Chromosome = List[Gene]


class GA:
    """
    Genetic operators over chromosomes of (rotation delta, thrust delta) genes.

    - Gene: integer deltas drawn from the legal per-tick range; accumulation re-legalizes them.
    - Elitism: keep the top `elitism` chromosomes unchanged (ties -> lower index).
    - Selection: roulette wheel with cumulative fitness + bisect lookup. Fitness values are
      shifted by the population minimum, so equal fitness means uniform selection.
    - Crossover: per gene, take the gene of one parent with probability proportional to that
      parent's relative fitness.
    - Mutation: per-gene probability of replacement by a fresh random gene.

    The random source is handed in by the owner of the search so one seed drives a whole run.
    """

    def __init__(
        self,
        pop_size: int,
        chromosome_size: int,
        elitism: int,
        pm: float,
        limits: Limits,
        rng: random.Random,
    ) -> None:
        self.N = int(pop_size)
        self.H = int(chromosome_size)
        self.elite = int(elitism)
        self.pm = float(pm)
        self.limits = limits
        self.rng = rng
        # Reusable cumulative array to reduce allocations
        self._cumulative: List[float] = []

    # ---------- population initialization ----------
    def _rand_delta(self, max_step: float) -> float:
        whole = int(math.floor(max_step))
        if whole >= 1:
            return self.rng.randint(-whole, whole)
        return self.rng.uniform(-max_step, max_step)

    def random_gene(self) -> Gene:
        return (self._rand_delta(self.limits.angle_step), self._rand_delta(self.limits.power_step))

    def random_chromosome(self) -> Chromosome:
        return [self.random_gene() for _ in range(self.H)]

    def init_population(self) -> List[Chromosome]:
        return [self.random_chromosome() for _ in range(self.N)]

    # ---------- selection / crossover / mutation ----------
    @staticmethod
    def selection_weights(fitness: Sequence[float]) -> List[float]:
        """Non-negative weights monotonic in fitness: the worst route gets weight 0."""
        lo = min(fitness)
        return [f - lo for f in fitness]

    def _build_cumulative(self, weights: Sequence[float]) -> List[float]:
        cumulative = self._cumulative
        cumulative.clear()
        s = 0.0
        for w in weights:
            s += w
            cumulative.append(s)
        if s <= 0.0 or not math.isfinite(s):
            cumulative.clear()
            step = 1.0 / float(len(weights))
            acc = 0.0
            for _ in weights:
                acc += step
                cumulative.append(acc)
        else:
            inv_s = 1.0 / s
            for i in range(len(cumulative)):
                cumulative[i] *= inv_s
        # Guard rounding so bisect never runs past the end
        cumulative[-1] = 1.0
        return cumulative

    def _select_idx(self, cumulative: List[float]) -> int:
        u = self.rng.random()
        return min(bisect.bisect_left(cumulative, u), len(cumulative) - 1)

    def elite_indices(self, fitness: Sequence[float]) -> List[int]:
        order = sorted(range(len(fitness)), key=lambda i: (-fitness[i], i))
        return order[: self.elite]

    def _crossover(self, a: Chromosome, b: Chromosome, wa: float, wb: float) -> Chromosome:
        total = wa + wb
        p_a = wa / total if total > 0.0 else 0.5
        return [ga if self.rng.random() < p_a else gb for ga, gb in zip(a, b)]

    def _mutated(self, chrom: Chromosome) -> Chromosome:
        out = list(chrom)
        for i in range(len(out)):
            if self.rng.random() < self.pm:
                out[i] = self.random_gene()
        return out

    # ---------- generational step ----------
    def next_generation(self, chromosomes: Sequence[Sequence[Gene]], fitness: Sequence[float]) -> List[Chromosome]:
        """Breed the next generation from a fully scored one (index-aligned lists)."""
        if len(chromosomes) != len(fitness):
            raise ValueError(f"Got {len(chromosomes)} chromosomes but {len(fitness)} fitness values")
        if not chromosomes:
            return []

        weights = self.selection_weights(fitness)
        cumulative = self._build_cumulative(weights)

        new_pop: List[Chromosome] = [list(chromosomes[i]) for i in self.elite_indices(fitness)]

        while len(new_pop) < self.N:
            i = self._select_idx(cumulative)
            j = self._select_idx(cumulative)
            # ensure two distinct parents when possible
            if j == i and len(chromosomes) > 1:
                j = (j + 1) % len(chromosomes)
            child = self._crossover(list(chromosomes[i]), list(chromosomes[j]), weights[i], weights[j])
            new_pop.append(self._mutated(child))

        return new_pop
