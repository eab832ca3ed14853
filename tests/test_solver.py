import unittest
from dataclasses import replace

from errors import ConfigurationError
from terrain import Terrain
from physics import State
from route import FlightOutcome
from settings import Scenario, SolverSettings
from solver import Solver, SolverStatus


def flat_scenario(y: float = 300.0) -> Scenario:
    # Flat ground at y=100 everywhere; the lander starts right above the middle
    terrain = Terrain.from_points([(0.0, 100.0), (7000.0, 100.0)])
    start = State(x=3500.0, y=y, vx=0.0, vy=0.0, fuel=1000, angle=0.0, power=0)
    return Scenario(start, terrain)


def hill_scenario() -> Scenario:
    terrain = Terrain.from_points([(0.0, 100.0), (1000.0, 500.0), (1500.0, 1500.0), (3000.0, 1000.0),
                                   (4000.0, 150.0), (5500.0, 150.0), (6999.0, 800.0)])
    start = State(x=2500.0, y=2700.0, vx=0.0, vy=0.0, fuel=550, angle=0.0, power=0)
    return Scenario(start, terrain)


SETTINGS = SolverSettings(
    population_size=80,
    chromosome_size=40,
    elitism=8,
    mutation_prob=0.02,
    generation_cap=300,
    seed=7,
)


class TestSolver(unittest.TestCase):
    def test_lands_on_flat_ground(self):
        solver = Solver(flat_scenario(), SETTINGS)
        self.assertTrue(solver.run())
        self.assertIs(solver.status, SolverStatus.SOLVED)
        route = solver.solution()
        self.assertIsNotNone(route)
        fs = route.final_state
        zone = solver.terrain.landing_zone()
        self.assertTrue(zone.contains_x(fs.x))
        self.assertAlmostEqual(fs.y, zone.y, places=6)
        self.assertLessEqual(abs(fs.angle), SETTINGS.tolerances.angle)
        self.assertLessEqual(abs(fs.vx), SETTINGS.tolerances.vx)
        self.assertLessEqual(abs(fs.vy), SETTINGS.tolerances.vy)
        # Every landing outranks every non-landing
        pop = solver.current_population
        worst_landed = min(r.fitness for r in pop.routes if r.landed)
        others = [r.fitness for r in pop.routes if not r.landed]
        self.assertTrue(all(f < worst_landed for f in others))

    def test_solved_is_a_no_op(self):
        solver = Solver(flat_scenario(), SETTINGS)
        self.assertTrue(solver.run())
        gen = solver.generation_id
        pop = solver.current_population
        self.assertTrue(solver.advance_generation())
        self.assertEqual(solver.generation_id, gen)
        self.assertIs(solver.current_population, pop)

    def test_short_horizon_exhausts(self):
        settings = replace(SETTINGS, chromosome_size=3, generation_cap=5)
        solver = Solver(flat_scenario(y=2000.0), settings)
        for _ in range(5):
            self.assertFalse(solver.advance_generation())
            for r in solver.current_population.routes:
                self.assertIs(r.outcome, FlightOutcome.FLYING)
                self.assertLess(r.fitness, settings.weights.landing_bonus / 2)
        self.assertIs(solver.status, SolverStatus.EXHAUSTED)
        self.assertEqual(solver.generation_id, 5)
        self.assertFalse(solver.advance_generation())
        self.assertEqual(solver.generation_id, 5)

    def test_runs_are_reproducible(self):
        a = Solver(hill_scenario(), SETTINGS)
        b = Solver(hill_scenario(), SETTINGS)
        for _ in range(6):
            self.assertEqual(a.current_population, b.current_population)
            a.advance_generation()
            b.advance_generation()
        self.assertEqual(a.current_population, b.current_population)

    def test_thread_pool_keeps_order(self):
        serial = Solver(hill_scenario(), SETTINGS)
        pooled = Solver(hill_scenario(), replace(SETTINGS, workers=4))
        for _ in range(3):
            serial.advance_generation()
            pooled.advance_generation()
        self.assertEqual(serial.current_population, pooled.current_population)

    def test_reset_restarts_generation_zero(self):
        solver = Solver(hill_scenario(), SETTINGS)
        first = solver.current_population
        for _ in range(3):
            solver.advance_generation()
        solver.reset()
        self.assertEqual(solver.generation_id, 0)
        self.assertIs(solver.status, SolverStatus.INITIALIZED)
        self.assertEqual(solver.current_population, first)

    def test_population_required_before_reads(self):
        solver = Solver(flat_scenario(), SETTINGS)
        solver._population = None
        with self.assertRaises(RuntimeError):
            solver.current_population

    def test_population_invariants_across_generations(self):
        solver = Solver(hill_scenario(), SETTINGS)
        limits = SETTINGS.limits
        s0 = solver.scenario.initial_state
        best = solver.current_population.best().fitness
        for gen in range(15):
            pop = solver.current_population
            self.assertEqual(pop.generation_id, gen)
            self.assertEqual(len(pop), SETTINGS.population_size)
            for r in pop.routes:
                self.assertEqual(len(r.genes), SETTINGS.chromosome_size)
                self.assertEqual(len(r.accumulated), SETTINGS.chromosome_size)
                self.assertIsInstance(r.outcome, FlightOutcome)
                prev = (s0.angle, s0.power)
                for angle, power in r.accumulated:
                    self.assertTrue(limits.angle_min <= angle <= limits.angle_max)
                    self.assertTrue(limits.power_min <= power <= limits.power_max)
                    self.assertLessEqual(abs(angle - prev[0]), limits.angle_step)
                    self.assertLessEqual(abs(power - prev[1]), limits.power_step)
                    prev = (angle, power)
            if solver.advance_generation():
                break
            new_best = solver.current_population.best().fitness
            self.assertGreaterEqual(new_best, best)
            best = new_best

    def test_evolving_status(self):
        solver = Solver(hill_scenario(), SETTINGS)
        self.assertIn(solver.status, (SolverStatus.INITIALIZED, SolverStatus.SOLVED))
        if not solver.advance_generation():
            self.assertIs(solver.status, SolverStatus.EVOLVING)

    def test_invalid_configuration_is_fatal(self):
        with self.assertRaises(ConfigurationError):
            Solver(flat_scenario(), replace(SETTINGS, elitism=0))
        with self.assertRaises(ConfigurationError):
            Solver(flat_scenario(), replace(SETTINGS, chromosome_size=0))
        with self.assertRaises(ConfigurationError):
            Solver(flat_scenario(y=50.0), SETTINGS)
        with self.assertRaises(ConfigurationError):
            Solver(Scenario(replace(flat_scenario().initial_state, x=8000.0), flat_scenario().terrain), SETTINGS)

    def test_run_needs_a_bound(self):
        solver = Solver(hill_scenario(), replace(SETTINGS, generation_cap=None))
        with self.assertRaises(ValueError):
            solver.run()
        solver.run(max_generations=2)
        self.assertLessEqual(solver.generation_id, 2)


if __name__ == "__main__":
    unittest.main()
