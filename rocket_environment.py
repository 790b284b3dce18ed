import logging

import numpy as np
import pygame

from config import *
from Genetic_Algo import Population
from rocket import RocketState, random_rockets

logger = logging.getLogger(__name__)


class RocketEnvironment:
    """Headless driver that flies a rocket population and evolves it generation by generation."""

    def __init__(self,
                 population_size=None,
                 genome_length=None,
                 field_size=None,
                 start=None,
                 goal=None,
                 mutation_intensity=None,
                 carryover_policy=None,
                 render_mode=False):
        """
        Initialize the rocket environment.

        Args:
            population_size: Number of rockets in the first generation
            genome_length: Steps every rocket lives for
            field_size: (width, height) of the playing field in pixels
            start: (x, y) every rocket starts from
            goal: (x, y) target, shared by all rockets
            mutation_intensity: Per-gene mutation probability for new children
            carryover_policy: How the last child of each generation is treated
            render_mode: Whether to keep an off-screen surface and trails for render()
        """
        self.population_size = population_size if population_size is not None else POPULATION_SIZE
        self.genome_length = genome_length if genome_length is not None else GENOME_LENGTH
        self.width, self.height = field_size if field_size is not None else FIELD_SIZE
        self.start = tuple(start if start is not None else START_POSITION)
        self.goal = tuple(goal if goal is not None else GOAL_POSITION)
        self.render_mode = render_mode

        rockets = random_rockets(self.population_size, self.genome_length, goal=self.goal,
                                 start=self.start, field_size=(self.width, self.height))
        self.population = Population(rockets, mutation_intensity=mutation_intensity,
                                     carryover_policy=carryover_policy)

        self.best_fitness_history = []
        self.avg_fitness_history = []
        self.hit_target_history = []
        self.last_best = None
        self.last_best_fitness = None

        # Colors
        self.BLACK = (0, 0, 0)
        self.WHITE = (255, 255, 255)
        self.RED = (255, 0, 0)
        self.GREEN = (0, 255, 0)
        self.BLUE = (0, 0, 255)
        self.GRAY = (128, 128, 128)

        self.trails = []
        if self.render_mode:
            self.screen = pygame.Surface((self.width, self.height))
            self._reset_trails()

    @property
    def generation(self):
        return self.population.generation

    def _reset_trails(self):
        self.trails = [[rocket.position] for rocket in self.population]

    def _record_generation(self):
        fitness = self.population.fitnesses()
        best_idx = int(np.argmax(fitness))
        hits = sum(1 for rocket in self.population if rocket.state is RocketState.HIT_TARGET)

        self.best_fitness_history.append(float(fitness[best_idx]))
        self.avg_fitness_history.append(float(np.mean(fitness)))
        self.hit_target_history.append(hits)
        self.last_best = self.population.get()[best_idx]
        self.last_best_fitness = float(fitness[best_idx])
        logger.info("generation %d: best %.4f, avg %.4f, %d/%d on target",
                    self.generation, self.best_fitness_history[-1],
                    self.avg_fitness_history[-1], hits, len(self.population))

    def step(self):
        """
        Advance every rocket by one frame.

        Returns:
            True if this frame finished the generation (the population has been restarted)
        """
        done = self.population.step()
        if self.render_mode:
            for trail, rocket in zip(self.trails, self.population):
                trail.append(rocket.position)
        if not done:
            return False

        self._record_generation()
        self.population.restart()
        if self.render_mode:
            self._reset_trails()
        return True

    def run_generation(self):
        """Step until the current generation ends. Returns the number of frames taken."""
        frames = 1
        while not self.step():
            frames += 1
        return frames

    def evolve(self, generations=None):
        """
        Run several generations.

        Returns:
            Best rocket of the last completed generation and its fitness
        """
        generations = generations if generations is not None else GENERATIONS
        for _ in range(generations):
            self.run_generation()
        return self.last_best, self.last_best_fitness

    def world_to_screen(self, position):
        x, y = position
        return int(x), int(y)

    def draw_goal(self):
        gx, gy = self.world_to_screen(self.goal)
        half = GOAL_SIZE // 2
        pygame.draw.rect(self.screen, self.BLUE, pygame.Rect(gx - half, gy - half, GOAL_SIZE, GOAL_SIZE))

    def draw_rockets(self):
        colors = {
            RocketState.RUNNING: self.WHITE,
            RocketState.HIT_WALL: self.RED,
            RocketState.HIT_TARGET: self.GREEN,
        }
        for trail, rocket in zip(self.trails, self.population):
            if len(trail) >= 2:
                points = [self.world_to_screen(p) for p in trail]
                pygame.draw.lines(self.screen, self.GRAY, False, points, 1)
            pygame.draw.circle(self.screen, colors[rocket.state],
                               self.world_to_screen(rocket.position), ROCKET_SIZE)

    def render(self):
        """Draw the current frame off-screen. Returns a (width, height, 3) pixel array."""
        if not self.render_mode:
            return None

        self.screen.fill(self.BLACK)
        self.draw_goal()
        self.draw_rockets()
        return pygame.surfarray.array3d(self.screen)


# Example usage
if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)

    env = RocketEnvironment()
    for gen in range(1, GENERATIONS + 1):
        env.run_generation()
        print(f"\nGeneration {gen}/{GENERATIONS}")
        print(f"Best Fitness: {env.best_fitness_history[-1]:.4f}, Avg Fitness: {env.avg_fitness_history[-1]:.4f}")
        print(f"On target: {env.hit_target_history[-1]}, next population: {len(env.population)}")
        print("-" * 60)

    print(f"\nBest rocket: {env.last_best!r} (fitness {env.last_best_fitness:.4f})")
