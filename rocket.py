import enum
import math

import numpy as np

from config import *


class RocketState(enum.Enum):
    RUNNING = "running"
    HIT_WALL = "hit_wall"
    HIT_TARGET = "hit_target"


def random_genome(length, gene_range):
    """Integer movement vectors, each component drawn from the half-open gene_range."""
    low, high = gene_range
    return np.random.randint(low, high, size=(length, 2))


class Rocket:
    """A rocket flying a fixed list of movement vectors, trying to reach the goal."""

    def __init__(self, genome, start=None, goal=None, field_size=None,
                 target_radius=None, mutation_range=None, target_bonus=None,
                 wall_penalty=None, min_distance=None):
        """
        Initialize a rocket at its start position.

        Args:
            genome: Sequence of (dx, dy) integer movement vectors, one per step
            start: (x, y) start position
            goal: (x, y) goal, shared by every rocket of the run and never modified
            field_size: (width, height) of the playing field; leaving it is a wall hit
            target_radius: Half-width of the box around the goal that counts as a hit
            mutation_range: Half-open range mutate() draws new gene components from
            target_bonus: Flat fitness of a rocket that reached the goal
            wall_penalty: Divides the fitness of a rocket that hit a wall
            min_distance: Distance floor applied before inverting it into fitness
        """
        genome = np.array(genome, dtype=int)
        if genome.ndim != 2 or genome.shape[1] != 2:
            raise ValueError(f"Genome must be a sequence of 2-D vectors, got shape {genome.shape}")
        if len(genome) == 0:
            raise ValueError("Genome must contain at least one movement vector")

        self._genome = genome
        self.start = tuple(start if start is not None else START_POSITION)
        goal = goal if goal is not None else GOAL_POSITION
        self._goal = goal if isinstance(goal, tuple) else tuple(goal)
        self.field_size = tuple(field_size if field_size is not None else FIELD_SIZE)
        self.target_radius = target_radius if target_radius is not None else TARGET_RADIUS
        self.mutation_range = tuple(mutation_range if mutation_range is not None else MUTATION_GENE_RANGE)
        self.target_bonus = target_bonus if target_bonus is not None else TARGET_BONUS
        self.wall_penalty = wall_penalty if wall_penalty is not None else WALL_PENALTY
        self.min_distance = min_distance if min_distance is not None else MIN_DISTANCE
        if self.min_distance <= 0:
            raise ValueError(f"min_distance must be positive, got {self.min_distance}")
        if self.target_bonus <= 1.0 / self.min_distance:
            raise ValueError(f"target_bonus {self.target_bonus} must exceed the best running fitness "
                             f"1 / min_distance = {1.0 / self.min_distance}")
        self.reset()

    @classmethod
    def random(cls, genome_length=None, gene_range=None, **kwargs):
        genome_length = genome_length if genome_length is not None else GENOME_LENGTH
        gene_range = gene_range if gene_range is not None else INITIAL_GENE_RANGE
        return cls(random_genome(genome_length, gene_range), **kwargs)

    @classmethod
    def from_prototype(cls, other):
        """Fresh rocket with a copy of other's genome and the same shared goal."""
        return cls._with_genome(other, other._genome.copy())

    @classmethod
    def _with_genome(cls, template, genome):
        rocket = cls.__new__(cls)
        rocket._genome = genome
        rocket.start = template.start
        rocket._goal = template._goal
        rocket.field_size = template.field_size
        rocket.target_radius = template.target_radius
        rocket.mutation_range = template.mutation_range
        rocket.target_bonus = template.target_bonus
        rocket.wall_penalty = template.wall_penalty
        rocket.min_distance = template.min_distance
        rocket.reset()
        return rocket

    def reset(self):
        """Back to the start of the lifecycle. The genome is left untouched."""
        self._position = np.array(self.start, dtype=int)
        self._cursor = 0
        self._state = RocketState.RUNNING

    @property
    def genome(self):
        return self._genome.copy()

    @property
    def goal(self):
        return self._goal

    @property
    def position(self):
        return tuple(int(v) for v in self._position)

    @property
    def cursor(self):
        return self._cursor

    @property
    def state(self):
        return self._state

    def __len__(self):
        return len(self._genome)

    def __repr__(self):
        return (f"Rocket(position={self.position}, cursor={self._cursor}/{len(self._genome)}, "
                f"state={self._state.name})")

    def _near_target(self):
        dx = abs(int(self._position[0]) - self._goal[0])
        dy = abs(int(self._position[1]) - self._goal[1])
        return dx <= self.target_radius and dy <= self.target_radius

    def _out_of_bounds(self):
        x, y = self._position
        width, height = self.field_size
        return x < 0 or y < 0 or x >= width or y >= height

    def update(self):
        """
        Apply the next movement vector.

        A rocket that hit the wall or the target stops moving but keeps consuming
        steps, so the whole population finishes on the same step.

        Returns:
            True once the last movement vector has been consumed
        """
        if self._cursor >= len(self._genome):
            return True

        if self._state is RocketState.RUNNING:
            self._position += self._genome[self._cursor]
            if self._near_target():
                self._state = RocketState.HIT_TARGET
            elif self._out_of_bounds():
                self._state = RocketState.HIT_WALL

        self._cursor += 1
        return self._cursor >= len(self._genome)

    def distance_to_goal(self):
        dx = float(self._position[0] - self._goal[0])
        dy = float(self._position[1] - self._goal[1])
        return math.hypot(dx, dy)

    def calculate_fitness(self):
        if self._state is RocketState.HIT_TARGET:
            return self.target_bonus
        # Running fitness tops out at 1 / min_distance, below target_bonus
        fitness = 1.0 / max(self.distance_to_goal(), self.min_distance)
        if self._state is RocketState.HIT_WALL:
            fitness /= self.wall_penalty
        return fitness

    def mutate(self, intensity):
        """Re-roll each movement vector independently with probability intensity."""
        intensity = float(np.clip(intensity, 0.0, 1.0))
        mask = np.random.rand(len(self._genome)) < intensity
        if mask.any():
            self._genome[mask] = random_genome(int(mask.sum()), self.mutation_range)

    def crossover(self, other):
        """Child taking each movement vector from self or other on a coin flip."""
        if len(other._genome) != len(self._genome):
            raise ValueError(f"Cannot cross genomes of length {len(self._genome)} and {len(other._genome)}")
        take_self = np.random.rand(len(self._genome)) < 0.5
        genome = np.where(take_self[:, None], self._genome, other._genome)
        return self._with_genome(self, genome)


def random_rockets(count, genome_length=None, goal=None, **kwargs):
    """count rockets with random genomes, all holding the same goal tuple."""
    goal = tuple(goal) if goal is not None else GOAL_POSITION
    return [Rocket.random(genome_length, goal=goal, **kwargs) for _ in range(count)]
