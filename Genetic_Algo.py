# Genetic Algorithm over any phenotype
import logging
import math
from typing import Protocol, runtime_checkable

import numpy as np

from config import *

logger = logging.getLogger(__name__)

CARRYOVER_POLICIES = ("carryover", "elitist", "none")


class GenerationSyncError(RuntimeError):
    """Some members finished their life during a step and some did not."""


class GenerationStateError(RuntimeError):
    """The population was asked to advance outside a generation boundary."""


class PopulationSizeError(ValueError):
    """The population is too small to breed a next generation."""


@runtime_checkable
class Phenotype(Protocol):
    """Capabilities a candidate solution needs for the Population to evolve it."""

    def update(self) -> bool:
        """Take one action. Returns True once the end of the lifetime is reached."""
        ...

    def calculate_fitness(self) -> float:
        """Higher is better. Only the relative order matters."""
        ...

    def mutate(self, intensity: float) -> None:
        ...

    def crossover(self, other):
        """Child whose genes are drawn from self or other, with a fresh lifecycle."""
        ...

    @classmethod
    def from_prototype(cls, other):
        """Fresh instance carrying a verbatim copy of other's genes."""
        ...


def parent_count(population_size):
    """
    Number of parents whose pairwise children rebuild a population of the given size.

    Solves m(m-1)/2 = p for m. 1 + 8p is always odd, so the rounding never ties.
    """
    return int(round((1 + math.sqrt(1 + 8 * population_size)) / 2))


class Population:
    def __init__(self, phenotypes, mutation_intensity=None, carryover_policy=None,
                 selection_resolution=None, min_population_size=None):
        """
        Args:
            phenotypes: Members of the first generation, all with equal lifetimes
            mutation_intensity: Per-gene mutation probability applied to children
            carryover_policy: "carryover", "elitist" or "none" (see mutate_generation)
            selection_resolution: Pool slots given to the fittest member in select()
            min_population_size: Fewest members a population may be built with
        """
        self.mutation_intensity = mutation_intensity if mutation_intensity is not None else MUTATION_INTENSITY
        self.carryover_policy = carryover_policy if carryover_policy is not None else CARRYOVER_POLICY
        self.selection_resolution = selection_resolution if selection_resolution is not None else SELECTION_RESOLUTION
        if self.carryover_policy not in CARRYOVER_POLICIES:
            raise ValueError(f"Unknown carryover policy {self.carryover_policy!r}, "
                             f"expected one of {CARRYOVER_POLICIES}")

        self.min_population_size = min_population_size if min_population_size is not None else MIN_POPULATION_SIZE

        phenotypes = list(phenotypes)
        if len(phenotypes) < self.min_population_size:
            raise PopulationSizeError(
                f"Population needs at least {self.min_population_size} members, got {len(phenotypes)}")
        self._members = phenotypes
        self.generation = 0
        self._complete = False

    def __len__(self):
        return len(self._members)

    def __iter__(self):
        return iter(self._members)

    def get(self):
        """Read-only snapshot of the current members (for rendering)."""
        return tuple(self._members)

    @property
    def is_complete(self):
        """True between the step() that finished the generation and restart()."""
        return self._complete

    def step(self):
        """
        Update every member once.

        Returns:
            True if all members finished their life this step, False if none did

        Raises:
            GenerationSyncError: if only some of the members finished
        """
        if self._complete:
            return True

        finished = [phen.update() for phen in self._members]
        done = sum(finished)
        if done == len(finished):
            self._complete = True
            return True
        if done == 0:
            return False
        raise GenerationSyncError(
            f"{done} of {len(finished)} members finished in generation {self.generation}; "
            f"all phenotypes must share the same lifetime")

    def fitnesses(self):
        return np.array([phen.calculate_fitness() for phen in self._members], dtype=float)

    def best(self):
        return self._members[int(np.argmax(self.fitnesses()))]

    def _selection_weights(self, fitness):
        # NaN counts as worthless, +inf as the best finite score present
        fitness = np.asarray(fitness, dtype=float)
        finite = fitness[np.isfinite(fitness)]
        ceiling = finite.max() if finite.size and finite.max() > 0 else 1.0
        fitness = np.nan_to_num(fitness, nan=0.0, posinf=ceiling, neginf=0.0)
        fitness = np.clip(fitness, 0.0, None)

        top = fitness.max()
        if top <= 0:
            return np.ones(len(fitness), dtype=int)
        counts = np.round(fitness / top * self.selection_resolution).astype(int)
        if counts.sum() == 0:
            return np.ones(len(fitness), dtype=int)
        return counts

    def select(self):
        """
        Pick parents for the next generation, biased toward higher fitness.

        Every member gets round(fitness / best_fitness * selection_resolution)
        slots in a pool of indices, and parent_count(len(self)) parents are drawn
        uniformly from it with replacement. The same member can be picked twice.

        Returns:
            List of selected members (references, not copies)
        """
        # Only reachable when min_population_size is configured below 2
        m = parent_count(len(self._members))
        if m < 2:
            raise PopulationSizeError(
                f"Population of {len(self._members)} yields {m} parent(s), need at least 2")

        counts = self._selection_weights(self.fitnesses())
        pool = np.repeat(np.arange(len(self._members)), counts)
        chosen = np.random.choice(pool, size=m, replace=True)
        return [self._members[i] for i in chosen]

    @staticmethod
    def crossover(parents):
        """One child for every unordered pair of parents: m(m-1)/2 children."""
        children = []
        for i in range(len(parents)):
            for j in range(i + 1, len(parents)):
                children.append(parents[i].crossover(parents[j]))
        return children

    def mutate_generation(self, children, intensity=None, parents=None):
        """
        Mutate freshly bred children in place.

        The last child is reserved by the carryover policy:
          - "carryover": left unmutated
          - "elitist": replaced by a fresh copy of the fittest of parents, unmutated;
            without parents the fittest current member is copied instead
          - "none": mutated like every other child
        """
        intensity = intensity if intensity is not None else self.mutation_intensity
        if not children:
            return children

        if self.carryover_policy == "none":
            mutated = children
        else:
            mutated = children[:-1]
        if self.carryover_policy == "elitist":
            candidates = parents if parents else self._members
            best = max(candidates, key=lambda phen: phen.calculate_fitness())
            children[-1] = type(best).from_prototype(best)

        for child in mutated:
            child.mutate(intensity)
        return children

    def restart(self):
        """
        Replace the finished generation with its offspring.

        Raises:
            GenerationStateError: if the current generation has not finished yet
        """
        if not self._complete:
            raise GenerationStateError(
                f"Generation {self.generation} is still running; restart() needs step() to return True first")

        parents = self.select()
        old_size = len(self._members)
        best_fitness = float(self.fitnesses().max())
        children = self.crossover(parents)
        self.mutate_generation(children, parents=parents)

        self._members = children
        self._complete = False
        self.generation += 1
        logger.debug("generation %d: %d members -> %d parents -> %d children (best fitness %.4f)",
                     self.generation, old_size, len(parents), len(children), best_fitness)
