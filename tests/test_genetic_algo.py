import math

import numpy as np
import pytest

from Genetic_Algo import (
    GenerationStateError,
    GenerationSyncError,
    Phenotype,
    Population,
    PopulationSizeError,
    parent_count,
)
from rocket import random_rockets


class Counter:
    """Minimal phenotype: fixed lifetime, fixed fitness, records mutations."""

    def __init__(self, fitness=1.0, lifetime=3, genes=None):
        self.fitness = fitness
        self.lifetime = lifetime
        self.genes = list(genes) if genes is not None else [fitness]
        self.age = 0
        self.mutations = []

    def update(self):
        if self.age < self.lifetime:
            self.age += 1
        return self.age >= self.lifetime

    def calculate_fitness(self):
        return self.fitness

    def mutate(self, intensity):
        self.mutations.append(intensity)

    def crossover(self, other):
        return Counter(fitness=(self.fitness + other.fitness) / 2, lifetime=self.lifetime,
                       genes=self.genes + other.genes)

    @classmethod
    def from_prototype(cls, other):
        return cls(fitness=other.fitness, lifetime=other.lifetime, genes=other.genes)


def finished_population(members, **kwargs):
    population = Population(members, **kwargs)
    while not population.step():
        pass
    return population


def test_counter_satisfies_phenotype_protocol():
    assert isinstance(Counter(), Phenotype)


@pytest.mark.parametrize("size,expected", [(2, 3), (3, 3), (6, 4), (7, 4), (10, 5), (15, 6), (100, 15)])
def test_parent_count(size, expected):
    assert parent_count(size) == expected


def test_parent_count_matches_closed_form():
    for p in range(2, 200):
        assert parent_count(p) == round((1 + math.sqrt(1 + 8 * p)) / 2)


def test_population_rejects_too_few_members():
    with pytest.raises(PopulationSizeError):
        Population([Counter()])
    with pytest.raises(PopulationSizeError):
        Population([])


def test_population_rejects_unknown_policy():
    with pytest.raises(ValueError, match="carryover policy"):
        Population([Counter(), Counter()], carryover_policy="keep-everything")


def test_step_reports_completion_only_when_everyone_finishes():
    population = Population([Counter(lifetime=4) for _ in range(6)])
    results = [population.step() for _ in range(4)]
    assert results == [False, False, False, True]
    assert population.is_complete


def test_step_after_completion_does_not_update_again():
    members = [Counter(lifetime=1) for _ in range(3)]
    population = Population(members)
    assert population.step()
    assert population.step()
    assert all(m.age == 1 for m in members)


def test_mixed_completion_is_fatal():
    population = Population([Counter(lifetime=1), Counter(lifetime=2), Counter(lifetime=2)])
    with pytest.raises(GenerationSyncError, match="1 of 3"):
        population.step()


def test_get_is_read_only_snapshot():
    members = [Counter(), Counter()]
    population = Population(members)
    snapshot = population.get()
    assert snapshot == tuple(members)
    assert isinstance(snapshot, tuple)
    assert list(population) == members
    assert len(population) == 2


@pytest.mark.parametrize("size", [2, 3, 5, 10, 11, 28, 50])
def test_select_returns_formula_parent_count(size):
    population = Population([Counter(fitness=i + 1) for i in range(size)])
    parents = population.select()
    assert len(parents) == parent_count(size)
    assert all(parent in population.get() for parent in parents)


def test_select_favours_only_member_with_fitness():
    members = [Counter(fitness=0.0) for _ in range(9)] + [Counter(fitness=5.0)]
    population = Population(members)
    parents = population.select()
    assert all(parent is members[-1] for parent in parents)


def test_select_ignores_members_that_round_to_zero():
    members = [Counter(fitness=0.001) for _ in range(9)] + [Counter(fitness=10.0)]
    population = Population(members)
    for _ in range(20):
        assert all(parent is members[-1] for parent in population.select())


def test_select_falls_back_to_uniform_when_nobody_scores():
    members = [Counter(fitness=0.0) for _ in range(10)]
    parents = Population(members).select()
    assert len(parents) == 5


def test_select_survives_non_finite_fitness():
    members = [Counter(fitness=float("nan")), Counter(fitness=float("inf")),
               Counter(fitness=-3.0), Counter(fitness=2.0)]
    parents = Population(members).select()
    assert len(parents) == parent_count(4)
    assert all(parent in (members[1], members[3]) for parent in parents)


@pytest.mark.parametrize("m", [2, 3, 5, 8])
def test_crossover_breeds_every_pair_once(m):
    parents = [Counter(fitness=i, genes=[i]) for i in range(m)]
    children = Population.crossover(parents)
    assert len(children) == m * (m - 1) // 2
    pairs = {tuple(child.genes) for child in children}
    assert pairs == {(i, j) for i in range(m) for j in range(i + 1, m)}


def test_carryover_policy_keeps_last_child_unmutated():
    population = Population([Counter(), Counter()], mutation_intensity=0.2)
    children = [Counter() for _ in range(4)]
    population.mutate_generation(children)
    assert [c.mutations for c in children] == [[0.2], [0.2], [0.2], []]


def test_none_policy_mutates_every_child():
    population = Population([Counter(), Counter()], carryover_policy="none")
    children = [Counter() for _ in range(3)]
    population.mutate_generation(children, intensity=0.5)
    assert all(c.mutations == [0.5] for c in children)


def test_elitist_policy_replaces_last_child_with_best_member():
    best = Counter(fitness=9.0, genes=["champion"])
    population = Population([Counter(fitness=1.0), best], carryover_policy="elitist")
    children = [Counter() for _ in range(3)]
    population.mutate_generation(children)
    assert children[-1] is not best
    assert children[-1].genes == ["champion"]
    assert children[-1].mutations == []
    assert all(c.mutations for c in children[:-1])


def test_restart_requires_finished_generation():
    population = Population([Counter(lifetime=2) for _ in range(4)])
    with pytest.raises(GenerationStateError):
        population.restart()
    population.step()
    with pytest.raises(GenerationStateError):
        population.restart()


def test_restart_replaces_generation():
    population = finished_population([Counter(fitness=i + 1, lifetime=2) for i in range(10)])
    old = population.get()
    population.restart()
    assert population.generation == 1
    assert not population.is_complete
    assert len(population) == 10
    assert not set(map(id, old)) & set(map(id, population))
    assert population.step() is False
    assert population.step() is True


def test_restart_with_rockets_matches_formula():
    rockets = random_rockets(10, genome_length=5)
    population = Population(rockets)
    results = [population.step() for _ in range(5)]
    assert results == [False, False, False, False, True]

    population.restart()
    m = round((1 + math.sqrt(81)) / 2)
    assert len(population) == m * (m - 1) // 2
    assert all(len(rocket) == 5 for rocket in population)


def test_population_sizes_stay_breedable_across_generations():
    population = Population([Counter(fitness=i + 1, lifetime=1) for i in range(7)])
    sizes = []
    for _ in range(5):
        population.step()
        population.restart()
        sizes.append(len(population))
    assert sizes[0] == 6
    assert all(size >= 2 for size in sizes)


def test_fitnesses_and_best():
    members = [Counter(fitness=f) for f in (0.5, 3.0, 1.0)]
    population = Population(members)
    np.testing.assert_array_equal(population.fitnesses(), [0.5, 3.0, 1.0])
    assert population.best() is members[1]


def test_selection_weights_scale_with_fitness():
    population = Population([Counter(), Counter()])
    counts = population._selection_weights([4.0, 2.0, 1.0, 0.004])
    assert counts.tolist() == [100, 50, 25, 0]


def test_selection_resolution_sets_best_member_slots():
    population = Population([Counter(), Counter()], selection_resolution=10)
    assert population._selection_weights([4.0, 2.0]).tolist() == [10, 5]


def test_select_draws_fitter_member_proportionally_more_often():
    strong, weak = Counter(fitness=2.0), Counter(fitness=1.0)
    population = Population([strong, weak])
    picks = [parent for _ in range(2000) for parent in population.select()]
    strong_picks = sum(1 for parent in picks if parent is strong)
    weak_picks = sum(1 for parent in picks if parent is weak)
    assert strong_picks + weak_picks == len(picks)
    assert 1.8 < strong_picks / weak_picks < 2.2


def test_lowered_size_floor_still_guards_selection():
    with pytest.raises(PopulationSizeError, match="yields 1 parent"):
        Population([], min_population_size=0).select()
    assert len(Population([Counter()], min_population_size=1).select()) == 2


def test_elitist_policy_copies_fittest_parent():
    outsider = Counter(fitness=9.0, genes=["outsider"])
    population = Population([Counter(fitness=1.0), outsider], carryover_policy="elitist")
    parents = [Counter(fitness=3.0, genes=["a"]), Counter(fitness=5.0, genes=["b"])]
    children = [Counter() for _ in range(3)]
    population.mutate_generation(children, parents=parents)
    assert children[-1].genes == ["b"]
    assert children[-1] is not parents[1]
    assert children[-1].mutations == []


def test_elitist_restart_carries_a_parent_forward():
    members = [Counter(fitness=i + 1, lifetime=1, genes=[i]) for i in range(6)]
    population = finished_population(members, carryover_policy="elitist")
    population.restart()
    carried = population.get()[-1]
    assert carried.mutations == []
    assert len(carried.genes) == 1
    assert all(child.mutations for child in population.get()[:-1])
