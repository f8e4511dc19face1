import random
from datetime import datetime, timedelta

import pytest

from allocator.models import Allocation, Individual
from allocator.services.operators import GeneticOperators, restore_task_coverage
from allocator.services.population import PopulationManager
from tests.fixtures import generate_workload

START = datetime(2025, 1, 6, 8, 0)


def allocation(task_id: str, resource_id: str, percentage: float = 50.0) -> Allocation:
    return Allocation(
        allocation_id=f"{task_id}:{resource_id}",
        resource_id=resource_id,
        task_id=task_id,
        start=START,
        end=START + timedelta(days=1),
        allocation_percentage=percentage,
        cost_rate=100.0,
    )


def test_select_returns_fittest_with_large_tournament():
    population = [Individual(genome=[], fitness=f) for f in (0.2, 0.4, 0.9, 0.1)]
    operators = GeneticOperators(random.Random(0), tournament_size=50)
    assert operators.select(population).fitness == 0.9


def test_select_from_empty_population_raises():
    with pytest.raises(ValueError):
        GeneticOperators(random.Random(0)).select([])


def test_crossover_without_recombination_copies_first_parent():
    parent_a = Individual(genome=[allocation("t1", "r1")], fitness=0.8, age=4)
    parent_b = Individual(genome=[allocation("t1", "r2")], fitness=0.5)
    operators = GeneticOperators(random.Random(0), crossover_rate=0.0)

    child = operators.crossover(parent_a, parent_b, generation=3)
    assert child.genome == parent_a.genome
    assert child.genome is not parent_a.genome
    assert (child.fitness, child.generation, child.age) == (0.0, 4, 0)


def test_crossover_splices_at_midpoint():
    parent_a = Individual(genome=[allocation(t, "a") for t in ("t1", "t2", "t3", "t4")])
    parent_b = Individual(genome=[allocation(t, "b") for t in ("t1", "t2", "t3", "t4")])
    operators = GeneticOperators(random.Random(0), crossover_rate=1.0)

    child = operators.crossover(parent_a, parent_b, generation=0)
    assert [a.resource_id for a in child.genome] == ["a", "a", "b", "b"]
    assert [a.resource_id for a in parent_a.genome] == ["a"] * 4


def test_crossover_keeps_task_coverage_when_groups_straddle_the_point():
    # Parent A's head and parent B's tail both skip t2
    parent_a = Individual(
        genome=[allocation("t1", "a1"), allocation("t1", "a2"), allocation("t2", "a3"), allocation("t3", "a4")]
    )
    parent_b = Individual(
        genome=[allocation("t1", "b1"), allocation("t2", "b2"), allocation("t3", "b3"), allocation("t3", "b4")]
    )
    child = GeneticOperators(random.Random(0), crossover_rate=1.0).crossover(parent_a, parent_b, 0)
    assert [a.task_id for a in child.genome] == ["t1", "t1", "t2", "t3", "t3"]
    assert [a.resource_id for a in child.genome] == ["a1", "a2", "a3", "b3", "b4"]


def test_restore_task_coverage_orders_by_reference():
    reference = [allocation("t1", "r1"), allocation("t2", "r2"), allocation("t3", "r3")]
    repaired = restore_task_coverage([allocation("t3", "x")], reference)
    assert [a.task_id for a in repaired] == ["t1", "t2", "t3"]


def test_mutation_only_changes_percentages():
    tasks, resources = generate_workload(10, 5)
    rng = random.Random(9)
    individual = Individual(genome=PopulationManager(rng).create_random_genome(tasks, resources))
    mutated = GeneticOperators(rng, mutation_rate=1.0).mutate(individual)

    assert mutated.genome is not individual.genome
    assert len(mutated.genome) == len(individual.genome)
    for before, after in zip(individual.genome, mutated.genome):
        assert (before.resource_id, before.task_id) == (after.resource_id, after.task_id)
        assert 0.0 <= after.allocation_percentage <= 100.0


def test_zero_mutation_rate_keeps_genome():
    individual = Individual(genome=[allocation("t1", "r1", 33.0)])
    mutated = GeneticOperators(random.Random(1), mutation_rate=0.0).mutate(individual)
    assert mutated.genome == individual.genome


def test_elite_keeps_at_least_one():
    population = [Individual(genome=[], fitness=f, age=1) for f in (0.9, 0.5, 0.1)]
    elites = GeneticOperators.elite(population, 0.1)
    assert len(elites) == 1
    assert elites[0].fitness == 0.9
    assert elites[0].age == 2
    assert population[0].age == 1
    assert GeneticOperators.elite(population, 0.0) == []


def test_crossover_drops_allocations_repeated_across_parents():
    parent_a = Individual(genome=[allocation("t1", "r1"), allocation("t2", "r1")])
    parent_b = Individual(genome=[allocation("t1", "r2"), allocation("t1", "r1")])
    child = GeneticOperators(random.Random(0), crossover_rate=1.0).crossover(parent_a, parent_b, 0)

    ids = [a.allocation_id for a in child.genome]
    assert ids == ["t1:r1", "t2:r1"]
    assert len(set(ids)) == len(ids)
