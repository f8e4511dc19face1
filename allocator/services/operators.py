"""Selection, crossover, mutation and elitism over allocation genomes."""

import math
import random
from typing import List, Optional, Sequence

from allocator.models import Allocation, Individual


class GeneticOperators:
    """
    Reproduction operators for the allocation genetic algorithm.

    Every operator returns new ``Individual`` values; parents are never
    modified, so elites and tournament winners can be reused safely within a
    generation.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        crossover_rate: float = 0.8,
        mutation_rate: float = 0.1,
        tournament_size: int = 5,
    ):
        self.rng = rng or random.Random()
        self.crossover_rate = crossover_rate
        self.mutation_rate = mutation_rate
        self.tournament_size = tournament_size

    def select(self, population: Sequence[Individual]) -> Individual:
        """Tournament selection: best of ``tournament_size`` uniform draws."""
        if not population:
            raise ValueError("Cannot select from an empty population")
        best = population[self.rng.randrange(len(population))]
        for _ in range(self.tournament_size - 1):
            contender = population[self.rng.randrange(len(population))]
            if contender.fitness > best.fitness:
                best = contender
        return best

    def crossover(
        self, parent_a: Individual, parent_b: Individual, generation: int
    ) -> Individual:
        """Single-point crossover at the midpoint of the shorter genome."""
        if self.rng.random() >= self.crossover_rate:
            return parent_a.copy(fitness=0.0, generation=generation + 1, age=0)

        point = min(len(parent_a.genome), len(parent_b.genome)) // 2
        genome = parent_a.genome[:point] + parent_b.genome[point:]
        return Individual(
            genome=restore_task_coverage(genome, parent_a.genome),
            fitness=0.0,
            generation=generation + 1,
            age=0,
        )

    def mutate(self, individual: Individual) -> Individual:
        """Resample allocation percentages; resource and task references never change."""
        genome = [
            allocation.with_percentage(self.rng.uniform(0.0, 100.0))
            if self.rng.random() < self.mutation_rate
            else allocation
            for allocation in individual.genome
        ]
        return individual.copy(genome=genome)

    @staticmethod
    def elite(population: Sequence[Individual], elitism_rate: float) -> List[Individual]:
        """Copy the top individuals of a population sorted best-first, one generation older.

        Any positive rate keeps at least one elite so the best fitness never drops.
        """
        count = math.floor(len(population) * elitism_rate)
        if elitism_rate > 0:
            count = max(1, count)
        return [individual.copy(age=individual.age + 1) for individual in population[:count]]


def restore_task_coverage(
    genome: List[Allocation], reference: Sequence[Allocation]
) -> List[Allocation]:
    """
    Re-add ``reference`` allocations for tasks the spliced genome lost.

    Allocations for one task can straddle the crossover point, so the tail of
    parent B may not cover every task parent A's head left out, and may repeat
    an allocation the head already holds. Repeated ``allocation_id`` values
    keep their first occurrence. The result is ordered by each task's first
    position in ``reference``.
    """
    seen = set()
    unique = []
    for allocation in genome:
        if allocation.allocation_id not in seen:
            seen.add(allocation.allocation_id)
            unique.append(allocation)

    covered = {allocation.task_id for allocation in unique}
    missing = [a for a in reference if a.task_id not in covered]
    if not missing:
        return unique

    order: dict[str, int] = {}
    for allocation in reference:
        order.setdefault(allocation.task_id, len(order))
    repaired = unique + missing
    repaired.sort(key=lambda allocation: order.get(allocation.task_id, len(order)))
    return repaired
