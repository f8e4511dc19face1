import random
from typing import List, Optional, Sequence

from allocator.models import Allocation, Individual, Resource, Task

MAX_RESOURCES_PER_TASK = 3


class PopulationManager:
    """Owns one run's generation of candidate individuals."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.population: List[Individual] = []

    def initialize(
        self, tasks: Sequence[Task], resources: Sequence[Resource], size: int
    ) -> List[Individual]:
        """Build ``size`` independent individuals, each covering every task."""
        self.population = [
            Individual(genome=self.create_random_genome(tasks, resources), generation=0)
            for _ in range(size)
        ]
        return self.population

    def create_random_genome(
        self, tasks: Sequence[Task], resources: Sequence[Resource]
    ) -> List[Allocation]:
        genome: List[Allocation] = []
        for task in tasks:
            count = self.rng.randint(1, min(MAX_RESOURCES_PER_TASK, len(resources)))
            for slot, resource in enumerate(self.rng.sample(list(resources), count)):
                genome.append(
                    Allocation(
                        allocation_id=f"{task.task_id}:{resource.resource_id}:{slot}",
                        resource_id=resource.resource_id,
                        task_id=task.task_id,
                        start=task.start,
                        end=task.end,
                        allocation_percentage=self.rng.uniform(0.0, 100.0),
                        cost_rate=resource.cost_rate,
                        resource_kind=resource.kind,
                        project_id=task.project_id,
                    )
                )
        return genome

    @staticmethod
    def sort_by_fitness_descending(population: List[Individual]) -> List[Individual]:
        # list.sort is stable, so equal-fitness individuals keep their order
        population.sort(key=lambda individual: individual.fitness, reverse=True)
        return population

    def replace(self, next_generation: List[Individual]) -> List[Individual]:
        if self.population and len(next_generation) != len(self.population):
            raise ValueError(
                f"Next generation has {len(next_generation)} individuals, "
                f"expected {len(self.population)}"
            )
        self.population = next_generation
        return self.population

    @property
    def best(self) -> Optional[Individual]:
        if not self.population:
            return None
        return max(self.population, key=lambda individual: individual.fitness)
