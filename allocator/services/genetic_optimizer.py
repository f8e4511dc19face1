import logging
import math
import multiprocessing as mp
import random
import threading
import time
from concurrent.futures import ProcessPoolExecutor
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
)

from allocator.common.settings import get_parallel_workers
from allocator.models import (
    Allocation,
    ConstraintSet,
    Individual,
    OptimizationResult,
    Resource,
    Task,
    TerminationReason,
)
from allocator.services.fitness import (
    CostPredictor,
    FitnessEvaluator,
    FitnessWeights,
    OptimizationObjective,
)
from allocator.services.operators import GeneticOperators
from allocator.services.population import PopulationManager

if TYPE_CHECKING:
    from allocator.utils.genetic_algorithm_logger import GeneticAlgorithmLogger

_logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised at the call boundary before any population is built."""


class OptimizationState(Enum):
    INITIALIZING = "initializing"
    EVALUATING = "evaluating"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    INTERRUPTED = "interrupted"


TERMINAL_STATES = {
    OptimizationState.CONVERGED: TerminationReason.CONVERGED,
    OptimizationState.EXHAUSTED: TerminationReason.EXHAUSTED,
    OptimizationState.INTERRUPTED: TerminationReason.INTERRUPTED,
}


@dataclass
class GeneticAlgorithmConfig:
    """Configuration for the genetic algorithm."""

    population_size: int = 100
    max_generations: int = 200
    mutation_rate: float = 0.1
    crossover_rate: float = 0.8
    elitism_rate: float = 0.1
    tournament_size: int = 5
    convergence_threshold: float = 0.001
    convergence_window: int = 10  # Trailing best-fitness values checked for convergence
    objective: OptimizationObjective = OptimizationObjective.COMPOSITE
    fitness_weights: Optional[FitnessWeights] = None  # Overrides the objective preset
    parallel_workers: Optional[int] = None  # None = auto-detect CPU cores
    time_limit_seconds: Optional[float] = None  # Return best-so-far once exceeded
    seed: Optional[int] = None

    def validate(self) -> None:
        if self.population_size < 1:
            raise InvalidInputError("population_size must be at least 1")
        if self.max_generations < 1:
            raise InvalidInputError("max_generations must be at least 1")
        if self.tournament_size < 1:
            raise InvalidInputError("tournament_size must be at least 1")
        if self.convergence_window < 2:
            raise InvalidInputError("convergence_window must be at least 2")
        if self.convergence_threshold < 0:
            raise InvalidInputError("convergence_threshold must not be negative")
        for name in ("mutation_rate", "crossover_rate", "elitism_rate"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidInputError(f"{name} must be within [0, 1], got {value}")
        if self.parallel_workers is not None and self.parallel_workers < 1:
            raise InvalidInputError("parallel_workers must be at least 1")
        if self.time_limit_seconds is not None and self.time_limit_seconds <= 0:
            raise InvalidInputError("time_limit_seconds must be positive")

    def resolve_weights(self) -> FitnessWeights:
        return self.fitness_weights or FitnessWeights.for_objective(self.objective)


def validate_inputs(
    tasks: Sequence[Task],
    resources: Sequence[Resource],
    constraints: ConstraintSet,
    now: Optional[datetime] = None,
) -> None:
    """Reject inputs that cannot produce a meaningful genome."""
    if not tasks:
        raise InvalidInputError("At least one task is required")
    if not resources:
        raise InvalidInputError("At least one resource is required")

    task_ids = [task.task_id for task in tasks]
    if len(set(task_ids)) != len(task_ids):
        raise InvalidInputError("Task ids must be unique")
    resource_ids = [resource.resource_id for resource in resources]
    if len(set(resource_ids)) != len(resource_ids):
        raise InvalidInputError("Resource ids must be unique")

    _check_timezone_awareness(tasks, resources, constraints)

    if constraints.budget_limit is not None:
        if math.isnan(constraints.budget_limit) or constraints.budget_limit < 0:
            raise InvalidInputError(
                f"Budget limit must be a non-negative number, got {constraints.budget_limit}"
            )
    if constraints.deadline is not None:
        current = now or datetime.now(constraints.deadline.tzinfo)
        if constraints.deadline < current:
            raise InvalidInputError(
                f"Deadline {constraints.deadline.isoformat()} is already in the past"
            )


def _check_timezone_awareness(
    tasks: Sequence[Task], resources: Sequence[Resource], constraints: ConstraintSet
) -> None:
    """Naive and offset-aware datetimes cannot be compared, so inputs must not mix them."""
    stamps = []
    for task in tasks:
        stamps.append((f"task {task.task_id} start", task.start))
        stamps.append((f"task {task.task_id} end", task.end))
    for resource in resources:
        stamps.append((f"resource {resource.resource_id} available_from", resource.available_from))
        stamps.append((f"resource {resource.resource_id} available_until", resource.available_until))
    stamps.append(("deadline", constraints.deadline))

    stamps = [(label, dt) for label, dt in stamps if dt is not None]
    aware = [label for label, dt in stamps if dt.tzinfo is not None]
    naive = [label for label, dt in stamps if dt.tzinfo is None]
    if aware and naive:
        raise InvalidInputError(
            f"Cannot mix timezone-aware and naive datetimes "
            f"(aware: {aware[0]}, naive: {naive[0]})"
        )


def population_variance(values: Sequence[float]) -> float:
    """Mean of squared deviations from the mean (not the sample variance)."""
    mean = sum(values) / len(values)
    return sum((value - mean) ** 2 for value in values) / len(values)


def _evaluate_chunk(
    args: Tuple[FitnessEvaluator, ConstraintSet, List[Tuple[int, List[Allocation]]]]
) -> List[Tuple[int, float]]:
    """
    Standalone function for parallel fitness evaluation.

    Args:
        args: Tuple containing (evaluator, constraints, [(index, genome), ...]).
            Each worker receives a disjoint range of population indices.

    Returns:
        List of (index, fitness) pairs for the driver to write back.
    """
    evaluator, constraints, chunk = args
    return [(index, evaluator.evaluate(genome, constraints)) for index, genome in chunk]


class GeneticAllocationOptimizer:
    """
    Genetic Algorithm optimizer for resource-to-task allocation.

    Runs the generational loop INITIALIZING -> EVALUATING -> (CONVERGED |
    EXHAUSTED | INTERRUPTED):
    1. Score every individual (across a process pool when more than one worker)
    2. Sort descending and record the best fitness
    3. Stop on a flat fitness window, the generation budget, or cancellation
    4. Otherwise build the next generation through elitism, tournament
       selection, crossover and mutation

    One instance owns one run's population; independent runs should use
    separate instances.
    """

    def __init__(
        self,
        config: Optional[GeneticAlgorithmConfig] = None,
        evaluator: Optional[FitnessEvaluator] = None,
        operators: Optional[GeneticOperators] = None,
        predictor: Optional[CostPredictor] = None,
    ):
        self.config = config or GeneticAlgorithmConfig()
        self.config.validate()
        self.rng = random.Random(self.config.seed)
        self.evaluator = evaluator or FitnessEvaluator(
            weights=self.config.resolve_weights(), predictor=predictor
        )
        self.operators = operators or GeneticOperators(
            rng=self.rng,
            crossover_rate=self.config.crossover_rate,
            mutation_rate=self.config.mutation_rate,
            tournament_size=self.config.tournament_size,
        )
        self.population_manager = PopulationManager(self.rng)
        self.state = OptimizationState.INITIALIZING
        self.generation = 0
        self.generation_history: List[Dict] = []  # Track evolution across generations
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        """Request a stop at the next generation boundary."""
        self._cancel_event.set()

    def optimize(
        self,
        tasks: Sequence[Task],
        resources: Sequence[Resource],
        constraints: Optional[ConstraintSet] = None,
        logger: Optional["GeneticAlgorithmLogger"] = None,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> OptimizationResult:
        """
        Search for the best allocation of ``resources`` to ``tasks``.

        Args:
            tasks: Tasks to cover; every individual allocates each of them
            resources: Candidate workers, equipment and materials
            constraints: Budget ceiling and deadline (optional)
            logger: Optional logger for evolution logging and display
            cancel_event: Optional event checked once per generation boundary
            progress_callback: Optional callback for progress updates (generation, max_generations)

        Returns:
            OptimizationResult with the best individual found. Invalid input
            raises ``InvalidInputError``; running out of generations or being
            cancelled is reported through ``termination``.
        """
        constraints = constraints or ConstraintSet()
        validate_inputs(tasks, resources, constraints)

        start_time = time.perf_counter()
        self.state = OptimizationState.INITIALIZING
        self.generation_history = []
        self._cancel_event.clear()
        config = self.config

        if logger:
            logger.log_optimization_start(len(tasks), len(resources), config)

        population = self.population_manager.initialize(
            tasks, resources, config.population_size
        )
        fitness_history: List[float] = []
        best_individual: Optional[Individual] = None
        convergence_generation: Optional[int] = None
        self.state = OptimizationState.EVALUATING
        self.generation = 0

        max_workers = min(self._worker_count(), len(population))
        with ExitStack() as stack:
            executor = None
            if max_workers > 1:
                executor = stack.enter_context(ProcessPoolExecutor(max_workers=max_workers))

            while self.state is OptimizationState.EVALUATING:
                if progress_callback:
                    try:
                        progress_callback(self.generation + 1, config.max_generations)
                    except Exception:
                        # Don't let callback errors stop optimization
                        _logger.exception("Progress callback failed")

                self._evaluate_population(population, constraints, executor, max_workers)
                PopulationManager.sort_by_fitness_descending(population)

                generation_best = population[0]
                fitness_history.append(generation_best.fitness)
                if best_individual is None or generation_best.fitness > best_individual.fitness:
                    previous = best_individual.fitness if best_individual else None
                    best_individual = generation_best.copy()
                    if logger:
                        logger.log_new_best_found(self.generation, generation_best.fitness, previous)

                self._record_generation(population, best_individual)
                if logger:
                    logger.log_generation_summary(self.generation_history[-1])

                if self._has_converged(fitness_history):
                    convergence_generation = self.generation
                    self.state = OptimizationState.CONVERGED
                    if logger:
                        logger.log_convergence(self.generation, config.convergence_window)
                elif len(fitness_history) >= config.max_generations:
                    self.state = OptimizationState.EXHAUSTED
                elif self._should_stop(cancel_event, start_time):
                    self.state = OptimizationState.INTERRUPTED
                    if logger:
                        logger.log_interrupted(self.generation)
                else:
                    population = self.population_manager.replace(
                        self._create_next_generation(population)
                    )
                    self.generation += 1

        result = OptimizationResult(
            best_individual=best_individual,
            best_fitness=best_individual.fitness,
            generations_executed=len(fitness_history),
            fitness_history=tuple(fitness_history),
            duration_seconds=time.perf_counter() - start_time,
            termination=TERMINAL_STATES[self.state],
            convergence_generation=convergence_generation,
            final_population=tuple(population),
        )

        if logger:
            logger.log_optimization_complete(result)

        return result

    def _worker_count(self) -> int:
        return self.config.parallel_workers or get_parallel_workers() or mp.cpu_count()

    def _evaluate_population(
        self,
        population: List[Individual],
        constraints: ConstraintSet,
        executor: Optional[ProcessPoolExecutor],
        max_workers: int,
    ) -> None:
        """Recompute every fitness from scratch; one writer per individual."""
        if executor is None:
            for individual in population:
                individual.fitness = self.evaluator.evaluate(individual.genome, constraints)
            return

        chunk_size = math.ceil(len(population) / max_workers)
        chunks = []
        for offset in range(0, len(population), chunk_size):
            indices = range(offset, min(offset + chunk_size, len(population)))
            chunks.append([(index, population[index].genome) for index in indices])
        futures = [
            executor.submit(_evaluate_chunk, (self.evaluator, constraints, chunk))
            for chunk in chunks
        ]
        for future in futures:
            for index, fitness in future.result():
                population[index].fitness = fitness

    def _has_converged(self, fitness_history: List[float]) -> bool:
        window = self.config.convergence_window
        if len(fitness_history) < window:
            return False
        return population_variance(fitness_history[-window:]) < self.config.convergence_threshold

    def _should_stop(self, cancel_event: Optional[threading.Event], start_time: float) -> bool:
        if self._cancel_event.is_set() or (cancel_event is not None and cancel_event.is_set()):
            return True
        limit = self.config.time_limit_seconds
        return limit is not None and time.perf_counter() - start_time >= limit

    def _create_next_generation(self, population: List[Individual]) -> List[Individual]:
        """Create the next generation using elitism, selection, crossover, and mutation."""
        next_generation = GeneticOperators.elite(population, self.config.elitism_rate)

        while len(next_generation) < self.config.population_size:
            parent_a = self.operators.select(population)
            parent_b = self.operators.select(population)
            child = self.operators.crossover(parent_a, parent_b, self.generation)
            next_generation.append(self.operators.mutate(child))

        return next_generation

    def _record_generation(self, population: List[Individual], best_individual: Individual) -> None:
        scores = [individual.fitness for individual in population]
        self.generation_history.append(
            {
                "generation": self.generation,
                "best_fitness": scores[0],
                "avg_fitness": sum(scores) / len(scores),
                "worst_fitness": scores[-1],
                "global_best_fitness": best_individual.fitness,
                "best_total_cost": population[0].total_cost,
                "elite_age": population[0].age,
            }
        )


def optimize_allocation(
    tasks: Sequence[Task],
    resources: Sequence[Resource],
    constraints: Optional[ConstraintSet] = None,
    config: Optional[GeneticAlgorithmConfig] = None,
    predictor: Optional[CostPredictor] = None,
    cancel_event: Optional[threading.Event] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    critical_predicate=None,
    enable_evolution_logging: Optional[bool] = None,
    log_level: str = "INFO",
):
    """
    Convenience function to run the optimizer and synthesize its plan.

    Args:
        tasks: Tasks to allocate (non-empty)
        resources: Available resources (non-empty)
        constraints: Budget ceiling and deadline (optional)
        config: Genetic algorithm configuration (optional)
        predictor: Optional advisory scorer blended in with ``FitnessWeights.predictor_weight``
        cancel_event: Optional event that stops the run at the next generation boundary
        progress_callback: Optional callback for progress updates (generation, max_generations)
        critical_predicate: Optional ``TaskSchedule -> bool`` used to flag critical tasks
        enable_evolution_logging: Log per-generation progress; defaults to ``ALLOCATOR_EVOLUTION_LOGGING``
        log_level: Logging level for evolution tracking ("DEBUG", "INFO", "WARNING", "ERROR")

    Returns:
        Tuple of (OptimizationResult, AllocationPlan)
    """
    from allocator.common.settings import evolution_logging_enabled
    from allocator.services.result_synthesizer import ResultSynthesizer

    constraints = constraints or ConstraintSet()
    if enable_evolution_logging is None:
        enable_evolution_logging = evolution_logging_enabled()

    evolution_logger = None
    if enable_evolution_logging:
        from allocator.utils.genetic_algorithm_logger import GeneticAlgorithmLogger

        evolution_logger = GeneticAlgorithmLogger()
        evolution_logger.configure_evolution_logging(log_level)

    optimizer = GeneticAllocationOptimizer(config, predictor=predictor)
    result = optimizer.optimize(
        tasks,
        resources,
        constraints,
        logger=evolution_logger,
        cancel_event=cancel_event,
        progress_callback=progress_callback,
    )
    plan = ResultSynthesizer(
        critical_predicate=critical_predicate,
        weights=optimizer.evaluator.weights,
    ).synthesize(result, tasks, resources, constraints)
    return result, plan
