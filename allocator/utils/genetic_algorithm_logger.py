import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from rich import box, table
from rich.console import Console
from rich.text import Text

from allocator.models import OptimizationResult, TerminationReason

if TYPE_CHECKING:
    from allocator.services.genetic_optimizer import GeneticAlgorithmConfig

OPTIMIZER_LOGGER_NAME = "allocator.services.genetic_optimizer"

TERMINATION_STYLES = {
    TerminationReason.CONVERGED: "green",
    TerminationReason.EXHAUSTED: "yellow",
    TerminationReason.INTERRUPTED: "red",
}


class GeneticAlgorithmLogger:
    """Logger for genetic algorithm evolution progress and run summaries."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(OPTIMIZER_LOGGER_NAME)

    @staticmethod
    def optimization_config_table(config: "GeneticAlgorithmConfig") -> table.Table:
        """Create a table with the genetic algorithm configuration."""
        config_table = table.Table(
            title="Genetic Algorithm Configuration",
            title_style="bold yellow",
            style="dim",
            box=box.SIMPLE,
        )
        config_table.add_column("Setting", style="bold")
        config_table.add_column("Value", justify="right")

        config_table.add_row("Population size", str(config.population_size))
        config_table.add_row("Max generations", str(config.max_generations))
        config_table.add_row("Crossover rate", f"{config.crossover_rate:.2f}")
        config_table.add_row("Mutation rate", f"{config.mutation_rate:.2f}")
        config_table.add_row("Elitism rate", f"{config.elitism_rate:.2f}")
        config_table.add_row("Tournament size", str(config.tournament_size))
        config_table.add_row(
            "Convergence",
            f"var < {config.convergence_threshold} over {config.convergence_window}",
        )
        config_table.add_row("Objective", config.objective.value)
        return config_table

    @staticmethod
    def generation_history_table(generation_history: List[Dict]) -> table.Table:
        """Create a table showing the evolution across generations."""
        history_table = table.Table(
            title="🧬 Genetic Algorithm Evolution History",
            show_header=True,
            header_style="bold magenta",
        )
        history_table.add_column("Gen", style="cyan", width=4)
        history_table.add_column("Current Best", style="green")
        history_table.add_column("Global Best", style="bold green")
        history_table.add_column("Average", style="yellow")
        history_table.add_column("Worst", style="red")
        history_table.add_column("Best Cost", justify="right")
        history_table.add_column("Elite Age", justify="right")

        previous_best = None
        for data in generation_history:
            improved = previous_best is None or data["global_best_fitness"] > previous_best
            previous_best = data["global_best_fitness"]
            history_table.add_row(
                str(data["generation"]),
                f"{data['best_fitness']:.4f}",
                Text(
                    f"{data['global_best_fitness']:.4f}",
                    style="bold green" if improved else "dim",
                ),
                f"{data['avg_fitness']:.4f}",
                f"{data['worst_fitness']:.4f}",
                f"{data['best_total_cost']:,.2f}",
                str(data["elite_age"]),
            )
        return history_table

    @staticmethod
    def print_optimization_summary(result: OptimizationResult, console: Console) -> None:
        """Print optimization summary with key metrics."""
        style = TERMINATION_STYLES.get(result.termination, "white")
        console.print(f"\n[bold green]✅ Optimization Complete![/bold green]")
        console.print(f"Optimization time: {result.duration_seconds:.2f} seconds")
        console.print(
            f"[bold cyan]🎯 Best Fitness: {result.best_fitness:.4f}[/bold cyan] (higher is better)"
        )
        console.print(f"Generations executed: {result.generations_executed}")
        console.print(
            f"Termination: [{style}]{result.termination.value}[/{style}]"
            + (
                f" at generation {result.convergence_generation}"
                if result.convergence_generation is not None
                else ""
            )
        )
        console.print(f"Allocations in best genome: {len(result.best_individual.genome)}")

    def configure_evolution_logging(self, level: str = "INFO") -> None:
        """Configure logging to see genetic algorithm evolution progress.

        Args:
            level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        """
        logging.basicConfig(
            level=getattr(logging, level.upper()),
            format="%(asctime)s - %(levelname)s - %(message)s",
            handlers=[logging.StreamHandler()],
        )
        self.logger = logging.getLogger(OPTIMIZER_LOGGER_NAME)
        self.logger.setLevel(getattr(logging, level.upper()))

    def log_optimization_start(
        self, num_tasks: int, num_resources: int, config: "GeneticAlgorithmConfig"
    ) -> None:
        self.logger.info(
            f"🧬 Starting genetic optimization: {num_tasks} tasks, {num_resources} resources"
        )
        self.logger.info(
            f"   Population: {config.population_size}, generations: {config.max_generations}, "
            f"objective: {config.objective.value}"
        )
        self.logger.info(
            f"   Crossover: {config.crossover_rate}, mutation: {config.mutation_rate}, "
            f"elitism: {config.elitism_rate}, tournament: {config.tournament_size}"
        )

    def log_new_best_found(
        self, generation: int, fitness: float, previous: Optional[float]
    ) -> None:
        if previous is None:
            self.logger.debug(f"Gen {generation}: initial best fitness {fitness:.4f}")
        else:
            self.logger.info(
                f"🎯 Gen {generation}: new best fitness {fitness:.4f} (was {previous:.4f})"
            )

    def log_generation_summary(self, data: Dict) -> None:
        self.logger.debug(
            f"Gen {data['generation']}: best={data['best_fitness']:.4f} "
            f"avg={data['avg_fitness']:.4f} worst={data['worst_fitness']:.4f} "
            f"global={data['global_best_fitness']:.4f}"
        )

    def log_convergence(self, generation: int, window: int) -> None:
        self.logger.info(
            f"🛑 Converged at generation {generation}: best fitness flat over the last {window} generations"
        )

    def log_interrupted(self, generation: int) -> None:
        self.logger.warning(
            f"⏹️  Optimization interrupted after generation {generation}; returning best-so-far"
        )

    def log_optimization_complete(self, result: OptimizationResult) -> None:
        history = result.fitness_history
        self.logger.info(
            f"✅ Optimization complete! Ran {result.generations_executed} generations "
            f"({result.termination.value}) in {result.duration_seconds:.2f}s"
        )
        if history:
            self.logger.info(
                f"   Best fitness: {result.best_fitness:.4f} (initial {history[0]:.4f})"
            )
        self.logger.info(
            f"   Best genome: {len(result.best_individual.genome)} allocations, "
            f"total cost {result.best_individual.total_cost:,.2f}"
        )
