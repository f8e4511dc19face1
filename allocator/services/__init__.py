from .fitness import (
    CostPredictor,
    FitnessEvaluator,
    FitnessWeights,
    OptimizationObjective,
)
from .genetic_optimizer import (
    GeneticAlgorithmConfig,
    GeneticAllocationOptimizer,
    InvalidInputError,
    OptimizationState,
    optimize_allocation,
)
from .operators import GeneticOperators
from .population import PopulationManager
from .result_synthesizer import ResultSynthesizer

__all__ = [
    "CostPredictor",
    "FitnessEvaluator",
    "FitnessWeights",
    "OptimizationObjective",
    "GeneticAlgorithmConfig",
    "GeneticAllocationOptimizer",
    "InvalidInputError",
    "OptimizationState",
    "optimize_allocation",
    "GeneticOperators",
    "PopulationManager",
    "ResultSynthesizer",
]
