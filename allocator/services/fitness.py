"""
Fitness scoring for allocation genomes.

The score is a weighted composite of a cost term, a utilization term and a
penalty per violated hard constraint, shifted by a constant baseline so that
tournament selection still discriminates when both terms are zero. Weights are
plain configuration (``FitnessWeights``) rather than literals so the policy can
be tuned and tested on its own.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol, Sequence

from allocator.models import Allocation, ConstraintSet

NEUTRAL_COST_SCORE = 0.5


class OptimizationObjective(Enum):
    COMPOSITE = "composite"
    MINIMIZE_COST = "minimize_cost"
    MAXIMIZE_UTILIZATION = "maximize_utilization"


class CostPredictor(Protocol):
    """Advisory scoring strategy, e.g. a trained cost/duration model.

    Implementations return a desirability score in ``[0, 1]`` for a genome.
    They must be picklable when the optimizer evaluates in worker processes.
    """

    def score(self, genome: Sequence[Allocation]) -> float: ...


@dataclass(frozen=True)
class FitnessWeights:
    cost_weight: float = 0.4
    utilization_weight: float = 0.4
    violation_weight: float = 0.1  # Subtracted once per violated constraint
    baseline: float = 0.2
    predictor_weight: float = 0.0

    @classmethod
    def for_objective(cls, objective: OptimizationObjective) -> "FitnessWeights":
        if objective is OptimizationObjective.MINIMIZE_COST:
            return cls(cost_weight=0.6, utilization_weight=0.2)
        if objective is OptimizationObjective.MAXIMIZE_UTILIZATION:
            return cls(cost_weight=0.2, utilization_weight=0.6)
        return cls()


def total_cost(genome: Sequence[Allocation]) -> float:
    return sum(allocation.estimated_cost for allocation in genome)


def latest_end(genome: Sequence[Allocation]) -> Optional[datetime]:
    if not genome:
        return None
    return max(allocation.end for allocation in genome)


def exceeds_budget(genome: Sequence[Allocation], constraints: ConstraintSet) -> bool:
    return constraints.budget_limit is not None and total_cost(genome) > constraints.budget_limit


def misses_deadline(genome: Sequence[Allocation], constraints: ConstraintSet) -> bool:
    if constraints.deadline is None:
        return False
    end = latest_end(genome)
    return end is not None and end > constraints.deadline


def count_violations(genome: Sequence[Allocation], constraints: ConstraintSet) -> int:
    """Count violated hard limits: budget ceiling and deadline."""
    return int(exceeds_budget(genome, constraints)) + int(misses_deadline(genome, constraints))


def cost_score(genome: Sequence[Allocation], constraints: ConstraintSet) -> float:
    budget = constraints.budget_limit
    if budget is None:
        return NEUTRAL_COST_SCORE
    if budget <= 0:
        return 0.0
    return max(0.0, 1.0 - total_cost(genome) / budget)


def utilization_score(genome: Sequence[Allocation]) -> float:
    if not genome:
        return 0.0
    return sum(a.allocation_percentage for a in genome) / len(genome) / 100.0


def violation_penalty(
    genome: Sequence[Allocation],
    constraints: ConstraintSet,
    weights: Optional[FitnessWeights] = None,
) -> float:
    weights = weights or FitnessWeights()
    return weights.violation_weight * count_violations(genome, constraints)


@dataclass(frozen=True)
class FitnessEvaluator:
    """Pure genome scorer; holds only read-only policy, never run state."""

    weights: FitnessWeights = FitnessWeights()
    predictor: Optional[CostPredictor] = None

    def evaluate(self, genome: Sequence[Allocation], constraints: ConstraintSet) -> float:
        weights = self.weights
        fitness = (
            weights.cost_weight * cost_score(genome, constraints)
            + weights.utilization_weight * utilization_score(genome)
            - violation_penalty(genome, constraints, weights)
            + weights.baseline
        )
        if self.predictor is not None and weights.predictor_weight:
            predicted = min(1.0, max(0.0, float(self.predictor.score(genome))))
            fitness += weights.predictor_weight * predicted
        return max(0.0, fitness)
