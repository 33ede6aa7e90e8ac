"""
Ranking Methods for Mitigation Strategies

Two ways to turn a strategy decision matrix (strategies × criteria) and a
weight vector into scores and ranks:
- "weighted-multi-objective": min-max normalisation + weighted sum (default)
- "topsis": relative closeness to the ideal point

Scores are higher-is-better. Ranks start at 1; strategies with equal scores
keep their candidate order.
"""

import numpy as np
from typing import List, Dict
from dataclasses import dataclass
from enum import Enum


class CriterionType(Enum):
    """Whether a criterion is maximised or minimised."""
    BENEFIT = "benefit"  # risk reduction
    COST = "cost"        # cost, emissions


@dataclass
class MCDMResult:
    """Scores and ranks from one ranking run."""
    method: str
    scores: np.ndarray
    rankings: np.ndarray  # 1 = top

    def get_best(self) -> int:
        """Index of the top-ranked strategy."""
        return int(np.argmin(self.rankings))

    def get_ranking_order(self) -> List[int]:
        """Strategy indices, top-ranked first."""
        return [int(i) for i in np.argsort(self.rankings, kind="stable")]


def stable_rankings(scores: np.ndarray) -> np.ndarray:
    """
    Rank scores descending (1 = best); equal scores keep input order.

    Example:
        >>> stable_rankings(np.array([0.5, 0.9, 0.5]))
        array([2, 1, 3])
    """
    order = np.argsort(-scores, kind="stable")
    rankings = np.empty(len(scores), dtype=int)
    rankings[order] = np.arange(1, len(scores) + 1)
    return rankings


def _normalize_weights(weights) -> np.ndarray:
    weights = np.asarray(weights, dtype=float)
    total = weights.sum()
    if total <= 0:
        raise ValueError("Criterion weights must have a positive sum")
    return weights / total


def _is_benefit(criterion_types: List[CriterionType]) -> np.ndarray:
    return np.array([t == CriterionType.BENEFIT for t in criterion_types])


# =============================================================================
# NORMALIZATION
# =============================================================================

NEUTRAL_SCORE = 0.5


def normalize_minmax(
    matrix: np.ndarray,
    criterion_types: List[CriterionType],
    neutral: float = NEUTRAL_SCORE
) -> np.ndarray:
    """
    Rescale every criterion column to [0, 1], 1 being the most desirable value.

    Benefit columns map min -> 0 and max -> 1; cost columns are flipped so the
    cheapest (or cleanest) strategy gets 1.

    Args:
        matrix: Raw strategy metrics, one row per strategy
        criterion_types: Direction of each column
        neutral: Value every strategy gets on a column where all values are equal

    Returns:
        Array of the same shape as matrix
    """
    matrix = np.asarray(matrix, dtype=float)
    lo = matrix.min(axis=0)
    span = matrix.max(axis=0) - lo
    flat = span < 1e-10

    scaled = (matrix - lo) / np.where(flat, 1.0, span)
    scaled = np.where(_is_benefit(criterion_types), scaled, 1.0 - scaled)
    scaled[:, flat] = neutral
    return scaled


def normalize_vector(matrix: np.ndarray) -> np.ndarray:
    """Divide each column by its Euclidean norm (all-zero columns stay zero)."""
    matrix = np.asarray(matrix, dtype=float)
    norms = np.linalg.norm(matrix, axis=0)
    return matrix / np.where(norms < 1e-10, 1.0, norms)


# =============================================================================
# WEIGHTED SUM
# =============================================================================

def wsm(
    matrix: np.ndarray,
    weights: np.ndarray,
    criterion_types: List[CriterionType]
) -> MCDMResult:
    """
    Composite score = weighted sum of min-max normalised criteria.

    Compensatory: a cheap strategy can make up for weak risk reduction.

    Args:
        matrix: Raw strategy metrics (strategies × criteria)
        weights: Criterion weights, renormalised to sum to 1
        criterion_types: Direction of each criterion

    Example:
        >>> matrix = np.array([[120000, 0.8, 900], [95000, 0.6, 1400]])
        >>> types = [CriterionType.COST, CriterionType.BENEFIT, CriterionType.COST]
        >>> wsm(matrix, [0.6, 0.2, 0.2], types).scores
        array([0.4, 0.6])
    """
    weights = _normalize_weights(weights)
    scores = normalize_minmax(matrix, criterion_types) @ weights
    return MCDMResult(method="WSM", scores=scores, rankings=stable_rankings(scores))


# =============================================================================
# TOPSIS
# =============================================================================

def topsis(
    matrix: np.ndarray,
    weights: np.ndarray,
    criterion_types: List[CriterionType]
) -> MCDMResult:
    """
    Score each strategy by its closeness to the ideal point.

    The ideal point takes the best observed value of every weighted,
    vector-normalised criterion and the anti-ideal the worst; the score is
    d(anti-ideal) / (d(ideal) + d(anti-ideal)). When all strategies coincide
    both distances are zero and every score is 0.

    Returns:
        MCDMResult with closeness coefficients in [0, 1]
    """
    weights = _normalize_weights(weights)
    weighted = normalize_vector(matrix) * weights
    benefit = _is_benefit(criterion_types)

    col_max, col_min = weighted.max(axis=0), weighted.min(axis=0)
    ideal = np.where(benefit, col_max, col_min)
    anti_ideal = np.where(benefit, col_min, col_max)

    to_ideal = np.linalg.norm(weighted - ideal, axis=1)
    to_anti = np.linalg.norm(weighted - anti_ideal, axis=1)
    scores = to_anti / np.maximum(to_ideal + to_anti, 1e-10)
    return MCDMResult(method="TOPSIS", scores=scores, rankings=stable_rankings(scores))


# =============================================================================
# DISPATCH
# =============================================================================

METHODS = {
    "weighted-multi-objective": wsm,
    "topsis": topsis,
}


def rank_alternatives(
    matrix: np.ndarray,
    weights: np.ndarray,
    criterion_types: List[CriterionType],
    method: str = "weighted-multi-objective"
) -> MCDMResult:
    """Rank with a method named by its optimizationMethod string."""
    if method not in METHODS:
        raise ValueError(f"Unknown optimization method: {method!r} (expected one of {sorted(METHODS)})")
    return METHODS[method](matrix, weights, criterion_types)


def run_all_methods(
    matrix: np.ndarray,
    weights: np.ndarray,
    criterion_types: List[CriterionType]
) -> Dict[str, MCDMResult]:
    return {name: func(matrix, weights, criterion_types) for name, func in METHODS.items()}


def compare_rankings(results: Dict[str, MCDMResult], strategy_names: List[str]) -> None:
    """Print each strategy's rank under every method side by side."""
    width = 30 + 26 * len(results)
    print("\n" + "=" * width)
    print("STRATEGY RANKS BY METHOD")
    print("=" * width)
    print(f"{'Strategy':<30}" + "".join(f"{name:>26}" for name in results))
    print("-" * width)

    for i, name in enumerate(strategy_names):
        print(f"{name[:29]:<30}" + "".join(f"{int(r.rankings[i]):>26}" for r in results.values()))

    print("-" * width)
    for name, result in results.items():
        top = result.get_best()
        print(f"  {name}: {strategy_names[top]} ({result.scores[top]:.3f})")


if __name__ == "__main__":
    # cost ($), risk reduction (0-1), emissions (kg CO2e)
    matrix = np.array([
        [120000, 0.80, 900],
        [ 95000, 0.62, 1400],
        [150000, 0.90, 700],
        [ 80000, 0.45, 1100],
        [110000, 0.70, 600],
    ])
    names = ["Alternative Supplier", "Buffer Stock", "Dual Sourcing", "Expedite", "Local Sourcing"]
    types = [CriterionType.COST, CriterionType.BENEFIT, CriterionType.COST]

    for label, weights in {"Balanced": [1, 1, 1], "Cost-first": [0.6, 0.2, 0.2]}.items():
        print(f"\n\n{label} weights {weights}")
        compare_rankings(run_all_methods(matrix, weights, types), names)
