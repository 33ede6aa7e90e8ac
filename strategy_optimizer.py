# strategy_optimizer.py
"""
Strategy Optimizer

Builds candidate mitigation strategies from the template library and ranks
them under the user's preference weights:
1. Instantiate one candidate per template, scaled by the simulated impact,
   the severity factor and an index-based differentiation term
2. Drop candidates violating the user's hard limits (if any survive)
3. Score with min-max normalisation + weighted sum (or TOPSIS)
4. Return the top N plus pairwise trade-off points for scatter charts
"""

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from disruptions import SEVERITY_FACTORS
from errors import ValidationError
from mcdm import MCDMResult, rank_alternatives
from models import ImpactAnalysis, MitigationStrategy, Scenario
from preferences import CRITERION_TYPES, UserPreferences, preference_weights
from templates import StrategyTemplate, get_templates

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 3
DEFAULT_METHOD = "weighted-multi-objective"

COST_STEP = 0.15
RISK_STEP = 0.08
SUSTAINABILITY_STEP = 0.12
RISK_BOUNDS = (0.1, 1.0)
DISTINCT_NUDGE = 1e-4


@dataclass
class OptimizationResult:
    """Ranked strategies and everything needed to explain the ranking."""
    strategies: List[MitigationStrategy]
    scores: List[float]
    tradeoffs: Dict[str, List[Dict]]
    method: str
    weights: np.ndarray
    candidates: List[MitigationStrategy] = field(default_factory=list)
    constraints_relaxed: bool = False


def instantiate_strategy(
    template: StrategyTemplate,
    index: int,
    impacts: ImpactAnalysis,
    severity_factor: float,
    strategy_id: str
) -> MitigationStrategy:
    """
    Scale a template into a concrete candidate.

    The index terms keep candidates from sharing a metric triple:
    cost grows 15% per index, risk reduction falls 8% per index, and
    sustainability alternates above and below the template value.
    """
    footprint = (impacts.sustainability_impact.carbon_footprint
                 if impacts.sustainability_impact is not None else 0.0)

    cost = impacts.cost_impact * template.cost_multiplier * severity_factor * (1 + index * COST_STEP)
    risk = template.risk_reduction_multiplier * (1 - index * RISK_STEP)
    risk = min(RISK_BOUNDS[1], max(RISK_BOUNDS[0], risk))
    signed = index if index % 2 == 0 else -index
    sustainability = (footprint * template.sustainability_multiplier * severity_factor
                      * abs(1 + signed * SUSTAINABILITY_STEP))
    implementation_time = (impacts.delivery_time_impact * template.implementation_time_multiplier
                           * severity_factor)

    return MitigationStrategy(
        strategy_id=strategy_id,
        name=template.name,
        description=template.description,
        cost_impact=float(cost),
        risk_reduction=float(risk),
        sustainability_impact=float(sustainability),
        implementation_time=float(implementation_time),
        tradeoffs=list(template.tradeoffs),
    )


def _ensure_distinct(candidates: List[MitigationStrategy]) -> List[MitigationStrategy]:
    """
    Nudge risk reduction of any candidate whose metric triple repeats an earlier one.

    The k-th retry moves k nudges below the original value, or above it once
    that would cross the lower risk bound, so every retry tries a new value.
    """
    seen = set()
    distinct = []
    for candidate in candidates:
        original = candidate.risk_reduction
        k = 0
        while candidate.metrics() in seen:
            k += 1
            risk = original - k * DISTINCT_NUDGE
            if risk < RISK_BOUNDS[0]:
                risk = original + k * DISTINCT_NUDGE
            candidate = replace(candidate, risk_reduction=risk)
        seen.add(candidate.metrics())
        distinct.append(candidate)
    return distinct


def build_tradeoff_data(strategies: List[MitigationStrategy]) -> Dict[str, List[Dict]]:
    """Three parallel point lists, one point per ranked strategy."""
    return {
        "costVsRisk": [
            {"cost": s.cost_impact, "risk": s.risk_reduction, "strategyId": s.strategy_id}
            for s in strategies
        ],
        "costVsSustainability": [
            {"cost": s.cost_impact, "sustainability": s.sustainability_impact, "strategyId": s.strategy_id}
            for s in strategies
        ],
        "riskVsSustainability": [
            {"risk": s.risk_reduction, "sustainability": s.sustainability_impact, "strategyId": s.strategy_id}
            for s in strategies
        ],
    }


def decision_matrix(strategies: List[MitigationStrategy]) -> np.ndarray:
    """Rows are strategies, columns are (cost, risk reduction, sustainability)."""
    return np.array([s.metrics() for s in strategies], dtype=float)


class StrategyOptimizer:
    """
    Generates and ranks mitigation strategies.

    Args:
        top_n: Number of strategies returned
        method: "weighted-multi-objective" or "topsis"
        template_library: Catalog override (defaults to the built-in one)
        log: Logger or LoggerAdapter carrying the request correlation id
    """

    def __init__(
        self,
        top_n: int = DEFAULT_TOP_N,
        method: str = DEFAULT_METHOD,
        template_library=None,
        log: Union[logging.Logger, logging.LoggerAdapter] = logger
    ):
        if top_n < 1:
            raise ValueError("top_n must be >= 1")
        self.top_n = top_n
        self.method = method
        self.template_library = template_library
        self.log = log

    def generate_candidates(self, scenario: Scenario, impacts: ImpactAnalysis) -> List[MitigationStrategy]:
        templates = get_templates(scenario.type, self.template_library)
        severity_factor = SEVERITY_FACTORS[scenario.parameters.severity]
        stamp = int(time.time() * 1000)

        candidates = [
            instantiate_strategy(tpl, i, impacts, severity_factor, f"strategy-{stamp}-{i}")
            for i, tpl in enumerate(templates)
        ]
        return _ensure_distinct(candidates)

    def apply_constraints(
        self,
        candidates: List[MitigationStrategy],
        preferences: UserPreferences
    ) -> Tuple[List[MitigationStrategy], bool]:
        """
        Filter by the user's hard limits.

        Returns:
            (surviving candidates, relaxed) where relaxed is True when every
            candidate violated a limit and the limits were ignored
        """
        if not preferences.has_constraints():
            return candidates, False
        admitted = [c for c in candidates if preferences.admits(*c.metrics())]
        if not admitted:
            self.log.warning(f"All {len(candidates)} candidates violate the preference constraints, "
                             f"ranking without them")
            return candidates, True
        self.log.debug(f"Constraints kept {len(admitted)} of {len(candidates)} candidates")
        return admitted, False

    def rank(
        self,
        candidates: List[MitigationStrategy],
        preferences: Optional[UserPreferences] = None
    ) -> MCDMResult:
        weights = preference_weights(preferences)
        return rank_alternatives(decision_matrix(candidates), weights, CRITERION_TYPES, self.method)

    def optimize(
        self,
        scenario: Scenario,
        impacts: Optional[ImpactAnalysis],
        preferences: Optional[UserPreferences] = None
    ) -> OptimizationResult:
        """
        Produce the top-N strategies for a scenario.

        Args:
            scenario: Scenario the impacts belong to
            impacts: Simulated impact (required)
            preferences: Ranking bias and hard limits (None = no preference)

        Returns:
            OptimizationResult, strategies sorted by non-increasing score

        Raises:
            ValidationError: if impacts is missing
        """
        if impacts is None:
            raise ValidationError("impacts", "impacts is required", missing=True)
        preferences = preferences or UserPreferences()

        candidates = self.generate_candidates(scenario, impacts)
        if not candidates:
            self.log.warning(f"No strategy templates for {scenario.type.value}")
            return OptimizationResult([], [], build_tradeoff_data([]), self.method,
                                      preference_weights(preferences))

        pool, relaxed = self.apply_constraints(candidates, preferences)
        result = self.rank(pool, preferences)

        order = result.get_ranking_order()[:self.top_n]
        ranked = [pool[i] for i in order]
        scores = [float(result.scores[i]) for i in order]

        self.log.info(
            f"Ranked {len(pool)} candidates with {self.method}; "
            f"top: {ranked[0].name} ({scores[0]:.3f})"
        )
        return OptimizationResult(
            strategies=ranked,
            scores=scores,
            tradeoffs=build_tradeoff_data(ranked),
            method=self.method,
            weights=preference_weights(preferences),
            candidates=candidates,
            constraints_relaxed=relaxed,
        )


if __name__ == "__main__":
    from disruptions import DisruptionType, Severity
    from models import Location, ScenarioParameters, SustainabilityImpact
    from preferences import PREFERENCE_PROFILES

    scenario = Scenario(
        type=DisruptionType.NATURAL_DISASTER,
        parameters=ScenarioParameters(Location(35.68, 139.69, city="Tokyo", country="Japan"),
                                      Severity.HIGH, 72, ["f1", "f2"]),
        created_by="demo",
    )
    impacts = ImpactAnalysis(150000.0, 180.0, 3000.0, SustainabilityImpact(4500.0))

    optimizer = StrategyOptimizer()
    for profile, prefs in PREFERENCE_PROFILES.items():
        result = optimizer.optimize(scenario, impacts, prefs)
        print(f"\n{profile} (weights {np.round(result.weights, 3)})")
        print("-" * 70)
        for rank, (s, score) in enumerate(zip(result.strategies, result.scores), 1):
            print(f"  {rank}. {s.name:<40} score={score:.3f} cost=${s.cost_impact:,.0f} "
                  f"risk={s.risk_reduction:.2f}")
