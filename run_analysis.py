"""
Full Analysis Pipeline

Runs Scenario -> Impact -> Strategy end to end for one disruption,
persists the ScenarioResult, then re-ranks the candidate strategies under
every preference profile and ranking method
(4 profiles × 2 methods = 8 rankings).
"""

import logging
import time
from datetime import datetime, timezone
import numpy as np
import pandas as pd
from typing import Dict, List, Optional
from dataclasses import dataclass

from config import get_config, setup_logging
from disruptions import DisruptionType, Severity
from impact_simulator import ImpactSimulator, SimulationOutcome
from mcdm import METHODS, rank_alternatives
from models import Facility, Location, MitigationStrategy, Scenario, ScenarioResult
from narrative import NarrativeService
from preferences import (
    CRITERION_TYPES,
    PREFERENCE_PROFILES,
    UserPreferences,
    preference_weights,
    print_preference_summary,
)
from repository import FacilityRepository, InMemoryStore, ScenarioRepository
from scenario_generator import ScenarioGenerator, ScenarioRequest
from strategy_optimizer import OptimizationResult, StrategyOptimizer, decision_matrix

logger = logging.getLogger(__name__)


# =============================================================================
# END-TO-END PIPELINE
# =============================================================================

@dataclass
class PipelineRun:
    """Everything one end-to-end run produced."""
    scenario: Scenario
    simulation: SimulationOutcome
    optimization: OptimizationResult
    result: ScenarioResult


def run_pipeline(
    request: ScenarioRequest,
    scenarios: ScenarioRepository,
    facilities: FacilityRepository,
    narrative_service: Optional[NarrativeService] = None,
    preferences: Optional[UserPreferences] = None,
    iterations: Optional[int] = None,
    include_sustainability: bool = True,
    method: Optional[str] = None,
    top_n: Optional[int] = None,
    rng: Optional[np.random.Generator] = None
) -> PipelineRun:
    """
    Generate, simulate and optimize one scenario, then persist the result.

    Args:
        request: Validated scenario request
        scenarios: Store for the scenario and its result
        facilities: Store holding the affected facility snapshots
        narrative_service: Optional enrichment backend
        preferences: Ranking preferences (None = no preference)
        iterations: Monte Carlo samples (default from config)
        include_sustainability: Estimate carbon footprint too
        method: Ranking method (default from config)
        top_n: Strategies returned (default from config)
        rng: Random source shared by all stages

    Returns:
        PipelineRun with the stored ScenarioResult
    """
    cfg = get_config()
    rng = rng if rng is not None else np.random.default_rng(cfg.simulation.seed)
    start = time.perf_counter()

    generator = ScenarioGenerator(narrative_service, repository=scenarios, rng=rng)
    scenario = generator.generate_from_request(request)

    snapshots = facilities.get_facilities_by_ids(scenario.parameters.affected_facilities)
    simulation = ImpactSimulator(rng=rng).simulate(
        scenario, snapshots,
        iterations=iterations or cfg.simulation.iterations,
        include_sustainability=include_sustainability,
    )

    optimizer = StrategyOptimizer(top_n=top_n or cfg.optimizer.top_n,
                                  method=method or cfg.optimizer.method)
    optimization = optimizer.optimize(scenario, simulation.impacts, preferences)

    result = ScenarioResult(
        scenario_id=scenario.scenario_id,
        timestamp=datetime.now(timezone.utc).isoformat(),
        impacts=simulation.impacts,
        strategies=optimization.strategies,
        confidence=simulation.confidence,
        execution_time=int((time.perf_counter() - start) * 1000),
        decision_tree=simulation.decision_tree,
        natural_language_summary=simulation.summary,
    )
    scenarios.save_scenario_result(result)
    logger.info(f"Pipeline completed for {scenario.scenario_id} in {result.execution_time} ms")

    return PipelineRun(scenario, simulation, optimization, result)


# =============================================================================
# PROFILE COMPARISON
# =============================================================================

@dataclass
class AnalysisResult:
    """Container for a single ranking run."""
    profile: str
    method: str
    scores: np.ndarray
    rankings: np.ndarray
    best_strategy: str
    best_score: float


def run_profile_comparison(
    candidates: List[MitigationStrategy],
    profiles: Dict[str, UserPreferences] = None
) -> List[AnalysisResult]:
    """
    Rank the same candidates under every profile × method.

    Returns:
        One AnalysisResult per combination
    """
    if profiles is None:
        profiles = PREFERENCE_PROFILES

    matrix = decision_matrix(candidates)
    results = []
    for profile, prefs in profiles.items():
        weights = preference_weights(prefs)
        for method in METHODS:
            result = rank_alternatives(matrix, weights, CRITERION_TYPES, method)
            best_idx = result.get_best()
            results.append(AnalysisResult(
                profile=profile,
                method=method,
                scores=result.scores,
                rankings=result.rankings,
                best_strategy=candidates[best_idx].name,
                best_score=float(result.scores[best_idx])
            ))
    return results


def results_to_dataframe(results: List[AnalysisResult], candidates: List[MitigationStrategy]) -> pd.DataFrame:
    """Convert results to a pandas DataFrame."""
    data = []
    for r in results:
        row = {
            "Profile": r.profile,
            "Method": r.method,
            "Best Strategy": r.best_strategy,
            "Best Score": r.best_score
        }
        for i, candidate in enumerate(candidates):
            row[f"Rank_{candidate.name}"] = int(r.rankings[i])
        data.append(row)

    return pd.DataFrame(data)


def print_impact_summary(run: PipelineRun) -> None:
    """Print the simulated impact with its Monte Carlo spread."""
    print("\n" + "=" * 80)
    print(f"IMPACT: {run.scenario.type.label.upper()} ({run.scenario.parameters.severity.value})")
    print("=" * 80)
    print(f"{'Metric':<18}{'Mean':>16}{'P5':>16}{'P95':>16}")
    print("-" * 66)
    for name, stats in run.simulation.statistics.items():
        print(f"{name:<18}{stats.mean:>16,.1f}{stats.p5:>16,.1f}{stats.p95:>16,.1f}")

    sustainability = run.simulation.impacts.sustainability_impact
    if sustainability is not None:
        print(f"\nSustainability score: {sustainability.sustainability_score}/100")
    print(f"Confidence: {run.simulation.confidence:.2f}")
    print(f"\n{run.simulation.summary}")


def print_strategy_table(run: PipelineRun) -> None:
    """Print the returned strategies in rank order."""
    print("\n" + "=" * 80)
    print(f"TOP STRATEGIES ({run.optimization.method})")
    print("=" * 80)
    header = f"{'#':<4}{'Strategy':<38}{'Score':>8}{'Cost ($)':>14}{'Risk':>7}{'CO2e':>9}"
    print(header)
    print("-" * 80)
    for rank, (s, score) in enumerate(zip(run.optimization.strategies, run.optimization.scores), 1):
        print(f"{rank:<4}{s.name[:37]:<38}{score:>8.3f}{s.cost_impact:>14,.0f}"
              f"{s.risk_reduction:>7.2f}{s.sustainability_impact:>9,.0f}")


def print_summary_table(results: List[AnalysisResult]) -> None:
    """Print summary showing best strategy for each combination."""
    print("\n" + "=" * 80)
    print("BEST STRATEGY BY PROFILE × METHOD")
    print("=" * 80)

    lookup = {(r.profile, r.method): r.best_strategy for r in results}
    profiles = list(dict.fromkeys(r.profile for r in results))

    header = f"{'Profile':<15}" + "".join(f"{m:>32}" for m in METHODS)
    print(header)
    print("-" * 80)
    for profile in profiles:
        row = f"{profile:<15}"
        for method in METHODS:
            row += f"{lookup[(profile, method)][:30]:>32}"
        print(row)


def analyze_method_agreement(results: List[AnalysisResult]) -> None:
    """Analyze where methods agree and disagree."""
    print("\n" + "=" * 80)
    print("METHOD AGREEMENT ANALYSIS")
    print("=" * 80)

    profiles = list(dict.fromkeys(r.profile for r in results))
    for profile in profiles:
        subset = [r for r in results if r.profile == profile]
        unique_bests = set(r.best_strategy for r in subset)
        agreement = "FULL AGREEMENT" if len(unique_bests) == 1 else "DISAGREEMENT"

        print(f"\n{profile}: {agreement}")
        for r in subset:
            print(f"  {r.method}: {r.best_strategy}")


# =============================================================================
# MAIN
# =============================================================================

DEMO_FACILITIES = [
    Facility("wh-shanghai-01", "WAREHOUSE", capacity=5000, current_inventory=3200, utilization_rate=0.82),
    Facility("fac-suzhou-02", "FACTORY", capacity=2500, current_inventory=900, utilization_rate=0.91),
    Facility("dc-ningbo-03", "DISTRIBUTION_CENTER", capacity=4000, current_inventory=2100),
]


def main(make_charts: bool = False):
    """Run the pipeline on a demo scenario and print all results."""
    setup_logging()
    print("SUPPLY CHAIN DISRUPTION ANALYSIS")
    print("=" * 80)

    store = InMemoryStore()
    scenarios, facilities = ScenarioRepository(store), FacilityRepository(store)
    for facility in DEMO_FACILITIES:
        facilities.put_facility(facility)

    request = ScenarioRequest(
        disruption_type=DisruptionType.NATURAL_DISASTER,
        location=Location(31.23, 121.47, address="Port of Shanghai", city="Shanghai", country="China"),
        severity=Severity.HIGH,
        duration=72,
        affected_facilities=[f.facility_id for f in DEMO_FACILITIES],
        user_id="analyst",
    )
    run = run_pipeline(request, scenarios, facilities, rng=np.random.default_rng(42))

    print_impact_summary(run)
    print_strategy_table(run)

    print_preference_summary()

    results = run_profile_comparison(run.optimization.candidates)
    print_summary_table(results)
    analyze_method_agreement(results)

    df = results_to_dataframe(results, run.optimization.candidates)
    print("\n\nRESULTS DATAFRAME:")
    print(df[["Profile", "Method", "Best Strategy", "Best Score"]].to_string())

    if make_charts:
        from network_viz import plot_decision_tree
        from visualize import build_ranking_dataframe, plot_impact_distributions, plot_ranking_heatmap, plot_tradeoffs

        names = {s.strategy_id: s.name for s in run.optimization.strategies}
        plot_tradeoffs(run.optimization.tradeoffs, names, "tradeoffs.png")
        plot_impact_distributions(run.simulation.samples, run.simulation.statistics, "impact_distributions.png")
        plot_ranking_heatmap(build_ranking_dataframe(run.optimization.candidates), "ranking_heatmap.png")
        plot_decision_tree(run.simulation.decision_tree, "decision_tree.png")

    return run


if __name__ == "__main__":
    run = main(make_charts=True)
