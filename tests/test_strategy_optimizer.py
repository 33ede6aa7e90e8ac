import logging

import numpy as np
import pytest

from disruptions import DisruptionType, Severity
from errors import ValidationError
from models import ImpactAnalysis, MitigationStrategy
from preferences import UserPreferences
from strategy_optimizer import (
    StrategyOptimizer,
    _ensure_distinct,
    build_tradeoff_data,
    decision_matrix,
    instantiate_strategy,
)
from templates import StrategyTemplate


@pytest.fixture
def cheap_vs_safe():
    return {
        DisruptionType.SUPPLIER_FAILURE: [
            StrategyTemplate("Cheap", "Low cost, low protection", 0.5, 0.3, 1.0, 0.2, ["Exposure"]),
            StrategyTemplate("Safe", "High cost, high protection", 2.0, 0.9, 1.0, 0.5, ["Expense"]),
        ]
    }


def test_top_three_sorted_by_score(scenario, impacts):
    result = StrategyOptimizer().optimize(scenario, impacts)
    assert len(result.strategies) == 3
    assert result.scores == sorted(result.scores, reverse=True)
    assert len(result.candidates) == 5
    assert result.method == "weighted-multi-objective"
    assert not result.constraints_relaxed


def test_candidates_have_distinct_metric_triples(scenario, impacts):
    candidates = StrategyOptimizer().generate_candidates(scenario, impacts)
    assert len({c.metrics() for c in candidates}) == len(candidates)
    assert all(c.strategy_id.startswith("strategy-") for c in candidates)
    assert all(0.1 <= c.risk_reduction <= 1.0 for c in candidates)


def test_every_disruption_type_yields_strategies(scenario, impacts):
    optimizer = StrategyOptimizer(method="topsis")
    for disruption_type in DisruptionType:
        scenario.type = disruption_type
        result = optimizer.optimize(scenario, impacts)
        assert len(result.strategies) == 3
        assert result.scores == sorted(result.scores, reverse=True)


def test_preferences_change_the_ordering(scenario, impacts, cheap_vs_safe):
    optimizer = StrategyOptimizer(template_library=cheap_vs_safe)
    by_cost = optimizer.optimize(scenario, impacts, UserPreferences(prioritize_cost=True))
    by_risk = optimizer.optimize(scenario, impacts, UserPreferences(prioritize_risk=True))
    assert [s.name for s in by_cost.strategies] == ["Cheap", "Safe"]
    assert [s.name for s in by_risk.strategies] == ["Safe", "Cheap"]
    np.testing.assert_allclose(by_cost.scores, [0.6, 0.4])
    np.testing.assert_allclose(by_risk.scores, [0.8, 0.2])


def test_builtin_library_reorders_with_priority(scenario, impacts):
    scenario.type = DisruptionType.NATURAL_DISASTER
    optimizer = StrategyOptimizer()
    by_cost = optimizer.optimize(scenario, impacts, UserPreferences(prioritize_cost=True))
    by_risk = optimizer.optimize(scenario, impacts, UserPreferences(prioritize_risk=True))
    assert [s.name for s in by_cost.strategies] == [
        "Activate Backup Suppliers", "Negotiate Extended Lead Times", "Reroute Through Alternative Logistics"]
    assert [s.name for s in by_risk.strategies] == [
        "Activate Backup Suppliers", "Reroute Through Alternative Logistics", "Negotiate Extended Lead Times"]


def test_hard_limits_remove_candidates(scenario, impacts, cheap_vs_safe):
    optimizer = StrategyOptimizer(template_library=cheap_vs_safe)
    result = optimizer.optimize(scenario, impacts, UserPreferences(max_cost_impact=100000))
    assert [s.name for s in result.strategies] == ["Cheap"]
    assert not result.constraints_relaxed


def test_unsatisfiable_limits_are_relaxed(scenario, impacts, cheap_vs_safe, caplog):
    optimizer = StrategyOptimizer(template_library=cheap_vs_safe)
    with caplog.at_level(logging.WARNING):
        result = optimizer.optimize(scenario, impacts, UserPreferences(min_risk_reduction=0.95))
    assert len(result.strategies) == 2
    assert result.constraints_relaxed
    assert "violate the preference constraints" in caplog.text


def test_tradeoffs_follow_ranked_strategies(scenario, impacts):
    result = StrategyOptimizer().optimize(scenario, impacts)
    ids = [s.strategy_id for s in result.strategies]
    for key in ("costVsRisk", "costVsSustainability", "riskVsSustainability"):
        assert [p["strategyId"] for p in result.tradeoffs[key]] == ids
    assert result.tradeoffs["costVsRisk"][0]["cost"] == result.strategies[0].cost_impact


def test_missing_impacts_rejected(scenario):
    with pytest.raises(ValidationError) as exc_info:
        StrategyOptimizer().optimize(scenario, None)
    assert exc_info.value.field == "impacts"


def test_empty_library_gives_empty_result(scenario, impacts):
    result = StrategyOptimizer(template_library={}).optimize(scenario, impacts)
    assert result.strategies == []
    assert result.tradeoffs["costVsRisk"] == []


def test_top_n_must_be_positive():
    with pytest.raises(ValueError):
        StrategyOptimizer(top_n=0)


def test_instantiate_scales_by_impact_and_severity(impacts):
    template = StrategyTemplate("T", "d", 1.0, 0.8, 0.5, 0.25)
    strategy = instantiate_strategy(template, 1, impacts, 1.5, "s-1")
    assert strategy.cost_impact == pytest.approx(120000 * 1.5 * 1.15)
    assert strategy.risk_reduction == pytest.approx(0.8 * 0.92)
    assert strategy.sustainability_impact == pytest.approx(3000 * 0.5 * 1.5 * 0.88)
    assert strategy.implementation_time == pytest.approx(144 * 0.25 * 1.5)


def test_instantiate_without_sustainability_has_zero_footprint():
    template = StrategyTemplate("T", "d", 1.0, 0.05, 0.5, 0.25)
    strategy = instantiate_strategy(template, 0, ImpactAnalysis(10.0, 1.0, 1.0), 1.0, "s-0")
    assert strategy.sustainability_impact == 0
    assert strategy.risk_reduction == 0.1


def test_ensure_distinct_nudges_duplicates():
    base = MitigationStrategy("a", "A", "", 100.0, 0.5, 10.0, 1.0)
    twin = MitigationStrategy("b", "B", "", 100.0, 0.5, 10.0, 1.0)
    first, second = _ensure_distinct([base, twin])
    assert first.metrics() == base.metrics()
    assert second.risk_reduction == pytest.approx(0.4999)


def test_ensure_distinct_terminates_at_risk_floor():
    clones = [MitigationStrategy(f"s-{i}", "S", "", 100.0, 0.1, 10.0, 1.0) for i in range(4)]
    distinct = _ensure_distinct(clones)
    assert len({s.metrics() for s in distinct}) == 4
    np.testing.assert_allclose([s.risk_reduction for s in distinct], [0.1, 0.1001, 0.1002, 0.1003])


def test_decision_matrix_columns():
    strategies = [MitigationStrategy("a", "A", "", 1.0, 0.2, 3.0, 0.0)]
    np.testing.assert_array_equal(decision_matrix(strategies), [[1.0, 0.2, 3.0]])
    assert build_tradeoff_data(strategies)["riskVsSustainability"] == [
        {"risk": 0.2, "sustainability": 3.0, "strategyId": "a"}]


def test_critical_severity_raises_costs(scenario, impacts):
    optimizer = StrategyOptimizer()
    high = optimizer.generate_candidates(scenario, impacts)
    scenario.parameters.severity = Severity.CRITICAL
    critical = optimizer.generate_candidates(scenario, impacts)
    assert all(c.cost_impact > h.cost_impact for c, h in zip(critical, high))
