import numpy as np
import pytest

from errors import ValidationError
from impact_simulator import (
    ImpactSimulator,
    build_decision_tree,
    compute_confidence,
    sustainability_score,
)
from models import ImpactAnalysis, SustainabilityImpact


def test_means_stay_within_random_factor_band(scenario, facilities, rng):
    outcome = ImpactSimulator(rng).simulate(scenario, facilities, iterations=500)
    # capacity*utilisation = 2100, cost factor 4.0 over 2 days
    assert 0.7 * 16800 <= outcome.impacts.cost_impact <= 1.3 * 16800
    assert 0.7 * 144 <= outcome.impacts.delivery_time_impact <= 1.3 * 144
    assert 0.7 * 4800 <= outcome.impacts.inventory_impact <= 1.3 * 4800
    assert outcome.impacts.sustainability_impact is None


def test_metrics_share_one_factor_per_iteration(scenario, facilities, rng):
    samples = ImpactSimulator(rng).sample_impacts(scenario, facilities, 50)
    np.testing.assert_allclose(samples["cost"] / 16800, samples["delivery_time"] / 144)
    np.testing.assert_allclose(samples["inventory"] / 4800, samples["delivery_time"] / 144)


def test_same_seed_reproduces_run(scenario, facilities):
    first = ImpactSimulator(np.random.default_rng(7)).simulate(scenario, facilities, 200, True)
    second = ImpactSimulator(np.random.default_rng(7)).simulate(scenario, facilities, 200, True)
    assert first.impacts == second.impacts


def test_no_facilities_gives_zero_cost_and_inventory(scenario, rng):
    outcome = ImpactSimulator(rng).simulate(scenario, [], iterations=10, include_sustainability=True)
    assert outcome.impacts.cost_impact == 0
    assert outcome.impacts.inventory_impact == 0
    assert outcome.impacts.delivery_time_impact > 0
    assert outcome.impacts.sustainability_impact.emissions_by_route == {}
    assert outcome.impacts.sustainability_impact.sustainability_score == 100


def test_sustainability_block(scenario, facilities, rng):
    outcome = ImpactSimulator(rng).simulate(scenario, facilities, iterations=300, include_sustainability=True)
    sustainability = outcome.impacts.sustainability_impact
    assert 0.7 * 3000 <= sustainability.carbon_footprint <= 1.3 * 3000
    assert set(sustainability.emissions_by_route) == {"route-f1", "route-f2"}
    assert all(200 <= v <= 500 for v in sustainability.emissions_by_route.values())
    assert 0 <= sustainability.sustainability_score <= 100
    assert outcome.confidence == pytest.approx(0.9)


@pytest.mark.parametrize("iterations", [0, -3, 2.5, True])
def test_invalid_iterations_rejected(scenario, facilities, iterations):
    with pytest.raises(ValidationError) as exc_info:
        ImpactSimulator().simulate(scenario, facilities, iterations=iterations)
    assert exc_info.value.field == "simulationIterations"


def test_single_iteration_is_allowed(scenario, facilities, rng):
    outcome = ImpactSimulator(rng).simulate(scenario, facilities, iterations=1)
    assert outcome.iterations == 1
    assert outcome.statistics["cost"].std == 0


def test_statistics_bracket_the_mean(scenario, facilities, rng):
    outcome = ImpactSimulator(rng).simulate(scenario, facilities, iterations=1000)
    for stats in outcome.statistics.values():
        assert stats.p5 <= stats.mean <= stats.p95
    assert outcome.statistics["cost"].mean == outcome.impacts.cost_impact


@pytest.mark.parametrize("footprint, expected", [
    (0, 100), (25000, 75), (100000, 0), (250000, 0),
])
def test_sustainability_score(footprint, expected):
    assert sustainability_score(footprint) == expected


def test_confidence_depends_on_sustainability(impacts):
    assert compute_confidence(impacts) == pytest.approx(0.9)
    assert compute_confidence(ImpactAnalysis(1.0, 1.0, 1.0)) == pytest.approx(0.8)


def test_decision_tree_shape_without_sustainability(scenario, facilities):
    tree = build_decision_tree(scenario, ImpactAnalysis(12000.0, 144.0, 4800.0), facilities)
    assert len(tree.nodes) == 6
    assert len(tree.edges) == 5
    assert tree.is_valid()
    assert tree.get_node("root").label == "SUPPLIER_FAILURE Disruption"
    assert tree.get_node("severity").label == "Severity: HIGH"
    assert tree.get_node("affected-nodes").label == "2 Nodes Affected"
    assert tree.get_node("cost-impact").label == "Cost Impact: $12,000"
    assert tree.get_node("time-impact").label == "Delivery Delay: 144 hours"
    assert [e.label for e in tree.edges[:2]] == ["Assess Severity", "Identify Affected Nodes"]


def test_decision_tree_shape_with_sustainability(scenario, facilities, impacts):
    tree = build_decision_tree(scenario, impacts, facilities)
    assert len(tree.nodes) == 7
    assert len(tree.edges) == 6
    assert tree.get_node("sustainability-impact").label == "Carbon Footprint: 3000 kg CO2"
    assert sorted(tree.children("affected-nodes")) == [
        "cost-impact", "inventory-impact", "sustainability-impact", "time-impact"]
    assert all(n.confidence is not None for n in tree.outcomes())


def test_summary_mentions_location_and_figures(scenario, facilities, rng):
    outcome = ImpactSimulator(rng).simulate(scenario, facilities, iterations=100, include_sustainability=True)
    summary = outcome.summary
    assert summary.startswith("A high severity supplier failure at Shanghai, China")
    assert "sustainability score of" in summary
    assert summary.endswith("Immediate mitigation actions are recommended to minimize these impacts.")


def test_summary_omits_environment_without_sustainability(scenario, facilities, rng):
    outcome = ImpactSimulator(rng).simulate(scenario, facilities, iterations=100)
    assert "CO2" not in outcome.summary
    assert outcome.confidence == pytest.approx(0.8)


def test_sustainability_impact_fixture_is_scored(impacts):
    assert isinstance(impacts.sustainability_impact, SustainabilityImpact)
    assert sustainability_score(impacts.sustainability_impact.carbon_footprint) == 97
