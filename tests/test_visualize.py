import numpy as np
import pytest

from impact_simulator import ImpactSimulator
from network_viz import layout_tree, plot_decision_tree
from strategy_optimizer import StrategyOptimizer
from visualize import (
    build_ranking_dataframe,
    plot_impact_distributions,
    plot_ranking_heatmap,
    plot_tradeoffs,
    tradeoff_dataframe,
)


@pytest.fixture
def optimization(scenario, impacts):
    return StrategyOptimizer().optimize(scenario, impacts)


def test_ranking_dataframe_covers_profiles_and_methods(optimization):
    df = build_ranking_dataframe(optimization.candidates)
    assert len(df) == 4 * 2 * 5
    assert set(df["Method"]) == {"weighted-multi-objective", "topsis"}
    for _, group in df.groupby(["Profile", "Method"]):
        assert sorted(group["Rank"]) == [1, 2, 3, 4, 5]


def test_tradeoff_dataframe_one_row_per_strategy(optimization):
    names = {s.strategy_id: s.name for s in optimization.strategies}
    df = tradeoff_dataframe(optimization.tradeoffs, names)
    assert len(df) == 3
    assert {"cost", "risk", "sustainability", "Strategy"} <= set(df.columns)
    assert list(df["Strategy"]) == [s.name for s in optimization.strategies]


def test_tradeoff_dataframe_empty():
    assert tradeoff_dataframe({"costVsRisk": []}).empty


def test_charts_are_written(optimization, scenario, facilities, tmp_path):
    names = {s.strategy_id: s.name for s in optimization.strategies}
    plot_tradeoffs(optimization.tradeoffs, names, str(tmp_path / "tradeoffs.png"))
    plot_ranking_heatmap(build_ranking_dataframe(optimization.candidates), str(tmp_path / "heatmap.png"))

    outcome = ImpactSimulator(np.random.default_rng(2)).simulate(
        scenario, facilities, iterations=200, include_sustainability=True)
    plot_impact_distributions(outcome.samples, outcome.statistics, str(tmp_path / "dist.png"))
    plot_decision_tree(outcome.decision_tree, str(tmp_path / "tree.png"))

    for name in ("tradeoffs.png", "heatmap.png", "dist.png", "tree.png"):
        assert (tmp_path / name).stat().st_size > 0


def test_tree_layout_layers(scenario, facilities, impacts):
    from impact_simulator import build_decision_tree

    positions = layout_tree(build_decision_tree(scenario, impacts, facilities))
    assert positions["root"][0] < positions["severity"][0] < positions["affected-nodes"][0]
    outcome_x = {positions[n][0] for n in ("cost-impact", "time-impact", "inventory-impact",
                                           "sustainability-impact")}
    assert len(outcome_x) == 1
    assert len(positions) == 7
