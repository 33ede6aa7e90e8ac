import numpy as np
import pytest

from models import MitigationStrategy
from sensitivity import (
    find_transitions,
    generate_sensitivity_report,
    plot_weight_sensitivity,
    rescale_weights,
    run_weight_sensitivity,
    scores_long_format,
)


@pytest.fixture
def candidates():
    return [
        MitigationStrategy("s-0", "Cheap", "", 100.0, 0.3, 45.0, 10.0),
        MitigationStrategy("s-1", "Safe", "", 300.0, 0.9, 40.0, 30.0),
    ]


def test_rescale_keeps_proportions():
    np.testing.assert_allclose(rescale_weights(np.array([0.6, 0.2, 0.2]), 0, 0.2), [0.2, 0.4, 0.4])
    np.testing.assert_allclose(rescale_weights(np.array([1.0, 0.0, 0.0]), 0, 0.4), [0.4, 0.3, 0.3])


def test_sensitivity_frame_columns(candidates):
    df = run_weight_sensitivity(candidates, criterion_idx=0, weight_range=[0.1, 0.3, 0.7, 0.9])
    assert list(df.columns) == ["cost_weight", "best_strategy",
                                "score_Cheap", "rank_Cheap", "score_Safe", "rank_Safe"]
    assert len(df) == 4
    assert list(df["best_strategy"]) == ["Safe", "Safe", "Cheap", "Cheap"]


def test_transition_detected(candidates):
    df = run_weight_sensitivity(candidates, criterion_idx=0, weight_range=[0.1, 0.3, 0.7, 0.9])
    assert find_transitions(df, "cost_weight") == [{"weight": 0.7, "from": "Safe", "to": "Cheap"}]


def test_default_weight_range(candidates):
    df = run_weight_sensitivity(candidates, criterion_idx=0)
    assert len(df) == 19
    assert df["cost_weight"].iloc[0] == 0.0
    assert df["cost_weight"].iloc[-1] == pytest.approx(0.9)


def test_risk_weight_never_flips_dominant_winner(candidates):
    df = run_weight_sensitivity(candidates, criterion_idx=1, weight_range=[0.1, 0.5, 0.9])
    assert set(df["best_strategy"]) == {"Safe"}
    assert find_transitions(df, "riskreduction_weight") == []


def test_plot_and_report_written(candidates, tmp_path):
    df = run_weight_sensitivity(candidates, criterion_idx=0, weight_range=[0.1, 0.3, 0.7, 0.9])
    png = tmp_path / "cost.png"
    transitions = plot_weight_sensitivity(df, "Cost", str(png))
    assert png.exists()

    report_path = tmp_path / "report.txt"
    report = generate_sensitivity_report({"Cost": transitions, "Sustainability": []}, str(report_path))
    assert report_path.read_text() == report
    assert "top strategy shifts from Safe to Cheap" in report
    assert "robust to sustainability weight" in report


def test_scores_long_format(candidates):
    df = run_weight_sensitivity(candidates, criterion_idx=2, weight_range=[0.2, 0.4])
    long_df = scores_long_format(df, "sustainability_weight")
    assert len(long_df) == 4
    assert set(long_df["Strategy"]) == {"Cheap", "Safe"}
