"""
Visualization Module for Impact and Strategy Results

Generates:
1. Trade-off scatter (cost vs risk, cost vs sustainability, risk vs sustainability)
2. Monte Carlo distribution of each impact metric
3. Heatmap of strategy ranks by preference profile × ranking method
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from typing import Dict, List, Optional

from impact_simulator import SimulationStatistics
from mcdm import METHODS, rank_alternatives
from models import MitigationStrategy
from preferences import CRITERION_TYPES, PREFERENCE_PROFILES, preference_weights
from strategy_optimizer import decision_matrix


METRIC_LABELS = {
    "cost": "Cost Impact ($)",
    "delivery_time": "Delivery Delay (hours)",
    "inventory": "Inventory Impact (units)",
    "carbon": "Carbon Footprint (kg CO2e)",
}

TRADEOFF_PANELS = [
    ("costVsRisk", "cost", "risk", "Cost ($)", "Risk Reduction"),
    ("costVsSustainability", "cost", "sustainability", "Cost ($)", "Emissions (kg CO2e)"),
    ("riskVsSustainability", "risk", "sustainability", "Risk Reduction", "Emissions (kg CO2e)"),
]


# =============================================================================
# DATA GENERATION
# =============================================================================

def build_ranking_dataframe(candidates: List[MitigationStrategy]) -> pd.DataFrame:
    """Rank every candidate under every preference profile and method."""
    matrix = decision_matrix(candidates)
    rows = []

    for profile, prefs in PREFERENCE_PROFILES.items():
        weights = preference_weights(prefs)
        for method in METHODS:
            result = rank_alternatives(matrix, weights, CRITERION_TYPES, method)
            for i, candidate in enumerate(candidates):
                rows.append({
                    "Profile": profile,
                    "Method": method,
                    "Strategy": candidate.name,
                    "Score": float(result.scores[i]),
                    "Rank": int(result.rankings[i])
                })

    return pd.DataFrame(rows)


def tradeoff_dataframe(tradeoffs: Dict[str, List[Dict]], names: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """Flatten the trade-off dataset to one row per strategy."""
    names = names or {}
    rows = {}
    for points in tradeoffs.values():
        for point in points:
            row = rows.setdefault(point["strategyId"], {"strategyId": point["strategyId"]})
            row.update({k: v for k, v in point.items() if k != "strategyId"})
    df = pd.DataFrame(list(rows.values()))
    if not df.empty:
        df["Strategy"] = df["strategyId"].map(lambda sid: names.get(sid, sid))
    return df


# =============================================================================
# VISUALIZATION FUNCTIONS
# =============================================================================

def plot_tradeoffs(
    tradeoffs: Dict[str, List[Dict]],
    names: Optional[Dict[str, str]] = None,
    output_path: str = "tradeoffs.png"
):
    """
    Three scatter panels of the ranked strategies' pairwise trade-offs.

    Args:
        tradeoffs: costVsRisk / costVsSustainability / riskVsSustainability points
        names: Optional strategyId -> display name
        output_path: PNG destination
    """
    df = tradeoff_dataframe(tradeoffs, names)

    fig, axes = plt.subplots(1, 3, figsize=(18, 5))
    fig.suptitle("Mitigation Strategy Trade-offs", fontsize=14, fontweight='bold')

    for i, (ax, (_, x, y, xlabel, ylabel)) in enumerate(zip(axes, TRADEOFF_PANELS)):
        if not df.empty:
            sns.scatterplot(data=df, x=x, y=y, hue="Strategy", s=120, ax=ax, legend=(i == len(axes) - 1))
        ax.set_xlabel(xlabel)
        ax.set_ylabel(ylabel)
        ax.grid(True, alpha=0.3)

    if not df.empty and axes[-1].get_legend() is not None:
        axes[-1].legend(loc='center left', bbox_to_anchor=(1.02, 0.5), fontsize=8)

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()
    print(f"Saved: {output_path}")


def plot_impact_distributions(
    samples: Dict[str, np.ndarray],
    statistics: Optional[Dict[str, SimulationStatistics]] = None,
    output_path: str = "impact_distributions.png"
):
    """
    Histogram of each sampled metric with its mean and 5th/95th percentiles.
    """
    metrics = list(samples)
    fig, axes = plt.subplots(1, len(metrics), figsize=(5 * len(metrics), 4), squeeze=False)
    fig.suptitle("Monte Carlo Impact Distributions", fontsize=14, fontweight='bold')

    for ax, metric in zip(axes[0], metrics):
        sns.histplot(samples[metric], bins=30, color='#3498db', alpha=0.7, ax=ax)
        if statistics and metric in statistics:
            stats = statistics[metric]
            ax.axvline(stats.mean, color='black', linewidth=2, label='Mean')
            ax.axvline(stats.p5, color='red', linestyle='--', linewidth=1.5, label='P5 / P95')
            ax.axvline(stats.p95, color='red', linestyle='--', linewidth=1.5)
            ax.legend(fontsize=8)
        ax.set_title(METRIC_LABELS.get(metric, metric))
        ax.set_xlabel("")

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()
    print(f"Saved: {output_path}")


def plot_ranking_heatmap(df: pd.DataFrame, output_path: str = "ranking_heatmap.png"):
    """
    Heatmap showing each strategy's rank per preference profile, one panel per method.
    """
    methods = list(df["Method"].unique())
    n_strategies = df["Strategy"].nunique()

    fig, axes = plt.subplots(1, len(methods), figsize=(7 * len(methods), 5), squeeze=False)
    fig.suptitle("Strategy Rankings by Preference Profile", fontsize=14, fontweight='bold')

    for col, method in enumerate(methods):
        ax = axes[0, col]
        subset = df[df["Method"] == method]
        pivot = subset.pivot(index="Strategy", columns="Profile", values="Rank")
        pivot = pivot[[p for p in PREFERENCE_PROFILES if p in pivot.columns]]

        sns.heatmap(
            pivot,
            annot=True,
            fmt="d",
            cmap="RdYlGn_r",  # Red=bad (high rank), Green=good (low rank)
            vmin=1,
            vmax=n_strategies,
            ax=ax,
            cbar=col == len(methods) - 1
        )
        ax.set_title(method)
        ax.set_xlabel("Profile")
        ax.set_ylabel("Strategy" if col == 0 else "")

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()
    print(f"Saved: {output_path}")
