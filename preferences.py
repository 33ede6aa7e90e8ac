"""
User Preference Weights

Maps a user's trade-off preferences onto criterion weights for strategy
ranking. Each criterion starts at a base weight of 0.2; every criterion the
user prioritizes is raised to 0.6; the triple is then renormalized to sum to 1.

Optional hard constraints (maximum cost, minimum risk reduction, maximum
emissions) remove candidates before ranking.
"""

import numpy as np
from typing import Any, Dict, Optional
from dataclasses import dataclass

from errors import ValidationError
from mcdm import CriterionType


# Criterion order: [Cost, Risk reduction, Sustainability impact]
CRITERIA_NAMES = ["Cost", "RiskReduction", "Sustainability"]
CRITERION_TYPES = [CriterionType.COST, CriterionType.BENEFIT, CriterionType.COST]

BASE_WEIGHT = 0.2
PRIORITY_WEIGHT = 0.6


@dataclass(frozen=True)
class UserPreferences:
    """Ranking bias and optional hard limits for one optimization request."""
    prioritize_cost: bool = False
    prioritize_risk: bool = False
    prioritize_sustainability: bool = False
    max_cost_impact: Optional[float] = None
    min_risk_reduction: Optional[float] = None
    max_sustainability_impact: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "UserPreferences":
        """Parse the userPreferences request member (absent means no preference)."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError("userPreferences", "userPreferences must be an object")

        flags = {}
        for key, attr in (("prioritizeCost", "prioritize_cost"),
                          ("prioritizeRisk", "prioritize_risk"),
                          ("prioritizeSustainability", "prioritize_sustainability")):
            value = data.get(key, False)
            if not isinstance(value, bool):
                raise ValidationError(f"userPreferences.{key}", f"{key} must be a boolean")
            flags[attr] = value

        limits = {}
        for key, attr in (("maxCostImpact", "max_cost_impact"),
                          ("minRiskReduction", "min_risk_reduction"),
                          ("maxSustainabilityImpact", "max_sustainability_impact")):
            value = data.get(key)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                raise ValidationError(f"userPreferences.{key}", f"{key} must be a number")
            limits[attr] = value

        return cls(**flags, **limits)

    def has_constraints(self) -> bool:
        return any(v is not None for v in (self.max_cost_impact,
                                           self.min_risk_reduction,
                                           self.max_sustainability_impact))

    def admits(self, cost: float, risk: float, sustainability: float) -> bool:
        """True if a candidate's metrics satisfy every hard limit."""
        if self.max_cost_impact is not None and cost > self.max_cost_impact:
            return False
        if self.min_risk_reduction is not None and risk < self.min_risk_reduction:
            return False
        if self.max_sustainability_impact is not None and sustainability > self.max_sustainability_impact:
            return False
        return True


def preference_weights(preferences: Optional[UserPreferences] = None) -> np.ndarray:
    """
    Criterion weights (cost, risk, sustainability) summing to 1.

    Example:
        >>> preference_weights(UserPreferences(prioritize_cost=True))
        array([0.6, 0.2, 0.2])
    """
    preferences = preferences or UserPreferences()
    raw = np.array([
        PRIORITY_WEIGHT if preferences.prioritize_cost else BASE_WEIGHT,
        PRIORITY_WEIGHT if preferences.prioritize_risk else BASE_WEIGHT,
        PRIORITY_WEIGHT if preferences.prioritize_sustainability else BASE_WEIGHT,
    ])
    return raw / raw.sum()


# =============================================================================
# PRESET PROFILES
# =============================================================================

PREFERENCE_PROFILES = {
    "Balanced": UserPreferences(),
    "Cost-focused": UserPreferences(prioritize_cost=True),
    "Risk-focused": UserPreferences(prioritize_risk=True),
    "Green": UserPreferences(prioritize_sustainability=True),
}


def print_preference_summary():
    """Print the weight triple of every preset profile."""
    print("\nPREFERENCE WEIGHT PROFILES")
    print("=" * 60)
    print(f"{'Profile':<15}" + "".join(f"{c:>15}" for c in CRITERIA_NAMES))
    print("-" * 60)
    for name, prefs in PREFERENCE_PROFILES.items():
        row = f"{name:<15}" + "".join(f"{w:>15.0%}" for w in preference_weights(prefs))
        print(row)


if __name__ == "__main__":
    print_preference_summary()
