# disruptions.py
"""
Disruption Types, Severity Tables and Scenario Variations

Eight disruption types and four severity levels, with the multiplier tables
the simulator and optimizer scale their estimates by.

Variation transforms take a scenario request and return a modified copy:
1. Severity shift - move to a different severity level
2. Duration scaling - scale duration by a factor in [0.5, 1.5), floor of 1 hour
3. Facility shrink - keep ~70% of affected facilities (at least one)
4. Location jitter - move up to 1 degree in each axis, clamped to valid ranges

The random source is always passed in, never taken from module state.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List

import numpy as np


class DisruptionType(Enum):
    """Disruption scenario types."""
    NATURAL_DISASTER = "NATURAL_DISASTER"
    SUPPLIER_FAILURE = "SUPPLIER_FAILURE"
    TRANSPORTATION_DELAY = "TRANSPORTATION_DELAY"
    DEMAND_SPIKE = "DEMAND_SPIKE"
    QUALITY_ISSUE = "QUALITY_ISSUE"
    GEOPOLITICAL = "GEOPOLITICAL"
    CYBER_ATTACK = "CYBER_ATTACK"
    LABOR_SHORTAGE = "LABOR_SHORTAGE"

    @property
    def label(self) -> str:
        return self.value.lower().replace("_", " ")


class Severity(Enum):
    """Disruption severity, ordered LOW to CRITICAL."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# =============================================================================
# MULTIPLIER TABLES
# =============================================================================

# Scales cost/time/inventory impact in the Monte Carlo step
IMPACT_SEVERITY_MULTIPLIERS: Dict[Severity, float] = {
    Severity.LOW: 0.5,
    Severity.MEDIUM: 1.0,
    Severity.HIGH: 2.0,
    Severity.CRITICAL: 4.0,
}

# Scales carbon estimates and mitigation strategy metrics
SEVERITY_FACTORS: Dict[Severity, float] = {
    Severity.LOW: 0.5,
    Severity.MEDIUM: 1.0,
    Severity.HIGH: 1.5,
    Severity.CRITICAL: 2.0,
}


@dataclass(frozen=True)
class ImpactFactors:
    """Cost, time and inventory multipliers for one disruption type."""
    cost: float
    time: float
    inventory: float

    def scaled(self, factor: float) -> "ImpactFactors":
        return ImpactFactors(self.cost * factor, self.time * factor, self.inventory * factor)


TYPE_IMPACT_FACTORS: Dict[DisruptionType, ImpactFactors] = {
    DisruptionType.NATURAL_DISASTER: ImpactFactors(cost=3.0, time=2.5, inventory=2.0),
    DisruptionType.SUPPLIER_FAILURE: ImpactFactors(cost=2.0, time=1.5, inventory=3.0),
    DisruptionType.TRANSPORTATION_DELAY: ImpactFactors(cost=1.5, time=3.0, inventory=1.5),
    DisruptionType.DEMAND_SPIKE: ImpactFactors(cost=1.0, time=1.0, inventory=4.0),
    DisruptionType.QUALITY_ISSUE: ImpactFactors(cost=2.5, time=2.0, inventory=2.5),
    DisruptionType.GEOPOLITICAL: ImpactFactors(cost=3.5, time=3.0, inventory=2.0),
    DisruptionType.CYBER_ATTACK: ImpactFactors(cost=4.0, time=2.0, inventory=1.5),
    DisruptionType.LABOR_SHORTAGE: ImpactFactors(cost=2.0, time=2.5, inventory=2.0),
}


def get_base_impact_factors(disruption_type: DisruptionType, severity: Severity) -> ImpactFactors:
    """
    Combine the type triple with the severity multiplier.

    Example:
        >>> get_base_impact_factors(DisruptionType.SUPPLIER_FAILURE, Severity.HIGH)
        ImpactFactors(cost=4.0, time=3.0, inventory=6.0)
    """
    return TYPE_IMPACT_FACTORS[disruption_type].scaled(IMPACT_SEVERITY_MULTIPLIERS[severity])


# =============================================================================
# VARIATION TRANSFORMS
# =============================================================================

def vary_severity(request, rng: np.random.Generator):
    """Shift severity to a different level, chosen uniformly."""
    others = [s for s in Severity if s != request.severity]
    return replace(request, severity=others[int(rng.integers(len(others)))])


def vary_duration(request, rng: np.random.Generator):
    """Scale duration by a random factor in [0.5, 1.5), never below 1 hour."""
    factor = rng.uniform(0.5, 1.5)
    return replace(request, duration=max(1, math.floor(request.duration * factor)))


def vary_affected_facilities(request, rng: np.random.Generator):
    """Keep the first ~70% of affected facilities (at least one)."""
    facilities = list(request.affected_facilities)
    if len(facilities) > 1:
        keep = max(1, math.floor(len(facilities) * 0.7))
        facilities = facilities[:keep]
    return replace(request, affected_facilities=facilities)


def vary_location(request, rng: np.random.Generator):
    """Jitter latitude/longitude by up to one degree each, clamped."""
    loc = request.location
    latitude = min(90.0, max(-90.0, loc.latitude + rng.uniform(-1.0, 1.0)))
    longitude = min(180.0, max(-180.0, loc.longitude + rng.uniform(-1.0, 1.0)))
    return replace(request, location=replace(loc, latitude=latitude, longitude=longitude))


VARIATION_STRATEGIES: List[Callable] = [
    vary_severity,
    vary_duration,
    vary_affected_facilities,
    vary_location,
]

# Smallest change that counts as a distinct variation
VARIATION_EPSILON = 1e-6


def differs_from(base, varied, epsilon: float = VARIATION_EPSILON) -> bool:
    """True if severity, duration, facility count or location changed."""
    if varied.severity != base.severity:
        return True
    if abs(varied.duration - base.duration) > epsilon:
        return True
    if len(varied.affected_facilities) != len(base.affected_facilities):
        return True
    return (abs(varied.location.latitude - base.location.latitude) > epsilon
            or abs(varied.location.longitude - base.location.longitude) > epsilon)


def apply_variation(request, index: int, rng: np.random.Generator):
    """
    Apply the index-th variation strategy (cyclically) to a request.

    A transform that leaves the request unchanged (a single facility, a
    duration factor close to 1, a clamp at the poles) hands over to the next
    strategy in the cycle, so the result always differs from the base.
    Disruption type is never touched.

    Args:
        request: Base scenario request
        index: Variation number
        rng: Random source

    Returns:
        Modified request copy (original unchanged)
    """
    n = len(VARIATION_STRATEGIES)
    for offset in range(n):
        strategy = VARIATION_STRATEGIES[(index + offset) % n]
        varied = strategy(request, rng)
        if differs_from(request, varied):
            return varied
    # Severity shift always changes the request
    return vary_severity(request, rng)
