# templates.py
"""
Mitigation Strategy Templates

Five archetypes per disruption type. Each template carries multiplicative
factors applied to the simulated impact when a candidate strategy is built:

| Factor                        | Scales                                   |
|-------------------------------|------------------------------------------|
| cost_multiplier               | cost impact                              |
| risk_reduction_multiplier     | risk reduction (0-1)                     |
| sustainability_multiplier     | carbon footprint                         |
| implementation_time_multiplier| delivery-time impact                     |

The catalog is plain data keyed by DisruptionType. load_template_library()
reads the same structure from JSON so catalogs can be extended without code.
"""

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Union

from disruptions import DisruptionType


@dataclass(frozen=True)
class StrategyTemplate:
    """Mitigation archetype."""
    name: str
    description: str
    cost_multiplier: float
    risk_reduction_multiplier: float
    sustainability_multiplier: float
    implementation_time_multiplier: float
    tradeoffs: List[str] = field(default_factory=list)


T = StrategyTemplate

STRATEGY_TEMPLATES: Dict[DisruptionType, List[StrategyTemplate]] = {
    DisruptionType.NATURAL_DISASTER: [
        T("Activate Backup Suppliers", "Switch to pre-qualified backup suppliers in unaffected regions",
          1.3, 0.7, 1.1, 0.5, ["Higher costs due to premium suppliers", "Potential quality variations"]),
        T("Reroute Through Alternative Logistics", "Use alternative transportation routes and modes to bypass affected areas",
          1.5, 0.6, 1.3, 0.3, ["Increased transportation costs", "Higher carbon emissions from longer routes"]),
        T("Increase Safety Stock", "Build up inventory buffers to weather the disruption",
          1.8, 0.5, 1.0, 0.8, ["High inventory carrying costs", "Capital tied up in stock"]),
        T("Expedite Air Freight", "Use air freight for critical components to minimize delays",
          2.5, 0.3, 2.0, 0.2, ["Very high transportation costs", "Significant carbon footprint increase"]),
        T("Negotiate Extended Lead Times", "Work with customers to extend delivery timelines",
          0.5, 0.8, 0.9, 0.4, ["Customer satisfaction impact", "Potential revenue loss"]),
    ],
    DisruptionType.SUPPLIER_FAILURE: [
        T("Emergency Supplier Qualification", "Fast-track qualification of new suppliers",
          1.4, 0.6, 1.2, 0.6, ["Compressed qualification process", "Potential quality risks"]),
        T("In-Source Production", "Bring production in-house temporarily",
          2.0, 0.4, 1.1, 0.9, ["High setup costs", "Requires available capacity"]),
        T("Multi-Source Strategy", "Split orders across multiple suppliers",
          1.2, 0.7, 1.0, 0.5, ["Reduced economies of scale", "Increased coordination complexity"]),
        T("Product Redesign", "Modify product to use alternative components",
          1.6, 0.5, 0.9, 1.0, ["Engineering time required", "Potential performance changes"]),
        T("Supplier Recovery Support", "Provide financial and technical support to help supplier recover",
          1.3, 0.6, 0.8, 0.7, ["Upfront investment required", "Dependency on supplier recovery"]),
    ],
    DisruptionType.TRANSPORTATION_DELAY: [
        T("Expedited Shipping", "Use faster shipping methods for critical shipments",
          2.0, 0.4, 1.8, 0.2, ["High shipping costs", "Increased carbon emissions"]),
        T("Regional Distribution", "Shift to regional distribution centers closer to customers",
          1.3, 0.6, 0.9, 0.5, ["Requires regional inventory", "Potential stock imbalances"]),
        T("Intermodal Transportation", "Combine multiple transportation modes for optimal routing",
          1.4, 0.5, 1.0, 0.4, ["Coordination complexity", "Multiple handoff points"]),
        T("Carrier Diversification", "Use multiple carriers to reduce dependency",
          1.1, 0.7, 1.0, 0.3, ["Reduced volume discounts", "Increased management overhead"]),
        T("Customer Communication", "Proactive communication with customers about delays",
          0.3, 0.9, 0.8, 0.1, ["Does not solve delay", "Manages expectations only"]),
    ],
    DisruptionType.DEMAND_SPIKE: [
        T("Overtime Production", "Increase production through overtime shifts",
          1.5, 0.5, 1.2, 0.3, ["Higher labor costs", "Worker fatigue risks"]),
        T("Contract Manufacturing", "Outsource production to contract manufacturers",
          1.7, 0.4, 1.3, 0.6, ["Quality control challenges", "IP protection concerns"]),
        T("Demand Allocation", "Prioritize high-value customers and products",
          0.6, 0.7, 0.9, 0.2, ["Some customers not served", "Potential relationship damage"]),
        T("Price Adjustment", "Implement dynamic pricing to manage demand",
          0.4, 0.8, 0.8, 0.1, ["Customer perception issues", "Regulatory considerations"]),
        T("Capacity Expansion", "Add production capacity through equipment or facilities",
          3.0, 0.3, 1.4, 1.0, ["Very high capital investment", "Long implementation time"]),
    ],
    DisruptionType.QUALITY_ISSUE: [
        T("Enhanced Quality Control", "Implement additional inspection and testing",
          1.3, 0.6, 1.0, 0.4, ["Slower throughput", "Increased labor costs"]),
        T("Supplier Audit", "Conduct thorough supplier quality audit",
          1.1, 0.7, 0.9, 0.5, ["Time to complete audit", "Supplier relationship strain"]),
        T("Batch Quarantine", "Isolate and test affected batches",
          1.4, 0.5, 1.0, 0.3, ["Inventory tied up", "Potential waste"]),
        T("Process Improvement", "Implement corrective actions in production process",
          1.6, 0.4, 0.9, 0.7, ["Production downtime", "Requires root cause analysis"]),
        T("Alternative Supplier", "Switch to supplier with better quality track record",
          1.5, 0.5, 1.1, 0.6, ["Qualification time", "Potential cost increase"]),
    ],
    DisruptionType.GEOPOLITICAL: [
        T("Geographic Diversification", "Shift sourcing to politically stable regions",
          1.6, 0.5, 1.2, 0.8, ["Higher sourcing costs", "Long transition period"]),
        T("Nearshoring", "Move production closer to end markets",
          2.0, 0.4, 0.9, 0.9, ["Significant cost increase", "Requires new facilities"]),
        T("Strategic Stockpiling", "Build strategic reserves of critical materials",
          2.2, 0.3, 1.0, 0.7, ["Very high carrying costs", "Risk of obsolescence"]),
        T("Trade Compliance", "Ensure full compliance with trade regulations",
          1.2, 0.7, 0.9, 0.4, ["Administrative overhead", "Potential delays"]),
        T("Political Risk Insurance", "Purchase insurance coverage for geopolitical risks",
          1.4, 0.6, 0.8, 0.3, ["Insurance premiums", "Coverage limitations"]),
    ],
    DisruptionType.CYBER_ATTACK: [
        T("System Isolation", "Isolate affected systems and switch to manual processes",
          1.8, 0.4, 1.0, 0.2, ["Reduced efficiency", "Manual process errors"]),
        T("Backup System Activation", "Switch to backup systems and disaster recovery",
          1.3, 0.6, 0.9, 0.3, ["Potential data loss", "System synchronization issues"]),
        T("Security Hardening", "Implement enhanced security measures",
          1.5, 0.5, 0.9, 0.5, ["System downtime", "User access restrictions"]),
        T("Third-Party Recovery", "Engage cybersecurity experts for recovery",
          2.0, 0.4, 0.8, 0.4, ["High consulting costs", "External access to systems"]),
        T("Communication Protocol", "Activate incident communication plan",
          0.5, 0.8, 0.8, 0.1, ["Reputation impact", "Regulatory reporting requirements"]),
    ],
    DisruptionType.LABOR_SHORTAGE: [
        T("Wage Increase", "Offer competitive wages to attract workers",
          1.6, 0.5, 0.9, 0.3, ["Increased labor costs", "Wage compression issues"]),
        T("Automation Investment", "Implement automation to reduce labor dependency",
          2.5, 0.3, 1.0, 0.9, ["High capital investment", "Long implementation time"]),
        T("Temporary Workers", "Hire temporary or contract workers",
          1.4, 0.6, 1.0, 0.4, ["Higher hourly rates", "Training requirements"]),
        T("Cross-Training", "Train existing workers for multiple roles",
          1.2, 0.7, 0.9, 0.5, ["Training time", "Reduced specialization"]),
        T("Shift Optimization", "Optimize shift schedules for better coverage",
          1.1, 0.7, 0.9, 0.2, ["Worker schedule disruption", "Potential overtime"]),
    ],
}

del T


# =============================================================================
# LOOKUP AND LOADING
# =============================================================================

def get_templates(
    disruption_type: DisruptionType,
    library: Dict[DisruptionType, List[StrategyTemplate]] = None
) -> List[StrategyTemplate]:
    """Templates for a disruption type (empty list if the catalog has none)."""
    if library is None:
        library = STRATEGY_TEMPLATES
    return list(library.get(disruption_type, []))


def load_template_library(path: Union[str, Path]) -> Dict[DisruptionType, List[StrategyTemplate]]:
    """
    Load a template catalog from JSON.

    Expected shape:
        {"NATURAL_DISASTER": [{"name": ..., "description": ..., "cost_multiplier": ...,
                               "risk_reduction_multiplier": ..., "sustainability_multiplier": ...,
                               "implementation_time_multiplier": ..., "tradeoffs": [...]}, ...], ...}

    Raises:
        ValueError: on an unknown disruption type or a malformed record
    """
    with open(path, "r", encoding="utf-8") as fh:
        raw = json.load(fh)

    library: Dict[DisruptionType, List[StrategyTemplate]] = {}
    for type_name, records in raw.items():
        try:
            disruption_type = DisruptionType(type_name)
        except ValueError:
            raise ValueError(f"Unknown disruption type in template library: {type_name}")
        try:
            library[disruption_type] = [StrategyTemplate(**record) for record in records]
        except TypeError as exc:
            raise ValueError(f"Malformed template for {type_name}: {exc}")
    return library


def dump_template_library(
    library: Dict[DisruptionType, List[StrategyTemplate]],
    path: Union[str, Path]
) -> None:
    """Write a catalog in the format load_template_library() reads."""
    raw = {t.value: [asdict(tpl) for tpl in templates] for t, templates in library.items()}
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(raw, fh, indent=2)


def print_template_summary():
    """Print summary of the built-in catalog."""
    print("\nMITIGATION STRATEGY TEMPLATES")
    print("=" * 90)
    print(f"{'Template':<40}{'Cost':>8}{'Risk':>8}{'Sust.':>8}{'Time':>8}")

    for disruption_type, templates in STRATEGY_TEMPLATES.items():
        print("-" * 90)
        print(disruption_type.value)
        for tpl in templates:
            print(f"  {tpl.name:<38}{tpl.cost_multiplier:>8.1f}{tpl.risk_reduction_multiplier:>8.1f}"
                  f"{tpl.sustainability_multiplier:>8.1f}{tpl.implementation_time_multiplier:>8.1f}")


if __name__ == "__main__":
    print_template_summary()
