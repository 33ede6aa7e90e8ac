# models.py
"""
Data model for scenarios, facility snapshots, impact analyses, explanation
graphs and mitigation strategies.

Every type serialises to the camelCase JSON shape used at the request/response
boundary (to_dict) and parses back from it (from_dict).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from disruptions import DisruptionType, Severity


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    address: str = ""
    city: str = ""
    country: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "address": self.address,
            "city": self.city,
            "country": self.country,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        return cls(
            latitude=data["latitude"],
            longitude=data["longitude"],
            address=data.get("address", ""),
            city=data.get("city", ""),
            country=data.get("country", ""),
        )


@dataclass
class ScenarioParameters:
    location: Location
    severity: Severity
    duration: float                 # hours
    affected_facilities: List[str] = field(default_factory=list)
    custom_parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": self.location.to_dict(),
            "severity": self.severity.value,
            "duration": self.duration,
            "affectedNodes": list(self.affected_facilities),
            "customParameters": dict(self.custom_parameters),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioParameters":
        return cls(
            location=Location.from_dict(data["location"]),
            severity=Severity(data["severity"]),
            duration=data["duration"],
            affected_facilities=list(data.get("affectedNodes", [])),
            custom_parameters=dict(data.get("customParameters") or {}),
        )


@dataclass
class MarketplaceMetadata:
    title: str
    description: str
    author: str
    rating: float = 0.0
    usage_count: int = 0
    tags: List[str] = field(default_factory=list)
    industry: str = ""
    geography: str = ""
    original_author: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "title": self.title,
            "description": self.description,
            "author": self.author,
            "rating": self.rating,
            "usageCount": self.usage_count,
            "tags": list(self.tags),
            "industry": self.industry,
            "geography": self.geography,
        }
        if self.original_author is not None:
            data["originalAuthor"] = self.original_author
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarketplaceMetadata":
        return cls(
            title=data["title"],
            description=data.get("description", ""),
            author=data.get("author", ""),
            rating=data.get("rating", 0.0),
            usage_count=data.get("usageCount", 0),
            tags=list(data.get("tags", [])),
            industry=data.get("industry", ""),
            geography=data.get("geography", ""),
            original_author=data.get("originalAuthor"),
        )


@dataclass
class Scenario:
    """A concrete, parameterised disruption instance."""
    type: DisruptionType
    parameters: ScenarioParameters
    created_by: str
    is_public: bool = False
    marketplace_metadata: Optional[MarketplaceMetadata] = None
    scenario_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    version: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "scenarioId": self.scenario_id,
            "type": self.type.value,
            "parameters": self.parameters.to_dict(),
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "isPublic": self.is_public,
            "version": self.version,
        }
        if self.marketplace_metadata is not None:
            data["marketplaceMetadata"] = self.marketplace_metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scenario":
        metadata = data.get("marketplaceMetadata")
        return cls(
            type=DisruptionType(data["type"]),
            parameters=ScenarioParameters.from_dict(data["parameters"]),
            created_by=data["createdBy"],
            is_public=data.get("isPublic", False),
            marketplace_metadata=MarketplaceMetadata.from_dict(metadata) if metadata else None,
            scenario_id=data.get("scenarioId"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
            version=data.get("version", 0),
        )


# Used when a stored facility record lacks the field
DEFAULT_CAPACITY = 1000.0
DEFAULT_UTILIZATION_RATE = 0.7


@dataclass(frozen=True)
class Facility:
    """Read-only facility ("node") snapshot owned by the entity store."""
    facility_id: str
    facility_type: str = "WAREHOUSE"
    capacity: float = DEFAULT_CAPACITY
    current_inventory: float = 0.0
    utilization_rate: float = DEFAULT_UTILIZATION_RATE
    connections: List[str] = field(default_factory=list)
    last_update: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.facility_id,
            "type": self.facility_type,
            "capacity": self.capacity,
            "connections": list(self.connections),
            "metrics": {
                "currentInventory": self.current_inventory,
                "utilizationRate": self.utilization_rate,
                "lastUpdateTimestamp": self.last_update,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Facility":
        metrics = data.get("metrics") or {}

        def _value(source, key, default):
            value = source.get(key)
            return default if value is None else value

        return cls(
            facility_id=data["nodeId"],
            facility_type=data.get("type", "WAREHOUSE"),
            capacity=data.get("capacity") or DEFAULT_CAPACITY,
            current_inventory=_value(metrics, "currentInventory", 0.0),
            utilization_rate=_value(metrics, "utilizationRate", DEFAULT_UTILIZATION_RATE),
            connections=list(data.get("connections", [])),
            last_update=metrics.get("lastUpdateTimestamp"),
        )


@dataclass
class SustainabilityImpact:
    carbon_footprint: float                                         # kg CO2e
    emissions_by_route: Dict[str, float] = field(default_factory=dict)
    sustainability_score: int = 100                                 # 0-100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "carbonFootprint": self.carbon_footprint,
            "emissionsByRoute": dict(self.emissions_by_route),
            "sustainabilityScore": self.sustainability_score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SustainabilityImpact":
        return cls(
            carbon_footprint=data["carbonFootprint"],
            emissions_by_route=dict(data.get("emissionsByRoute", {})),
            sustainability_score=data.get("sustainabilityScore", 100),
        )


@dataclass(frozen=True)
class ImpactAnalysis:
    """Quantified consequence of a scenario; a re-run produces a new instance."""
    cost_impact: float
    delivery_time_impact: float     # hours
    inventory_impact: float         # units
    sustainability_impact: Optional[SustainabilityImpact] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "costImpact": self.cost_impact,
            "deliveryTimeImpact": self.delivery_time_impact,
            "inventoryImpact": self.inventory_impact,
        }
        # Absent, not null, when sustainability was not requested
        if self.sustainability_impact is not None:
            data["sustainabilityImpact"] = self.sustainability_impact.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImpactAnalysis":
        sustainability = data.get("sustainabilityImpact")
        return cls(
            cost_impact=data["costImpact"],
            delivery_time_impact=data["deliveryTimeImpact"],
            inventory_impact=data["inventoryImpact"],
            sustainability_impact=(SustainabilityImpact.from_dict(sustainability)
                                   if sustainability else None),
        )


# =============================================================================
# EXPLANATION GRAPH
# =============================================================================

class DecisionNode:
    def __init__(self, node_id, label, kind="condition", attribution="Impact Simulator", confidence=None):
        """
        Explanation graph node.
        :param node_id: unique id within the tree, e.g. "root", "cost-impact"
        :param label: display text
        :param kind: "condition" or "outcome"
        :param attribution: component that produced the node
        :param confidence: optional confidence for outcome nodes
        """
        self.node_id = node_id
        self.label = label
        self.kind = kind
        self.attribution = attribution
        self.confidence = confidence

    def to_dict(self):
        data = {
            "nodeId": self.node_id,
            "label": self.label,
            "type": self.kind,
            "agentAttribution": self.attribution,
        }
        if self.confidence is not None:
            data["confidence"] = self.confidence
        return data

    def __repr__(self):
        return f"DecisionNode({self.node_id}, kind={self.kind}, label={self.label!r})"


class DecisionEdge:
    def __init__(self, from_id, to_id, label=""):
        self.from_id = from_id
        self.to_id = to_id
        self.label = label

    def to_dict(self):
        return {"from": self.from_id, "to": self.to_id, "label": self.label}

    def __repr__(self):
        return f"DecisionEdge({self.from_id} -> {self.to_id}, label={self.label!r})"


class DecisionTree:
    ROOT_ID = "root"

    def __init__(self):
        self.nodes = {}   # key: node_id, value: DecisionNode
        self.edges = []   # list of DecisionEdge

    def add_node(self, node):
        self.nodes[node.node_id] = node

    def add_edge(self, edge):
        self.edges.append(edge)

    def get_node(self, node_id):
        return self.nodes[node_id]

    def children(self, node_id):
        return [e.to_id for e in self.edges if e.from_id == node_id]

    def outcomes(self):
        return [n for n in self.nodes.values() if n.kind == "outcome"]

    def validation_errors(self) -> List[str]:
        """
        Check the structural invariants: a root node, resolvable edge
        endpoints, no cycles, every node reachable from root.
        """
        errors = []
        if self.ROOT_ID not in self.nodes:
            errors.append("missing root node")
        for edge in self.edges:
            for endpoint in (edge.from_id, edge.to_id):
                if endpoint not in self.nodes:
                    errors.append(f"edge endpoint {endpoint} does not resolve")
        if errors:
            return errors

        # Depth-first walk from root; a grey node seen again means a cycle
        state = {}
        stack = [(self.ROOT_ID, iter(self.children(self.ROOT_ID)))]
        state[self.ROOT_ID] = "grey"
        while stack:
            node_id, it = stack[-1]
            child = next(it, None)
            if child is None:
                state[node_id] = "black"
                stack.pop()
            elif state.get(child) == "grey":
                errors.append(f"cycle through {child}")
            elif child not in state:
                state[child] = "grey"
                stack.append((child, iter(self.children(child))))

        unreachable = sorted(set(self.nodes) - set(state))
        if unreachable:
            errors.append(f"unreachable nodes: {unreachable}")
        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()

    def to_dict(self):
        return {
            "nodes": [n.to_dict() for n in self.nodes.values()],
            "edges": [e.to_dict() for e in self.edges],
        }

    def __repr__(self):
        return f"DecisionTree(nodes={len(self.nodes)}, edges={len(self.edges)})"


# =============================================================================
# MITIGATION
# =============================================================================

@dataclass(frozen=True)
class MitigationStrategy:
    strategy_id: str
    name: str
    description: str
    cost_impact: float
    risk_reduction: float           # 0-1
    sustainability_impact: float    # kg CO2e
    implementation_time: float      # hours
    tradeoffs: List[str] = field(default_factory=list)

    def metrics(self) -> tuple:
        return (self.cost_impact, self.risk_reduction, self.sustainability_impact)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategyId": self.strategy_id,
            "name": self.name,
            "description": self.description,
            "costImpact": self.cost_impact,
            "riskReduction": self.risk_reduction,
            "sustainabilityImpact": self.sustainability_impact,
            "implementationTime": self.implementation_time,
            "tradeoffs": list(self.tradeoffs),
        }


@dataclass
class ScenarioResult:
    """Outcome of one end-to-end pipeline run, persisted per scenario."""
    scenario_id: str
    timestamp: str
    impacts: ImpactAnalysis
    strategies: List[MitigationStrategy]
    confidence: float
    execution_time: float           # milliseconds
    decision_tree: DecisionTree
    natural_language_summary: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenarioId": self.scenario_id,
            "timestamp": self.timestamp,
            "impacts": self.impacts.to_dict(),
            "strategies": [s.to_dict() for s in self.strategies],
            "confidence": self.confidence,
            "executionTime": self.execution_time,
            "decisionTree": self.decision_tree.to_dict(),
            "naturalLanguageSummary": self.natural_language_summary,
        }
