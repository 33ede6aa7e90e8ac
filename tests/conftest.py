"""Pytest configuration and shared fixtures."""
import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from config import PipelineConfig, set_config
from disruptions import DisruptionType, Severity
from errors import UpstreamUnavailable
from models import Facility, ImpactAnalysis, Location, Scenario, ScenarioParameters, SustainabilityImpact
from narrative import NarrativeService
from repository import FacilityRepository, InMemoryStore, ScenarioRepository
from scenario_generator import ScenarioRequest


NARRATIVE_JSON = """Here is the scenario:
{
  "description": "A typhoon closes the port for three days.",
  "riskFactors": ["port closure", "labour shortage"],
  "timeline": "Peak impact on day two",
  "criticalDecisionPoints": ["reroute shipments"],
  "additionalParameters": {"estimatedCostImpact": 250000, "probabilityOfOccurrence": 0.3}
}
Let me know if you need more."""


class StaticNarrativeService(NarrativeService):
    """Returns the same text for every prompt and records the prompts."""

    def __init__(self, text=NARRATIVE_JSON):
        self.text = text
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        return self.text


class FailingNarrativeService(NarrativeService):
    def __init__(self):
        self.calls = 0

    def generate(self, prompt):
        self.calls += 1
        raise UpstreamUnavailable("service down")


@pytest.fixture(autouse=True)
def default_config():
    # Components never read the environment during tests
    set_config(PipelineConfig())
    yield
    set_config(None)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def location():
    return Location(31.23, 121.47, address="Port of Shanghai", city="Shanghai", country="China")


@pytest.fixture
def facilities():
    return [
        Facility("f1", "WAREHOUSE", capacity=2000, current_inventory=500, utilization_rate=0.8),
        Facility("f2", "FACTORY", capacity=1000, current_inventory=300, utilization_rate=0.5),
    ]


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def scenario_repo(store):
    return ScenarioRepository(store)


@pytest.fixture
def facility_repo(store, facilities):
    repo = FacilityRepository(store)
    for facility in facilities:
        repo.put_facility(facility)
    return repo


@pytest.fixture
def static_narrative():
    return StaticNarrativeService()


@pytest.fixture
def narrative_factory():
    return StaticNarrativeService


@pytest.fixture
def failing_narrative():
    return FailingNarrativeService()


@pytest.fixture
def scenario_request(location):
    return ScenarioRequest(
        disruption_type=DisruptionType.SUPPLIER_FAILURE,
        location=location,
        severity=Severity.HIGH,
        duration=48,
        affected_facilities=["f1", "f2", "f3"],
        user_id="user-1",
    )


@pytest.fixture
def scenario(location):
    return Scenario(
        type=DisruptionType.SUPPLIER_FAILURE,
        parameters=ScenarioParameters(location, Severity.HIGH, 48, ["f1", "f2"]),
        created_by="user-1",
        scenario_id="sc-1",
    )


@pytest.fixture
def impacts():
    return ImpactAnalysis(
        cost_impact=120000.0,
        delivery_time_impact=144.0,
        inventory_impact=4800.0,
        sustainability_impact=SustainabilityImpact(3000.0, {"route-f1": 250.0}, 97),
    )


@pytest.fixture
def scenario_payload():
    return {
        "type": "NATURAL_DISASTER",
        "location": {
            "latitude": 35.68,
            "longitude": 139.69,
            "address": "1 Harbour Rd",
            "city": "Tokyo",
            "country": "Japan",
        },
        "severity": "CRITICAL",
        "duration": 72,
        "affectedNodes": ["f1", "f2"],
        "userId": "user-1",
    }
