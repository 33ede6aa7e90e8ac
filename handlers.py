# handlers.py
"""
Request Handlers

Transport-agnostic JSON boundary for the three pipeline stages:

| Handler                 | Request                                         | Response (200)                                   |
|-------------------------|-------------------------------------------------|--------------------------------------------------|
| handle_generate_scenario| type, location, severity, duration, affectedNodes, userId, ... | scenario, variations?, metadata   |
| handle_simulate_impact  | scenarioId, includeSustainability?, simulationIterations?       | impacts, decisionTree, summary, ... |
| handle_optimize_strategy| scenarioId, impacts, userPreferences?            | strategies, tradeoffVisualization, metadata      |

Every response carries a correlation id taken from the x-correlation-id
header, else the transport request id, else synthesized as
"<stage>-<epoch ms>". Failures map to {error, code, details, correlationId}
with the status code of the raised PipelineError; anything unexpected
becomes a 500 InternalError.
"""

import json
import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import numpy as np

from config import PipelineConfig, get_config, request_logger
from errors import InternalError, PipelineError, ValidationError, NotFoundError
from impact_simulator import ImpactSimulator
from mcdm import METHODS
from models import ImpactAnalysis
from narrative import NarrativeService, NullNarrativeService, OllamaNarrativeService
from preferences import UserPreferences
from repository import FacilityRepository, InMemoryStore, ScenarioRepository
from scenario_generator import ScenarioGenerator, ScenarioRequest, generation_method
from strategy_optimizer import StrategyOptimizer

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "x-correlation-id"


@dataclass
class Request:
    body: Any
    headers: Dict[str, str] = field(default_factory=dict)
    request_id: Optional[str] = None


@dataclass
class Response:
    status_code: int
    body: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"statusCode": self.status_code, "body": json.dumps(self.body)}


class Services:
    """
    Collaborators shared by the handlers.

    Handlers hold no state between requests; each request gets its own
    random generator spawned from one seed sequence, so a seeded process is
    reproducible and concurrent requests never share a generator.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        store: Optional[InMemoryStore] = None,
        narrative_service: Optional[NarrativeService] = None
    ):
        self.config = config or get_config()
        store = store or InMemoryStore()
        self.scenarios = ScenarioRepository(store)
        self.facilities = FacilityRepository(store)
        if narrative_service is None:
            narrative_service = (OllamaNarrativeService.from_config(self.config.narrative)
                                 if self.config.narrative.enabled else NullNarrativeService())
        self.narrative_service = narrative_service
        self._seed_sequence = np.random.SeedSequence(self.config.simulation.seed)
        self._lock = threading.Lock()

    def new_rng(self) -> np.random.Generator:
        with self._lock:
            child = self._seed_sequence.spawn(1)[0]
        return np.random.default_rng(child)


def resolve_correlation_id(headers: Optional[Dict[str, str]], request_id: Optional[str], stage: str) -> str:
    for key, value in (headers or {}).items():
        if key.lower() == CORRELATION_HEADER and value:
            return value
    if request_id:
        return request_id
    return f"{stage}-{int(time.time() * 1000)}"


def _parse_body(body: Any) -> Dict[str, Any]:
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body or "{}")
        except json.JSONDecodeError:
            raise ValidationError("body", "Request body is not valid JSON")
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise ValidationError("body", "Request body must be a JSON object")
    return body


def _require(body: Dict[str, Any], key: str) -> Any:
    value = body.get(key)
    if value is None or value == "":
        raise ValidationError(key, f"{key} is required", missing=True)
    return value


def _handle(
    stage: str,
    request: Request,
    services: Services,
    work: Callable[[Dict[str, Any], Services, logging.LoggerAdapter], Dict[str, Any]]
) -> Response:
    start = time.perf_counter()
    correlation_id = resolve_correlation_id(request.headers, request.request_id, stage)
    log = request_logger(logger, correlation_id)
    log.info(f"{stage} request received")

    try:
        body = work(_parse_body(request.body), services, log)
    except PipelineError as exc:
        log.warning(f"{stage} request rejected: {exc}")
        error_body = exc.to_dict()
        error_body["correlationId"] = correlation_id
        return Response(exc.http_status, error_body)
    except Exception as exc:
        log.exception(f"{stage} request failed")
        error = InternalError(correlation_id, diagnostic=str(exc))
        error_body = error.to_dict()
        error_body["correlationId"] = correlation_id
        return Response(error.http_status, error_body)

    execution_time = int((time.perf_counter() - start) * 1000)
    metadata = body.setdefault("metadata", {})
    metadata["correlationId"] = correlation_id
    metadata["executionTime"] = execution_time
    log.info(f"{stage} request completed in {execution_time} ms")
    return Response(200, body)


# =============================================================================
# SCENARIO GENERATION
# =============================================================================

def _generate_scenario(body, services: Services, log) -> Dict[str, Any]:
    request = ScenarioRequest.from_dict(body)

    variation_count = 0
    if body.get("generateVariations"):
        variation_count = body.get("variationCount", services.config.scenario.variation_count)
        if isinstance(variation_count, bool) or not isinstance(variation_count, int) or variation_count < 0:
            raise ValidationError("variationCount", "variationCount must be a non-negative integer")

    generator = ScenarioGenerator(
        narrative_service=services.narrative_service,
        repository=services.scenarios,
        rng=services.new_rng(),
        log=log,
    )
    scenario = generator.generate_from_request(request)

    response = {"scenario": scenario.to_dict()}
    variations = []
    if body.get("generateVariations"):
        variations = generator.generate_variations(request, variation_count)
        response["variations"] = [v.to_dict() for v in variations]
        log.info(f"Generated {len(variations)} of {variation_count} variations")

    response["metadata"] = {"generationMethod": generation_method(scenario, variations)}
    return response


def handle_generate_scenario(request: Request, services: Services) -> Response:
    return _handle("scenario", request, services, _generate_scenario)


# =============================================================================
# IMPACT SIMULATION
# =============================================================================

def _simulate_impact(body, services: Services, log) -> Dict[str, Any]:
    scenario_id = _require(body, "scenarioId")
    include_sustainability = body.get("includeSustainability", False)
    if not isinstance(include_sustainability, bool):
        raise ValidationError("includeSustainability", "includeSustainability must be a boolean")
    iterations = body.get("simulationIterations", services.config.simulation.iterations)

    scenario = services.scenarios.get_scenario_by_id(scenario_id)
    if scenario is None:
        raise NotFoundError("Scenario", scenario_id)

    facilities = services.facilities.get_facilities_by_ids(scenario.parameters.affected_facilities)
    log.info(f"Simulating {scenario_id}: {len(facilities)} facilities, {iterations} iterations")

    outcome = ImpactSimulator(rng=services.new_rng(), log=log).simulate(
        scenario, facilities, iterations=iterations, include_sustainability=include_sustainability)

    return {
        "scenarioId": scenario_id,
        "impacts": outcome.impacts.to_dict(),
        "decisionTree": outcome.decision_tree.to_dict(),
        "naturalLanguageSummary": outcome.summary,
        "confidence": outcome.confidence,
        "metadata": {"simulationIterations": outcome.iterations},
    }


def handle_simulate_impact(request: Request, services: Services) -> Response:
    return _handle("impact", request, services, _simulate_impact)


# =============================================================================
# STRATEGY OPTIMIZATION
# =============================================================================

def parse_impacts(data: Any) -> ImpactAnalysis:
    """Validate an impacts payload and build the ImpactAnalysis."""
    if not isinstance(data, dict):
        raise ValidationError("impacts", "impacts must be an object")
    for key in ("costImpact", "deliveryTimeImpact", "inventoryImpact"):
        value = data.get(key)
        if value is None:
            raise ValidationError(f"impacts.{key}", f"{key} is required", missing=True)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise ValidationError(f"impacts.{key}", f"{key} must be a non-negative number")

    sustainability = data.get("sustainabilityImpact")
    if sustainability is not None:
        if not isinstance(sustainability, dict):
            raise ValidationError("impacts.sustainabilityImpact", "sustainabilityImpact must be an object")
        footprint = sustainability.get("carbonFootprint")
        if (isinstance(footprint, bool) or not isinstance(footprint, (int, float))
                or not math.isfinite(footprint) or footprint < 0):
            raise ValidationError("impacts.sustainabilityImpact.carbonFootprint",
                                  "carbonFootprint must be a non-negative number",
                                  missing=footprint is None)
    try:
        return ImpactAnalysis.from_dict(data)
    except (KeyError, TypeError) as exc:
        raise ValidationError("impacts.sustainabilityImpact", f"Malformed sustainabilityImpact: {exc}")


def _optimize_strategy(body, services: Services, log) -> Dict[str, Any]:
    scenario_id = _require(body, "scenarioId")
    impacts = parse_impacts(_require(body, "impacts"))
    preferences = UserPreferences.from_dict(body.get("userPreferences"))
    method = body.get("optimizationMethod", services.config.optimizer.method)
    if method not in METHODS:
        raise ValidationError("optimizationMethod", f"optimizationMethod must be one of {sorted(METHODS)}")

    scenario = services.scenarios.get_scenario_by_id(scenario_id)
    if scenario is None:
        raise NotFoundError("Scenario", scenario_id)

    optimizer = StrategyOptimizer(top_n=services.config.optimizer.top_n, method=method, log=log)
    result = optimizer.optimize(scenario, impacts, preferences)

    return {
        "strategies": [s.to_dict() for s in result.strategies],
        "tradeoffVisualization": result.tradeoffs,
        "metadata": {"optimizationMethod": result.method},
    }


def handle_optimize_strategy(request: Request, services: Services) -> Response:
    return _handle("strategy", request, services, _optimize_strategy)


HANDLERS = {
    "scenario": handle_generate_scenario,
    "impact": handle_simulate_impact,
    "strategy": handle_optimize_strategy,
}
