# scenario_generator.py
"""
Scenario Generator

Turns disruption parameters into a concrete Scenario:
1. Validate the request (fails fast with ValidationError naming the field)
2. Ask the narrative service for an enriched description, risk factors,
   timeline, decision points and numeric estimates
3. On any narrative failure, fall back to a one-line rule-based description

Variations re-run the same generation on transformed copies of the request
(see disruptions.apply_variation). A failed variation is logged and skipped.
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import numpy as np

from disruptions import DisruptionType, Severity, apply_variation
from errors import UpstreamUnavailable, ValidationError
from models import Location, Scenario, ScenarioParameters
from narrative import NarrativeService, NullNarrativeService, build_scenario_prompt, parse_narrative_response

logger = logging.getLogger(__name__)

GENERATION_LLM = "llm"
GENERATION_RULE_BASED = "rule-based"


@dataclass(frozen=True)
class ScenarioRequest:
    """Validated input to scenario generation."""
    disruption_type: DisruptionType
    location: Location
    severity: Severity
    duration: float
    affected_facilities: List[str]
    user_id: str
    custom_parameters: Dict[str, Any] = field(default_factory=dict)
    is_public: bool = False

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ScenarioRequest":
        """Parse and validate a JSON request body."""
        if not isinstance(payload, dict):
            raise ValidationError("body", "Request body must be a JSON object")

        location = payload.get("location")
        if not isinstance(location, dict):
            raise ValidationError("location", "Location is required", missing=True)

        custom = payload.get("customParameters") or {}
        if not isinstance(custom, dict):
            raise ValidationError("customParameters", "customParameters must be an object")

        request = cls(
            disruption_type=_coerce_enum(DisruptionType, payload.get("type"), "type"),
            location=Location(
                latitude=location.get("latitude"),
                longitude=location.get("longitude"),
                address=location.get("address", ""),
                city=location.get("city", ""),
                country=location.get("country", ""),
            ),
            severity=_coerce_enum(Severity, payload.get("severity"), "severity"),
            duration=payload.get("duration"),
            affected_facilities=payload.get("affectedNodes"),
            user_id=payload.get("userId"),
            custom_parameters=custom,
            is_public=bool(payload.get("isPublic", False)),
        )
        validate_request(request)
        return request


def _coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    if value is None or value == "":
        raise ValidationError(field_name, f"Invalid or missing {field_name}", missing=True)
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(field_name, f"Invalid or missing {field_name}: {value!r}")


def _is_number(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def validate_request(request: ScenarioRequest) -> None:
    """
    Check every field of a request.

    Raises:
        ValidationError: on the first offending field
    """
    if not isinstance(request.disruption_type, DisruptionType):
        raise ValidationError("type", "Invalid or missing disruption type")
    if not isinstance(request.severity, Severity):
        raise ValidationError("severity", "Invalid or missing severity")

    loc = request.location
    if loc is None:
        raise ValidationError("location", "Location is required", missing=True)
    if not _is_number(loc.latitude) or not -90 <= loc.latitude <= 90:
        raise ValidationError("location.latitude", "Invalid latitude")
    if not _is_number(loc.longitude) or not -180 <= loc.longitude <= 180:
        raise ValidationError("location.longitude", "Invalid longitude")
    if not loc.city or not loc.country:
        raise ValidationError("location", "Location must include city and country")

    if not _is_number(request.duration) or not math.isfinite(request.duration) or request.duration <= 0:
        raise ValidationError("duration", "Duration must be a positive number")
    if not isinstance(request.affected_facilities, list):
        raise ValidationError("affectedNodes", "affectedNodes must be an array")
    if not request.user_id:
        raise ValidationError("userId", "userId is required", missing=True)


def rule_based_description(request: ScenarioRequest) -> str:
    loc = request.location
    return (f"{request.disruption_type.value} disruption at {loc.city}, {loc.country} "
            f"with {request.severity.value} severity")


class ScenarioGenerator:
    """
    Builds scenarios, optionally persisting them.

    Args:
        narrative_service: Enrichment backend (NullNarrativeService if None)
        repository: ScenarioRepository; when given, every scenario is stored
        rng: Random source for variations
        log: Logger or LoggerAdapter (carries the request correlation id)
    """

    def __init__(
        self,
        narrative_service: Optional[NarrativeService] = None,
        repository=None,
        rng: Optional[np.random.Generator] = None,
        log: Union[logging.Logger, logging.LoggerAdapter] = logger
    ):
        self.narrative_service = narrative_service or NullNarrativeService()
        self.repository = repository
        self.rng = rng if rng is not None else np.random.default_rng()
        self.log = log

    def generate(
        self,
        disruption_type: Union[DisruptionType, str],
        location: Location,
        severity: Union[Severity, str],
        duration: float,
        affected_facilities: List[str],
        user_id: str,
        custom_parameters: Optional[Dict[str, Any]] = None,
        is_public: bool = False
    ) -> Scenario:
        """Validate the arguments and build a single scenario."""
        request = ScenarioRequest(
            disruption_type=_coerce_enum(DisruptionType, disruption_type, "type"),
            location=location,
            severity=_coerce_enum(Severity, severity, "severity"),
            duration=duration,
            affected_facilities=affected_facilities,
            user_id=user_id,
            custom_parameters=dict(custom_parameters or {}),
            is_public=is_public,
        )
        validate_request(request)
        return self.generate_from_request(request)

    def generate_from_request(self, request: ScenarioRequest) -> Scenario:
        scenario = self._build_scenario(request)
        if self.repository is not None:
            scenario = self.repository.create_scenario(scenario)
            self.log.info(f"Scenario created: {scenario.scenario_id}")
        return scenario

    def _build_scenario(self, request: ScenarioRequest) -> Scenario:
        custom = dict(request.custom_parameters)
        try:
            custom.update(self._enrich(request))
            custom["generationMethod"] = GENERATION_LLM
        except UpstreamUnavailable as exc:
            self.log.warning(f"Narrative enrichment unavailable ({exc.message}), "
                             f"falling back to rule-based generation")
            custom["generationMethod"] = GENERATION_RULE_BASED
            custom["description"] = rule_based_description(request)
        except Exception:
            self.log.exception("Narrative enrichment failed, falling back to rule-based generation")
            custom["generationMethod"] = GENERATION_RULE_BASED
            custom["description"] = rule_based_description(request)

        parameters = ScenarioParameters(
            location=request.location,
            severity=request.severity,
            duration=request.duration,
            affected_facilities=list(request.affected_facilities),
            custom_parameters=custom,
        )
        return Scenario(
            type=request.disruption_type,
            parameters=parameters,
            created_by=request.user_id,
            is_public=request.is_public,
        )

    def _enrich(self, request: ScenarioRequest) -> Dict[str, Any]:
        prompt = build_scenario_prompt(request)
        self.log.debug(f"Invoking narrative service (prompt length {len(prompt)})")
        text = self.narrative_service.generate(prompt)
        return parse_narrative_response(text)

    def generate_variations(self, base_request: ScenarioRequest, count: int) -> List[Scenario]:
        """
        Generate up to `count` structurally varied siblings of a request.

        Each variation is an independent unit of work: a failure is logged
        and skipped, the remaining variations still run.
        """
        variations = []
        for i in range(count):
            try:
                varied = apply_variation(base_request, i, self.rng)
                self.log.debug(f"Generating variation {i}")
                variations.append(self.generate_from_request(varied))
            except Exception:
                self.log.exception(f"Failed to generate variation {i}, skipping")
        return variations


def generation_method(scenario: Scenario, variations: Optional[List[Scenario]] = None) -> str:
    """Method used for a batch: 'llm', 'rule-based' or 'mixed'."""
    methods = {s.parameters.custom_parameters.get("generationMethod")
               for s in [scenario] + list(variations or [])}
    if len(methods) == 1:
        return methods.pop()
    return "mixed"
