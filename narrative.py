# narrative.py
"""
Narrative Enrichment Service

The scenario generator asks an external text-generation service for a richer
description of each disruption. The service is optional: any implementation
exposes generate(prompt) -> text and raises UpstreamUnavailable on failure,
and the generator falls back to a rule-based description.

Implementations:
- NullNarrativeService: always unavailable (offline and test default)
- OllamaNarrativeService: HTTP client for an Ollama-compatible /api/generate endpoint
"""

import json
import logging
import re
from typing import Any, Dict, Optional

import httpx

from errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class NarrativeService:
    """Capability interface: turn a prompt into text or raise UpstreamUnavailable."""

    def generate(self, prompt: str) -> str:
        raise NotImplementedError


class NullNarrativeService(NarrativeService):
    def generate(self, prompt: str) -> str:
        raise UpstreamUnavailable("Narrative service is not configured")


class OllamaNarrativeService(NarrativeService):
    """
    HTTP client for an Ollama-compatible text generation server.

    Args:
        base_url: Server root, e.g. "http://localhost:11434"
        model: Model name to request
        timeout: Request timeout in seconds
        temperature: Sampling temperature passed to the model
        max_tokens: Upper bound on generated tokens
        client: Optional pre-built httpx.Client (tests pass one with a MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 30.0,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        client: Optional[httpx.Client] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = client

    @classmethod
    def from_config(cls, narrative_config) -> "OllamaNarrativeService":
        return cls(
            base_url=narrative_config.base_url,
            model=narrative_config.model,
            timeout=narrative_config.timeout,
            temperature=narrative_config.temperature,
            max_tokens=narrative_config.max_tokens,
        )

    def generate(self, prompt: str) -> str:
        url = f"{self.base_url}/api/generate"
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        logger.debug(f"Requesting narrative from {url} (model={self.model}, prompt={len(prompt)} chars)")

        try:
            if self._client is not None:
                resp = self._client.post(url, json=payload, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    resp = client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Narrative service request failed: {exc}")

        if resp.status_code != 200:
            raise UpstreamUnavailable(f"Narrative service returned HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            raise UpstreamUnavailable("Narrative service returned non-JSON body", invalid_response=True)
        if not isinstance(body, dict):
            raise UpstreamUnavailable("Narrative service returned a non-object JSON body", invalid_response=True)

        text = body.get("response")
        if text is not None and not isinstance(text, str):
            raise UpstreamUnavailable("Narrative service response is not text", invalid_response=True)
        if not text:
            raise UpstreamUnavailable("Narrative service returned an empty response", invalid_response=True)
        return text


# =============================================================================
# PROMPT AND RESPONSE HANDLING
# =============================================================================

def build_scenario_prompt(request) -> str:
    """Build the enrichment prompt for a scenario request."""
    loc = request.location
    return f"""You are an expert supply chain analyst. Generate a detailed disruption scenario based on the following parameters:

Disruption Type: {request.disruption_type.value}
Location: {loc.city}, {loc.country} ({loc.latitude}, {loc.longitude})
Severity: {request.severity.value}
Duration: {request.duration} hours
Affected Nodes: {len(request.affected_facilities)} supply chain nodes

Please provide:
1. A detailed description of the disruption scenario (2-3 paragraphs)
2. Key risk factors and potential cascading effects
3. Estimated timeline of impact progression
4. Critical decision points for mitigation

Format your response as JSON with the following structure:
{{
  "description": "detailed scenario description",
  "riskFactors": ["factor1", "factor2", ...],
  "timeline": "timeline description",
  "criticalDecisionPoints": ["point1", "point2", ...],
  "additionalParameters": {{
    "estimatedCostImpact": number,
    "probabilityOfOccurrence": number (0-1)
  }}
}}"""


_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


def parse_narrative_response(text: str) -> Dict[str, Any]:
    """
    Extract enrichment parameters from service output.

    The outermost {...} block is parsed as JSON; description, riskFactors,
    timeline, criticalDecisionPoints and the members of additionalParameters
    are returned flat.

    Returns:
        Parameters to merge into the scenario's custom parameters

    Raises:
        UpstreamUnavailable: if the text holds no parsable JSON object
    """
    match = _JSON_BLOCK.search(text)
    if not match:
        raise UpstreamUnavailable("Narrative response contained no JSON object", invalid_response=True)

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise UpstreamUnavailable(f"Narrative response JSON is malformed: {exc}", invalid_response=True)

    if not isinstance(parsed, dict):
        raise UpstreamUnavailable("Narrative response JSON is not an object", invalid_response=True)

    params = {
        "description": parsed.get("description"),
        "riskFactors": parsed.get("riskFactors"),
        "timeline": parsed.get("timeline"),
        "criticalDecisionPoints": parsed.get("criticalDecisionPoints"),
    }
    params = {k: v for k, v in params.items() if v is not None}
    extra = parsed.get("additionalParameters")
    if isinstance(extra, dict):
        params.update(extra)
    return params
