# config.py
"""
Pipeline Settings

Groups tunables per concern in frozen dataclasses. Values come from SCDM_*
environment variables via PipelineConfig.from_env(); components also take
explicit arguments so tests never depend on the environment.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class SimulationConfig:
    iterations: int = 1000
    seed: Optional[int] = None


@dataclass(frozen=True)
class OptimizerConfig:
    top_n: int = 3
    method: str = "weighted-multi-objective"


@dataclass(frozen=True)
class ScenarioConfig:
    variation_count: int = 3


@dataclass(frozen=True)
class NarrativeConfig:
    enabled: bool = False
    base_url: str = "http://localhost:11434"
    model: str = "llama3:latest"
    timeout: float = 30.0
    temperature: float = 0.7
    max_tokens: int = 2000


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s [%(correlation_id)s]: %(message)s"


@dataclass
class PipelineConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    optimizer: OptimizerConfig = field(default_factory=OptimizerConfig)
    scenario: ScenarioConfig = field(default_factory=ScenarioConfig)
    narrative: NarrativeConfig = field(default_factory=NarrativeConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        seed = os.getenv("SCDM_SEED")
        simulation = SimulationConfig(
            iterations=int(os.getenv("SCDM_ITERATIONS", "1000")),
            seed=int(seed) if seed else None,
        )
        optimizer = OptimizerConfig(
            top_n=int(os.getenv("SCDM_TOP_N", "3")),
            method=os.getenv("SCDM_OPTIMIZATION_METHOD", "weighted-multi-objective"),
        )
        scenario = ScenarioConfig(
            variation_count=int(os.getenv("SCDM_VARIATION_COUNT", "3")),
        )
        narrative = NarrativeConfig(
            enabled=os.getenv("SCDM_NARRATIVE_ENABLED", "false").lower() == "true",
            base_url=os.getenv("SCDM_NARRATIVE_URL", "http://localhost:11434"),
            model=os.getenv("SCDM_NARRATIVE_MODEL", "llama3:latest"),
            timeout=float(os.getenv("SCDM_NARRATIVE_TIMEOUT", "30")),
        )
        log = LogConfig(level=os.getenv("SCDM_LOG_LEVEL", "INFO"))

        return cls(
            simulation=simulation,
            optimizer=optimizer,
            scenario=scenario,
            narrative=narrative,
            log=log,
        )


_config: Optional[PipelineConfig] = None


def get_config() -> PipelineConfig:
    global _config
    if _config is None:
        _config = PipelineConfig.from_env()
    return _config


def set_config(config: Optional[PipelineConfig]) -> None:
    global _config
    _config = config


class CorrelationIdFilter(logging.Filter):
    """Default the correlation_id field for records logged outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True


def setup_logging(config: Optional[PipelineConfig] = None) -> None:
    cfg = config or get_config()

    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())

    logging.basicConfig(
        level=getattr(logging, cfg.log.level.upper()),
        format=cfg.log.format,
        handlers=[handler],
        force=True,
    )


def request_logger(logger: logging.Logger, correlation_id: str) -> logging.LoggerAdapter:
    """Bind a correlation id to every record emitted through the returned adapter."""
    return logging.LoggerAdapter(logger, {"correlation_id": correlation_id})
