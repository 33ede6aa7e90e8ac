import logging

from config import CorrelationIdFilter, PipelineConfig, get_config, request_logger, set_config, setup_logging


def test_defaults_without_environment(monkeypatch):
    for name in ("SCDM_ITERATIONS", "SCDM_TOP_N", "SCDM_SEED", "SCDM_NARRATIVE_ENABLED"):
        monkeypatch.delenv(name, raising=False)
    config = PipelineConfig.from_env()
    assert config.simulation.iterations == 1000
    assert config.simulation.seed is None
    assert config.optimizer.top_n == 3
    assert config.scenario.variation_count == 3
    assert config.narrative.enabled is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SCDM_ITERATIONS", "250")
    monkeypatch.setenv("SCDM_SEED", "42")
    monkeypatch.setenv("SCDM_OPTIMIZATION_METHOD", "topsis")
    monkeypatch.setenv("SCDM_NARRATIVE_ENABLED", "TRUE")
    monkeypatch.setenv("SCDM_NARRATIVE_TIMEOUT", "2.5")
    config = PipelineConfig.from_env()
    assert config.simulation.iterations == 250
    assert config.simulation.seed == 42
    assert config.optimizer.method == "topsis"
    assert config.narrative.enabled is True
    assert config.narrative.timeout == 2.5


def test_get_config_reads_environment_once(monkeypatch):
    set_config(None)
    monkeypatch.setenv("SCDM_TOP_N", "5")
    first = get_config()
    monkeypatch.setenv("SCDM_TOP_N", "7")
    assert get_config() is first
    assert first.optimizer.top_n == 5


def test_request_logger_binds_correlation_id(caplog):
    log = request_logger(logging.getLogger("handlers"), "corr-1")
    with caplog.at_level(logging.INFO, logger="handlers"):
        log.info("hello")
    assert caplog.records[-1].correlation_id == "corr-1"


def test_filter_defaults_missing_correlation_id():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    assert CorrelationIdFilter().filter(record)
    assert record.correlation_id == "-"


def test_setup_logging_applies_level():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging(PipelineConfig())
        assert root.level == logging.INFO
        assert any(isinstance(f, CorrelationIdFilter) for h in root.handlers for f in h.filters)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
