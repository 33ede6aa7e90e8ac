import logging
import uuid

from models import DecisionTree, ImpactAnalysis, ScenarioResult
from repository import FacilityRepository, InMemoryStore


def test_create_scenario_assigns_identity_and_version(scenario_repo, scenario):
    stored = scenario_repo.create_scenario(scenario)
    assert uuid.UUID(stored.scenario_id).version == 4
    assert stored.version == 1
    assert stored.created_at == stored.updated_at
    assert scenario.version == 0


def test_scenario_round_trip_keeps_parameters(scenario_repo, scenario):
    stored = scenario_repo.create_scenario(scenario)
    fetched = scenario_repo.get_scenario_by_id(stored.scenario_id)
    assert fetched.parameters == scenario.parameters
    assert fetched.type == scenario.type


def test_unknown_scenario_is_none(scenario_repo):
    assert scenario_repo.get_scenario_by_id("missing") is None


def test_store_returns_copies():
    store = InMemoryStore()
    item = {"values": [1, 2]}
    store.put("P", "a", item)
    item["values"].append(3)
    fetched = store.get("P", "a")
    fetched["values"].append(4)
    assert store.get("P", "a") == {"values": [1, 2]}


def test_missing_facilities_are_skipped_with_warning(facility_repo, caplog):
    with caplog.at_level(logging.WARNING, logger="repository"):
        found = facility_repo.get_facilities_by_ids(["f2", "nope", "f1"])
    assert [f.facility_id for f in found] == ["f2", "f1"]
    assert "nope" in caplog.text


def test_scenario_results_listed_oldest_first(scenario_repo):
    for ts in ("2024-01-02T00:00:00+00:00", "2024-01-01T00:00:00+00:00"):
        scenario_repo.save_scenario_result(ScenarioResult(
            "sc-1", ts, ImpactAnalysis(1.0, 1.0, 1.0), [], 0.8, 5, DecisionTree(), "summary"))
    scenario_repo.save_scenario_result(ScenarioResult(
        "sc-2", "2024-01-03T00:00:00+00:00", ImpactAnalysis(1.0, 1.0, 1.0), [], 0.8, 5, DecisionTree(), "s"))

    results = scenario_repo.get_scenario_results("sc-1")
    assert [r["timestamp"] for r in results] == ["2024-01-01T00:00:00+00:00", "2024-01-02T00:00:00+00:00"]


def test_repositories_can_share_a_store(store, scenario_repo, facilities):
    FacilityRepository(store).put_facility(facilities[0])
    assert scenario_repo.list_scenarios() == []
    assert len(store.list("NODE")) == 1
