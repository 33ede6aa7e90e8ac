# repository.py
"""
Key-by-id entity store for scenarios, facility snapshots and scenario results.

Records are held as plain dicts in the same camelCase shape used on the wire,
so a put/get round trip exercises the full serialisation path. Stored values
are copied on the way in and out; callers never share mutable state with the
store.
"""

import copy
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from models import Facility, Scenario, ScenarioResult

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryStore:
    """Thread-safe dict keyed by (partition, id)."""

    def __init__(self):
        self._items: Dict[tuple, dict] = {}
        self._lock = threading.Lock()

    def put(self, partition: str, item_id: str, item: dict) -> None:
        with self._lock:
            self._items[(partition, item_id)] = copy.deepcopy(item)

    def get(self, partition: str, item_id: str) -> Optional[dict]:
        with self._lock:
            item = self._items.get((partition, item_id))
            return copy.deepcopy(item) if item is not None else None

    def list(self, partition: str) -> List[dict]:
        with self._lock:
            return [copy.deepcopy(v) for (p, _), v in self._items.items() if p == partition]


class ScenarioRepository:
    def __init__(self, store: Optional[InMemoryStore] = None):
        self.store = store or InMemoryStore()

    def create_scenario(self, scenario: Scenario) -> Scenario:
        """
        Persist a new scenario.

        Assigns a UUID, creation/update timestamps and version 1; the argument
        is left untouched.

        Returns:
            The stored scenario as re-read from the store
        """
        record = scenario.to_dict()
        scenario_id = str(uuid.uuid4())
        now = _timestamp()
        record.update({
            "scenarioId": scenario_id,
            "createdAt": now,
            "updatedAt": now,
            "version": 1,
        })
        self.store.put("SCENARIO", scenario_id, record)
        logger.debug(f"Stored scenario {scenario_id} ({scenario.type.value})")
        return self.get_scenario_by_id(scenario_id)

    def get_scenario_by_id(self, scenario_id: str) -> Optional[Scenario]:
        record = self.store.get("SCENARIO", scenario_id)
        if record is None:
            return None
        return Scenario.from_dict(record)

    def list_scenarios(self) -> List[Scenario]:
        return [Scenario.from_dict(r) for r in self.store.list("SCENARIO")]

    def save_scenario_result(self, result: ScenarioResult) -> None:
        self.store.put("RESULT", f"{result.scenario_id}#{result.timestamp}", result.to_dict())

    def get_scenario_results(self, scenario_id: str) -> List[dict]:
        """Stored results for a scenario, oldest first."""
        results = [r for r in self.store.list("RESULT") if r["scenarioId"] == scenario_id]
        return sorted(results, key=lambda r: r["timestamp"])


class FacilityRepository:
    def __init__(self, store: Optional[InMemoryStore] = None):
        self.store = store or InMemoryStore()

    def put_facility(self, facility: Facility) -> None:
        self.store.put("NODE", facility.facility_id, facility.to_dict())

    def get_facility_by_id(self, facility_id: str) -> Optional[Facility]:
        record = self.store.get("NODE", facility_id)
        if record is None:
            return None
        return Facility.from_dict(record)

    def get_facilities_by_ids(self, facility_ids: Iterable[str]) -> List[Facility]:
        """Fetch facilities in request order, skipping ids the store does not know."""
        facilities = []
        for facility_id in facility_ids:
            facility = self.get_facility_by_id(facility_id)
            if facility is None:
                logger.warning(f"Facility {facility_id} not found, skipping")
                continue
            facilities.append(facility)
        return facilities
