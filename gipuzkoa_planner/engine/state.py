# engine/state.py
from typing import Dict, List

import pandas as pd

from ..data_model import PlanConfig, SimulationResult
from .aggregate import aggregate_period, results_to_frame
from .storage import build_backup, load_plans, load_scenarios, parse_backup, save_plans, save_scenarios


class ScenarioState:
    """Named projection results, kept as yearly frames for side-by-side comparison."""

    def __init__(self, storage_path: str = "user_data/scenarios.json"):
        self.storage_path = storage_path
        self.scenarios: Dict[str, pd.DataFrame] = load_scenarios(storage_path)

    def add_result(self, name: str, result: SimulationResult) -> pd.DataFrame:
        frame = results_to_frame(result, name)
        self.scenarios[name] = frame
        self._save()
        return frame

    def remove(self, name: str) -> None:
        if name in self.scenarios:
            del self.scenarios[name]
            self._save()

    def clear(self) -> None:
        self.scenarios = {}
        self._save()

    def _save(self):
        save_scenarios(self.storage_path, self.scenarios)

    def yearly(self) -> pd.DataFrame:
        if not self.scenarios:
            return pd.DataFrame()
        return pd.concat(self.scenarios.values(), ignore_index=True)

    def aggregated(self, freq: str = "Y") -> pd.DataFrame:
        return aggregate_period(self.yearly(), freq=freq)

    def list_names(self) -> List[str]:
        return list(self.scenarios.keys())


class PlanState:
    """Saved plans, persisted as backup documents and restored as ``PlanConfig``."""

    def __init__(self, storage_path: str = "user_data/plans.json"):
        self.storage_path = storage_path
        self.plans: Dict[str, dict] = load_plans(storage_path)

    def list_names(self) -> List[str]:
        return sorted(self.plans.keys())

    def get(self, name: str) -> PlanConfig | None:
        document = self.plans.get(name)
        if document is None:
            return None
        return parse_backup(document, name=name)

    def saved_at(self, name: str) -> str | None:
        return (self.plans.get(name) or {}).get("timestamp")

    def save(self, name: str, plan: PlanConfig) -> dict:
        plan.validate()
        backup = build_backup(plan)
        self.plans[name] = backup
        self._save()
        return backup

    def delete(self, name: str) -> None:
        if name in self.plans:
            del self.plans[name]
            self._save()

    def _save(self) -> None:
        save_plans(self.storage_path, self.plans)
