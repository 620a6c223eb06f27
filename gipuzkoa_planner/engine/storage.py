# engine/storage.py
import datetime
import json
import math
import os
from typing import Any, Dict, List

import pandas as pd

from ..data_model import Asset, Expense, FamilyMember, IncomeStream, PlanConfig
from ..data_model.base import as_bool
from ..errors import BackupFormatError

BACKUP_VERSION = 1


def ensure_user_data_dir(path: str) -> None:
    folder = os.path.dirname(path)
    if folder and not os.path.exists(folder):
        os.makedirs(folder, exist_ok=True)


def _sanitize_json_compat(value: Any):
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return value
    if isinstance(value, dict):
        return {key: _sanitize_json_compat(val) for key, val in value.items()}
    if isinstance(value, list):
        return [_sanitize_json_compat(item) for item in value]
    return value


def _read_json(path: str, empty):
    if not os.path.exists(path):
        return empty
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_text = f.read().strip()
            if not raw_text:
                return empty
            return json.loads(raw_text)
    except (json.JSONDecodeError, OSError):
        return empty


def _write_json_atomic(path: str, data: Any) -> None:
    ensure_user_data_dir(path)
    tmp_path = f"{path}.tmp"
    clean = _sanitize_json_compat(data)
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(clean, f, allow_nan=False)
    os.replace(tmp_path, path)


def save_scenarios(path: str, scenario_dict: Dict[str, pd.DataFrame]) -> None:
    data = {name: df.to_dict(orient="records") for name, df in scenario_dict.items()}
    _write_json_atomic(path, data)


def load_scenarios(path: str) -> Dict[str, pd.DataFrame]:
    raw = _read_json(path, {})
    return {name: pd.DataFrame(records) for name, records in raw.items()}


def load_plans(path: str) -> Dict[str, dict]:
    return _sanitize_json_compat(_read_json(path, {}))


def save_plans(path: str, plans: Dict[str, dict]) -> None:
    _write_json_atomic(path, plans)


def build_backup(plan: PlanConfig, timestamp: str | None = None) -> Dict[str, Any]:
    """Full-state backup document, the format inputs are restored from."""
    return {
        "version": BACKUP_VERSION,
        "members": [m.to_dict() for m in plan.members],
        "assets": [a.to_dict() for a in plan.assets],
        "incomes": [i.to_dict() for i in plan.incomes],
        "expenses": [e.to_dict() for e in plan.expenses],
        "settings": {
            "targetRetirementIncome": plan.target_retirement_income,
            "doJointTaxes": plan.do_joint_taxes,
            "startYear": plan.start_year,
            "yearsToProject": plan.years,
            "inflationRate": plan.inflation_rate,
        },
        "timestamp": timestamp or datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }


def _records(payload: Dict[str, Any], key: str) -> List[dict]:
    rows = payload.get(key) or []
    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise BackupFormatError(f"Backup field '{key}' must be a list of objects.")
    return rows


def parse_backup(
    payload: Any,
    name: str = "Restored",
    default_start_year: int | None = None,
    default_years: int = 40,
) -> PlanConfig:
    if not isinstance(payload, dict) or not payload.get("version") or not payload.get("members"):
        raise BackupFormatError("Invalid backup file format")

    settings = payload.get("settings") or {}
    if not isinstance(settings, dict):
        raise BackupFormatError("Backup field 'settings' must be an object.")
    members = [FamilyMember.from_dict(row) for row in _records(payload, "members")]
    assets = [Asset.from_dict(row) for row in _records(payload, "assets")]
    incomes = [IncomeStream.from_dict(row) for row in _records(payload, "incomes")]
    expenses = [Expense.from_dict(row) for row in _records(payload, "expenses")]

    try:
        start_year = int(settings.get("startYear") or default_start_year or datetime.date.today().year)
        years = int(settings.get("yearsToProject") or default_years)
        inflation = float(settings.get("inflationRate") or 0.0)
        target = float(settings.get("targetRetirementIncome") or 0.0)
    except (TypeError, ValueError) as exc:
        raise BackupFormatError(f"Invalid backup settings: {exc}") from exc

    return PlanConfig(
        name=name,
        start_year=start_year,
        years=years,
        members=members,
        assets=assets,
        incomes=incomes,
        expenses=expenses,
        inflation_rate=inflation,
        target_retirement_income=target,
        do_joint_taxes=as_bool(settings.get("doJointTaxes")),
    )


def save_backup(path: str, plan: PlanConfig) -> Dict[str, Any]:
    backup = build_backup(plan)
    ensure_user_data_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(_sanitize_json_compat(backup), f, indent=2, allow_nan=False)
    return backup


def load_backup(path: str, **kwargs) -> PlanConfig:
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as exc:
        raise BackupFormatError(f"Backup is not valid JSON: {exc}") from exc
    return parse_backup(payload, **kwargs)
