"""REST backend for household projection scenarios."""

from __future__ import annotations

import datetime
import json
import logging
import math
from typing import Any, Dict, List

import pandas as pd
from flask import Flask, jsonify, request

from gipuzkoa_planner.config import PlannerSettings, load_settings
from gipuzkoa_planner.data_model import (
    Asset,
    AssetTableModel,
    Expense,
    ExpenseTableModel,
    FamilyMember,
    IncomeStream,
    IncomeTableModel,
    MemberTableModel,
    PlanConfig,
    dataframe_to_assets,
    dataframe_to_expenses,
    dataframe_to_incomes,
    dataframe_to_members,
)
from gipuzkoa_planner.data_model.base import TableModel, as_bool, as_float
from gipuzkoa_planner.engine.simulator import run_projection
from gipuzkoa_planner.engine.state import PlanState, ScenarioState
from gipuzkoa_planner.engine.storage import build_backup, parse_backup
from gipuzkoa_planner.engine.taxes import fiscal_parameters
from gipuzkoa_planner.errors import PlannerInputError
from gipuzkoa_planner.importing.ingestion import apply_import_defaults, parse_import

logger = logging.getLogger(__name__)

MEMBER_MODEL = MemberTableModel()
ASSET_MODEL = AssetTableModel()
INCOME_MODEL = IncomeTableModel()
EXPENSE_MODEL = ExpenseTableModel()

# Table-editor rows use the column labels ("Name"); backup records use "name".
_TABLE_PARSERS = {
    "members": (dataframe_to_members, FamilyMember.from_dict),
    "assets": (dataframe_to_assets, Asset.from_dict),
    "incomes": (dataframe_to_incomes, IncomeStream.from_dict),
    "expenses": (dataframe_to_expenses, Expense.from_dict),
}


def _is_nan(value: Any) -> bool:
    try:
        return not math.isfinite(value)
    except (TypeError, ValueError):
        return False


def _sanitize_records(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    clean_rows: List[Dict[str, Any]] = []
    for row in records:
        clean_rows.append({key: (None if _is_nan(value) else value) for key, value in row.items()})
    return clean_rows


def _model_payload(model: TableModel) -> Dict[str, Any]:
    columns: List[Dict[str, Any]] = []
    for col in model.columns:
        columns.append(
            {
                "field": col.field,
                "label": col.label,
                "kind": col.kind,
                "default": col.default,
                "options": col.options or [],
                "min": col.min_value,
                "step": col.step,
                "format": col.format,
                "help": col.help,
            }
        )
    defaults = _sanitize_records(model.create_default_df().to_dict("records"))
    return {"name": model.name, "columns": columns, "defaults": defaults}


def _extract_payload_value(payload: dict, *keys: str, default=None):
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _parse_rows(key: str, rows: Any) -> list:
    if not rows:
        return []
    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise PlannerInputError(f"'{key}' must be a list of objects.")
    table_parser, record_parser = _TABLE_PARSERS[key]
    if "Name" in rows[0]:
        return table_parser(pd.DataFrame(rows))
    return [record_parser(row) for row in rows]


def plan_from_payload(payload: dict, settings: PlannerSettings) -> PlanConfig:
    """Build a plan from a request body holding either table rows or backup records."""
    if not isinstance(payload, dict):
        raise PlannerInputError("Request body must be a JSON object.")
    plan_settings = payload.get("settings") or {}
    merged = {**plan_settings, **payload}
    try:
        name = str(_extract_payload_value(merged, "name", "planName", default="Scenario")).strip() or "Scenario"
        start_year = int(_extract_payload_value(merged, "startYear", default=datetime.date.today().year))
        years = int(_extract_payload_value(merged, "years", "yearsToProject", default=settings.default_years))
        inflation = as_float(_extract_payload_value(merged, "inflationRate", default=settings.default_inflation))
        target = as_float(_extract_payload_value(merged, "targetRetirementIncome", default=0.0))
        joint = as_bool(_extract_payload_value(merged, "doJointTaxes", default=False))
    except (TypeError, ValueError) as exc:
        raise PlannerInputError("Invalid plan parameters.") from exc

    plan = PlanConfig(
        name=name,
        start_year=start_year,
        years=years,
        members=_parse_rows("members", payload.get("members")),
        assets=_parse_rows("assets", payload.get("assets")),
        incomes=_parse_rows("incomes", payload.get("incomes")),
        expenses=_parse_rows("expenses", payload.get("expenses")),
        inflation_rate=inflation,
        target_retirement_income=target,
        do_joint_taxes=joint,
    )
    plan.validate()
    return plan


def create_app(settings: PlannerSettings | None = None) -> Flask:
    settings = settings or load_settings()
    app = Flask(__name__)
    state = ScenarioState(settings.scenarios_path)
    plan_state = PlanState(settings.plans_path)

    def _aggregated_payload(freq: str) -> Dict[str, Any]:
        freq = (freq or "Y").upper()
        agg_df = state.aggregated(freq)
        if agg_df.empty:
            return {"scenarios": state.list_names(), "data": [], "freq": freq}
        records = _sanitize_records(agg_df.to_dict(orient="records"))
        return {"scenarios": state.list_names(), "freq": freq, "data": records}

    @app.errorhandler(PlannerInputError)
    def handle_input_error(exc: PlannerInputError):
        logger.warning("Rejected request to %s: %s", request.path, exc)
        return jsonify({"error": str(exc)}), 400

    @app.after_request
    def apply_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,DELETE,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.get("/api/health")
    def healthcheck():
        return jsonify({"status": "ok"})

    @app.get("/api/schema")
    def get_schema():
        payload = {
            "planDefaults": {
                "name": "MyPlan",
                "startYear": datetime.date.today().year,
                "years": settings.default_years,
                "inflationRate": settings.default_inflation,
                "targetRetirementIncome": 0.0,
                "doJointTaxes": False,
                "freq": "Y",
            },
            "members": _model_payload(MEMBER_MODEL),
            "assets": _model_payload(ASSET_MODEL),
            "incomes": _model_payload(INCOME_MODEL),
            "expenses": _model_payload(EXPENSE_MODEL),
            "freqOptions": [
                {"label": "Yearly", "value": "Y"},
                {"label": "Decade", "value": "D"},
            ],
        }
        return jsonify(payload)

    @app.get("/api/fiscal")
    def get_fiscal_parameters():
        return jsonify(fiscal_parameters())

    @app.post("/api/projection")
    def run_projection_endpoint():
        payload = request.get_json(silent=True) or {}
        plan = plan_from_payload(payload, settings)
        result = run_projection(plan)
        response: Dict[str, Any] = result.to_dict()

        scenario = str(payload.get("scenario") or "").strip()
        if scenario:
            state.add_result(scenario, result)
            response["scenarios"] = state.list_names()
        logger.info("Projected %s over %d years", plan.name, plan.years)
        return jsonify(response)

    @app.get("/api/scenarios")
    def list_scenarios():
        freq = request.args.get("freq", "Y")
        return jsonify(_aggregated_payload(freq))

    @app.delete("/api/scenarios")
    def clear_scenarios():
        name = request.args.get("name")
        if name:
            state.remove(name)
            return jsonify({"message": "Scenario removed.", "scenarios": state.list_names()})
        state.clear()
        return jsonify({"message": "All scenarios cleared.", "scenarios": []})

    @app.get("/api/plans")
    def list_saved_plans():
        return jsonify({"plans": plan_state.list_names()})

    @app.get("/api/plans/<plan_name>")
    def get_plan(plan_name: str):
        plan = plan_state.get(plan_name)
        if plan is None:
            return jsonify({"error": "Plan not found."}), 404
        return jsonify(build_backup(plan, timestamp=plan_state.saved_at(plan_name)))

    @app.post("/api/plans")
    def save_plan():
        payload = request.get_json(silent=True) or {}
        name = str(payload.get("name", "")).strip()
        if not name:
            return jsonify({"error": "Plan name is required."}), 400
        backup = plan_state.save(name, plan_from_payload(payload, settings))
        return jsonify({"message": "Plan saved.", "plans": plan_state.list_names(), "plan": backup})

    @app.delete("/api/plans/<plan_name>")
    def delete_plan(plan_name: str):
        plan_state.delete(plan_name)
        return jsonify({"message": "Plan deleted.", "plans": plan_state.list_names()})

    @app.post("/api/import")
    def import_endpoint():
        """Upload a JSON backup, a categorised CSV or OCR text.

        Form fields:
          - file: multipart file
          - plan: optional JSON plan the partial records are merged into
        """
        if "file" not in request.files:
            return jsonify({"error": "Missing file"}), 400
        upload = request.files["file"]
        filename = upload.filename or "upload.txt"
        parsed = parse_import(upload.read(), filename, default_years=settings.default_years)

        if parsed.full_state is not None:
            logger.info("Restored full backup from %s", filename)
            return jsonify({"fullRestore": True, "plan": build_backup(parsed.full_state)})

        raw_plan = request.form.get("plan")
        if not raw_plan:
            return jsonify({"error": "A base plan is required to merge partial imports."}), 400
        try:
            base_payload = json.loads(raw_plan)
        except json.JSONDecodeError:
            return jsonify({"error": "Plan must be valid JSON."}), 400
        merged = apply_import_defaults(parsed, plan_from_payload(base_payload, settings))
        return jsonify({"fullRestore": False, "counts": parsed.counts(), "plan": build_backup(merged)})

    @app.post("/api/export")
    def export_endpoint():
        payload = request.get_json(silent=True) or {}
        if payload.get("version"):
            # Round-trip an existing backup through the validator.
            plan = parse_backup(payload, default_years=settings.default_years)
        else:
            plan = plan_from_payload(payload, settings)
        return jsonify(build_backup(plan))

    return app


if __name__ == "__main__":
    _settings = load_settings()
    logging.basicConfig(level=_settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    create_app(_settings).run(debug=_settings.debug, port=_settings.port)
