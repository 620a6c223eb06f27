"""Partial imports of assets, incomes and expenses.

Supports a categorised CSV (``Category`` = asset | income | expense), raw text
as produced by OCR of a statement, and full JSON backups. Partial records are
defaulted and merged into an existing plan by ``apply_import_defaults``.
"""
from __future__ import annotations

import copy
import csv
import io
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..data_model import ASSET_TYPES, INCOME_TYPES, Asset, Expense, IncomeStream, PlanConfig
from ..data_model.base import as_float, is_blank
from ..engine.storage import parse_backup
from ..errors import PlannerInputError

logger = logging.getLogger(__name__)

IMPORT_GROWTH_RATE = 0.02
IMPORT_STOCK_GROWTH_RATE = 0.05

TEXT_LINE_PATTERN = re.compile(r"^([a-zA-Z\s]+)\s+([0-9,.]+)")
INCOME_KEYWORDS = ("salary", "pension", "rent")
EXPENSE_KEYWORDS = ("expense", "bill", "tax")


@dataclass
class ParsedImport:
    assets: List[Dict[str, Any]] = field(default_factory=list)
    incomes: List[Dict[str, Any]] = field(default_factory=list)
    expenses: List[Dict[str, Any]] = field(default_factory=list)
    full_state: PlanConfig | None = None

    def counts(self) -> Dict[str, int]:
        return {"assets": len(self.assets), "incomes": len(self.incomes), "expenses": len(self.expenses)}


def _cell(row: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if not is_blank(value):
            return value
    return None


def parse_csv_rows(file_bytes: bytes) -> list[Dict[str, Any]]:
    text = file_bytes.decode("utf-8-sig", errors="replace")
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise PlannerInputError("CSV file has no header row.")
    try:
        return [r for r in reader]
    except csv.Error as exc:
        raise PlannerInputError(f"Failed to parse CSV: {exc}") from exc


def parse_csv_bytes(file_bytes: bytes) -> ParsedImport:
    parsed = ParsedImport()
    for row in parse_csv_rows(file_bytes):
        category = str(_cell(row, "Category") or "").strip().lower()
        row_type = str(_cell(row, "Type") or "").strip().lower()
        name = _cell(row, "Name")
        amount = as_float(str(_cell(row, "Amount", "Value") or "0").replace(",", ""))

        if category == "asset":
            parsed.assets.append(
                {
                    "name": str(name).strip() if name else "Imported Asset",
                    "type": row_type if row_type in ASSET_TYPES else "other",
                    "value": amount,
                    "owners": [],
                    "isMainResidence": False,
                }
            )
        elif category == "income":
            parsed.incomes.append(
                {
                    "name": str(name).strip() if name else "Imported Income",
                    "type": row_type if row_type in INCOME_TYPES else "other",
                    "amount": amount,
                    "owners": [],
                    "growthRate": IMPORT_GROWTH_RATE,
                }
            )
        elif category == "expense":
            parsed.expenses.append(
                {
                    "name": str(name).strip() if name else "Imported Expense",
                    "amount": amount,
                    "growthRate": IMPORT_GROWTH_RATE,
                }
            )
    return parsed


def parse_text(text: str) -> ParsedImport:
    """Heuristic reading of OCR text: one ``<name> <number>`` pair per line."""
    parsed = ParsedImport()
    for line in (text or "").splitlines():
        clean = line.strip()
        if not clean:
            continue
        match = TEXT_LINE_PATTERN.match(clean)
        if not match:
            continue
        name = match.group(1).strip()
        try:
            value = float(match.group(2).replace(",", ""))
        except ValueError:
            continue

        lower = name.lower()
        if any(word in lower for word in INCOME_KEYWORDS):
            parsed.incomes.append({"name": name, "amount": value, "type": "other"})
        elif any(word in lower for word in EXPENSE_KEYWORDS):
            parsed.expenses.append({"name": name, "amount": value})
        else:
            parsed.assets.append({"name": name, "value": value, "type": "other", "owners": []})
    return parsed


def parse_import(file_bytes: bytes, filename: str, **backup_kwargs) -> ParsedImport:
    """Dispatch on the file extension: .json backup, .csv table, anything else as text."""
    lowered = (filename or "").lower()
    if lowered.endswith(".json"):
        try:
            payload = json.loads(file_bytes.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise PlannerInputError(f"Backup is not valid JSON: {exc}") from exc
        return ParsedImport(full_state=parse_backup(payload, **backup_kwargs))
    if lowered.endswith(".csv"):
        return parse_csv_bytes(file_bytes)
    return parse_text(file_bytes.decode("utf-8", errors="replace"))


def _next_id(ids: List[str]) -> int:
    numeric = [int(value) for value in ids if str(value).isdigit()]
    return max([0] + numeric) + 1


def apply_import_defaults(parsed: ParsedImport, plan: PlanConfig) -> PlanConfig:
    """Merge partial records into a copy of ``plan``.

    New ids continue after the largest numeric id of each collection; owners
    default to the first member.
    """
    if parsed.full_state is not None:
        return parsed.full_state
    if not plan.members:
        raise PlannerInputError("A family member is required before importing partial data.")

    merged = copy.deepcopy(plan)
    default_owner = [merged.members[0].id]

    next_asset = _next_id([a.id for a in merged.assets])
    for offset, row in enumerate(parsed.assets):
        asset_type = row.get("type", "other")
        value = as_float(row.get("value"))
        growth = row.get("growthRate")
        if growth is None:
            growth = IMPORT_STOCK_GROWTH_RATE if asset_type in ("stock", "fund") else IMPORT_GROWTH_RATE
        merged.assets.append(
            Asset(
                id=str(next_asset + offset),
                name=row.get("name", "Imported Asset"),
                type=asset_type,
                value=value,
                owners=list(row.get("owners") or default_owner),
                purchase_value=value,
                is_main_residence=False,
                growth_rate=growth,
            )
        )

    next_income = _next_id([i.id for i in merged.incomes])
    for offset, row in enumerate(parsed.incomes):
        merged.incomes.append(
            IncomeStream(
                id=str(next_income + offset),
                name=row.get("name", "Imported Income"),
                type=row.get("type", "other"),
                amount=as_float(row.get("amount")),
                owners=list(row.get("owners") or default_owner),
                growth_rate=IMPORT_GROWTH_RATE,
            )
        )

    next_expense = _next_id([e.id for e in merged.expenses])
    for offset, row in enumerate(parsed.expenses):
        merged.expenses.append(
            Expense(
                id=str(next_expense + offset),
                name=row.get("name", "Imported Expense"),
                amount=as_float(row.get("amount")),
                growth_rate=IMPORT_GROWTH_RATE,
            )
        )

    logger.info(
        "Imported %d assets, %d incomes, %d expenses",
        len(parsed.assets),
        len(parsed.incomes),
        len(parsed.expenses),
    )
    return merged
