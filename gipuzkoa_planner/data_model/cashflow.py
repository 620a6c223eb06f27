from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List

import pandas as pd

from .base import ColumnDefinition, TableModel, as_bool, as_float, is_blank, optional_float, parse_id_list

INCOME_TYPES = ["salary", "rental", "dividend", "interest", "pension", "other"]
# Everything outside the general base is taxed as savings income.
GENERAL_BASE_TYPES = {"salary", "pension", "rental"}


@dataclass
class IncomeStream:
    id: str
    name: str
    type: str
    amount: float
    owners: List[str] = field(default_factory=list)
    growth_rate: float = 0.0
    start_age: float | None = None
    end_age: float | None = None
    is_undeclared: bool = False

    def is_general_base(self) -> bool:
        return self.type in GENERAL_BASE_TYPES

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "amount": self.amount,
            "owners": list(self.owners),
            "growthRate": self.growth_rate,
        }
        if self.start_age is not None:
            payload["startAge"] = self.start_age
        if self.end_age is not None:
            payload["endAge"] = self.end_age
        if self.is_undeclared:
            payload["isUndeclared"] = True
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IncomeStream":
        income_type = str(data.get("type", "other") or "other").lower()
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "") or ""),
            type=income_type if income_type in INCOME_TYPES else "other",
            amount=as_float(data.get("amount")),
            owners=parse_id_list(data.get("owners")),
            growth_rate=as_float(data.get("growthRate")),
            start_age=optional_float(data.get("startAge")),
            end_age=optional_float(data.get("endAge")),
            is_undeclared=as_bool(data.get("isUndeclared")),
        )


@dataclass
class Expense:
    id: str
    name: str
    amount: float
    growth_rate: float = 0.0
    start_year: int | None = None
    end_year: int | None = None
    is_mortgage: bool = False

    def effective_growth_rate(self) -> float:
        # Mortgage instalments are fixed.
        return 0.0 if self.is_mortgage else self.growth_rate

    def is_active(self, year_offset: int) -> bool:
        start = self.start_year or 0
        if year_offset < start:
            return False
        return self.end_year is None or year_offset < self.end_year

    def outstanding_principal(self, year_offset: int) -> float:
        """Remaining mortgage debt: instalment times the years left, zero once paid off."""
        if not self.is_mortgage or self.end_year is None or not self.is_active(year_offset):
            return 0.0
        return self.amount * (self.end_year - year_offset)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "amount": self.amount,
            "growthRate": self.growth_rate,
        }
        if self.start_year is not None:
            payload["startYear"] = self.start_year
        if self.end_year is not None:
            payload["endYear"] = self.end_year
        if self.is_mortgage:
            payload["isMortgage"] = True
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Expense":
        start = optional_float(data.get("startYear"))
        end = optional_float(data.get("endYear"))
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "") or ""),
            amount=as_float(data.get("amount")),
            growth_rate=as_float(data.get("growthRate")),
            start_year=None if start is None else int(start),
            end_year=None if end is None else int(end),
            is_mortgage=as_bool(data.get("isMortgage")),
        )


@dataclass(frozen=True)
class RealizedIncome:
    """An income stream paired with the amount it actually pays in one simulated year."""

    stream: IncomeStream
    realized_amount: float


def _income_defaults() -> List[dict[str, Any]]:
    return [
        {
            "ID": "1",
            "Name": "Salary 1",
            "Type": "salary",
            "Amount": 45000.0,
            "Owners": "1",
            "Growth (%)": 2.0,
            "Start Age": "",
            "End Age": "",
            "Undeclared": False,
        }
    ]


def _expense_defaults() -> List[dict[str, Any]]:
    return [
        {
            "ID": "1",
            "Name": "Living Expenses",
            "Amount": 30000.0,
            "Growth (%)": 2.0,
            "Start Year": "",
            "End Year": "",
            "Mortgage": False,
        }
    ]


class IncomeTableModel(TableModel):
    def __init__(self) -> None:
        columns = [
            ColumnDefinition("ID", "ID"),
            ColumnDefinition("Name", "Name"),
            ColumnDefinition("Type", "Type", kind="select", default="salary", options=INCOME_TYPES),
            ColumnDefinition(
                "Amount",
                "Gross Annual Amount (EUR)",
                kind="number",
                default=0.0,
                min_value=0.0,
                step=1000.0,
                format="%.2f",
            ),
            ColumnDefinition("Owners", "Owners", kind="owners", default="", help="empty = all earners"),
            ColumnDefinition("Growth (%)", "Growth (%)", kind="number", default=2.0, step=0.25),
            ColumnDefinition("Start Age", "Start Age", kind="number", default="", help="age of first owner"),
            ColumnDefinition("End Age", "End Age", kind="number", default="", help="age of first owner (exclusive)"),
            ColumnDefinition("Undeclared", "Undeclared", kind="bool", default=False, help="excluded from tax bases"),
        ]
        super().__init__("incomes", columns, _income_defaults())


class ExpenseTableModel(TableModel):
    def __init__(self) -> None:
        columns = [
            ColumnDefinition("ID", "ID"),
            ColumnDefinition("Name", "Name"),
            ColumnDefinition(
                "Amount",
                "Annual Amount (EUR)",
                kind="number",
                default=0.0,
                min_value=0.0,
                step=1000.0,
                format="%.2f",
            ),
            ColumnDefinition("Growth (%)", "Growth (%)", kind="number", default=2.0, step=0.25),
            ColumnDefinition("Start Year", "Start Year", kind="number", default="", help="years from now, 0 = now"),
            ColumnDefinition("End Year", "End Year", kind="number", default="", help="years from now (exclusive)"),
            ColumnDefinition("Mortgage", "Mortgage", kind="bool", default=False),
        ]
        super().__init__("expenses", columns, _expense_defaults())


def dataframe_to_incomes(df: pd.DataFrame) -> List[IncomeStream]:
    rows: List[IncomeStream] = []
    for index, row in enumerate(df.to_dict("records")):
        name = str(row.get("Name", "") or "").strip()
        if not name:
            continue
        income_type = str(row.get("Type", "other") or "other").lower()
        income_id = row.get("ID")
        rows.append(
            IncomeStream(
                id=str(index + 1) if is_blank(income_id) else str(income_id).strip(),
                name=name,
                type=income_type if income_type in INCOME_TYPES else "other",
                amount=as_float(row.get("Amount")),
                owners=parse_id_list(row.get("Owners")),
                growth_rate=as_float(row.get("Growth (%)")) / 100.0,
                start_age=optional_float(row.get("Start Age")),
                end_age=optional_float(row.get("End Age")),
                is_undeclared=as_bool(row.get("Undeclared")),
            )
        )
    return rows


def dataframe_to_expenses(df: pd.DataFrame) -> List[Expense]:
    rows: List[Expense] = []
    for index, row in enumerate(df.to_dict("records")):
        name = str(row.get("Name", "") or "").strip()
        if not name:
            continue
        is_mortgage = as_bool(row.get("Mortgage"))
        start = optional_float(row.get("Start Year"))
        end = optional_float(row.get("End Year"))
        expense_id = row.get("ID")
        rows.append(
            Expense(
                id=str(index + 1) if is_blank(expense_id) else str(expense_id).strip(),
                name=name,
                amount=as_float(row.get("Amount")),
                growth_rate=0.0 if is_mortgage else as_float(row.get("Growth (%)")) / 100.0,
                start_year=None if start is None else int(start),
                end_year=None if end is None else int(end),
                is_mortgage=is_mortgage,
            )
        )
    return rows
