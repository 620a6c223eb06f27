from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List

import pandas as pd

from .base import ColumnDefinition, TableModel, as_bool, as_float, is_blank, optional_float

DEFAULT_RETIREMENT_AGE = 67


@dataclass
class FamilyMember:
    id: str
    name: str
    age: float
    is_earner: bool = True
    retirement_age: float | None = None
    has_bis56_exemption: bool = False
    bis56_exemption_years_remaining: float | None = None

    def age_at(self, year_offset: int) -> float:
        return self.age + year_offset

    def is_retired(self, year_offset: int) -> bool:
        return self.age_at(year_offset) >= (self.retirement_age or DEFAULT_RETIREMENT_AGE)

    def is_impatriate_active(self, year_offset: int) -> bool:
        """Art. 56 bis regime applies while the remaining-years counter has not run out."""
        if not self.has_bis56_exemption:
            return False
        if self.bis56_exemption_years_remaining is None:
            return True
        return year_offset < self.bis56_exemption_years_remaining

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "isEarner": self.is_earner,
        }
        if self.retirement_age is not None:
            payload["retirementAge"] = self.retirement_age
        if self.has_bis56_exemption:
            payload["hasBis56Exemption"] = True
        if self.bis56_exemption_years_remaining is not None:
            payload["bis56ExemptionYearsRemaining"] = self.bis56_exemption_years_remaining
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FamilyMember":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "") or ""),
            age=as_float(data.get("age")),
            is_earner=as_bool(data.get("isEarner", True)),
            retirement_age=optional_float(data.get("retirementAge")) or None,
            has_bis56_exemption=as_bool(data.get("hasBis56Exemption")),
            bis56_exemption_years_remaining=optional_float(data.get("bis56ExemptionYearsRemaining")),
        )


def _member_defaults() -> List[dict[str, Any]]:
    return [
        {"ID": "1", "Name": "Parent 1", "Age": 40, "Earner": True, "Retirement Age": "", "Bis 56": False, "Bis 56 Years": ""},
        {"ID": "2", "Name": "Parent 2", "Age": 38, "Earner": True, "Retirement Age": "", "Bis 56": False, "Bis 56 Years": ""},
    ]


class MemberTableModel(TableModel):
    def __init__(self) -> None:
        columns = [
            ColumnDefinition("ID", "ID"),
            ColumnDefinition("Name", "Name"),
            ColumnDefinition("Age", "Age", kind="number", default=40, min_value=0, step=1),
            ColumnDefinition("Earner", "Declares income", kind="bool", default=True),
            ColumnDefinition(
                "Retirement Age",
                "Retirement Age",
                kind="number",
                default="",
                min_value=0,
                step=1,
                help=f"empty = {DEFAULT_RETIREMENT_AGE}",
            ),
            ColumnDefinition("Bis 56", "Impatriate regime (Art. 56 bis)", kind="bool", default=False),
            ColumnDefinition("Bis 56 Years", "Impatriate years remaining", kind="number", default="", min_value=0, step=1),
        ]
        super().__init__("members", columns, _member_defaults())


def dataframe_to_members(df: pd.DataFrame) -> List[FamilyMember]:
    members: List[FamilyMember] = []
    for index, row in enumerate(df.to_dict("records")):
        name = str(row.get("Name", "") or "").strip()
        if not name:
            continue
        member_id = row.get("ID")
        members.append(
            FamilyMember(
                id=str(index + 1) if is_blank(member_id) else str(member_id).strip(),
                name=name,
                age=as_float(row.get("Age")),
                is_earner=as_bool(row.get("Earner", True)),
                retirement_age=optional_float(row.get("Retirement Age")) or None,
                has_bis56_exemption=as_bool(row.get("Bis 56")),
                bis56_exemption_years_remaining=optional_float(row.get("Bis 56 Years")),
            )
        )
    return members
