# data_model/plan.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ..errors import PlannerInputError
from .assets import Asset
from .cashflow import Expense, IncomeStream
from .members import FamilyMember


@dataclass
class PlanConfig:
    name: str
    start_year: int
    years: int
    members: List[FamilyMember] = field(default_factory=list)
    assets: List[Asset] = field(default_factory=list)
    incomes: List[IncomeStream] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    # Not applied by the engine; growth comes from each item's own rate.
    inflation_rate: float = 0.0
    target_retirement_income: float = 0.0
    do_joint_taxes: bool = False

    def validate(self) -> None:
        if not self.members:
            raise PlannerInputError("At least one family member is required.")
        if self.years <= 0:
            raise PlannerInputError("Projection horizon must be a positive number of years.")
        ids = [m.id for m in self.members]
        if len(set(ids)) != len(ids):
            raise PlannerInputError("Family member ids must be unique.")

    def earner_ids(self) -> List[str]:
        return [m.id for m in self.members if m.is_earner]
