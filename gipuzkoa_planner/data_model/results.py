from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class TaxResults:
    irpf_general: float = 0.0
    irpf_savings: float = 0.0
    irpf: float = 0.0
    wealth_tax: float = 0.0
    escudo_fiscal_adjustment: float = 0.0

    @property
    def total(self) -> float:
        return self.irpf + self.wealth_tax

    def __add__(self, other: "TaxResults") -> "TaxResults":
        return TaxResults(
            irpf_general=self.irpf_general + other.irpf_general,
            irpf_savings=self.irpf_savings + other.irpf_savings,
            irpf=self.irpf + other.irpf,
            wealth_tax=self.wealth_tax + other.wealth_tax,
            escudo_fiscal_adjustment=self.escudo_fiscal_adjustment + other.escudo_fiscal_adjustment,
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "irpf": self.irpf,
            "irpfGeneral": self.irpf_general,
            "irpfSavings": self.irpf_savings,
            "wealthTax": self.wealth_tax,
            "escudoFiscalAdjustment": self.escudo_fiscal_adjustment,
        }


@dataclass(frozen=True)
class YearResult:
    year: int
    age: float
    net_worth: float
    total_income: float
    total_expenses: float
    taxes: TaxResults
    cash_flow: float
    withdrawal_for_target_income: float
    cash_drawdown: float
    stock_drawdown: float
    asset_values: Dict[str, float] = field(default_factory=dict)
    income_breakdown: Dict[str, float] = field(default_factory=dict)
    member_taxes: Dict[str, TaxResults] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "age": self.age,
            "netWorth": self.net_worth,
            "totalIncome": self.total_income,
            "totalExpenses": self.total_expenses,
            "taxes": self.taxes.to_dict(),
            "cashFlow": self.cash_flow,
            "withdrawalForTargetIncome": self.withdrawal_for_target_income,
            "cashDrawdown": self.cash_drawdown,
            "stockDrawdown": self.stock_drawdown,
            "assetValues": dict(self.asset_values),
            "incomeBreakdown": dict(self.income_breakdown),
            "memberTaxes": {mid: taxes.to_dict() for mid, taxes in self.member_taxes.items()},
        }


@dataclass
class SimulationResult:
    years: List[YearResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"years": [row.to_dict() for row in self.years]}
