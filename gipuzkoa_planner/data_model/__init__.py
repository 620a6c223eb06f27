from .assets import ASSET_TYPES, DEFAULT_GROWTH_RATES, Asset, AssetTableModel, dataframe_to_assets
from .cashflow import (
    GENERAL_BASE_TYPES,
    INCOME_TYPES,
    Expense,
    ExpenseTableModel,
    IncomeStream,
    IncomeTableModel,
    RealizedIncome,
    dataframe_to_expenses,
    dataframe_to_incomes,
)
from .members import DEFAULT_RETIREMENT_AGE, FamilyMember, MemberTableModel, dataframe_to_members
from .plan import PlanConfig
from .results import SimulationResult, TaxResults, YearResult

__all__ = [
    "ASSET_TYPES",
    "DEFAULT_GROWTH_RATES",
    "DEFAULT_RETIREMENT_AGE",
    "GENERAL_BASE_TYPES",
    "INCOME_TYPES",
    "Asset",
    "AssetTableModel",
    "Expense",
    "ExpenseTableModel",
    "FamilyMember",
    "IncomeStream",
    "IncomeTableModel",
    "MemberTableModel",
    "PlanConfig",
    "RealizedIncome",
    "SimulationResult",
    "TaxResults",
    "YearResult",
    "dataframe_to_assets",
    "dataframe_to_expenses",
    "dataframe_to_incomes",
    "dataframe_to_members",
]
