import pandas as pd

from ..data_model import SimulationResult

REQUIRED_COLUMNS = {"Scenario", "YearIndex", "Year"}
ASSET_PREFIX = "Asset:"
INCOME_PREFIX = "Income:"
FLOW_COLUMNS = {
    "TotalIncome",
    "TotalExpenses",
    "CashFlow",
    "IRPF",
    "IRPFGeneral",
    "IRPFSavings",
    "WealthTax",
    "EscudoFiscal",
    "Withdrawal",
    "CashDrawdown",
    "StockDrawdown",
}


def results_to_frame(result: SimulationResult, scenario: str = "Scenario") -> pd.DataFrame:
    """One row per simulated year with asset and income breakdowns flattened to columns."""
    records = []
    for index, row in enumerate(result.years):
        record = {
            "Scenario": scenario,
            "YearIndex": index,
            "Year": row.year,
            "Age": row.age,
            "NetWorth": row.net_worth,
            "TotalIncome": row.total_income,
            "TotalExpenses": row.total_expenses,
            "CashFlow": row.cash_flow,
            "IRPF": row.taxes.irpf,
            "IRPFGeneral": row.taxes.irpf_general,
            "IRPFSavings": row.taxes.irpf_savings,
            "WealthTax": row.taxes.wealth_tax,
            "EscudoFiscal": row.taxes.escudo_fiscal_adjustment,
            "Withdrawal": row.withdrawal_for_target_income,
            "CashDrawdown": row.cash_drawdown,
            "StockDrawdown": row.stock_drawdown,
        }
        for name, value in row.asset_values.items():
            record[f"{ASSET_PREFIX}{name}"] = value
        for name, value in row.income_breakdown.items():
            record[f"{INCOME_PREFIX}{name}"] = value
        records.append(record)

    df = pd.DataFrame(records)
    breakdown = [col for col in df.columns if col.startswith((ASSET_PREFIX, INCOME_PREFIX))]
    if breakdown:
        # Generated savings/debt entries only appear once created.
        df[breakdown] = df[breakdown].fillna(0.0)
    return df


def _prepare(df: pd.DataFrame) -> pd.DataFrame:
    missing = REQUIRED_COLUMNS.difference(df.columns)
    if missing:
        raise KeyError(f"Missing required columns: {', '.join(sorted(missing))}")
    return df.sort_values(["Scenario", "YearIndex"]).copy()


def aggregate_period(df: pd.DataFrame, freq: str = "Y") -> pd.DataFrame:
    """Keep yearly rows (Y) or collapse them to decades (D).

    Decades sum the flow columns and keep balances from the last year.
    """
    if df.empty:
        return df

    freq = (freq or "Y").upper()
    df = _prepare(df)

    if freq == "D":
        df["PeriodValue"] = (df["Year"] // 10) * 10
        rules = {}
        for col in df.columns:
            if col in ("Scenario", "PeriodValue"):
                continue
            rules[col] = "sum" if col in FLOW_COLUMNS or col.startswith(INCOME_PREFIX) else "last"
        grouped = df.groupby(["Scenario", "PeriodValue"], as_index=False).agg(rules)
        grouped["Period"] = grouped["PeriodValue"].astype(int).astype(str) + "s"
        return grouped

    df["PeriodValue"] = df["YearIndex"]
    df["Period"] = df["Year"].astype(str)
    return df
