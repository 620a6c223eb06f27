"""Gipuzkoa 2024 tax tables and the pure functions evaluated against them.

IRPF uses incremental bracket tables of ``(upper_limit, rate)`` pairs. Wealth
tax (Impuesto sobre Patrimonio) is published as a cumulative table: each row
gives the tax due at a threshold plus the marginal rate applied to the rest.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

INF = float("inf")

IRPF_GENERAL_BRACKETS_2024: list[tuple[float, float]] = [
    (17280.0, 0.23),
    (34560.0, 0.28),
    (51840.0, 0.35),
    (74030.0, 0.40),
    (102530.0, 0.45),
    (136670.0, 0.46),
    (199240.0, 0.47),
    (INF, 0.49),
]

IRPF_SAVINGS_BRACKETS_2024: list[tuple[float, float]] = [
    (2500.0, 0.20),
    (10000.0, 0.21),
    (15000.0, 0.22),
    (30000.0, 0.23),
    (INF, 0.25),
]

# (threshold, tax at threshold, marginal rate on the remainder)
WEALTH_TAX_BRACKETS_2024: list[tuple[float, float, float]] = [
    (0.0, 0.0, 0.002),
    (167129.0, 334.26, 0.003),
    (334252.0, 835.63, 0.005),
    (668499.0, 2506.86, 0.009),
    (1336999.0, 8523.36, 0.013),
    (2673999.0, 25904.36, 0.017),
    (5347998.0, 71362.35, 0.021),
    (10695996.0, 183670.30, 0.025),
]

WEALTH_TAX_EXEMPT_MIN = 700000.0
MAIN_HOME_EXEMPT_MAX = 300000.0

ESCUDO_FISCAL_LIMIT = 0.65
ESCUDO_FISCAL_MAX_REDUCTION = 0.75


@dataclass(frozen=True)
class ShieldResult:
    final_wealth_tax: float
    adjustment: float


def tax_on_bracketed_base(base: float, brackets: Sequence[tuple[float, float]]) -> float:
    """Progressive tax of ``base`` over ascending ``(upper_limit, rate)`` brackets."""
    if base <= 0:
        return 0.0

    tax = 0.0
    previous_limit = 0.0
    for limit, rate in brackets:
        tax += (min(base, limit) - previous_limit) * rate
        if base <= limit:
            break
        previous_limit = limit
    return tax


def irpf_general(base: float) -> float:
    return tax_on_bracketed_base(base, IRPF_GENERAL_BRACKETS_2024)


def irpf_savings(base: float) -> float:
    return tax_on_bracketed_base(base, IRPF_SAVINGS_BRACKETS_2024)


def wealth_tax(net_wealth: float, has_main_home: bool = False, main_home_value: float = 0.0) -> float:
    """Wealth tax on ``net_wealth`` after the main-home and minimum exemptions."""
    taxable = net_wealth
    if has_main_home:
        taxable -= min(main_home_value, MAIN_HOME_EXEMPT_MAX)
    taxable -= WEALTH_TAX_EXEMPT_MIN
    if taxable <= 0:
        return 0.0

    for threshold, tax_at_threshold, rate in reversed(WEALTH_TAX_BRACKETS_2024):
        if taxable >= threshold:
            return tax_at_threshold + (taxable - threshold) * rate
    return 0.0


def apply_escudo_fiscal(
    income_tax: float,
    wealth_tax_quota: float,
    general_base: float,
    savings_base: float,
) -> ShieldResult:
    """Cap IRPF + wealth tax at 65% of the IRPF bases by trimming wealth tax only.

    The reduction never exceeds 75% of the wealth tax, so at least a quarter of
    it is always due.
    """
    ceiling = (general_base + savings_base) * ESCUDO_FISCAL_LIMIT
    total = income_tax + wealth_tax_quota
    if total <= ceiling:
        return ShieldResult(final_wealth_tax=wealth_tax_quota, adjustment=0.0)

    excess = total - ceiling
    max_reduction = wealth_tax_quota * ESCUDO_FISCAL_MAX_REDUCTION
    adjustment = min(excess, max_reduction)
    return ShieldResult(final_wealth_tax=wealth_tax_quota - adjustment, adjustment=adjustment)


def fiscal_parameters() -> dict[str, Any]:
    """Tables and exemptions in a JSON friendly shape (infinite limits become None)."""

    def _limit(value: float) -> float | None:
        return None if value == INF else value

    return {
        "year": 2024,
        "wealthTaxExemptMin": WEALTH_TAX_EXEMPT_MIN,
        "mainHomeExemptMax": MAIN_HOME_EXEMPT_MAX,
        "escudoFiscal": {"limit": ESCUDO_FISCAL_LIMIT, "maxReduction": ESCUDO_FISCAL_MAX_REDUCTION},
        "irpfGeneral": [{"limit": _limit(limit), "rate": rate} for limit, rate in IRPF_GENERAL_BRACKETS_2024],
        "irpfSavings": [{"limit": _limit(limit), "rate": rate} for limit, rate in IRPF_SAVINGS_BRACKETS_2024],
        "wealthTax": [
            {"threshold": threshold, "baseTax": tax, "rate": rate}
            for threshold, tax, rate in WEALTH_TAX_BRACKETS_2024
        ],
    }
