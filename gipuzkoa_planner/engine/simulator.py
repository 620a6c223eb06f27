import copy
import logging
from typing import Dict, List, Sequence

from ..data_model import (
    Expense,
    FamilyMember,
    IncomeStream,
    PlanConfig,
    RealizedIncome,
    SimulationResult,
    YearResult,
)
from .asset_store import AssetStore, debt_asset_id, savings_asset_id
from .drawdown import DrawdownResult, liquidate_for_target, liquidate_member_assets, member_liquid_shares
from .tax_aggregator import TaxAssessment, assess_taxes, income_owner_ids, outstanding_mortgage_debt

logger = logging.getLogger(__name__)


def _is_income_active(stream: IncomeStream, ages: Dict[str, float], earner_ids: Sequence[str]) -> bool:
    owners = income_owner_ids(stream.owners, earner_ids)
    if not owners:
        return True
    primary_age = ages.get(owners[0])
    if primary_age is None:
        return True
    if stream.start_age is not None and primary_age < stream.start_age:
        return False
    if stream.end_age is not None and primary_age >= stream.end_age:
        return False
    return True


def _realize_incomes(
    incomes: List[IncomeStream],
    ages: Dict[str, float],
    earner_ids: Sequence[str],
) -> List[RealizedIncome]:
    return [
        RealizedIncome(stream=inc, realized_amount=inc.amount if _is_income_active(inc, ages, earner_ids) else 0.0)
        for inc in incomes
    ]


def _member_inflows(
    realized: List[RealizedIncome],
    drawdown: DrawdownResult,
    earner_ids: Sequence[str],
) -> Dict[str, float]:
    """Cash each earner receives: their share of realized income plus of any drawdown sale.

    Non-earners hold no cash position, so their shares are pooled to the earners.
    """
    inflows: Dict[str, float] = {}
    earner_set = set(earner_ids)

    def _credit(owners: List[str], amount: float) -> None:
        owner_ids = income_owner_ids(owners, earner_ids)
        if not owner_ids or not earner_ids or amount == 0:
            return
        share = amount / len(owner_ids)
        for owner_id in owner_ids:
            recipients = [owner_id] if owner_id in earner_set else list(earner_ids)
            for recipient in recipients:
                inflows[recipient] = inflows.get(recipient, 0.0) + share / len(recipients)

    for item in realized:
        _credit(item.stream.owners, item.realized_amount)
    for owners, amount in drawdown.proceeds:
        _credit(owners, amount)
    return inflows


def _settle_member_cash_flows(
    members: List[FamilyMember],
    inflows: Dict[str, float],
    taxes: TaxAssessment,
    total_expenses: float,
    assets: AssetStore,
    year_offset: int,
) -> None:
    """Push each earner's surplus into savings or cover a deficit from assets, then debt.

    Expenses and any tax assessed on non-earners are shared equally by the earners.
    A deficit only draws down a savings asset that already exists; it never
    opens an empty one.
    """
    earners = [m for m in members if m.is_earner]
    if not earners:
        return
    expense_share = total_expenses / len(earners)
    non_earner_tax = sum(taxes.member(m.id).total for m in members if not m.is_earner)
    tax_share = non_earner_tax / len(earners)
    liquid_shares = {m.id: member_liquid_shares(assets, m.id) for m in earners}

    for member in earners:
        member_tax = taxes.member(member.id)
        flow = inflows.get(member.id, 0.0) - member_tax.total - expense_share - tax_share
        if flow == 0:
            continue

        if flow > 0:
            debt = assets.get(debt_asset_id(member.id))
            if debt is not None and debt.value < 0:
                repayment = min(flow, -debt.value)
                debt.value += repayment
                flow -= repayment
        else:
            flow += liquidate_member_assets(assets, liquid_shares[member.id], -flow)

        if flow == 0:
            continue
        savings = assets.savings_for(member) if flow > 0 else assets.get(savings_asset_id(member.id))
        if savings is not None:
            savings.value += flow
            if savings.value < 0:
                flow = savings.value
                savings.value = 0.0
            else:
                flow = 0.0
        if flow < 0:
            assets.debt_for(member).value += flow
            logger.debug("year %s: member %s borrowed %.2f", year_offset, member.id, -flow)


def run_projection(cfg: PlanConfig) -> SimulationResult:
    """Project the household year by year; the caller's collections are never mutated."""
    cfg.validate()

    members = copy.deepcopy(cfg.members)
    assets = AssetStore(cfg.assets)
    incomes = copy.deepcopy(cfg.incomes)
    expenses: List[Expense] = copy.deepcopy(cfg.expenses)
    earner_ids = cfg.earner_ids()
    target = cfg.target_retirement_income or 0.0

    years: List[YearResult] = []
    for i in range(cfg.years):
        ages = {m.id: m.age_at(i) for m in members}
        retirement_phase = any(m.is_retired(i) for m in members)

        if i > 0:
            for inc in incomes:
                inc.amount *= 1 + inc.growth_rate
            for exp in expenses:
                exp.amount *= 1 + exp.effective_growth_rate()

        realized = _realize_incomes(incomes, ages, earner_ids)
        gross_income = sum(item.realized_amount for item in realized)
        total_expenses = sum(exp.amount for exp in expenses if exp.is_active(i))

        base_taxes = assess_taxes(members, realized, assets, expenses, i, cfg.do_joint_taxes)
        net_income_fixed = gross_income - base_taxes.totals.total

        drawdown = DrawdownResult()
        if retirement_phase and target > 0 and net_income_fixed < target:
            drawdown = liquidate_for_target(assets, target - net_income_fixed, i)

        final_taxes = assess_taxes(members, realized + drawdown.gains, assets, expenses, i, cfg.do_joint_taxes)

        total_income = gross_income + drawdown.total
        cash_flow = total_income - total_expenses - final_taxes.totals.total

        inflows = _member_inflows(realized, drawdown, earner_ids)
        _settle_member_cash_flows(members, inflows, final_taxes, total_expenses, assets, i)

        assets.apply_growth()

        income_breakdown: Dict[str, float] = {}
        for item in realized:
            name = item.stream.name
            income_breakdown[name] = income_breakdown.get(name, 0.0) + item.realized_amount

        years.append(
            YearResult(
                year=cfg.start_year + i,
                age=members[0].age_at(i),
                net_worth=assets.total_value() - outstanding_mortgage_debt(expenses, i),
                total_income=total_income,
                total_expenses=total_expenses,
                taxes=final_taxes.totals,
                cash_flow=cash_flow,
                withdrawal_for_target_income=drawdown.total,
                cash_drawdown=drawdown.cash,
                stock_drawdown=drawdown.stock,
                asset_values=assets.snapshot(),
                income_breakdown=income_breakdown,
                member_taxes=dict(final_taxes.members),
            )
        )

    return SimulationResult(years=years)
