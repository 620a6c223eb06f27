"""Per-member attribution of income and wealth, and the resulting tax bill.

Income and assets are split equally among their listed owners. Each member is
then assessed individually (or jointly for IRPF when requested) and the
escudo fiscal is applied member by member.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from ..data_model import Asset, Expense, FamilyMember, RealizedIncome, TaxResults
from .taxes import apply_escudo_fiscal, irpf_general, irpf_savings, wealth_tax

# Art. 56 bis: 30% of salary income is exempt while the regime applies.
IMPATRIATE_SALARY_TAXABLE_SHARE = 0.70


@dataclass
class MemberTaxBase:
    general_base: float = 0.0
    savings_base: float = 0.0
    net_wealth: float = 0.0
    main_home_value: float = 0.0
    impatriate_active: bool = False

    @property
    def total_base(self) -> float:
        return self.general_base + self.savings_base


@dataclass
class TaxAssessment:
    totals: TaxResults = field(default_factory=TaxResults)
    members: Dict[str, TaxResults] = field(default_factory=dict)
    bases: Dict[str, MemberTaxBase] = field(default_factory=dict)

    def member(self, member_id: str) -> TaxResults:
        return self.members.get(member_id, TaxResults())


def income_owner_ids(owners: Sequence[str], earner_ids: Sequence[str]) -> List[str]:
    """Income without explicit owners belongs to every earner."""
    return list(owners) if owners else list(earner_ids)


def outstanding_mortgage_debt(expenses: Iterable[Expense], year_offset: int) -> float:
    return sum(expense.outstanding_principal(year_offset) for expense in expenses)


def attribute_bases(
    members: Sequence[FamilyMember],
    realized_incomes: Iterable[RealizedIncome],
    assets: Iterable[Asset],
    expenses: Iterable[Expense],
    year_offset: int,
) -> Dict[str, MemberTaxBase]:
    earner_ids = [m.id for m in members if m.is_earner]
    bases = {m.id: MemberTaxBase(impatriate_active=m.is_impatriate_active(year_offset)) for m in members}

    for item in realized_incomes:
        stream = item.stream
        if stream.is_undeclared or item.realized_amount == 0:
            continue
        owners = income_owner_ids(stream.owners, earner_ids)
        if not owners:
            continue
        share = item.realized_amount / len(owners)
        for owner_id in owners:
            base = bases.get(owner_id)
            if base is None:
                continue
            if stream.is_general_base():
                if stream.type == "salary" and base.impatriate_active:
                    base.general_base += share * IMPATRIATE_SALARY_TAXABLE_SHARE
                else:
                    base.general_base += share
            else:
                base.savings_base += share

    for asset in assets:
        if not asset.owners:
            continue
        share = asset.wealth_value() / len(asset.owners)
        for owner_id in asset.owners:
            base = bases.get(owner_id)
            if base is None:
                continue
            if base.impatriate_active and asset.is_foreign_asset:
                continue
            base.net_wealth += share
            if asset.is_main_residence:
                base.main_home_value += share

    debt = outstanding_mortgage_debt(expenses, year_offset)
    if debt and earner_ids:
        per_earner = debt / len(earner_ids)
        for earner_id in earner_ids:
            base = bases[earner_id]
            base.net_wealth = max(0.0, base.net_wealth - per_earner)

    return bases


def _joint_income_taxes(bases: Dict[str, MemberTaxBase], earner_ids: Sequence[str]) -> Dict[str, tuple[float, float]]:
    """Tax the combined earner bases once and split it by each earner's share of the total base."""
    combined_general = sum(bases[mid].general_base for mid in earner_ids)
    combined_savings = sum(bases[mid].savings_base for mid in earner_ids)
    combined_total = combined_general + combined_savings
    joint_general = irpf_general(combined_general)
    joint_savings = irpf_savings(combined_savings)

    split: Dict[str, tuple[float, float]] = {}
    for member_id in earner_ids:
        fraction = bases[member_id].total_base / combined_total if combined_total > 0 else 0.0
        split[member_id] = (joint_general * fraction, joint_savings * fraction)
    return split


def assess_taxes(
    members: Sequence[FamilyMember],
    realized_incomes: Iterable[RealizedIncome],
    assets: Iterable[Asset],
    expenses: Iterable[Expense],
    year_offset: int,
    do_joint_taxes: bool = False,
) -> TaxAssessment:
    bases = attribute_bases(members, realized_incomes, assets, expenses, year_offset)
    earner_ids = [m.id for m in members if m.is_earner]
    joint = _joint_income_taxes(bases, earner_ids) if do_joint_taxes and earner_ids else {}

    assessment = TaxAssessment(bases=bases)
    for member in members:
        base = bases[member.id]
        if member.id in joint:
            tax_general, tax_savings = joint[member.id]
        else:
            tax_general = irpf_general(base.general_base)
            tax_savings = irpf_savings(base.savings_base)
        irpf = tax_general + tax_savings

        # Impatriates are treated as non-resident: no main-home exemption and no shield.
        has_main_home = base.main_home_value > 0 and not base.impatriate_active
        wealth = wealth_tax(base.net_wealth, has_main_home, base.main_home_value)
        if base.impatriate_active:
            final_wealth, adjustment = wealth, 0.0
        else:
            shield = apply_escudo_fiscal(irpf, wealth, base.general_base, base.savings_base)
            final_wealth, adjustment = shield.final_wealth_tax, shield.adjustment

        result = TaxResults(
            irpf_general=tax_general,
            irpf_savings=tax_savings,
            irpf=irpf,
            wealth_tax=final_wealth,
            escudo_fiscal_adjustment=adjustment,
        )
        assessment.members[member.id] = result
        assessment.totals = assessment.totals + result
    return assessment
