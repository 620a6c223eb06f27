import pytest

from gipuzkoa_planner.data_model import Asset, Expense, FamilyMember, IncomeStream, PlanConfig
from gipuzkoa_planner.engine.simulator import run_projection
from gipuzkoa_planner.engine.taxes import irpf_general, irpf_savings
from gipuzkoa_planner.errors import PlannerInputError


def _default_plan(**overrides) -> PlanConfig:
    params = dict(
        name="Default",
        start_year=2024,
        years=1,
        members=[
            FamilyMember(id="1", name="Parent 1", age=40),
            FamilyMember(id="2", name="Parent 2", age=38),
        ],
        assets=[
            Asset(
                id="1",
                name="Main Home",
                type="real_estate",
                value=400000,
                owners=["1", "2"],
                purchase_value=300000,
                is_main_residence=True,
                growth_rate=0.02,
            )
        ],
        incomes=[IncomeStream(id="1", name="Salary 1", type="salary", amount=45000, owners=["1"], growth_rate=0.02)],
        expenses=[Expense(id="1", name="Living Expenses", amount=30000, growth_rate=0.02)],
    )
    params.update(overrides)
    return PlanConfig(**params)


def test_single_year_household_ledger():
    result = run_projection(_default_plan())
    year = result.years[0]

    salary_tax = irpf_general(45000)
    surplus = 45000 - salary_tax - 15000
    assert year.year == 2024
    assert year.age == 40
    assert year.total_expenses == pytest.approx(30000)
    assert year.total_income == pytest.approx(45000)
    assert year.taxes.irpf == pytest.approx(salary_tax)
    assert year.taxes.wealth_tax == 0
    assert year.cash_flow == pytest.approx(45000 - 30000 - salary_tax)
    assert year.asset_values["Main Home"] == pytest.approx(408000)
    assert year.asset_values["Other Investments (Parent 1)"] == pytest.approx(surplus * 1.01)
    # Parent 2 earns nothing but carries half of the expenses.
    assert year.asset_values["Accumulated Debt (Parent 2)"] == pytest.approx(-15000)
    assert year.net_worth == pytest.approx(408000 + surplus * 1.01 - 15000)
    assert year.member_taxes["2"].irpf == 0
    assert year.income_breakdown == {"Salary 1": 45000}


def test_projection_is_deterministic_and_leaves_inputs_untouched():
    plan = _default_plan(years=5)

    first = run_projection(plan)
    second = run_projection(plan)

    assert first.years == second.years
    assert [row.year for row in first.years] == [2024, 2025, 2026, 2027, 2028]
    assert len(plan.assets) == 1
    assert plan.assets[0].value == 400000
    assert plan.incomes[0].amount == 45000
    assert plan.expenses[0].amount == 30000


def test_incomes_and_expenses_compound_after_first_year():
    result = run_projection(_default_plan(years=3))

    assert result.years[0].income_breakdown["Salary 1"] == pytest.approx(45000)
    assert result.years[2].income_breakdown["Salary 1"] == pytest.approx(45000 * 1.02**2)
    assert result.years[2].total_expenses == pytest.approx(30000 * 1.02**2)


def test_income_age_window_follows_first_owner():
    plan = _default_plan(
        years=4,
        members=[FamilyMember(id="1", name="A", age=65), FamilyMember(id="2", name="B", age=30)],
        incomes=[
            IncomeStream(id="1", name="Pension", type="pension", amount=20000, owners=["1", "2"], start_age=67),
            IncomeStream(id="2", name="Salary", type="salary", amount=30000, owners=["1"], end_age=66),
        ],
        expenses=[],
    )
    result = run_projection(plan)

    assert [row.income_breakdown["Pension"] for row in result.years] == [0, 0, 20000, 20000]
    assert [row.income_breakdown["Salary"] for row in result.years] == [30000, 0, 0, 0]


def test_expense_window_is_start_inclusive_end_exclusive():
    plan = _default_plan(
        years=4,
        expenses=[Expense(id="1", name="School", amount=5000, start_year=1, end_year=3)],
    )
    result = run_projection(plan)

    assert [row.total_expenses for row in result.years] == [0, 5000, 5000, 0]


def test_mortgage_principal_reduces_net_worth_and_does_not_grow():
    plan = _default_plan(
        years=2,
        expenses=[Expense(id="1", name="Mortgage", amount=12000, growth_rate=0.05, end_year=10, is_mortgage=True)],
    )
    result = run_projection(plan)

    for offset, row in enumerate(result.years):
        assert row.total_expenses == pytest.approx(12000)
        assert row.net_worth == pytest.approx(sum(row.asset_values.values()) - 12000 * (10 - offset))


def test_retirement_drawdown_funds_target_and_is_taxed():
    plan = PlanConfig(
        name="Retired",
        start_year=2030,
        years=1,
        members=[FamilyMember(id="1", name="A", age=70)],
        assets=[
            Asset(id="1", name="Cash", type="cash", value=10000, owners=["1"]),
            Asset(id="2", name="Shares", type="stock", value=100000, owners=["1"], growth_rate=0.03),
        ],
        target_retirement_income=20000,
    )
    year = run_projection(plan).years[0]

    gain_tax = irpf_savings(10000)
    assert year.withdrawal_for_target_income == pytest.approx(20000)
    assert year.cash_drawdown == pytest.approx(10000)
    assert year.stock_drawdown == pytest.approx(10000)
    assert year.total_income == pytest.approx(20000)
    assert year.taxes.irpf_savings == pytest.approx(gain_tax)
    assert year.cash_flow == pytest.approx(20000 - gain_tax)
    assert year.asset_values["Cash"] == 0
    assert year.asset_values["Shares"] == pytest.approx(90000 * 1.03)
    assert year.asset_values["Other Investments (A)"] == pytest.approx((20000 - gain_tax) * 1.01)


def test_no_drawdown_before_retirement_or_without_target():
    assets = [Asset(id="1", name="Cash", type="cash", value=10000, owners=["1"])]
    working = PlanConfig(
        name="Working",
        start_year=2030,
        years=1,
        members=[FamilyMember(id="1", name="A", age=50)],
        assets=assets,
        target_retirement_income=20000,
    )
    no_target = PlanConfig(
        name="NoTarget",
        start_year=2030,
        years=1,
        members=[FamilyMember(id="1", name="A", age=70)],
        assets=assets,
    )

    assert run_projection(working).years[0].withdrawal_for_target_income == 0
    assert run_projection(no_target).years[0].withdrawal_for_target_income == 0


def test_custom_retirement_age_triggers_drawdown():
    plan = PlanConfig(
        name="Early",
        start_year=2030,
        years=1,
        members=[FamilyMember(id="1", name="A", age=55, retirement_age=55)],
        assets=[Asset(id="1", name="Cash", type="cash", value=50000, owners=["1"])],
        target_retirement_income=10000,
    )
    assert run_projection(plan).years[0].cash_drawdown == pytest.approx(10000)


def test_member_deficit_sells_own_assets_before_borrowing():
    plan = PlanConfig(
        name="Deficit",
        start_year=2030,
        years=1,
        members=[FamilyMember(id="1", name="A", age=40)],
        assets=[Asset(id="1", name="Cash", type="cash", value=5000, owners=["1"])],
        expenses=[Expense(id="1", name="Living", amount=8000)],
    )
    year = run_projection(plan).years[0]

    assert year.asset_values["Cash"] == 0
    assert year.asset_values["Accumulated Debt (A)"] == pytest.approx(-3000)
    assert "Other Investments (A)" not in year.asset_values
    assert year.withdrawal_for_target_income == 0
    assert year.net_worth == pytest.approx(-3000)


def test_surplus_repays_debt_before_saving():
    plan = PlanConfig(
        name="Recovery",
        start_year=2030,
        years=2,
        members=[FamilyMember(id="1", name="A", age=40)],
        incomes=[IncomeStream(id="1", name="Salary", type="salary", amount=10000, owners=["1"], start_age=41)],
        expenses=[Expense(id="1", name="Once", amount=8000, end_year=1)],
    )
    result = run_projection(plan)

    assert result.years[0].asset_values["Accumulated Debt (A)"] == pytest.approx(-8000)
    net_salary = 10000 - irpf_general(10000)
    assert result.years[1].asset_values["Accumulated Debt (A)"] == pytest.approx(net_salary - 8000)
    assert "Other Investments (A)" not in result.years[1].asset_values


def test_debt_can_grow_without_bound():
    plan = PlanConfig(
        name="Insolvent",
        start_year=2030,
        years=3,
        members=[FamilyMember(id="1", name="A", age=40)],
        expenses=[Expense(id="1", name="Living", amount=10000)],
    )
    result = run_projection(plan)

    assert [row.asset_values["Accumulated Debt (A)"] for row in result.years] == pytest.approx([-10000, -20000, -30000])


def test_non_earners_do_not_share_expenses():
    plan = _default_plan(
        members=[
            FamilyMember(id="1", name="Parent", age=40),
            FamilyMember(id="2", name="Kid", age=10, is_earner=False),
        ],
    )
    year = run_projection(plan).years[0]

    surplus = 45000 - irpf_general(45000) - 30000
    assert year.asset_values["Other Investments (Parent)"] == pytest.approx(surplus * 1.01)
    assert not any("Kid" in name for name in year.asset_values)


def test_drawdown_of_a_non_earner_asset_reaches_the_earners():
    plan = PlanConfig(
        name="KidsFund",
        start_year=2030,
        years=1,
        members=[FamilyMember(id="1", name="A", age=70), FamilyMember(id="2", name="Kid", age=10, is_earner=False)],
        assets=[Asset(id="1", name="Kids fund", type="fund", value=10000, owners=["2"], growth_rate=0.0)],
        target_retirement_income=5000,
    )
    year = run_projection(plan).years[0]

    gain_tax = irpf_savings(5000 * 0.5)
    assert year.withdrawal_for_target_income == pytest.approx(5000)
    assert year.member_taxes["2"].irpf == pytest.approx(gain_tax)
    assert year.cash_flow == pytest.approx(5000 - gain_tax)
    assert year.asset_values["Kids fund"] == pytest.approx(5000)
    assert year.asset_values["Other Investments (A)"] == pytest.approx((5000 - gain_tax) * 1.01)
    assert year.net_worth == pytest.approx(5000 + (5000 - gain_tax) * 1.01)


def test_non_earner_share_of_a_joint_sale_is_not_lost():
    plan = PlanConfig(
        name="JointCash",
        start_year=2030,
        years=1,
        members=[FamilyMember(id="1", name="A", age=70), FamilyMember(id="2", name="Kid", age=10, is_earner=False)],
        assets=[Asset(id="1", name="Joint cash", type="cash", value=6000, owners=["1", "2"])],
        target_retirement_income=4000,
    )
    year = run_projection(plan).years[0]

    gain_tax = 2 * irpf_savings(1000)
    assert year.cash_drawdown == pytest.approx(4000)
    assert year.taxes.irpf == pytest.approx(gain_tax)
    assert year.asset_values["Other Investments (A)"] == pytest.approx((4000 - gain_tax) * 1.01)
    assert year.net_worth == pytest.approx(2000 + (4000 - gain_tax) * 1.01)
    assert not any("Kid" in name for name in year.asset_values)


def test_joint_taxes_end_to_end():
    members = [FamilyMember(id="1", name="Spouse A", age=40), FamilyMember(id="2", name="Spouse B", age=40)]
    incomes = [
        IncomeStream(id="1", name="salary A", type="salary", amount=50000, owners=["1"]),
        IncomeStream(id="2", name="salary B", type="salary", amount=50000, owners=["2"]),
    ]
    individual = run_projection(PlanConfig("Ind", 2024, 1, members=members, incomes=incomes)).years[0]
    joint = run_projection(PlanConfig("Joint", 2024, 1, members=members, incomes=incomes, do_joint_taxes=True)).years[0]

    assert joint.taxes.irpf > individual.taxes.irpf
    assert joint.member_taxes["1"].irpf == pytest.approx(joint.member_taxes["2"].irpf)
    assert joint.member_taxes["1"].irpf == pytest.approx(joint.taxes.irpf / 2)


def test_wealthier_member_pays_more_wealth_tax():
    members = [
        FamilyMember(id="1", name="iker", age=47, retirement_age=50),
        FamilyMember(id="2", name="idoia", age=42, retirement_age=50),
        FamilyMember(id="3", name="maren", age=13, is_earner=False),
    ]
    assets = [
        Asset(id="1", name="Main Home", type="real_estate", value=600000, owners=["1", "2"], is_main_residence=True, growth_rate=0.01),
        Asset(id="2", name="Shares", type="stock", value=2_400_000, owners=["1", "2"], growth_rate=0.03),
        Asset(id="3", name="Etxalar", type="real_estate", value=300000, owners=["1"], growth_rate=0.01, valor_catastral=125000),
        Asset(id="4", name="Kids fund", type="stock", value=10000, owners=["3"], growth_rate=0.04),
    ]
    incomes = [IncomeStream(id="1", name="salary iker", type="salary", amount=300000, owners=["1"], growth_rate=0.02, end_age=50)]
    expenses = [Expense(id="1", name="Living", amount=50000, growth_rate=0.02)]

    result = run_projection(PlanConfig("Family", 2024, 10, members=members, assets=assets, incomes=incomes, expenses=expenses))

    final = result.years[-1]
    assert final.member_taxes["1"].wealth_tax > final.member_taxes["2"].wealth_tax > 0
    assert final.member_taxes["3"].wealth_tax == 0


def test_empty_household_is_rejected_before_projecting():
    with pytest.raises(PlannerInputError):
        run_projection(PlanConfig(name="Empty", start_year=2024, years=3))
    with pytest.raises(PlannerInputError):
        run_projection(_default_plan(years=0))
