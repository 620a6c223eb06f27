import io
import json

import pytest

from gipuzkoa_planner.backend import create_app
from gipuzkoa_planner.config import PlannerSettings


@pytest.fixture
def client(tmp_path):
    app = create_app(PlannerSettings(data_dir=str(tmp_path)))
    app.config.update(TESTING=True)
    return app.test_client()


def _plan_payload(**overrides):
    payload = {
        "name": "Household",
        "startYear": 2025,
        "years": 3,
        "members": [{"id": "1", "name": "Ane", "age": 40}],
        "assets": [{"id": "1", "name": "Cash", "type": "cash", "value": 10000, "owners": ["1"]}],
        "incomes": [{"id": "1", "name": "Salary", "type": "salary", "amount": 40000, "owners": ["1"]}],
        "expenses": [{"id": "1", "name": "Living", "amount": 20000}],
    }
    payload.update(overrides)
    return payload


def test_health_and_cors(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.get_json() == {"status": "ok"}
    assert res.headers["Access-Control-Allow-Origin"] == "*"


def test_schema_lists_table_models(client):
    data = client.get("/api/schema").get_json()

    assert data["planDefaults"]["years"] == 40
    assert [opt["value"] for opt in data["freqOptions"]] == ["Y", "D"]
    member_fields = [col["field"] for col in data["members"]["columns"]]
    assert "Bis 56" in member_fields
    assert data["assets"]["defaults"]


def test_fiscal_parameters_are_json_safe(client):
    data = client.get("/api/fiscal").get_json()

    assert data["wealthTaxExemptMin"] == 700000
    assert data["irpfGeneral"][-1]["limit"] is None
    assert data["irpfSavings"][0] == {"limit": 2500, "rate": 0.2}


def test_projection_from_records(client):
    res = client.post("/api/projection", json=_plan_payload())

    assert res.status_code == 200
    years = res.get_json()["years"]
    assert [row["year"] for row in years] == [2025, 2026, 2027]
    assert years[0]["taxes"]["irpfGeneral"] == pytest.approx(17280 * 0.23 + 17280 * 0.28 + 5440 * 0.35)
    assert years[0]["totalIncome"] == 40000
    assert "1" in years[0]["memberTaxes"]


def test_projection_from_table_rows(client):
    payload = {
        "name": "Rows",
        "startYear": 2025,
        "years": 2,
        "members": [{"ID": "1", "Name": "Ane", "Age": 40, "Earner": True}],
        "incomes": [{"ID": "1", "Name": "Salary", "Type": "salary", "Amount": 30000, "Owners": "1", "Growth (%)": 0}],
    }

    years = client.post("/api/projection", json=payload).get_json()["years"]

    assert years[0]["totalIncome"] == 30000
    assert years[0]["taxes"]["irpf"] == pytest.approx(17280 * 0.23 + 12720 * 0.28)


def test_projection_without_members_is_rejected(client):
    res = client.post("/api/projection", json=_plan_payload(members=[]))

    assert res.status_code == 400
    assert "member" in res.get_json()["error"]


def test_projection_with_bad_parameters_is_rejected(client):
    res = client.post("/api/projection", json=_plan_payload(years="many"))
    assert res.status_code == 400


def test_scenarios_are_stored_and_aggregated(client):
    client.post("/api/projection", json=_plan_payload(scenario="Base", years=12))
    client.post("/api/projection", json=_plan_payload(scenario="Lean", years=12))

    yearly = client.get("/api/scenarios").get_json()
    assert yearly["scenarios"] == ["Base", "Lean"]
    assert len(yearly["data"]) == 24

    decades = client.get("/api/scenarios?freq=D").get_json()
    assert decades["freq"] == "D"
    assert sorted({row["Period"] for row in decades["data"]}) == ["2020s", "2030s"]

    client.delete("/api/scenarios?name=Lean")
    assert client.get("/api/scenarios").get_json()["scenarios"] == ["Base"]
    assert client.delete("/api/scenarios").get_json()["scenarios"] == []


def test_plan_crud(client):
    assert client.post("/api/plans", json={"members": []}).status_code == 400

    saved = client.post("/api/plans", json=_plan_payload()).get_json()
    assert saved["plans"] == ["Household"]
    assert saved["plan"]["version"] == 1

    plan = client.get("/api/plans/Household").get_json()
    assert plan["settings"]["yearsToProject"] == 3
    assert plan["members"][0]["name"] == "Ane"

    assert client.get("/api/plans/Missing").status_code == 404
    assert client.delete("/api/plans/Household").get_json()["plans"] == []


def test_import_csv_merges_into_plan(client):
    csv_bytes = b"Category,Type,Name,Amount\nAsset,fund,Index fund,5000\nExpense,,Gym,400\n"

    res = client.post(
        "/api/import",
        data={"file": (io.BytesIO(csv_bytes), "accounts.csv"), "plan": json.dumps(_plan_payload())},
        content_type="multipart/form-data",
    )

    data = res.get_json()
    assert res.status_code == 200
    assert data["fullRestore"] is False
    assert data["counts"] == {"assets": 1, "incomes": 0, "expenses": 1}
    fund = data["plan"]["assets"][-1]
    assert fund["id"] == "2"
    assert fund["owners"] == ["1"]
    assert fund["growthRate"] == 0.05


def test_import_requires_file_and_plan(client):
    assert client.post("/api/import", data={}, content_type="multipart/form-data").status_code == 400
    res = client.post(
        "/api/import",
        data={"file": (io.BytesIO(b"Rent 100"), "scan.txt")},
        content_type="multipart/form-data",
    )
    assert res.status_code == 400


def test_import_json_backup_is_full_restore(client):
    backup = client.post("/api/export", json=_plan_payload()).get_json()

    res = client.post(
        "/api/import",
        data={"file": (io.BytesIO(json.dumps(backup).encode("utf-8")), "backup.json")},
        content_type="multipart/form-data",
    )

    data = res.get_json()
    assert data["fullRestore"] is True
    assert data["plan"]["incomes"] == backup["incomes"]
    assert data["plan"]["settings"]["startYear"] == 2025


def test_export_validates_existing_backups(client):
    backup = client.post("/api/export", json=_plan_payload(targetRetirementIncome=30000)).get_json()
    assert backup["settings"]["targetRetirementIncome"] == 30000

    again = client.post("/api/export", json=backup).get_json()
    assert again["members"] == backup["members"]

    broken = client.post("/api/export", json={"version": 1, "members": [{"id": "1"}], "assets": "nope"})
    assert broken.status_code == 400
