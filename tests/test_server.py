import pytest
from fastapi.testclient import TestClient

from server import app

client = TestClient(app)

BASE_CONFIG = {
    "scenario": "ApiTest",
    "start_value": 100000,
    "years": 10,
    "income_start": 2,
    "payout_rate": 0.05,
    "rollup_rate": 0.06,
    "mode": "Fixed Growth",
    "client_age": 75,
    "start_year": 2025,
    "seed": 3,
}

RECORDS = [
    {"Contract Number": "A-1", "Client Age": "81", "Contract Value": "$60,000.00",
     "Benefit Base": "$70,000.00", "Payout Rate": "6.00%", "Roll-up Rate": "7.00%"},
    {"Contract Number": "A-2", "Client Age": "81", "Contract Value": "$40,000.00",
     "Benefit Base": "$45,000.00", "Payout Rate": "5.00%", "Roll-up Rate": "5.00%"},
]


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_default_config():
    response = client.get("/api/config/default")
    assert response.status_code == 200
    assert response.json()["scenario"] == "SampleBook"


@pytest.mark.parametrize("age, rate", [(80, 0.0665), (64, 0.0475), (10, 0.0355)])
def test_payout_rate(age, rate):
    response = client.get("/api/payout-rate", params={"age": age})
    assert response.status_code == 200
    assert response.json() == {"age": age, "payout_rate": rate}


def test_validate_ok():
    response = client.post("/api/validate", json={"config": BASE_CONFIG})
    assert response.status_code == 200
    assert response.json() == {"valid": True, "scenario": "ApiTest"}


def test_validate_rejects_bad_config():
    response = client.post(
        "/api/validate", json={"config": {**BASE_CONFIG, "payout_rate": 2.0}}
    )
    assert response.status_code == 422
    assert "Invalid configuration" in response.json()["detail"]


def test_project_from_config():
    response = client.post("/api/project", json={"config": BASE_CONFIG})
    assert response.status_code == 200
    body = response.json()

    assert body["scenario"] == "ApiTest"
    assert body["comparison_payout_rate"] == 0.065
    assert len(body["client"]) == len(body["comparison"]) == 11
    assert body["returns"] == [0.06] * 11
    first = body["client"][0]
    assert set(first) == {
        "year", "value", "income", "benefit_base",
        "avg_return", "applied_return", "rollup_used",
    }
    assert first["year"] == 2025
    assert body["client"][2]["income"] == pytest.approx(100000 * 1.06 ** 2 * 0.05)
    assert body["client_summary"]["first_income_year"] == 2027


def test_project_from_records():
    response = client.post(
        "/api/project", json={"config": BASE_CONFIG, "records": RECORDS}
    )
    assert response.status_code == 200
    body = response.json()

    assert body["client_payout_rate"] == pytest.approx(0.055)
    assert body["comparison_payout_rate"] == 0.0665
    assert body["returns"] == pytest.approx([0.06] * 11)
    # Client base starts from the book's benefit base, not its contract value
    assert body["client"][0]["benefit_base"] == pytest.approx(115000 * 1.06)
    assert body["comparison"][0]["benefit_base"] == pytest.approx(100000 * 1.06)


def test_project_selected_contracts():
    response = client.post(
        "/api/project",
        json={"config": BASE_CONFIG, "records": RECORDS, "selected_contracts": ["A-2"]},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["client_payout_rate"] == pytest.approx(0.05)
    assert body["client"][0]["value"] == pytest.approx(40000 * 1.05)


def test_project_rejects_bad_config():
    response = client.post(
        "/api/project", json={"config": {**BASE_CONFIG, "income_start": 40}}
    )
    assert response.status_code == 422


def test_monte_carlo():
    response = client.post(
        "/api/monte-carlo",
        json={"config": {**BASE_CONFIG, "mode": "Monte Carlo"}, "num_paths": 25},
    )
    assert response.status_code == 200
    body = response.json()

    assert body["years"] == list(range(2025, 2036))
    assert set(body["percentiles"]) == {"p5", "p10", "p25", "p50", "p75", "p90", "p95"}
    assert all(len(v) == 11 for v in body["percentiles"].values())
    assert len(body["sample_paths"]) == 5


def test_monte_carlo_rejects_bad_path_count():
    response = client.post(
        "/api/monte-carlo", json={"config": BASE_CONFIG, "num_paths": 0}
    )
    assert response.status_code == 422


def test_monte_carlo_years_match_projection_without_start_year():
    config = {k: v for k, v in BASE_CONFIG.items() if k != "start_year"}
    projection = client.post("/api/project", json={"config": config}).json()
    bands = client.post(
        "/api/monte-carlo", json={"config": config, "num_paths": 5}
    ).json()
    assert bands["years"] == [p["year"] for p in projection["client"]]
    assert bands["years"][0] > 2000
