import pytest
from fastapi.testclient import TestClient

from subtrack.database import ArtifactStore
from subtrack.main import app
from subtrack.models.store_models import AGGREGATES


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _import(client, platform, rows, origin="file_import"):
    return client.post(f"/imports/{platform}", json={"origin": origin, "rows": rows})


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_latest_before_any_pass_is_404(client):
    assert client.get("/aggregates/latest").status_code == 404
    assert client.get("/merge-report/latest").status_code == 404


def test_import_then_read_aggregates(client):
    response = _import(
        client,
        "shopee",
        [{"Order ID": "O1", "Sub_id1": "sub1", "Item Total Commission": "100", "Order Time": "2024-01-05"}],
    )
    assert response.status_code == 200
    body = response.json()
    assert body["records"] == 1
    assert body["processing"] == "completed"

    _import(client, "facebook", [{"Campaign name": "sub1 campaign", "Amount spent (THB)": "40", "Day": "2024-01-05"}])

    latest = client.get("/aggregates/latest").json()
    sub1 = latest["aggregates"]["per_sub_id"]["sub1"]
    assert sub1["total_commission"] == 100
    assert sub1["ad_spend"] == 40
    assert sub1["overall_roi"] == 150.0
    assert ArtifactStore().get(AGGREGATES)["totals"]["total_ad_spend"] == 40


def test_process_with_filters(client):
    _import(
        client,
        "lazada",
        [
            {"Check Out ID": "L1", "Aff Sub ID": "a", "Payout": "5", "Conversion Time": "2024-01-05 09:00"},
            {"Check Out ID": "L2", "Aff Sub ID": "b", "Payout": "7", "Conversion Time": "2024-01-09 09:00"},
        ],
    )

    response = client.post(
        "/process",
        json={"date_range": {"start": "2024-01-05", "end": "2024-01-05"}},
    )

    assert response.status_code == 200
    assert response.json()["aggregates"]["totals"]["total_commission"] == 5


def test_filtered_process_does_not_replace_latest(client):
    _import(
        client,
        "shopee",
        [
            {"Order ID": "O1", "Sub_id1": "a", "Item Total Commission": "100"},
            {"Order ID": "O2", "Sub_id1": "b", "Item Total Commission": "30"},
        ],
    )
    generation = client.get("/aggregates/latest").json()["generation"]

    view = client.post("/process", json={"sub_ids": ["b"]}).json()

    assert view["aggregates"]["totals"]["total_commission"] == 30
    latest = client.get("/aggregates/latest").json()
    assert latest["generation"] == generation
    assert latest["aggregates"]["totals"]["total_commission"] == 130
    assert ArtifactStore().get(AGGREGATES)["totals"]["total_commission"] == 130


def test_process_before_any_pass_is_404(client):
    assert client.post("/process", json={}).status_code == 404


def test_merge_report_after_sync(client):
    _import(client, "shopee", [{"Order ID": "O1", "Item Total Commission": "10"}])
    _import(client, "shopee", [{"order_id": "O1", "commission": "12"}], origin="api_sync")

    report = client.get("/merge-report/latest").json()

    assert report["merge_report"]["details"][0]["duplicates_found"] == 1
    assert report["merge_report"]["details"][0]["conflicts_resolved"] == 1


def test_structural_failure_maps_to_422(client):
    response = _import(client, "facebook", [{"Campaign name": "no spend"}])
    assert response.status_code == 422


def test_invalid_date_range_is_rejected(client):
    response = client.post(
        "/process", json={"date_range": {"start": "2024-02-01", "end": "2024-01-01"}}
    )
    assert response.status_code == 422
