from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import app.db as app_db


@pytest.fixture()
def client():
    with tempfile.TemporaryDirectory(prefix="emoc-api-") as temp_dir:
        db_path = Path(temp_dir) / "api.db"
        os.environ["DATABASE_URL"] = f"sqlite:///{db_path.as_posix()}"
        os.environ["LLM_API_KEY"] = ""

        from app.main import create_app

        with TestClient(create_app()) as test_client:
            yield test_client
        if app_db.engine is not None:
            app_db.engine.dispose()
        os.environ.pop("DATABASE_URL", None)
        app_db.configure_database("sqlite:///:memory:")


def _first_template(client: TestClient) -> dict:
    templates = client.get("/api/templates").json()["templates"]
    return client.get(f"/api/templates/{templates[0]['id']}").json()


def test_health(client: TestClient) -> None:
    assert client.get("/healthz").json() == {"status": "ok"}
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["version"]


def test_risk_endpoints(client: TestClient) -> None:
    matrix = client.get("/api/risk/matrix").json()
    assert len(matrix["rows"]) == 4
    assert len(matrix["columns"]) == 4

    res = client.post("/api/risk/assess", json={"before": {"likelihood": 4, "impact": 4}, "after": {"likelihood": 1, "impact": 2}})
    body = res.json()
    assert body["assessment"]["riskCode"] == "H1"
    assert body["after"]["riskCode"] == "L14"
    assert body["comparison"]["direction"] == "reduced"

    bad = client.post("/api/risk/assess", json={"likelihood": 7, "impact": 1})
    assert bad.status_code == 422
    assert "risk" in bad.json()["errors"]

    assert client.get("/api/risk/style/M9").json()["backgroundColor"] == "#FED7AA"


def test_seeded_templates_and_lookup(client: TestClient) -> None:
    body = client.get("/api/templates").json()
    assert len(body["templates"]) == 9
    assert body["duplicateKeys"] == []

    found = client.get("/api/templates/lookup", params={"typeOfChange": "Emergency", "lengthOfChange": "N/A"})
    assert found.status_code == 200
    assert found.json()["formName"] == "Emergency"

    missing = client.get("/api/templates/lookup", params={"typeOfChange": "Nope", "lengthOfChange": "N/A"})
    assert missing.status_code == 404
    assert client.get("/api/templates/unknown").status_code == 404


def test_item_crud_and_dangling_reference(client: TestClient) -> None:
    template = _first_template(client)
    tid = template["id"]
    part = template["parts"][0]
    pid = part["id"]

    created = client.post(f"/api/templates/{tid}/parts/{pid}/items", json={"title": "Extra check", "role": "VP Area"})
    assert created.status_code == 201
    new_item = created.json()
    assert new_item["itemNo"] == 4

    bad_patch = client.patch(
        f"/api/templates/{tid}/parts/{pid}/items/{new_item['id']}",
        json={"actions": [{"id": "act-1", "display": "Submit", "label": "Go", "nextStep": "item-999"}]},
    )
    assert bad_patch.status_code == 422
    assert "action-0-next" in bad_patch.json()["errors"]

    good_patch = client.patch(
        f"/api/templates/{tid}/parts/{pid}/items/{new_item['id']}",
        json={"actions": [{"id": "act-1", "display": "Approve", "label": "Approve", "nextStep": "end"}]},
    )
    assert good_patch.status_code == 200

    target = client.get(f"/api/templates/{tid}/parts/{pid}/items/{new_item['id']}/actions/act-1/target")
    assert target.json()["terminal"] is True

    first_item = part["items"][0]
    first_action = first_item["actions"][0]
    step = client.get(f"/api/templates/{tid}/parts/{pid}/items/{first_item['id']}/actions/{first_action['id']}/target")
    assert step.json()["itemId"] == part["items"][1]["id"]

    deleted = client.delete(f"/api/templates/{tid}/parts/{pid}/items/{new_item['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["removed"] == new_item["id"]
    assert client.delete(f"/api/templates/{tid}/parts/{pid}/items/{new_item['id']}").status_code == 404


def test_replace_items_is_atomic(client: TestClient) -> None:
    template = _first_template(client)
    tid = template["id"]
    part = template["parts"][0]
    items = part["items"]
    items[0]["actions"][0]["nextStep"] = "item-999"

    res = client.put(f"/api/templates/{tid}/parts/{part['id']}/items", json={"items": items})
    assert res.status_code == 422
    assert "1:action-0-next" in res.json()["errors"]

    after = client.get(f"/api/templates/{tid}").json()
    assert after["parts"][0]["items"][0]["actions"][0]["nextStep"] == "next-item"


def test_request_submission_routes_to_template(client: TestClient) -> None:
    options = client.get("/api/requests/options").json()
    assert options["priorities"][1]["id"] == "priority-2"

    prescreen = client.post("/api/requests/prescreen", json={"answers": {"q1": True, "q2": True, "q3": False, "q4": False}})
    assert prescreen.json()["qualified"] is True

    invalid = client.post("/api/requests/validate", json={"sessionId": "smoke", "form": {}})
    assert invalid.json()["valid"] is False
    assert invalid.json()["session"]["errors"]["mocTitle"] == "MOC Title is required"

    form = {
        "mocTitle": "Emergency bypass of PSV-12",
        "areaId": "area-2",
        "unitId": "unit-2-1",
        "priorityId": "priority-2",
        "detailOfChange": "Temporary bypass",
        "reasonForChange": "Valve failure",
        "scopeOfWork": "Install bypass line",
        "tpmLossType": "tpm-1",
        "riskBeforeChange": {"likelihood": 3, "impact": 4},
        "riskAfterChange": {"likelihood": 2, "impact": 2},
    }
    assert client.post("/api/requests", json={"form": {}}).status_code == 422

    created = client.post("/api/requests", json={"form": form})
    assert created.status_code == 201
    body = created.json()
    assert body["templateKey"] == ["Emergency", "N/A"]
    assert body["templateId"]
    assert body["riskBeforeCode"] == "H2"
    assert body["riskAfterCode"] == "M11"

    fetched = client.get(f"/api/requests/{body['id']}")
    assert fetched.json()["form"]["riskBeforeChange"]["score"] == 12
    assert client.get("/api/requests/9999").status_code == 404


def test_assistant_uses_table_without_key(client: TestClient) -> None:
    res = client.post("/api/assistant/explain", json={"fieldId": "estimatedBenefit", "context": {}})
    assert res.json()["source"] == "table"
    assert res.json()["suggestedValue"] == 2500000

    suggested = client.post("/api/assistant/suggest", json={"fieldId": "riskBeforeChange", "sessionId": "assist"})
    assert suggested.json()["value"]["riskCode"] == "H5"

    assert client.post("/api/assistant/explain", json={}).status_code == 400


def test_suggest_with_out_of_range_risk_returns_default(client: TestClient) -> None:
    res = client.post(
        "/api/assistant/suggest",
        json={"fieldId": "riskBeforeChange", "context": {"riskBeforeChange": {"likelihood": 9, "impact": 9}}},
    )
    assert res.status_code == 200
    assert res.json()["value"]["riskCode"] == "H5"

    res = client.post("/api/requests/validate", json={"field": "riskBeforeChange", "value": {"likelihood": [1], "impact": 2}})
    assert res.status_code == 200
    assert res.json()["error"] == "Likelihood and impact must be between 1 and 4"


@pytest.mark.parametrize(
    "path",
    [
        "/api/risk/assess",
        "/api/requests/prescreen",
        "/api/requests/validate",
        "/api/requests",
        "/api/assistant/explain",
        "/api/assistant/suggest",
    ],
)
def test_malformed_json_body_is_a_bad_request(client: TestClient, path: str) -> None:
    res = client.post(path, content="{bad", headers={"Content-Type": "application/json"})
    assert res.status_code == 400
    assert res.json() == {"error": "invalid_payload", "errors": {"payload": "Request body is not valid JSON."}}


def test_malformed_json_body_on_item_routes(client: TestClient) -> None:
    template = _first_template(client)
    tid = template["id"]
    part = template["parts"][0]
    headers = {"Content-Type": "application/json"}

    res = client.post(f"/api/templates/{tid}/parts/{part['id']}/items", content="{bad", headers=headers)
    assert res.status_code == 400
    assert res.json()["error"] == "invalid_payload"

    item_id = part["items"][0]["id"]
    res = client.patch(f"/api/templates/{tid}/parts/{part['id']}/items/{item_id}", content="{bad", headers=headers)
    assert res.status_code == 400
    assert res.json()["error"] == "invalid_payload"

    res = client.put(f"/api/templates/{tid}/parts/{part['id']}/items", content="{bad", headers=headers)
    assert res.status_code == 400
