from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from api import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def payload():
    start = (datetime.now() + timedelta(days=3)).replace(microsecond=0)
    return {
        "tasks": [
            {
                "taskId": "task-1",
                "projectId": "project-1",
                "startDate": start.isoformat(),
                "endDate": (start + timedelta(days=1)).isoformat(),
                "baseCost": 1000,
                "name": "Excavation",
            },
            {
                "taskId": "task-2",
                "projectId": "project-1",
                "startDate": (start + timedelta(days=1)).isoformat(),
                "endDate": (start + timedelta(days=2)).isoformat(),
                "baseCost": 800,
            },
        ],
        "resources": [
            {"resourceId": "worker-1", "type": "human", "name": "Kim", "costRate": 500},
            {"resourceId": "digger-1", "type": "equipment", "name": "Digger", "costRate": 700},
        ],
        "constraints": {"deadline": (start + timedelta(days=10)).isoformat()},
        "config": {"populationSize": 10, "maxGenerations": 8, "parallelWorkers": 1, "seed": 4},
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_optimize_returns_plan(client, payload):
    response = client.post("/optimize", json=payload)
    assert response.status_code == 200

    body = response.json()
    assert body["status"] == "success"
    assert body["termination"] in ("converged", "exhausted")
    assert 1 <= body["generations_executed"] <= 8
    assert [r["task_id"] for r in body["recommendations"]] == ["task-1", "task-2"]
    assert body["recommendations"][0]["task_name"] == "Excavation"
    for recommendation in body["recommendations"]:
        assert recommendation["resources"]
        for resource in recommendation["resources"]:
            assert 0 <= resource["allocation_percentage"] <= 100
    assert body["metrics"]["baseline_cost"] == 1800
    assert {a["scenario_id"] for a in body["alternatives"]} == {
        "alt_cost_optimized",
        "alt_utilization_optimized",
    }


def test_optimize_accepts_snake_case(client, payload):
    payload["tasks"] = [
        {
            "task_id": task["taskId"],
            "start_date": task["startDate"],
            "end_date": task["endDate"],
        }
        for task in payload["tasks"]
    ]
    response = client.post("/optimize", json=payload)
    assert response.status_code == 200


def test_past_deadline_is_rejected(client, payload):
    payload["constraints"] = {"deadline": (datetime.now() - timedelta(days=1)).isoformat()}
    response = client.post("/optimize", json=payload)
    assert response.status_code == 422
    assert "past" in response.json()["detail"]


def test_empty_tasks_are_rejected(client, payload):
    payload["tasks"] = []
    response = client.post("/optimize", json=payload)
    assert response.status_code == 422


def test_unknown_resource_type_is_rejected(client, payload):
    payload["resources"][0]["type"] = "robot"
    response = client.post("/optimize", json=payload)
    assert response.status_code == 422
    assert "robot" in response.json()["detail"]


def test_malformed_body_is_rejected(client):
    response = client.post("/optimize", json={"tasks": "nope"})
    assert response.status_code == 422


def test_mixed_timezone_awareness_is_rejected(client, payload):
    for task in payload["tasks"]:
        task["startDate"] += "Z"
        task["endDate"] += "Z"
    response = client.post("/optimize", json=payload)
    assert response.status_code == 422
    assert "timezone" in response.json()["detail"]
