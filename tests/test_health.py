from fastapi import status

def test_health_check(client):
    """/health reports the process as up."""
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "up"
    assert data["environment"] == "testing"
    assert "timestamp" in data

def test_readiness_check(client):
    """/readiness answers once the database responds."""
    response = client.get("/readiness")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["components"]["database"] == "connected"

def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Leave Lifecycle Engine" in response.json()["message"]

def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/leave-approvals")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"success": False, "errors": [{"msg": "Not Found"}]}

def test_process_time_header(client):
    assert client.get("/health").headers["X-Process-Time"].endswith("ms")
