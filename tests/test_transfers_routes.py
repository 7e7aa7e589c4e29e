import httpx

from tests.conftest import TOKEN

AUTH = {"Authorization": TOKEN}


def test_start_transfer_returns_202(client, broker, transfer_body):
    response = client.post("/transfers?dest=dcache", json=transfer_body, headers=AUTH)

    assert response.status_code == 202
    body = response.json()
    assert body["kind"] == "TransferInfo"
    assert body["jobId"]
    assert body["jobState"] == "submitted"
    assert broker.requests[0].headers["Authorization"] == TOKEN


def test_start_transfer_requires_credential(client, broker, transfer_body):
    response = client.post("/transfers?dest=dcache", json=transfer_body)

    assert response.status_code == 401
    assert response.json()["id"] == "notAuthorized"
    assert response.json()["details"] == {"destination": "dcache"}
    assert broker.requests == []


def test_invalid_body_is_400(client, broker):
    response = client.post("/transfers", json={"files": []}, headers=AUTH)

    assert response.status_code == 400
    assert response.json()["id"] == "invalidParameters"
    assert broker.requests == []


def test_find_transfers_unknown_destination(client, broker):
    response = client.get("/transfers?dest=unknownkey", headers=AUTH)

    assert response.status_code == 400
    body = response.json()
    assert body["id"] == "unknownDestination"
    assert body["details"]["destination"] == "unknownkey"
    assert list(body["details"]) == ["destination", "limit"]
    assert broker.requests == []


def test_find_transfers_returns_active_jobs_in_backend_order(client, broker):
    broker.add_job("zeta", state="ACTIVE")
    broker.add_job("alpha", state="FINISHED")
    broker.add_job("mid", state="SUBMITTED")

    response = client.get("/transfers", headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "TransferList"
    assert body["count"] == 2
    assert [t["jobId"] for t in body["transfers"]] == ["zeta", "mid"]


def test_find_transfers_with_state_filter(client, broker):
    broker.add_job("ok", state="FINISHED")
    broker.add_job("bad", state="FAILED")

    response = client.get("/transfers?state_in=failed&time_window=24&limit=10", headers=AUTH)

    assert response.status_code == 200
    assert [t["jobState"] for t in response.json()["transfers"]] == ["failed"]


def test_find_transfers_rejects_bad_time_window(client, broker):
    response = client.get("/transfers?state_in=failed&time_window=yesterday", headers=AUTH)

    assert response.status_code == 400
    assert response.json()["id"] == "invalidParameters"
    assert broker.requests == []


def test_get_transfer_info(client, broker):
    broker.add_job("job-1", state="ACTIVE")

    response = client.get("/transfer/job-1?dest=storm", headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "TransferInfoExtended"
    assert body["jobState"] == "active"
    assert body["filesTotal"] == 1
    assert body["files"][0]["destinationUrl"] == "davs://dcache.example.org/data/file1"


def test_get_unknown_transfer_is_404(client):
    response = client.get("/transfer/abc-123", headers=AUTH)

    assert response.status_code == 404
    body = response.json()
    assert body["id"] == "transferNotFound"
    assert body["details"] == {"destination": "dcache", "jobId": "abc-123"}


def test_get_transfer_with_partial_error_is_207(client, broker):
    broker.fail_with = 207
    broker.fail_body = {"job_id": "job-1", "job_state": "FINISHEDDIRTY"}

    response = client.get("/transfer/job-1", headers=AUTH)

    assert response.status_code == 207
    assert response.json()["details"]["info"]["job_state"] == "FINISHEDDIRTY"


def test_get_transfer_field_matches_details(client, broker):
    broker.add_job("job-1", state="ACTIVE", priority=2)

    details = client.get("/transfer/job-1", headers=AUTH).json()
    state = client.get("/transfer/job-1/jobState", headers=AUTH)
    priority = client.get("/transfer/job-1/priority", headers=AUTH)

    assert state.status_code == 200
    assert state.headers["content-type"].startswith("text/plain")
    assert state.text == details["jobState"]
    assert priority.headers["content-type"].startswith("application/json")
    assert priority.json() == details["priority"] == 2


def test_get_unknown_field_is_404(client, broker):
    broker.add_job("job-1")

    response = client.get("/transfer/job-1/colour", headers=AUTH)

    assert response.status_code == 404
    assert response.json()["id"] == "fieldNotFound"
    assert response.json()["details"] == {"destination": "dcache", "jobId": "job-1", "fieldName": "colour"}


def test_cancel_transfer(client, broker):
    broker.add_job("job-1", state="ACTIVE")

    response = client.delete("/transfer/job-1", headers=AUTH)

    assert response.status_code == 200
    assert response.json()["jobState"] == "canceled"


def test_cancel_finished_transfer_reports_final_state(client, broker):
    broker.add_job("job-1", state="FINISHED")

    response = client.delete("/transfer/job-1", headers=AUTH)

    assert response.status_code == 200
    assert response.json()["jobState"] == "finished"


def test_expired_credentials_are_419(client, broker):
    broker.fail_with = 419

    response = client.delete("/transfer/job-1", headers=AUTH)

    assert response.status_code == 419
    assert response.json()["id"] == "credentialsExpired"
    assert len(broker.requests) == 1


def test_backend_timeout_is_500(client, broker):
    broker.raise_error = httpx.ReadTimeout("timed out")

    response = client.get("/transfer/job-1", headers=AUTH)

    assert response.status_code == 500
    assert response.json()["id"] == "serviceUnreachable"


def test_list_destinations(client):
    response = client.get("/destinations")

    assert response.status_code == 200
    body = response.json()
    assert body["default"] == "dcache"
    assert {d["destination"]: d["service"] for d in body["destinations"]} == {
        "dcache": "fts",
        "storm": "fts",
        "tape": "legacy",
        "broken": "nourl",
    }


def test_missing_credential_wins_over_invalid_body(client, broker):
    response = client.post("/transfers", json={"files": []})

    assert response.status_code == 401
    assert response.json()["id"] == "notAuthorized"
    assert response.json()["details"] == {"destination": "dcache"}
    assert broker.requests == []


def test_missing_credential_reports_job_context(client, broker):
    response = client.get("/transfer/abc-123/jobState?dest=storm", headers={"Authorization": "Basic dXNlcjpwYXNz"})

    assert response.status_code == 401
    assert response.json()["details"] == {"destination": "storm", "jobId": "abc-123", "fieldName": "jobState"}
    assert broker.requests == []


def test_find_transfers_with_unmatched_state_is_empty(client, broker):
    broker.add_job("done", state="FINISHED")

    response = client.get("/transfers?state_in=unknown", headers=AUTH)

    assert response.status_code == 200
    assert response.json()["count"] == 0
    assert response.json()["transfers"] == []
    assert broker.requests == []
