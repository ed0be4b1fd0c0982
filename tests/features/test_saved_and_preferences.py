"""
Tests for saved reports and view preferences.
"""


def test_save_list_and_delete_report(test_client, saved_reports):
    created = test_client.post(
        "/api/reports/saved",
        json={"name": "January Acme", "query_string": "?timeframe=month&clients[]=c1"}
    )

    assert created.status_code == 201
    report = created.json()
    assert report["query_string"] == "timeframe=month&clients[]=c1"

    listed = test_client.get("/api/reports/saved").json()
    assert [item["name"] for item in listed] == ["January Acme"]

    deleted = test_client.delete(f"/api/reports/saved/{report['id']}")
    assert deleted.status_code == 200
    assert saved_reports.docs == {}


def test_saved_reports_are_per_user(test_client, mock_auth):
    test_client.post("/api/reports/saved", json={"name": "Mine", "query_string": ""})

    mock_auth["user_id"] = "someone-else"

    assert test_client.get("/api/reports/saved").json() == []


def test_delete_unknown_saved_report(test_client):
    response = test_client.delete("/api/reports/saved/missing")

    assert response.status_code == 404


def test_saved_report_with_bad_query_is_rejected(test_client):
    response = test_client.post(
        "/api/reports/saved",
        json={"name": "Broken", "query_string": "timeframe=fortnight"}
    )

    assert response.status_code == 422


def test_preference_round_trip(test_client):
    assert test_client.get("/api/preferences/timesheet-week").json() == {
        "view": "timesheet-week",
        "value": None
    }

    stored = test_client.put("/api/preferences/timesheet-week", json={"value": "2024-01-08"})
    assert stored.status_code == 200

    assert test_client.get("/api/preferences/timesheet-week").json()["value"] == "2024-01-08"

    test_client.put("/api/preferences/timesheet-week", json={"value": "2024-01-15"})
    assert test_client.get("/api/preferences/timesheet-week").json()["value"] == "2024-01-15"


def test_invalid_view_key(test_client):
    response = test_client.put("/api/preferences/Bad Key!", json={"value": "x"})

    assert response.status_code == 422
