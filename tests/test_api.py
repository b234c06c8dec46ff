from __future__ import annotations

import pytest

from campus_attendance.main import create_app

from conftest import ADMIN, C1, FACULTY, OTHER_FACULTY, S1, S2


@pytest.fixture
def app(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, user_id, role):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role


def mark(client, student_id=S1, day="2024-04-02", status="ABSENT"):
    return client.post(
        "/api/attendance/mark",
        json={"student_id": student_id, "course_id": C1, "date": day, "status": status},
    )


def test_missing_session_is_401(client):
    resp = client.get("/api/attendance/student")
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_mark_and_read_back(client):
    login(client, FACULTY, "faculty")
    resp = mark(client, status="PRESENT", day="2024-04-01")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["status"] == "PRESENT"
    assert body["data"]["attendance_date"] == "2024-04-01"
    mark(client)

    login(client, S1, "student")
    data = client.get(f"/api/attendance/student/{C1}").get_json()["data"]
    assert data["attendance_percentage"] == "50.00"
    assert data["low_attendance"] is True
    assert len(data["records"]) == 2


@pytest.mark.parametrize(
    "user_id,role,payload,status",
    [
        (S1, "student", {"student_id": S1, "course_id": C1, "date": "2024-04-01", "status": "PRESENT"}, 403),
        (FACULTY, "faculty", {"student_id": S1, "course_id": C1, "date": "2024-04-01", "status": "SICK"}, 400),
        (FACULTY, "faculty", {"student_id": S1, "course_id": 999, "date": "2024-04-01", "status": "PRESENT"}, 404),
        (FACULTY, "faculty", {"student_id": S1, "course_id": C1, "status": "PRESENT"}, 400),
    ],
)
def test_mark_error_mapping(client, user_id, role, payload, status):
    login(client, user_id, role)
    resp = client.post("/api/attendance/mark", json=payload)
    assert resp.status_code == status
    assert resp.get_json()["success"] is False


def test_bulk_mark_partial_and_mismatch(client):
    login(client, FACULTY, "faculty")
    resp = client.post(
        "/api/attendance/mark-bulk",
        json={"course_id": C1, "date": "2024-04-01", "student_ids": [S1, 999], "statuses": ["PRESENT", "ABSENT"]},
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert [r["student_id"] for r in data["saved"]] == [S1]
    assert data["failures"] == [
        {"student_id": 999, "status": "ABSENT", "error": "NotFoundError", "message": "Student 999 not found"}
    ]

    resp = client.post(
        "/api/attendance/mark-bulk",
        json={"course_id": C1, "date": "2024-04-01", "student_ids": [S1, S2], "statuses": ["PRESENT"]},
    )
    assert resp.status_code == 400


def test_correction_round_trip_and_conflict(client):
    login(client, FACULTY, "faculty")
    record = mark(client).get_json()["data"]

    login(client, S1, "student")
    resp = client.post(
        "/api/attendance/correction-request",
        json={"attendance_id": record["attendance_id"], "reason": "was present"},
    )
    assert resp.status_code == 200
    req = resp.get_json()["data"]
    assert req["status"] == "PENDING"

    again = client.post(
        "/api/attendance/correction-request", json={"course_id": C1, "date": "2024-04-02", "reason": "was present"}
    )
    assert again.get_json()["data"]["request_id"] == req["request_id"]

    login(client, OTHER_FACULTY, "faculty")
    resp = client.post("/api/attendance/review-correction", json={"request_id": req["request_id"], "decision": "APPROVED"})
    assert resp.status_code == 403

    login(client, FACULTY, "faculty")
    pending = client.get("/api/attendance/correction-requests").get_json()["data"]
    assert [p["request_id"] for p in pending] == [req["request_id"]]

    resp = client.post("/api/attendance/review-correction", json={"request_id": req["request_id"], "decision": "APPROVED"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "APPROVED"

    resp = client.post("/api/attendance/review-correction", json={"request_id": req["request_id"], "decision": "REJECTED"})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "ConflictError"

    resp = client.post("/api/attendance/review-correction", json={"request_id": 9999, "decision": "REJECTED"})
    assert resp.status_code == 404

    login(client, S1, "student")
    mine = client.get("/api/attendance/my-correction-requests").get_json()["data"]
    assert [m["status"] for m in mine] == ["APPROVED"]


def test_reports_endpoints(client):
    login(client, FACULTY, "faculty")
    mark(client, status="PRESENT")
    assert client.post("/api/attendance/generate-reports/4/2024").status_code == 403

    login(client, ADMIN, "admin")
    resp = client.post("/api/attendance/generate-reports/4/2024")
    assert resp.status_code == 200
    body = resp.get_json()["data"]
    assert body["generated"] == 2
    assert [r["student_id"] for r in body["low_attendance"]] == [S2]

    rows = client.get(f"/api/attendance/reports/{C1}/4/2024").get_json()["data"]
    assert [(r["student_id"], r["attendance_percentage"]) for r in rows] == [(S1, "100.00"), (S2, "0.00")]
    assert len(client.get("/api/attendance/reports/4/2024").get_json()["data"]) == 2
    assert client.get("/api/attendance/reports/13/2024").status_code == 400
    assert client.get("/api/attendance/reports/999/4/2024").status_code == 404

    login(client, S2, "student")
    low = client.get("/api/attendance/reports/low-attendance").get_json()["data"]
    assert [r["course_id"] for r in low] == [C1]
    assert client.get(f"/api/attendance/reports/low-attendance?student_id={S1}").status_code == 403
    assert client.get("/api/attendance/reports/low-attendance?threshold=abc").status_code == 400
