"""
Tests for leave/overtime request endpoints
"""
from decimal import Decimal

import pytest
from fastapi import status
from sqlalchemy.orm import Session

from leaveflow.models.leave import LeaveBalance


def _apply(client, headers, user, leave_type, start="2025-06-02", end="2025-06-04", session="FULL_DAY"):
    return client.post(
        "/api/v1/leaves",
        json={
            "leave_type_id": leave_type.id,
            "start_date": start,
            "end_date": end,
            "session": session,
            "reason": "Family trip",
        },
        headers=headers(user)
    )


@pytest.fixture
def leave_id(client, headers, employee, vacation):
    response = _apply(client, headers, employee, vacation)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()["id"]


def test_apply_leave(client, headers, employee, vacation):
    response = _apply(client, headers, employee, vacation)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["status"] == "PENDING_MANAGER"
    assert Decimal(str(data["days"])) == Decimal("3")
    assert data["user"]["employee_id"] == "EMP1"
    assert data["leave_type"]["name"] == "VACATION"
    assert data["balance_override"] is False


def test_apply_half_day(client, headers, employee, vacation):
    response = _apply(client, headers, employee, vacation, "2025-06-02", "2025-06-02", "AFTERNOON")

    assert response.status_code == status.HTTP_201_CREATED
    assert Decimal(str(response.json()["days"])) == Decimal("0.5")


def test_apply_inverted_range_returns_error_code(client, headers, employee, vacation):
    response = _apply(client, headers, employee, vacation, "2025-06-04", "2025-06-02")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    data = response.json()
    assert data["error"] is True
    assert data["error_code"] == "INVALID_RANGE"


def test_apply_requires_auth(client, vacation):
    response = client.post(
        "/api/v1/leaves",
        json={"leave_type_id": vacation.id, "start_date": "2025-06-02", "end_date": "2025-06-02"}
    )
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_two_stage_approval_over_http(client, db: Session, headers, leave_id, employee, manager, hr):
    response = client.post(
        f"/api/v1/leaves/{leave_id}/approve",
        json={"comments": "Enjoy"},
        headers=headers(manager)
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "PENDING_HR"
    assert response.json()["manager_comments"] == "Enjoy"

    response = client.post(f"/api/v1/leaves/{leave_id}/approve", headers=headers(hr))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "APPROVED"

    balance = db.query(LeaveBalance).filter(LeaveBalance.user_id == employee.id).one()
    assert balance.used_days == Decimal("3")

    trail = client.get(f"/api/v1/leaves/{leave_id}/trail", headers=headers(employee))
    assert trail.status_code == status.HTTP_200_OK
    assert [row["to_status"] for row in trail.json()] == ["PENDING_MANAGER", "PENDING_HR", "APPROVED"]


def test_wrong_manager_gets_forbidden(client, headers, leave_id, other_manager):
    response = client.post(f"/api/v1/leaves/{leave_id}/approve", headers=headers(other_manager))

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error_code"] == "FORBIDDEN"


def test_repeat_action_gets_conflict(client, headers, leave_id, manager):
    client.post(f"/api/v1/leaves/{leave_id}/reject", headers=headers(manager))
    response = client.post(f"/api/v1/leaves/{leave_id}/reject", headers=headers(manager))

    assert response.status_code == status.HTTP_409_CONFLICT
    data = response.json()
    assert data["error_code"] == "INVALID_TRANSITION"
    assert data["details"]["status"] == "REJECTED"


def test_apply_beyond_remaining_balance_is_refused(client, headers, employee, sick):
    response = _apply(client, headers, employee, sick)  # 3 days, 2 allocated

    assert response.status_code == status.HTTP_409_CONFLICT
    data = response.json()
    assert data["error_code"] == "INSUFFICIENT_BALANCE"
    assert Decimal(str(data["details"]["requested_days"])) == Decimal("3")
    assert data["details"]["leave_type"] == "SICK"


def test_insufficient_balance_and_override(client, headers, employee, manager, hr, sick):
    first_id = _apply(client, headers, employee, sick, end="2025-06-02").json()["id"]
    leave_id = _apply(client, headers, employee, sick, start="2025-06-09", end="2025-06-10").json()["id"]
    for request_id, approver in ((first_id, manager), (first_id, hr), (leave_id, manager)):
        assert client.post(f"/api/v1/leaves/{request_id}/approve", headers=headers(approver)).status_code == 200

    response = client.post(f"/api/v1/leaves/{leave_id}/approve", headers=headers(hr))
    assert response.status_code == status.HTTP_409_CONFLICT
    data = response.json()
    assert data["error_code"] == "INSUFFICIENT_BALANCE"
    assert Decimal(str(data["details"]["requested_days"])) == Decimal("2")

    response = client.post(f"/api/v1/leaves/{leave_id}/approve", json={"override": True}, headers=headers(hr))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["balance_override"] is True
    assert Decimal(str(response.json()["reserved_days"])) == Decimal("2")


def test_unknown_leave_is_not_found(client, headers, hr):
    response = client.get("/api/v1/leaves/999", headers=headers(hr))

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error_code"] == "NOT_FOUND"


def test_get_leave_visibility(client, headers, leave_id, employee, manager, other_employee):
    assert client.get(f"/api/v1/leaves/{leave_id}", headers=headers(employee)).status_code == status.HTTP_200_OK
    assert client.get(f"/api/v1/leaves/{leave_id}", headers=headers(manager)).status_code == status.HTTP_200_OK
    response = client.get(f"/api/v1/leaves/{leave_id}", headers=headers(other_employee))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_edit_pending_leave(client, headers, leave_id, employee):
    response = client.patch(
        f"/api/v1/leaves/{leave_id}",
        json={"end_date": "2025-06-02", "session": "MORNING"},
        headers=headers(employee)
    )

    assert response.status_code == status.HTTP_200_OK
    assert Decimal(str(response.json()["days"])) == Decimal("0.5")


def test_pending_and_history_listings(client, headers, leave_id, employee, manager, hr):
    pending = client.get("/api/v1/leaves/pending", headers=headers(manager))
    assert pending.status_code == status.HTTP_200_OK
    assert [item["id"] for item in pending.json()["items"]] == [leave_id]

    assert client.get("/api/v1/leaves/pending", headers=headers(hr)).json()["total"] == 0

    history = client.get(
        "/api/v1/leaves/history",
        params={"status": ["PENDING_MANAGER", "PENDING_HR"], "from": "2025-06-01", "page": 1, "limit": 5},
        headers=headers(hr)
    )
    assert history.status_code == status.HTTP_200_OK
    data = history.json()
    assert data["total"] == 1
    assert data["page"] == 1
    assert data["limit"] == 5
    assert data["total_pages"] == 1

    stats = client.get("/api/v1/leaves/history/stats", headers=headers(employee)).json()
    counts = {key: stats[key] for key in ("total", "pending", "approved", "rejected", "cancelled")}
    assert counts == {"total": 1, "pending": 1, "approved": 0, "rejected": 0, "cancelled": 0}
    assert Decimal(str(stats["total_days_requested"])) == Decimal("3")
    assert Decimal(str(stats["total_days_approved"])) == Decimal("0")


def test_history_limit_above_maximum_is_rejected(client, headers, hr):
    response = client.get("/api/v1/leaves/history", params={"limit": 1000}, headers=headers(hr))
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_generic_actions_endpoint(client, headers, leave_id, employee, manager):
    response = client.post(
        f"/api/v1/requests/LEAVE/{leave_id}/actions",
        json={"action": "APPROVE", "comments": "fine"},
        headers=headers(manager)
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "PENDING_HR"

    response = client.post(
        f"/api/v1/requests/LEAVE/{leave_id}/actions",
        json={"action": "CANCEL"},
        headers=headers(employee)
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "CANCELLED"

    trail = client.get(f"/api/v1/requests/LEAVE/{leave_id}/trail", headers=headers(employee))
    assert [row["action"] for row in trail.json()] == ["CREATE", "APPROVE", "CANCEL"]


def test_generic_actions_rejects_create(client, headers, leave_id, manager):
    response = client.post(
        f"/api/v1/requests/LEAVE/{leave_id}/actions",
        json={"action": "CREATE"},
        headers=headers(manager)
    )
    assert response.status_code == status.HTTP_409_CONFLICT


def test_pending_count(client, headers, leave_id, employee, manager):
    client.post(
        "/api/v1/overtime",
        json={"start_time": "2025-06-02T18:00:00Z", "end_time": "2025-06-02T20:00:00Z"},
        headers=headers(employee)
    )

    response = client.get("/api/v1/requests/pending/count", headers=headers(manager))
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"leave": 1, "overtime": 1}


def test_overtime_flow_over_http(client, headers, employee, manager, hr):
    response = client.post(
        "/api/v1/overtime",
        json={"start_time": "2025-06-02T18:00:00Z", "end_time": "2025-06-02T21:00:00Z", "reason": "Release"},
        headers=headers(employee)
    )
    assert response.status_code == status.HTTP_201_CREATED
    overtime_id = response.json()["id"]

    assert client.post(f"/api/v1/overtime/{overtime_id}/approve", headers=headers(manager)).json()["status"] == "PENDING_HR"
    response = client.post(f"/api/v1/overtime/{overtime_id}/reject", json={"comments": "No budget"}, headers=headers(hr))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "REJECTED"
    assert response.json()["hr_comments"] == "No budget"


def test_overtime_inverted_times(client, headers, employee):
    response = client.post(
        "/api/v1/overtime",
        json={"start_time": "2025-06-02T21:00:00Z", "end_time": "2025-06-02T18:00:00Z"},
        headers=headers(employee)
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error_code"] == "INVALID_RANGE"


def test_history_stats_follow_history_filters(client, headers, employee, manager, hr, vacation):
    approved_id = _apply(client, headers, employee, vacation).json()["id"]
    client.post(f"/api/v1/leaves/{approved_id}/approve", headers=headers(manager))
    client.post(f"/api/v1/leaves/{approved_id}/approve", headers=headers(hr))
    _apply(client, headers, employee, vacation, start="2025-08-04", end="2025-08-04", session="MORNING")

    stats = client.get("/api/v1/leaves/history/stats", headers=headers(hr)).json()
    assert stats["total"] == 2
    assert Decimal(str(stats["total_days_requested"])) == Decimal("3.5")
    assert Decimal(str(stats["total_days_approved"])) == Decimal("3")

    august = client.get("/api/v1/leaves/history/stats", params={"from": "2025-08-01"}, headers=headers(hr)).json()
    assert august["total"] == 1
    assert august["pending"] == 1
    assert Decimal(str(august["total_days_requested"])) == Decimal("0.5")


def test_overtime_stats_report_hours(client, headers, employee, manager, hr):
    first = client.post(
        "/api/v1/overtime",
        json={"start_time": "2025-06-02T18:00:00Z", "end_time": "2025-06-02T20:30:00Z"},
        headers=headers(employee)
    ).json()
    assert Decimal(str(first["duration_hours"])) == Decimal("2.5")
    client.post(f"/api/v1/overtime/{first['id']}/approve", headers=headers(manager))
    client.post(f"/api/v1/overtime/{first['id']}/approve", headers=headers(hr))
    client.post(
        "/api/v1/overtime",
        json={"start_time": "2025-06-03T18:00:00Z", "end_time": "2025-06-03T19:00:00Z"},
        headers=headers(employee)
    )

    stats = client.get("/api/v1/overtime/history/stats", headers=headers(employee)).json()
    assert stats["total"] == 2
    assert stats["approved"] == 1
    assert Decimal(str(stats["total_hours_requested"])) == Decimal("3.5")
    assert Decimal(str(stats["total_hours_approved"])) == Decimal("2.5")
    assert stats["total_days_requested"] is None
