"""
Tests for role-scoped pending queues and history listings
"""
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from leaveflow.core.exceptions import InvalidRange
from leaveflow.models.leave import LeaveSession
from leaveflow.models.request_action import ApprovalAction, RequestKind, RequestStatus
from leaveflow.services import workflow_service
from leaveflow.models.user import Role
from leaveflow.services.request_query_service import HistoryFilters, history_stats, list_history, list_pending, user_stats
from leaveflow.services.workflow_service import act_on_request


def _leave(db, user, leave_type, day=2, session=LeaveSession.FULL_DAY):
    return workflow_service.create_leave_request(
        db, user, leave_type.id, date(2025, 6, day), date(2025, 6, day), session
    )


def _ids(result):
    return {item.id for item in result["items"]}


@pytest.fixture
def seeded_requests(db: Session, employee, other_employee, manager, vacation, sick):
    """Two pending leaves for employee, one approved-by-manager leave for other_employee"""
    first = _leave(db, employee, vacation, day=2)
    second = _leave(db, employee, sick, day=3, session=LeaveSession.MORNING)
    third = _leave(db, other_employee, vacation, day=4)
    return first, second, third


def test_manager_pending_sees_direct_reports_only(db: Session, seeded_requests, manager, other_manager):
    first, second, third = seeded_requests

    assert _ids(list_pending(db, manager, RequestKind.LEAVE)) == {first.id, second.id}
    assert _ids(list_pending(db, other_manager, RequestKind.LEAVE)) == {third.id}


def test_hr_pending_sees_only_pending_hr(db: Session, seeded_requests, manager, hr):
    first, second, third = seeded_requests
    assert list_pending(db, hr, RequestKind.LEAVE)["total"] == 0

    act_on_request(db, manager, RequestKind.LEAVE, first.id, ApprovalAction.APPROVE)

    result = list_pending(db, hr, RequestKind.LEAVE)
    assert _ids(result) == {first.id}
    assert _ids(list_pending(db, manager, RequestKind.LEAVE)) == {second.id}


def test_user_pending_lists_own_requests(db: Session, seeded_requests, employee, manager):
    first, second, third = seeded_requests
    act_on_request(db, manager, RequestKind.LEAVE, first.id, ApprovalAction.REJECT)

    assert _ids(list_pending(db, employee, RequestKind.LEAVE)) == {first.id, second.id}


def test_history_scope_by_role(db: Session, seeded_requests, employee, manager, other_manager, hr, admin):
    first, second, third = seeded_requests

    assert _ids(list_history(db, employee, RequestKind.LEAVE)) == {first.id, second.id}
    assert _ids(list_history(db, manager, RequestKind.LEAVE)) == {first.id, second.id}
    assert _ids(list_history(db, other_manager, RequestKind.LEAVE)) == {third.id}
    assert _ids(list_history(db, hr, RequestKind.LEAVE)) == {first.id, second.id, third.id}
    assert _ids(list_history(db, admin, RequestKind.LEAVE)) == {first.id, second.id, third.id}


def test_history_is_newest_first(db: Session, seeded_requests, hr):
    items = list_history(db, hr, RequestKind.LEAVE)["items"]
    assert [item.id for item in items] == sorted((item.id for item in items), reverse=True)


def test_history_filters(db: Session, seeded_requests, hr, manager, vacation, department):
    first, second, third = seeded_requests
    act_on_request(db, manager, RequestKind.LEAVE, first.id, ApprovalAction.APPROVE)

    by_status = list_history(db, hr, RequestKind.LEAVE, HistoryFilters(statuses=[RequestStatus.PENDING_HR]))
    assert _ids(by_status) == {first.id}

    by_type = list_history(db, hr, RequestKind.LEAVE, HistoryFilters(leave_type_ids=[vacation.id]))
    assert _ids(by_type) == {first.id, third.id}

    by_session = list_history(db, hr, RequestKind.LEAVE, HistoryFilters(sessions=[LeaveSession.MORNING]))
    assert _ids(by_session) == {second.id}

    by_department = list_history(db, hr, RequestKind.LEAVE, HistoryFilters(department_ids=[department.id]))
    assert _ids(by_department) == {first.id, second.id}

    by_user = list_history(db, hr, RequestKind.LEAVE, HistoryFilters(user_ids=[third.user_id]))
    assert _ids(by_user) == {third.id}

    by_dates = list_history(
        db, hr, RequestKind.LEAVE, HistoryFilters(date_from=date(2025, 6, 3), date_to=date(2025, 6, 3))
    )
    assert _ids(by_dates) == {second.id}


def test_filters_do_not_widen_scope(db: Session, seeded_requests, employee, other_employee):
    result = list_history(db, employee, RequestKind.LEAVE, HistoryFilters(user_ids=[other_employee.id]))
    assert result["total"] == 0
    assert result["items"] == []


def test_inverted_date_filter_is_rejected(db: Session, seeded_requests, hr):
    with pytest.raises(InvalidRange):
        list_history(db, hr, RequestKind.LEAVE, HistoryFilters(date_from=date(2025, 6, 5), date_to=date(2025, 6, 1)))


def test_pagination_total_matches_filtered_rows(db: Session, employee, hr, vacation):
    created = [_leave(db, employee, vacation, day=day) for day in range(1, 8)]

    page_one = list_history(db, hr, RequestKind.LEAVE, page=1, limit=3)
    assert page_one["total"] == 7
    assert page_one["total_pages"] == 3
    assert page_one["page"] == 1
    assert page_one["limit"] == 3
    assert [item.id for item in page_one["items"]] == [r.id for r in reversed(created)][:3]

    page_three = list_history(db, hr, RequestKind.LEAVE, page=3, limit=3)
    assert len(page_three["items"]) == 1
    assert page_three["total"] == 7

    beyond = list_history(db, hr, RequestKind.LEAVE, page=4, limit=3)
    assert beyond["items"] == []
    assert beyond["total"] == 7


def test_unpaged_listing_returns_everything(db: Session, seeded_requests, hr):
    result = list_history(db, hr, RequestKind.LEAVE)
    assert result["total"] == 3
    assert len(result["items"]) == 3
    assert result["page"] is None
    assert result["total_pages"] == 1


def test_empty_listing(db: Session, hr):
    result = list_history(db, hr, RequestKind.LEAVE, page=1, limit=10)
    assert result["items"] == []
    assert result["total"] == 0
    assert result["total_pages"] == 0


def test_invalid_page_is_rejected(db: Session, hr):
    with pytest.raises(InvalidRange):
        list_history(db, hr, RequestKind.LEAVE, page=0, limit=10)


def test_history_stats(db: Session, seeded_requests, manager, hr, employee):
    first, second, third = seeded_requests
    act_on_request(db, manager, RequestKind.LEAVE, first.id, ApprovalAction.APPROVE)
    act_on_request(db, hr, RequestKind.LEAVE, first.id, ApprovalAction.APPROVE)
    act_on_request(db, employee, RequestKind.LEAVE, second.id, ApprovalAction.CANCEL)

    stats = history_stats(db, hr, RequestKind.LEAVE)
    assert {key: stats[key] for key in ("total", "pending", "approved", "rejected", "cancelled")} == {
        "total": 3,
        "pending": 1,
        "approved": 1,
        "rejected": 0,
        "cancelled": 1,
    }
    assert stats["total_days_requested"] == Decimal("2.5")
    assert stats["total_days_approved"] == Decimal("1")
    assert history_stats(db, employee, RequestKind.LEAVE)["total"] == 2


def test_overtime_listing_and_date_window(db: Session, employee, manager, hr):
    early = workflow_service.create_overtime_request(
        db, employee,
        datetime(2025, 6, 2, 18, 0, tzinfo=timezone.utc),
        datetime(2025, 6, 2, 20, 0, tzinfo=timezone.utc),
    )
    late = workflow_service.create_overtime_request(
        db, employee,
        datetime(2025, 6, 9, 18, 0, tzinfo=timezone.utc),
        datetime(2025, 6, 9, 20, 0, tzinfo=timezone.utc),
    )

    assert _ids(list_pending(db, manager, RequestKind.OVERTIME)) == {early.id, late.id}

    window = list_history(
        db, hr, RequestKind.OVERTIME, HistoryFilters(date_from=date(2025, 6, 2), date_to=date(2025, 6, 2))
    )
    assert _ids(window) == {early.id}


def test_hr_queue_excludes_own_requests(db: Session, user_factory, department, manager, hr, vacation):
    hr_requester = user_factory("HR2", Role.HR, department, approver=manager)
    first = _leave(db, hr_requester, vacation, day=2)
    second = _leave(db, hr_requester, vacation, day=3)
    act_on_request(db, manager, RequestKind.LEAVE, first.id, ApprovalAction.APPROVE)
    act_on_request(db, manager, RequestKind.LEAVE, second.id, ApprovalAction.APPROVE)

    own_queue = list_pending(db, hr_requester, RequestKind.LEAVE)
    assert own_queue["total"] == 0
    assert own_queue["items"] == []
    assert _ids(list_pending(db, hr, RequestKind.LEAVE)) == {first.id, second.id}


def test_history_stats_with_filters(db: Session, seeded_requests, hr, vacation):
    stats = history_stats(db, hr, RequestKind.LEAVE, HistoryFilters(leave_type_ids=[vacation.id]))

    assert stats["total"] == 2
    assert stats["total_days_requested"] == Decimal("2")


def test_user_stats(db: Session, seeded_requests, employee, manager, hr, vacation):
    first, second, third = seeded_requests
    act_on_request(db, manager, RequestKind.LEAVE, first.id, ApprovalAction.APPROVE)
    act_on_request(db, hr, RequestKind.LEAVE, first.id, ApprovalAction.APPROVE)
    workflow_service.create_overtime_request(
        db, employee,
        datetime(2025, 6, 2, 18, 0, tzinfo=timezone.utc),
        datetime(2025, 6, 2, 20, 0, tzinfo=timezone.utc),
    )

    stats = user_stats(db, employee, 2025)

    assert stats["total_leave_requests"] == 2
    assert stats["total_overtime_requests"] == 1
    assert stats["pending_requests"] == 2
    assert stats["approved_requests"] == 1
    assert stats["current_year_leave_allocated"] == Decimal("15")
    assert stats["current_year_leave_used"] == Decimal("1")
    assert user_stats(db, employee, 2026)["current_year_leave_allocated"] == Decimal("0")
