"""
Tests for the balance ledger service
"""
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from leaveflow.core.exceptions import InsufficientBalance, InvalidRange, NotFound
from leaveflow.models.audit_log import AuditLog
from leaveflow.models.leave import LeaveBalance
from leaveflow.services import balance_service


def test_get_or_create_seeds_default_allocation(db: Session, employee, vacation):
    balance = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    db.commit()

    assert balance.allocated_days == Decimal("15")
    assert balance.used_days == Decimal("0")
    assert balance.remaining_days == Decimal("15")


def test_get_or_create_is_idempotent(db: Session, employee, vacation):
    first = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    second = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    db.commit()

    assert first.id == second.id
    assert db.query(LeaveBalance).count() == 1


def test_get_or_create_unknown_leave_type(db: Session, employee):
    with pytest.raises(NotFound):
        balance_service.get_or_create_balance(db, employee.id, 999, 2025)


def test_get_or_create_unknown_user(db: Session, vacation):
    with pytest.raises(NotFound):
        balance_service.get_or_create_balance(db, 999, vacation.id, 2025)


def test_reserve_within_allocation(db: Session, employee, vacation):
    balance = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    balance_service.reserve_usage(db, balance, Decimal("2.5"))
    db.commit()

    assert balance.used_days == Decimal("2.5")
    assert balance.remaining_days == Decimal("12.5")


def test_reserve_up_to_exact_allocation(db: Session, employee, sick):
    balance = balance_service.get_or_create_balance(db, employee.id, sick.id, 2025)
    balance_service.reserve_usage(db, balance, Decimal("2"))
    db.commit()

    assert balance.used_days == Decimal("2")
    assert balance.remaining_days == Decimal("0")


def test_reserve_beyond_allocation_raises(db: Session, employee, sick):
    balance = balance_service.get_or_create_balance(db, employee.id, sick.id, 2025)
    balance_service.reserve_usage(db, balance, Decimal("1.5"))

    with pytest.raises(InsufficientBalance):
        balance_service.reserve_usage(db, balance, Decimal("1"))

    db.refresh(balance)
    assert balance.used_days == Decimal("1.5")


def test_reserve_with_override_exceeds_allocation(db: Session, employee, sick):
    balance = balance_service.get_or_create_balance(db, employee.id, sick.id, 2025)
    balance_service.reserve_usage(db, balance, Decimal("3"), override=True)
    db.commit()

    assert balance.used_days == Decimal("3")
    assert balance.remaining_days == Decimal("-1")


def test_reserve_rejects_non_positive_days(db: Session, employee, vacation):
    balance = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    with pytest.raises(InvalidRange):
        balance_service.reserve_usage(db, balance, Decimal("0"))


def test_release_restores_usage(db: Session, employee, vacation):
    balance = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    balance_service.reserve_usage(db, balance, Decimal("3"))
    balance_service.release_usage(db, balance, Decimal("3"))
    db.commit()

    assert balance.used_days == Decimal("0")


def test_release_floors_at_zero(db: Session, employee, vacation):
    balance = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    balance_service.reserve_usage(db, balance, Decimal("1"))
    balance_service.release_usage(db, balance, Decimal("4"))
    db.commit()

    assert balance.used_days == Decimal("0")


def test_list_balances_creates_one_row_per_leave_type(db: Session, employee, vacation, sick, unpaid):
    rows = balance_service.list_balances(db, employee.id, 2025)

    assert {row.leave_type_id for row in rows} == {vacation.id, sick.id, unpaid.id}
    assert db.query(LeaveBalance).filter(LeaveBalance.year == 2025).count() == 3


def test_summarize_includes_types_without_rows(db: Session, employee, other_employee, vacation, sick):
    for user in (employee, other_employee):
        balance = balance_service.get_or_create_balance(db, user.id, vacation.id, 2025)
        balance_service.reserve_usage(db, balance, Decimal("2"))
    db.commit()

    summary = balance_service.summarize(db, 2025)
    by_name = {item["leave_type"]: item for item in summary["leave_types"]}

    assert summary["total_employees"] == 2
    assert summary["total_allocated"] == Decimal("30")
    assert summary["total_used"] == Decimal("4")
    assert by_name["VACATION"]["remaining_days"] == Decimal("26")
    assert by_name["SICK"]["allocated_days"] == Decimal("0")


def test_adjust_balance_is_audited(db: Session, employee, hr, vacation):
    balance = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    db.commit()

    balance_service.adjust_balance(db, balance.id, hr.id, allocated_days=Decimal("20"), used_days=Decimal("1"))

    assert balance.allocated_days == Decimal("20")
    assert balance.used_days == Decimal("1")
    audit = db.query(AuditLog).filter(AuditLog.action == "BALANCE_ADJUST").one()
    assert audit.entity_id == balance.id
    assert audit.actor_id == hr.id


def test_adjust_balance_rejects_negative(db: Session, employee, hr, vacation):
    balance = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    db.commit()

    with pytest.raises(InvalidRange):
        balance_service.adjust_balance(db, balance.id, hr.id, used_days=Decimal("-1"))


def test_renew_carries_forward_unused_days(db: Session, employee, hr, vacation, sick):
    previous = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    balance_service.reserve_usage(db, previous, Decimal("5"))
    sick_previous = balance_service.get_or_create_balance(db, employee.id, sick.id, 2025)
    balance_service.reserve_usage(db, sick_previous, Decimal("1"))
    db.commit()

    result = balance_service.renew_balances(db, 2026, hr.id)

    vacation_2026 = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2026)
    sick_2026 = balance_service.get_or_create_balance(db, employee.id, sick.id, 2026)
    # 15 default + 10 unused from 2025
    assert vacation_2026.allocated_days == Decimal("25")
    assert vacation_2026.used_days == Decimal("0")
    # SICK does not carry forward
    assert sick_2026.allocated_days == Decimal("2")
    assert result["rollover_days"] == Decimal("10")
    assert result["users_renewed"] == db.query(LeaveBalance.user_id).distinct().count()


def test_renew_keeps_usage_of_existing_rows(db: Session, employee, hr, sick):
    existing = balance_service.get_or_create_balance(db, employee.id, sick.id, 2026)
    balance_service.reserve_usage(db, existing, Decimal("1"))
    db.commit()

    result = balance_service.renew_balances(db, 2026, hr.id)

    db.refresh(existing)
    assert existing.used_days == Decimal("1")
    assert existing.allocated_days == Decimal("2")
    assert result["balances_created"] == result["users_renewed"] - 1


def test_bulk_update_applies_every_row(db: Session, employee, other_employee, hr, vacation):
    first = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    second = balance_service.get_or_create_balance(db, other_employee.id, vacation.id, 2025)
    db.commit()

    updated = balance_service.bulk_update_balances(
        db,
        [
            {"balance_id": first.id, "allocated_days": Decimal("20")},
            {"balance_id": second.id, "used_days": Decimal("4")},
        ],
        hr.id,
        comments="Mid-year correction",
    )

    assert [row.id for row in updated] == [first.id, second.id]
    assert updated[0].allocated_days == Decimal("20")
    assert updated[0].used_days == Decimal("0")
    assert updated[1].used_days == Decimal("4")
    audits = db.query(AuditLog).filter(AuditLog.action == "BALANCE_ADJUST").all()
    assert sorted(a.entity_id for a in audits) == sorted([first.id, second.id])


def _two_balances(db, employee, other_employee, vacation):
    first = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    second = balance_service.get_or_create_balance(db, other_employee.id, vacation.id, 2025)
    db.commit()
    return first, second


def _assert_untouched(db):
    db.expire_all()
    assert all(row.allocated_days == Decimal("15") for row in db.query(LeaveBalance).all())
    assert all(row.used_days == Decimal("0") for row in db.query(LeaveBalance).all())
    assert db.query(AuditLog).filter(AuditLog.action == "BALANCE_ADJUST").count() == 0


def test_bulk_update_unknown_row_changes_nothing(db: Session, employee, other_employee, hr, vacation):
    first, _ = _two_balances(db, employee, other_employee, vacation)

    with pytest.raises(NotFound):
        balance_service.bulk_update_balances(
            db,
            [{"balance_id": first.id, "allocated_days": Decimal("30")}, {"balance_id": 999, "used_days": Decimal("1")}],
            hr.id,
        )
    _assert_untouched(db)


def test_bulk_update_negative_value_changes_nothing(db: Session, employee, other_employee, hr, vacation):
    first, second = _two_balances(db, employee, other_employee, vacation)

    with pytest.raises(InvalidRange):
        balance_service.bulk_update_balances(
            db,
            [{"balance_id": first.id, "allocated_days": Decimal("30")}, {"balance_id": second.id, "used_days": Decimal("-1")}],
            hr.id,
        )
    _assert_untouched(db)


def test_bulk_update_rejects_duplicate_rows(db: Session, employee, hr, vacation):
    balance = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    db.commit()

    with pytest.raises(InvalidRange):
        balance_service.bulk_update_balances(
            db,
            [{"balance_id": balance.id, "used_days": Decimal("1")}, {"balance_id": balance.id, "used_days": Decimal("2")}],
            hr.id,
        )


def test_available_days_does_not_create_rows(db: Session, employee, vacation):
    assert balance_service.available_days(db, employee.id, vacation, 2025) == Decimal("15")
    assert db.query(LeaveBalance).count() == 0

    balance = balance_service.get_or_create_balance(db, employee.id, vacation.id, 2025)
    balance_service.reserve_usage(db, balance, Decimal("4"))
    db.commit()
    assert balance_service.available_days(db, employee.id, vacation, 2025) == Decimal("11")
