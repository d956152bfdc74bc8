import pytest
from datetime import date

from app.core.exceptions import LeaveOverlapError
from app.models.leave_application import LeaveApplication, LeaveStatus, LeaveType
from app.schemas.leave import LeaveApplicationCreate
from app.services.overlap import OverlapChecker


def _request(start, end, days=None, leave_type=LeaveType.CASUAL_LEAVE):
    return LeaveApplicationCreate(
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        number_of_days=days if days is not None else float((end - start).days + 1),
    )


@pytest.fixture
def approved_jan_10_12(service, employee, manager, make_balance):
    make_balance(employee, total_quota=12.0)
    application = service.submit_leave(employee.id, _request(date(2025, 1, 10), date(2025, 1, 12)))
    return service.decide_as_manager(application.id, manager.id, approved=True)


def test_partially_overlapping_submission_is_rejected(service, employee, approved_jan_10_12):
    assert approved_jan_10_12.status == LeaveStatus.APPROVED.value

    with pytest.raises(LeaveOverlapError) as exc:
        service.submit_leave(employee.id, _request(date(2025, 1, 11), date(2025, 1, 15)))

    assert exc.value.error_code == "LEAVE_OVERLAP"
    assert exc.value.details["conflicting_application_ids"] == [approved_jan_10_12.id]
    assert service.count_pending(employee.id) == 0


def test_adjacent_submission_succeeds(service, employee, approved_jan_10_12):
    application = service.submit_leave(employee.id, _request(date(2025, 1, 13), date(2025, 1, 15)))
    assert application.status == LeaveStatus.PENDING.value


def test_single_day_range_on_boundary_conflicts(db_session, employee, approved_jan_10_12):
    checker = OverlapChecker(db_session)

    assert len(checker.find_conflicts(employee.id, date(2025, 1, 12), date(2025, 1, 12))) == 1
    assert len(checker.find_conflicts(employee.id, date(2025, 1, 10), date(2025, 1, 10))) == 1
    assert checker.find_conflicts(employee.id, date(2025, 1, 9), date(2025, 1, 9)) == []


def test_enclosing_range_conflicts(db_session, employee, approved_jan_10_12):
    conflicts = OverlapChecker(db_session).find_conflicts(employee.id, date(2025, 1, 1), date(2025, 1, 31))
    assert [c.id for c in conflicts] == [approved_jan_10_12.id]


def test_excluded_application_is_ignored(db_session, employee, approved_jan_10_12):
    conflicts = OverlapChecker(db_session).find_conflicts(
        employee.id, date(2025, 1, 11), date(2025, 1, 11), exclude_application_id=approved_jan_10_12.id
    )
    assert conflicts == []


def test_pending_application_blocks(service, employee, make_balance):
    make_balance(employee)
    service.submit_leave(employee.id, _request(date(2025, 3, 3), date(2025, 3, 4)))

    with pytest.raises(LeaveOverlapError):
        service.submit_leave(employee.id, _request(date(2025, 3, 4), date(2025, 3, 4), leave_type=LeaveType.SICK_LEAVE))


def test_cancelled_and_rejected_applications_do_not_block(service, employee, manager, make_balance):
    make_balance(employee)
    cancelled = service.submit_leave(employee.id, _request(date(2025, 4, 1), date(2025, 4, 2)))
    service.cancel_leave(cancelled.id, employee.id)
    rejected = service.submit_leave(employee.id, _request(date(2025, 4, 1), date(2025, 4, 2)))
    service.decide_as_manager(rejected.id, manager.id, approved=False, rejection_reason="Team offsite")

    application = service.submit_leave(employee.id, _request(date(2025, 4, 1), date(2025, 4, 2)))

    assert application.status == LeaveStatus.PENDING.value


def test_other_employees_do_not_conflict(service, employee, solo_employee, approved_jan_10_12):
    application = service.submit_leave(solo_employee.id, _request(date(2025, 1, 10), date(2025, 1, 12)))
    assert isinstance(application, LeaveApplication)
