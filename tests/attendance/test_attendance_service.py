import pytest

from class_register.attendance.model import AttendanceFilter, AttendanceInput
from class_register.core.enums import AttendanceStatus, HistoryAction, NotificationType
from class_register.core.exceptions import NotFoundError, PersistenceError, ValidationError
from class_register.storage.adapter import HISTORY_LOGS


def test_upsert_twice_keeps_one_entry_and_logs_both(container, add_student):
    svc = container.attendance_service
    student = add_student(1, "Alice")

    first = svc.upsert_entry(AttendanceInput(student_id=student.id, date="2025-03-03", status="late", period=2))
    second = svc.upsert_entry(AttendanceInput(student_id=student.id, date="2025-03-03", status="late", period=2))

    assert second.id == first.id
    assert second.timestamp == first.timestamp
    assert second.last_modified > first.last_modified
    assert len(svc.list_for_day(student.id, "2025-03-03")) == 1

    actions = [h.action for h in container.history_repo.list_for_entity(first.id)]
    assert actions == [HistoryAction.CREATE, HistoryAction.UPDATE]


def test_upsert_updates_status_and_records_before_after(container, add_student):
    svc = container.attendance_service
    student = add_student(1, "Alice")
    entry = svc.upsert_entry(AttendanceInput(student_id=student.id, date="2025-03-03", status="present", period=1))

    updated = svc.upsert_entry(
        AttendanceInput(student_id=student.id, date="2025-03-03", status="absent", period=1, reason="nurse")
    )

    assert updated.status == AttendanceStatus.ABSENT
    assert updated.reason == "nurse"
    log = container.history_repo.list_for_entity(entry.id)[-1]
    assert log.changes["from"]["status"] == "present"
    assert log.changes["to"] == {"status": "absent", "reason": "nurse"}


def test_whole_day_and_period_entries_are_separate_slots(container, add_student):
    svc = container.attendance_service
    student = add_student(1, "Alice")
    svc.upsert_entry(AttendanceInput(student_id=student.id, date="2025-03-03", status="absent"))
    svc.upsert_entry(AttendanceInput(student_id=student.id, date="2025-03-03", status="present", period=1))

    assert len(svc.list_for_day(student.id, "2025-03-03")) == 2
    assert svc.final_status_for(student.id, "2025-03-03") == AttendanceStatus.ABSENT


def test_upsert_for_unknown_student_fails_and_notifies(container):
    with pytest.raises(NotFoundError):
        container.attendance_service.upsert_entry(AttendanceInput(student_id="nope", date="2025-03-03", status="present"))

    notes = container.notification_service.list_notifications()
    assert len(notes) == 1
    assert notes[0].type == NotificationType.ERROR
    assert notes[0].title == "Save attendance failed"
    assert container.attendance_repo.list_all() == []


def test_invalid_entry_performs_no_write(container, add_student):
    student = add_student(1, "Alice")
    with pytest.raises(ValidationError):
        container.attendance_service.upsert_entry(AttendanceInput(student_id=student.id, date="2025-03-03", status="late"))
    assert container.attendance_repo.list_all() == []


def test_delete_attendance(container, add_student):
    svc = container.attendance_service
    student = add_student(1, "Alice")
    entry = svc.upsert_entry(AttendanceInput(student_id=student.id, date="2025-03-03", status="present"))

    assert svc.delete_attendance(entry.id) is True
    assert container.attendance_repo.get_by_id(entry.id) is None
    assert container.history_repo.list_for_entity(entry.id)[-1].action == HistoryAction.DELETE

    with pytest.raises(NotFoundError):
        svc.delete_attendance(entry.id)


def test_bulk_upsert_collects_failures_without_raising(container, add_student):
    student = add_student(1, "Alice")
    inputs = [
        AttendanceInput(student_id=student.id, date="2025-03-03", status="present", period=1),
        AttendanceInput(student_id=student.id, date="2025-03-03", status="late"),
        AttendanceInput(student_id="ghost", date="2025-03-03", status="present"),
        AttendanceInput(student_id=student.id, date="2025-03-03", status="absent", period=2),
    ]

    result = container.attendance_service.bulk_upsert(inputs)

    assert len(result.success) == 2
    assert [f.input for f in result.failed] == [inputs[1], inputs[2]]
    assert result.total == 4
    log = container.history_repo.list_for_entity("bulk")[-1]
    assert log.action == HistoryAction.BULK_IMPORT
    assert log.changes == {"successCount": 2, "failedCount": 2, "totalCount": 4}


def test_day_summary_uses_active_students_only(container, add_student):
    svc = container.attendance_service
    students = [add_student(n, name) for n, name in enumerate(["Ann", "Ben", "Cal", "Dee", "Eve"], start=1)]
    add_student(6, "Gone", active=False)

    svc.upsert_entry(AttendanceInput(student_id=students[0].id, date="2025-03-03", status="present"))
    svc.upsert_entry(AttendanceInput(student_id=students[1].id, date="2025-03-03", status="present", period=1))
    svc.upsert_entry(AttendanceInput(student_id=students[2].id, date="2025-03-03", status="absent"))

    summary = svc.compute_day_summary("2025-03-03")

    assert summary.total_students == 5
    assert summary.present == 2
    assert summary.absent == 1
    assert summary.present_rate == 66.67


def test_day_summary_by_class(container, add_student):
    svc = container.attendance_service
    a = add_student(1, "Ann", class_name="6-1")
    b = add_student(1, "Bob", class_name="6-2")
    svc.upsert_entry(AttendanceInput(student_id=a.id, date="2025-03-03", status="present"))
    svc.upsert_entry(AttendanceInput(student_id=b.id, date="2025-03-03", status="absent"))

    summary = svc.compute_day_summary("2025-03-03", class_name="6-2")
    assert summary.total_students == 1
    assert summary.absent == 1
    assert summary.present_rate == 0


def test_student_stats_over_date_range(container, add_student):
    svc = container.attendance_service
    s = add_student(1, "Alice")
    svc.upsert_entry(AttendanceInput(student_id=s.id, date="2025-03-03", status="present"))
    svc.upsert_entry(AttendanceInput(student_id=s.id, date="2025-03-04", status="present", period=1))
    svc.upsert_entry(AttendanceInput(student_id=s.id, date="2025-03-04", status="late", period=2))
    svc.upsert_entry(AttendanceInput(student_id=s.id, date="2025-03-05", status="absent"))
    svc.upsert_entry(AttendanceInput(student_id=s.id, date="2025-03-10", status="absent"))

    stats = svc.compute_student_stats(s.id, "2025-03-01", "2025-03-07")

    assert stats.total_days == 3
    assert (stats.present_days, stats.late_days, stats.absent_days) == (1, 1, 1)
    assert stats.present_rate == 33.33


def test_student_stats_rejects_reversed_range(container, add_student):
    s = add_student(1, "Alice")
    with pytest.raises(ValidationError):
        container.attendance_service.compute_student_stats(s.id, "2025-03-07", "2025-03-01")


def test_filtered_query_pages_newest_first(container, add_student):
    svc = container.attendance_service
    a = add_student(1, "Ann", class_name="6-1")
    b = add_student(2, "Bob", class_name="6-2")
    for day in ("2025-03-03", "2025-03-04", "2025-03-05"):
        svc.upsert_entry(AttendanceInput(student_id=a.id, date=day, status="present", period=1))
        svc.upsert_entry(AttendanceInput(student_id=b.id, date=day, status="absent"))

    entries, total = svc.get_filtered_attendances(AttendanceFilter(class_names=("6-1",)), limit=2)
    assert total == 3
    assert [e.date for e in entries] == ["2025-03-05", "2025-03-04"]

    entries, total = svc.get_filtered_attendances(
        AttendanceFilter(date_from="2025-03-04", statuses=(AttendanceStatus.ABSENT,), periods=(3,))
    )
    # Whole-day entries always pass a period filter.
    assert total == 2
    assert {e.student_id for e in entries} == {b.id}


def test_upsert_rolls_back_entry_when_history_write_fails(container, adapter, add_student, monkeypatch):
    student = add_student(1, "Alice")
    original_insert = adapter.insert

    def failing_insert(collection, record):
        if collection == HISTORY_LOGS:
            raise PersistenceError("history unavailable")
        return original_insert(collection, record)

    monkeypatch.setattr(adapter, "insert", failing_insert)

    with pytest.raises(PersistenceError):
        container.attendance_service.upsert_entry(
            AttendanceInput(student_id=student.id, date="2025-03-03", status="absent")
        )

    assert container.attendance_repo.list_all() == []


def test_filter_with_unknown_status_is_a_validation_error(container, add_student):
    student = add_student(1, "Alice")
    container.attendance_service.upsert_entry(AttendanceInput(student_id=student.id, date="2025-03-03", status="absent"))

    with pytest.raises(ValidationError):
        container.attendance_service.get_filtered_attendances(AttendanceFilter(statuses=("excused",)))
