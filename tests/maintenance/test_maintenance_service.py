from class_register.attendance.model import AttendanceInput
from class_register.core.enums import EntityType, HistoryAction, NotificationType
from class_register.storage.adapter import ATTENDANCE_ENTRIES, COLLECTIONS, STUDENTS


def test_cleanup_old_history(container, clock):
    history = container.history_repo
    history.append(action=HistoryAction.CREATE, entity_type=EntityType.STUDENT, entity_id="old")
    clock.advance_days(91)
    history.append(action=HistoryAction.CREATE, entity_type=EntityType.STUDENT, entity_id="new")

    assert container.maintenance_service.cleanup_old_history(90) == 1
    assert [h.entity_id for h in history.list_recent()] == ["new"]


def test_cleanup_keeps_unread_notifications(container, clock):
    notes = container.notification_service
    read = notes.notify(NotificationType.INFO, "Read", "old and read")
    notes.notify(NotificationType.INFO, "Unread", "old but unread")
    notes.mark_read(read.id)
    clock.advance_days(8)

    assert container.maintenance_service.cleanup_read_notifications(7) == 1
    assert [n.title for n in notes.list_notifications()] == ["Unread"]


def test_integrity_check_finds_orphans_and_duplicate_numbers(container, adapter, add_student):
    add_student(1, "Alice")
    adapter.insert(STUDENTS, {"id": "dup", "number": 1, "name": "Twin", "className": "6-1", "grade": 6, "active": True})
    adapter.insert(ATTENDANCE_ENTRIES, {"id": "o1", "date": "2025-03-03", "studentId": "gone", "status": "absent"})
    adapter.insert(ATTENDANCE_ENTRIES, {"id": "o2", "date": "2025-02-31", "studentId": "dup", "status": "absent"})

    report = container.maintenance_service.validate_database_integrity()

    assert report.is_valid is False
    assert len(report.issues) == 3
    assert any("missing students" in issue for issue in report.issues)
    assert any("number 1" in issue for issue in report.issues)
    assert any("invalid date" in issue for issue in report.issues)


def test_clean_database_passes_integrity_check(container, add_student):
    alice = add_student(1, "Alice")
    container.attendance_service.upsert_entry(AttendanceInput(student_id=alice.id, date="2025-03-03", status="present"))
    assert container.maintenance_service.validate_database_integrity().is_valid


def test_database_size(container, add_student):
    add_student(1, "Alice")
    size = container.maintenance_service.get_database_size()

    assert set(size.counts) == set(COLLECTIONS)
    assert size.counts[STUDENTS] == 1
    assert size.estimated_bytes > 0
    assert size.estimated_size.endswith("B")


def test_optimize_only_runs_past_threshold(container, add_student, clock):
    alice = add_student(1, "Alice")
    container.attendance_service.upsert_entry(AttendanceInput(student_id=alice.id, date="2025-03-03", status="present"))
    clock.advance_days(100)

    assert container.maintenance_service.optimize(threshold=10) is False
    assert container.history_repo.count() == 2

    assert container.maintenance_service.optimize(threshold=0) is True
    assert container.history_repo.count() == 0
