import pytest

from class_register.attendance.model import AttendanceInput
from class_register.core.enums import HistoryAction, NotificationType
from class_register.core.exceptions import NotFoundError, ValidationError
from class_register.students.model import StudentInput


def test_active_roll_number_is_unique_per_class(container, add_student):
    add_student(1, "Alice", class_name="6-1")
    add_student(1, "Bob", class_name="6-2")

    with pytest.raises(ValidationError):
        add_student(1, "Carol", class_name="6-1")

    notes = container.notification_service.list_notifications()
    assert [n.type for n in notes] == [NotificationType.ERROR]


def test_deactivated_number_can_be_reused(container, add_student):
    alice = add_student(1, "Alice")
    container.student_service.deactivate_student(alice.id, reason="transferred")

    bob = add_student(1, "Bob")

    assert bob.number == 1
    assert container.student_service.get_student(alice.id).active is False


def test_inactive_students_may_share_a_number(add_student):
    add_student(1, "Alice")
    ghost = add_student(1, "Ghost", active=False)
    assert ghost.active is False


def test_reactivation_checks_the_number_again(container, add_student):
    svc = container.student_service
    alice = add_student(1, "Alice")
    svc.deactivate_student(alice.id)
    add_student(1, "Bob")

    with pytest.raises(ValidationError):
        svc.reactivate_student(alice.id)


def test_update_cannot_take_an_occupied_number(container, add_student):
    add_student(1, "Alice")
    bob = add_student(2, "Bob")

    with pytest.raises(ValidationError):
        container.student_service.update_student(bob.id, number=1)

    moved = container.student_service.update_student(bob.id, number=3, name="Robert")
    assert (moved.number, moved.name) == (3, "Robert")
    log = container.history_repo.list_for_entity(bob.id)[-1]
    assert log.changes["before"]["name"] == "Bob"
    assert log.changes["after"]["name"] == "Robert"


def test_update_rejects_unknown_fields(container, add_student):
    alice = add_student(1, "Alice")
    with pytest.raises(ValidationError):
        container.student_service.update_student(alice.id, id="other")


@pytest.mark.parametrize(
    "number,name,grade",
    [(0, "Alice", 6), (101, "Alice", 6), (1, "", 6), (1, "A" * 21, 6), (1, "Alice", 13)],
)
def test_student_input_is_validated(add_student, number, name, grade):
    with pytest.raises(ValidationError):
        add_student(number, name, grade=grade)


def test_delete_student_cascades_attendance(container, add_student):
    alice = add_student(1, "Alice")
    bob = add_student(2, "Bob")
    att = container.attendance_service
    att.upsert_entry(AttendanceInput(student_id=alice.id, date="2025-03-03", status="absent"))
    att.upsert_entry(AttendanceInput(student_id=alice.id, date="2025-03-04", status="present"))
    att.upsert_entry(AttendanceInput(student_id=bob.id, date="2025-03-03", status="present"))

    assert container.student_service.delete_student(alice.id) == 2

    assert container.students_repo.get_by_id(alice.id) is None
    assert [e.student_id for e in container.attendance_repo.list_all()] == [bob.id]
    with pytest.raises(NotFoundError):
        container.student_service.get_student(alice.id)


def test_get_students_sorts_and_filters(container, add_student):
    add_student(3, "Carol")
    add_student(1, "Bob")
    add_student(2, "Alice", active=False)

    svc = container.student_service
    assert [s.name for s in svc.get_students()] == ["Bob", "Alice", "Carol"]
    assert [s.name for s in svc.get_students(active=True, sort_by="name")] == ["Bob", "Carol"]
    assert [s.number for s in svc.get_students(descending=True)] == [3, 2, 1]


def test_search_by_name_or_number(container, add_student):
    add_student(1, "Alice")
    add_student(12, "Bob")
    add_student(3, "Malik")

    svc = container.student_service
    assert sorted(s.name for s in svc.search_students("ali")) == ["Alice", "Malik"]
    assert sorted(s.name for s in svc.search_students("1")) == ["Alice", "Bob"]
    assert len(svc.search_students("  ")) == 3


def test_add_bulk_students_accumulates_failures(container):
    result = container.student_service.add_bulk_students(
        [
            StudentInput(number=1, name="Alice", class_name="6-1", grade=6),
            StudentInput(number=1, name="Dup", class_name="6-1", grade=6),
            {"number": 2, "name": "Bob", "class_name": "6-1", "grade": 6, "nickname": "B"},
            {"number": 3, "name": "Carol", "class_name": "6-1", "grade": 6},
        ]
    )

    assert [s.name for s in result.success] == ["Alice", "Carol"]
    assert len(result.failed) == 2
    log = container.history_repo.list_for_entity("bulk")[-1]
    assert log.action == HistoryAction.BULK_IMPORT
    assert log.changes["failedCount"] == 2


def test_class_statistics(container, add_student):
    add_student(1, "Alice", class_name="6-1")
    add_student(2, "Bob", class_name="6-1", active=False)
    add_student(1, "Carol", class_name="6-2")

    stats = {s.class_name: s for s in container.student_service.get_class_statistics()}

    assert (stats["6-1"].total_students, stats["6-1"].active_students, stats["6-1"].inactive_students) == (2, 1, 1)
    assert stats["6-2"].active_students == 1


def test_reorder_numbers_by_name(container, add_student):
    add_student(1, "Charlie")
    add_student(5, "Alice")
    add_student(9, "Bob")
    retired = add_student(2, "Zed", active=False)

    assert container.student_service.reorder_student_numbers("6-1") == 3

    active = container.student_service.get_students(active=True)
    assert [(s.number, s.name) for s in active] == [(1, "Alice"), (2, "Bob"), (3, "Charlie")]
    assert container.student_service.get_student(retired.id).number == 2
