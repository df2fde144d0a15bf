import hashlib
import json

import pytest

from class_register.backup.snapshot import create_snapshot, parse_payload, validate_snapshot_integrity
from class_register.core.enums import BackupType
from class_register.core.exceptions import ValidationError

STUDENT = {"id": "s1", "number": 1, "name": "김민수", "className": "6-1", "grade": 6, "active": True}
ENTRY = {"id": "e1", "date": "2025-03-03", "period": None, "studentId": "s1", "status": "absent"}


def test_snapshot_metadata_matches_payload():
    snapshot = create_snapshot([STUDENT], [ENTRY], [{"id": "default"}], now=1740988800000, description="before exams")

    payload = snapshot.payload
    meta = snapshot.metadata
    assert meta.checksum == hashlib.sha256(payload.encode("utf-8")).hexdigest()
    assert meta.size == len(payload.encode("utf-8"))
    assert meta.size > len(payload)
    assert meta.created_at == 1740988800000
    assert meta.filename.startswith("backup_manual_")
    assert meta.filename.endswith(f"_{meta.id[:8]}.json")

    data = json.loads(payload)
    assert data["students"] == [STUDENT]
    assert data["attendanceEntries"] == [ENTRY]
    assert data["exportedAt"] == 1740988800000
    assert data["version"] == "1.0.0"
    assert data["type"] == "manual"
    assert data["description"] == "before exams"


def test_auto_snapshot_filename():
    snapshot = create_snapshot([], [], [], now=1740988800000, backup_type=BackupType.AUTO)
    assert snapshot.metadata.filename.startswith("backup_2")
    assert "description" not in json.loads(snapshot.payload)


def test_integrity_report_counts_bad_records():
    data = {
        "students": [STUDENT, {"id": "s2", "name": "No class", "number": 2}],
        "attendanceEntries": [ENTRY, {"id": "e2"}, "junk"],
        "exportedAt": 1,
    }
    report = validate_snapshot_integrity(data)

    assert report.is_valid is False
    assert {w.category: w.count for w in report.warnings} == {"students": 1, "attendance": 2}
    assert len(report.issues) == 2


def test_integrity_requires_arrays_and_numeric_timestamp():
    report = validate_snapshot_integrity({"students": {}, "exportedAt": "yesterday"})
    assert sorted(w.category for w in report.warnings) == ["attendance", "exportedAt", "students"]


def test_clean_payload_is_valid():
    assert validate_snapshot_integrity({"students": [STUDENT], "attendanceEntries": [ENTRY], "exportedAt": 5}).is_valid


def test_legacy_attendance_key_is_accepted():
    data = parse_payload(json.dumps({"students": [], "attendances": [ENTRY], "exportedAt": 1}))
    assert data["attendanceEntries"] == [ENTRY]
    assert "attendances" not in data


@pytest.mark.parametrize("text", ["not json", "[1, 2]"])
def test_unparseable_payload(text):
    with pytest.raises(ValidationError):
        parse_payload(text)
