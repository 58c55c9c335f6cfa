import json

from extensions import db
from models import ExamMark, Result
from services.snapshot import Snapshot, build_snapshot
from services.verifier import compare_snapshots

R1 = "SSC_2025_100001"


def test_unknown_result(services):
    outcome = services.verifier.verify("SSC_2025_000000")
    assert not outcome.verified
    assert outcome.reason == "result not found"


def test_no_fingerprint(services, enter_marks):
    enter_marks("100001", {"Mathematics": 85})
    result = db.session.get(Result, R1)
    result.fingerprint_id = None
    db.session.commit()

    outcome = services.verifier.verify(R1)
    assert not outcome.verified
    assert outcome.reason == "no fingerprint"


def test_content_missing(services, enter_marks, store):
    result = enter_marks("100001", {"Mathematics": 85})
    store.blobs.pop(result.fingerprint_id)

    outcome = services.verifier.verify(R1)
    assert outcome.reason == "content missing"
    assert outcome.fingerprint_id == result.fingerprint_id


def test_content_unreadable(services, enter_marks, store):
    enter_marks("100001", {"Mathematics": 85})
    garbage_id = store.compute_id(b"not json")
    store.blobs[garbage_id] = b"not json"
    result = db.session.get(Result, R1)
    result.fingerprint_id = garbage_id
    db.session.commit()

    assert services.verifier.verify(R1).reason == "content unreadable"


def test_blob_replaced_under_its_id_is_detected(services, enter_marks, store):
    result = enter_marks("100001", {"Mathematics": 85})
    genuine = store.blobs[result.fingerprint_id]
    forged = json.loads(genuine)
    forged["subject_marks"][0]["marks_obtained"] = 99.0
    store.blobs[result.fingerprint_id] = json.dumps(forged, sort_keys=True, separators=(",", ":")).encode("utf-8")

    outcome = services.verifier.verify(R1)

    assert not outcome.verified
    assert outcome.reason == "fingerprint mismatch"
    assert outcome.fingerprint_id == result.fingerprint_id


def test_retroactive_mark_edit_is_detected(services, enter_marks, subjects):
    enter_marks("100001", {"Mathematics": 85, "English": 72})
    services.ledger.publish([R1], actor="controller")

    mark = ExamMark.query.filter_by(roll_number="100001", subject_id=subjects["English"]).one()
    mark.marks_obtained = 95
    db.session.commit()

    outcome = services.verifier.verify(R1)
    assert not outcome.verified
    assert outcome.reason == "subject marks mismatch"
    assert outcome.mismatches == (f"subject:{subjects['English']}",)


def test_tampered_result_field_is_detected(services, enter_marks):
    enter_marks("100001", {"Mathematics": 85, "English": 72})
    result = db.session.get(Result, R1)
    result.gpa = 5.0
    result.grade = "A+"
    db.session.commit()

    outcome = services.verifier.verify(R1)
    assert outcome.reason == "field mismatch"
    assert set(outcome.mismatches) == {"gpa", "grade"}
    assert outcome.to_dict()["verified"] is False


def test_stored_snapshot_round_trips(services, enter_marks, store):
    result = enter_marks("100001", {"Mathematics": 85, "English": 72})

    stored = services.verifier.load_snapshot(result.fingerprint_id)

    assert stored.result_id == R1
    assert stored.student["registration_number"] == "REG-1001"
    assert [m.subject_name for m in stored.sorted_marks()] == ["English", "Mathematics"]
    assert stored.to_bytes() == store.blobs[result.fingerprint_id]


def test_snapshot_bytes_are_canonical(enter_marks):
    result = enter_marks("100001", {"Mathematics": 85})
    raw = build_snapshot(result, "2025-06-01T10:00:00").to_bytes()

    data = json.loads(raw)
    assert raw == json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    assert data["hash_version"] == "1.0"


def test_compare_snapshots_ignores_mark_order(enter_marks):
    result = enter_marks("100001", {"Mathematics": 85, "English": 72})
    snapshot = build_snapshot(result, "2025-06-01T10:00:00")
    data = snapshot.to_dict()
    data["subject_marks"] = list(reversed(data["subject_marks"]))

    assert compare_snapshots(snapshot, Snapshot.from_dict(data)) == ("verified", ())


def test_snapshot_requires_critical_fields():
    try:
        Snapshot.from_dict({"result_id": "x"})
    except ValueError as e:
        assert "roll_number" in str(e)
    else:
        raise AssertionError("missing fields accepted")
