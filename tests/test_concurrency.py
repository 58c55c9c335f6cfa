import threading

import pytest

from extensions import db
from models import ExamMark

R1 = "SSC_2025_100001"


@pytest.fixture
def database_uri(tmp_path):
    # one connection per thread
    return f"sqlite:///{tmp_path / 'results.db'}"


@pytest.fixture
def english_mark(enter_marks, subjects):
    enter_marks("100001", {"Mathematics": 85, "English": 72})
    detail_id = ExamMark.query.filter_by(roll_number="100001", subject_id=subjects["English"]).one().detail_id
    db.session.commit()
    return detail_id


@pytest.fixture
def pause_put(store):
    """Block ``put`` on the thread with the given name until released."""
    stamping = threading.Event()
    release = threading.Event()
    paused = {}

    def before_put(data):
        if threading.current_thread().name == paused.get("name"):
            stamping.set()
            release.wait(5)

    def _pause(thread_name):
        paused["name"] = thread_name
        store.before_put = before_put
        return stamping, release

    return _pause


def in_thread(app, name, errors, fn):
    def target():
        with app.app_context():
            try:
                fn()
            except Exception as e:
                errors.append(e)
    return threading.Thread(target=target, name=name)


def run_race(first, second, stamping, release):
    first.start()
    assert stamping.wait(5)

    second.start()
    second.join(0.3)
    # still waiting on the first thread's result lock
    assert second.is_alive()

    release.set()
    first.join(5)
    second.join(5)
    assert not first.is_alive() and not second.is_alive()

    db.session.remove()


def test_publish_waits_for_mark_change_in_flight(app, services, english_mark, pause_put):
    errors = []
    stamping, release = pause_put("mark-writer")
    writer = in_thread(app, "mark-writer", errors, lambda: services.marks.update_mark(english_mark, 80, "examiner"))
    publisher = in_thread(app, "publisher", errors, lambda: services.ledger.publish([R1], actor="controller"))

    run_race(writer, publisher, stamping, release)

    assert errors == []
    result = services.ledger.get_result(R1)
    newest, previous = services.ledger.history(R1)[:2]

    assert result.published is True
    assert result.gpa == 5.0
    assert newest.modification_type == "publication"
    assert previous.modification_type == "marks_update"
    assert newest.new_fingerprint_id == result.fingerprint_id
    assert newest.previous_fingerprint_id == previous.new_fingerprint_id
    assert services.verifier.verify(R1, strict=True).verified


def test_mark_change_waits_for_publish_in_flight(app, services, english_mark, pause_put):
    errors = []
    stamping, release = pause_put("publisher")
    publisher = in_thread(app, "publisher", errors, lambda: services.ledger.publish([R1], actor="controller"))
    writer = in_thread(app, "mark-writer", errors, lambda: services.marks.update_mark(english_mark, 80, "examiner"))

    run_race(publisher, writer, stamping, release)

    assert errors == []
    result = services.ledger.get_result(R1)
    newest, previous = services.ledger.history(R1)[:2]

    assert result.published is False
    assert newest.modification_type == "marks_update"
    assert newest.new_data["invalidated_publication"] is True
    assert previous.modification_type == "publication"
    assert newest.previous_fingerprint_id == previous.new_fingerprint_id
    assert newest.new_fingerprint_id == result.fingerprint_id
    assert services.verifier.verify(R1, strict=True).verified
