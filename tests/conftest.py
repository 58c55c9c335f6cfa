import hashlib
import json
from datetime import date, datetime, timedelta

import pytest

from app import create_app
from config.config import TestConfig
from extensions import db
from models import Board, FormFillup, Institution, Student, Subject
from services.container import get_services
from services.errors import StoreUnavailable
from services.fingerprint_store import FingerprintStore
from utils.seed_data import seed_subjects

EXAM = "SSC"
SESSION = "2025"
ROLLS = ("100001", "100002", "100003")


class FakeStore(FingerprintStore):
    """In-memory content store; ``fail_for`` / ``fail_all`` make ``put`` raise."""

    def __init__(self):
        self.blobs = {}
        self.puts = 0
        self.fail_all = False
        self.fail_for = set()
        self.before_put = None

    def compute_id(self, data):
        return hashlib.sha256(data).hexdigest()

    def put(self, data):
        if self.before_put:
            self.before_put(data)
        if self.fail_all:
            raise StoreUnavailable("store offline")
        if self.fail_for and json.loads(data)["result_id"] in self.fail_for:
            raise StoreUnavailable("store offline")
        content_id = self.compute_id(data)
        self.blobs[content_id] = data
        self.puts += 1
        return content_id

    def get(self, content_id):
        return self.blobs.get(content_id)


class FixedClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 6, 1, 10, 0, 0))


def _seed_attempts():
    board = Board(board_id=1, board_name="Dhaka Education Board")
    institution = Institution(institution_id=1, institution_name="Ideal School", address="Motijheel")
    db.session.add_all([board, institution])

    for i, roll in enumerate(ROLLS, start=1):
        registration_number = f"REG-{1000 + i}"
        db.session.add(Student(
            registration_number=registration_number,
            first_name=f"Student{i}",
            last_name="Rahman",
            father_name="Abdul Rahman",
            mother_name="Ayesha Begum",
            date_of_birth=date(2009, 1, i),
        ))
        db.session.add(FormFillup(
            roll_number=roll,
            registration_number=registration_number,
            exam_name=EXAM,
            session=SESSION,
            group="Science",
            board_id=1,
            institution_id=1,
        ))
    db.session.commit()


@pytest.fixture
def database_uri():
    return "sqlite://"


@pytest.fixture
def app(store, clock, tmp_path, database_uri):
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = database_uri
        LOCAL_BLOB_DIR = str(tmp_path / "blobs")

    app = create_app(_Config, store=store, clock=clock)
    with app.app_context():
        db.create_all()
        seed_subjects()
        _seed_attempts()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def services(app):
    return get_services(app)


@pytest.fixture
def ledger(services):
    return services.ledger


@pytest.fixture
def subjects(app):
    return {s.subject_name: s.subject_id for s in Subject.query.all()}


@pytest.fixture
def enter_marks(services, subjects):
    def _enter(roll_number, marks, actor="examiner"):
        for name, value in marks.items():
            services.marks.record_mark(roll_number, subjects[name], value, actor)
        return services.ledger.get_result(db.session.get(FormFillup, roll_number).result_id)
    return _enter