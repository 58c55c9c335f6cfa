import pytest

from models import ExamMark, ResultRevalidationRequest
from services.errors import InvalidMarks, InvalidState, NotFound, StoreUnavailable

R1 = "SSC_2025_100001"


@pytest.fixture
def published(services, enter_marks):
    enter_marks("100001", {"Mathematics": 85, "English": 45})
    services.ledger.publish([R1], actor="controller")
    return services.ledger.get_result(R1)


def test_create_request_captures_original_marks(services, published, subjects):
    request = services.revalidation.create_request("100001", subjects["English"], "recount", "student")

    assert request.status == ResultRevalidationRequest.PENDING
    assert request.original_marks == 45
    assert request.requested_by == "student"
    assert services.revalidation.list_requests(roll_number="100001") == [request]


def test_create_request_needs_existing_mark(services, published, subjects):
    with pytest.raises(NotFound):
        services.revalidation.create_request("100001", subjects["Physics"], "recount", "student")
    with pytest.raises(NotFound):
        services.revalidation.create_request("999999", subjects["English"], "recount", "student")


def test_approval_updates_mark_and_audits(services, published, subjects, clock):
    published_fp = published.fingerprint_id
    request = services.revalidation.create_request("100001", subjects["English"], "recount", "student")

    services.revalidation.review_request(request.request_id, "Approved", "reviewer", updated_marks=75, comment="ok")

    mark = ExamMark.query.filter_by(roll_number="100001", subject_id=subjects["English"]).one()
    assert mark.marks_obtained == 75
    assert mark.grade == "A"

    result = services.ledger.get_result(R1)
    assert result.published is False
    assert result.gpa == 4.5

    request = services.revalidation.get_request(request.request_id)
    assert request.status == "Approved"
    assert request.reviewed_by == "reviewer"
    assert request.reviewed_at == clock.now
    assert request.updated_marks == 75

    newest, previous = services.ledger.history(R1)[:2]
    assert newest.modification_type == "revalidation_update"
    assert newest.previous_fingerprint_id == published_fp
    assert newest.new_fingerprint_id == result.fingerprint_id
    assert newest.previous_data["marks_obtained"] == 45
    assert newest.new_data["request_id"] == request.request_id
    assert previous.modification_type == "marks_update"


def test_rejection_leaves_marks_alone(services, published, subjects):
    request = services.revalidation.create_request("100001", subjects["English"], "recount", "student")
    entries = len(services.ledger.history(R1))

    services.revalidation.review_request(request.request_id, "Rejected", "reviewer", comment="no change")

    mark = ExamMark.query.filter_by(roll_number="100001", subject_id=subjects["English"]).one()
    assert mark.marks_obtained == 45
    assert services.ledger.get_result(R1).published is True
    assert len(services.ledger.history(R1)) == entries


def test_review_rules(services, published, subjects):
    request = services.revalidation.create_request("100001", subjects["English"], "recount", "student")

    with pytest.raises(InvalidState):
        services.revalidation.review_request(request.request_id, "Pending", "reviewer")

    services.revalidation.review_request(request.request_id, "Rejected", "reviewer")
    with pytest.raises(InvalidState):
        services.revalidation.review_request(request.request_id, "Approved", "reviewer", updated_marks=80)

    with pytest.raises(NotFound):
        services.revalidation.review_request(4242, "Approved", "reviewer")


def test_approval_with_store_down_still_audited(services, published, subjects, store):
    request = services.revalidation.create_request("100001", subjects["English"], "recount", "student")
    store.fail_all = True

    with pytest.raises(StoreUnavailable):
        services.revalidation.review_request(request.request_id, "Approved", "reviewer", updated_marks=75)

    entry = services.ledger.history(R1)[0]
    assert entry.modification_type == "revalidation_update"
    assert entry.new_fingerprint_id is None
    assert services.ledger.get_result(R1).published is False


@pytest.mark.parametrize("value", [150, -5, "abc"])
def test_approval_with_invalid_marks_keeps_request_pending(services, published, subjects, value):
    request = services.revalidation.create_request("100001", subjects["English"], "recount", "student")
    entries = len(services.ledger.history(R1))

    with pytest.raises(InvalidMarks):
        services.revalidation.review_request(request.request_id, "Approved", "reviewer", updated_marks=value)

    request = services.revalidation.get_request(request.request_id)
    assert request.status == "Pending"
    assert request.updated_marks is None
    assert request.reviewed_by is None

    mark = ExamMark.query.filter_by(roll_number="100001", subject_id=subjects["English"]).one()
    assert mark.marks_obtained == 45
    assert services.ledger.get_result(R1).published is True
    assert len(services.ledger.history(R1)) == entries

    services.revalidation.review_request(request.request_id, "Approved", "reviewer", updated_marks=75)
    assert services.revalidation.get_request(request.request_id).status == "Approved"
