from models.exam_mark import ExamMark
from models.result import Result
from services import attempt_service
from services.errors import NotFound, StoreUnavailable


def lookup_public_result(roll_number, registration_number, exam_name, session, verifier):
    """
    Public certificate check: the published result for one attempt, its
    subject marks, the stored snapshot behind its fingerprint (for
    rendering) and the verification outcome.
    """
    result = Result.query.filter_by(
        roll_number=roll_number,
        exam_name=exam_name,
        session=session
    ).first()

    if not result:
        raise NotFound(f"Result not found for roll number {roll_number}, exam {exam_name}, session {session}.")

    if not result.published:
        raise NotFound(f"Result for roll number {roll_number} is not published.")

    attempt = attempt_service.find_attempt(roll_number, registration_number)
    student = attempt.student

    marks = (
        ExamMark.query
        .filter_by(roll_number=roll_number)
        .order_by(ExamMark.subject_id.asc())
        .all()
    )

    stored = None
    if result.fingerprint_id:
        try:
            stored = verifier.load_snapshot(result.fingerprint_id)
        except (StoreUnavailable, ValueError):
            stored = None

    return {
        "result_id": result.result_id,
        "roll_number": result.roll_number,
        "exam_name": result.exam_name,
        "session": result.session,
        "gpa": result.gpa,
        "grade": result.grade,
        "total_marks": result.total_marks,
        "status": result.status,
        "published_at": result.published_at.isoformat() if result.published_at else None,
        "fingerprint_id": result.fingerprint_id,
        "registration_number": attempt.registration_number,
        "student_name": student.full_name if student else None,
        "group": attempt.group,
        "institution_name": attempt.institution.institution_name if attempt.institution else None,
        "subjects": [
            {
                "subject_id": m.subject_id,
                "subject_name": m.subject.subject_name,
                "subject_category": m.subject.subject_category,
                "marks_obtained": m.marks_obtained,
                "grade": m.grade,
                "grade_point": m.grade_point,
            }
            for m in marks
        ],
        "stored_snapshot": stored.to_dict() if stored else None,
        "verification": verifier.verify(result.result_id).to_dict(),
    }
