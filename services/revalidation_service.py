from __future__ import annotations

import logging

from extensions import db
from models.exam_mark import ExamMark
from models.result import Result
from models.revalidation_request import ResultRevalidationRequest
from services import attempt_service
from services.errors import InvalidState, NotFound, StoreUnavailable
from services.mark_service import MarkService

logger = logging.getLogger(__name__)

REVIEW_STATUSES = (ResultRevalidationRequest.APPROVED, ResultRevalidationRequest.REJECTED)


class RevalidationService:
    def __init__(self, mark_service: MarkService):
        self.marks = mark_service
        self.ledger = mark_service.ledger

    @staticmethod
    def get_request(request_id) -> ResultRevalidationRequest:
        request = db.session.get(ResultRevalidationRequest, request_id)
        if not request:
            raise NotFound(f"Revalidation request {request_id} not found.")
        return request

    @staticmethod
    def list_requests(roll_number=None, status=None):
        query = ResultRevalidationRequest.query
        if roll_number:
            query = query.filter_by(roll_number=roll_number)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(ResultRevalidationRequest.request_id.desc()).all()

    def create_request(self, roll_number, subject_id, reason, actor) -> ResultRevalidationRequest:
        attempt_service.get_attempt(roll_number)

        mark = ExamMark.query.filter_by(roll_number=roll_number, subject_id=subject_id).first()
        if not mark:
            raise NotFound(f"Exam mark not found for roll number {roll_number} and subject {subject_id}.")

        try:
            request = ResultRevalidationRequest(
                roll_number=roll_number,
                subject_id=subject_id,
                reason=reason,
                original_marks=mark.marks_obtained,
                status=ResultRevalidationRequest.PENDING,
                requested_by=actor,
            )
            db.session.add(request)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("Revalidation requested roll=%s subject=%s by=%s", roll_number, subject_id, actor)
        return request

    def review_request(self, request_id, status, actor, updated_marks=None, comment=None):
        """
        Approve or reject a pending request. An approval carrying
        ``updated_marks`` rewrites the mark through MarkService, which
        unpublishes and re-fingerprints the result, and then appends a
        ``revalidation_update`` audit entry.
        """
        if status not in REVIEW_STATUSES:
            raise InvalidState("Status must be either Approved or Rejected.")

        request = self.get_request(request_id)
        if request.status != ResultRevalidationRequest.PENDING:
            raise InvalidState(f"Revalidation request {request_id} is already {request.status}.")

        rewrites_mark = status == ResultRevalidationRequest.APPROVED and updated_marks is not None

        # the request stays Pending unless the new marks are acceptable
        if rewrites_mark:
            mark = ExamMark.query.filter_by(
                roll_number=request.roll_number,
                subject_id=request.subject_id
            ).first()
            if not mark:
                raise NotFound(
                    f"Exam mark not found for roll number {request.roll_number} and subject {request.subject_id}."
                )
            updated_marks, _, _ = self.marks.grade_marks(mark.subject, updated_marks)

        try:
            request.status = status
            request.reviewed_by = actor
            request.reviewed_at = self.ledger.clock()
            request.review_comment = comment
            if rewrites_mark:
                request.updated_marks = updated_marks
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        if not rewrites_mark:
            logger.info("Revalidation %s %s by %s", request_id, status, actor)
            return request

        attempt = attempt_service.get_attempt(request.roll_number)
        result = db.session.get(Result, attempt.result_id)
        previous_fingerprint_id = result.fingerprint_id if result else None
        previous_data = {"subject_id": request.subject_id, "marks_obtained": mark.marks_obtained}
        new_data = {
            "subject_id": request.subject_id,
            "marks_obtained": request.updated_marks,
            "request_id": request.request_id,
        }

        try:
            self.marks.update_mark(mark.detail_id, request.updated_marks, actor)
        except StoreUnavailable:
            self.ledger.record_revalidation(
                attempt.result_id, actor,
                previous_data=previous_data,
                new_data=new_data,
                previous_fingerprint_id=previous_fingerprint_id,
                new_fingerprint_id=None,
            )
            raise

        result = db.session.get(Result, attempt.result_id)
        self.ledger.record_revalidation(
            attempt.result_id, actor,
            previous_data=previous_data,
            new_data=new_data,
            previous_fingerprint_id=previous_fingerprint_id,
            new_fingerprint_id=result.fingerprint_id,
        )
        logger.info("Revalidation %s approved, marks %s -> %s", request_id,
                    previous_data["marks_obtained"], request.updated_marks)
        return request
