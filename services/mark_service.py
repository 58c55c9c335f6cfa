from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from sqlalchemy.exc import IntegrityError

from extensions import db
from models.exam_mark import ExamMark
from models.subjects import Subject
from services import attempt_service
from services.errors import InvalidMarks, InvalidState, NotFound, StoreUnavailable
from services.result_ledger import BatchReport, ResultLedger

logger = logging.getLogger(__name__)


@dataclass
class BulkMarkOutcome:
    marks: List[ExamMark] = field(default_factory=list)
    report: BatchReport = field(default_factory=BatchReport)


class MarkService:
    """
    Mark entry. Every create/update/delete is followed by
    ``ResultLedger.on_mark_mutated`` for the attempt, under the same
    per-result lock, so a concurrent publish never sees a half-applied
    change.
    """

    def __init__(self, ledger: ResultLedger):
        self.ledger = ledger

    def grade_marks(self, subject: Subject, marks_obtained):
        try:
            marks = float(marks_obtained)
        except (TypeError, ValueError):
            raise InvalidMarks(f"marks_obtained must be a number, got {marks_obtained!r}") from None
        if marks < 0 or marks > float(subject.full_marks):
            raise InvalidMarks(
                f"marks_obtained {marks} outside 0..{subject.full_marks} for {subject.subject_name}"
            )
        grade, point = self.ledger.policy.grade_for_mark(marks, subject.full_marks, subject.pass_marks)
        return marks, grade, point

    @staticmethod
    def _subject(subject_id) -> Subject:
        subject = db.session.get(Subject, subject_id)
        if not subject:
            raise NotFound(f"Subject {subject_id} not found.")
        return subject

    @staticmethod
    def get_mark(detail_id) -> ExamMark:
        mark = db.session.get(ExamMark, detail_id)
        if not mark:
            raise NotFound(f"Exam mark {detail_id} not found.")
        return mark

    @staticmethod
    def marks_for_roll(roll_number) -> List[ExamMark]:
        attempt_service.get_attempt(roll_number)
        return (
            ExamMark.query
            .filter_by(roll_number=roll_number)
            .order_by(ExamMark.subject_id.asc())
            .all()
        )

    def record_mark(self, roll_number, subject_id, marks_obtained, actor) -> ExamMark:
        attempt = attempt_service.get_attempt(roll_number)
        subject = self._subject(subject_id)
        marks, grade, point = self.grade_marks(subject, marks_obtained)

        with self.ledger.locks.hold(attempt.result_id):
            try:
                mark = ExamMark(
                    roll_number=roll_number,
                    subject_id=subject.subject_id,
                    marks_obtained=marks,
                    grade=grade,
                    grade_point=point,
                    entered_by=actor,
                )
                db.session.add(mark)
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                raise InvalidState(
                    f"Marks for subject {subject_id} already recorded for roll number {roll_number}."
                ) from None
            except Exception:
                db.session.rollback()
                raise

            logger.info("Mark recorded roll=%s subject=%s marks=%s by=%s", roll_number, subject_id, marks, actor)
            self.ledger.on_mark_mutated(roll_number, actor)
        return mark

    def update_mark(self, detail_id, marks_obtained, actor) -> ExamMark:
        mark = self.get_mark(detail_id)
        roll_number = mark.roll_number
        attempt = attempt_service.get_attempt(roll_number)
        marks, grade, point = self.grade_marks(mark.subject, marks_obtained)

        with self.ledger.locks.hold(attempt.result_id):
            try:
                mark.marks_obtained = marks
                mark.grade = grade
                mark.grade_point = point
                mark.entered_by = actor
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

            logger.info("Mark updated id=%s roll=%s marks=%s by=%s", detail_id, roll_number, marks, actor)
            self.ledger.on_mark_mutated(roll_number, actor)
        return mark

    def delete_mark(self, detail_id, actor) -> None:
        mark = self.get_mark(detail_id)
        roll_number = mark.roll_number
        attempt = attempt_service.get_attempt(roll_number)

        with self.ledger.locks.hold(attempt.result_id):
            try:
                db.session.delete(mark)
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

            logger.info("Mark deleted id=%s roll=%s by=%s", detail_id, roll_number, actor)
            self.ledger.on_mark_mutated(roll_number, actor)

    def bulk_record_marks(self, entries, actor) -> BulkMarkOutcome:
        """
        Insert many marks in one transaction, then recompute each affected
        attempt once. Ledger failures are reported per roll number.
        """
        outcome = BulkMarkOutcome()
        rolls = []
        prepared = []

        for entry in entries:
            roll_number = entry["roll_number"]
            attempt = attempt_service.get_attempt(roll_number)
            subject = self._subject(entry["subject_id"])
            marks, grade, point = self.grade_marks(subject, entry["marks_obtained"])
            prepared.append(ExamMark(
                roll_number=roll_number,
                subject_id=subject.subject_id,
                marks_obtained=marks,
                grade=grade,
                grade_point=point,
                entered_by=actor,
            ))
            if roll_number not in rolls:
                rolls.append(roll_number)

        result_ids = [attempt_service.get_attempt(r).result_id for r in rolls]
        with self.ledger.locks.hold(*result_ids):
            try:
                db.session.add_all(prepared)
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                raise InvalidState("Bulk marks contain a subject already recorded for its roll number.") from None
            except Exception:
                db.session.rollback()
                raise

            outcome.marks.extend(prepared)
            for roll_number in rolls:
                try:
                    self.ledger.on_mark_mutated(roll_number, actor)
                    outcome.report.succeeded.append(roll_number)
                except StoreUnavailable as e:
                    outcome.report.fail(roll_number, f"store unavailable: {e}")

        logger.info("Bulk marks: %d rows, results %s", len(prepared), outcome.report.counts())
        return outcome
