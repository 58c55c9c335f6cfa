from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from services.grade_rules import DEFAULT_POLICY, GradePolicy

PASS = "Pass"
FAIL = "Fail"


@dataclass(frozen=True)
class Aggregate:
    total_marks: float
    gpa: float
    status: Optional[str]
    grade: Optional[str]
    subject_count: int

    @property
    def incomplete(self) -> bool:
        # no marks yet: neither Pass nor Fail
        return self.subject_count == 0

    def as_dict(self):
        return {
            "total_marks": self.total_marks,
            "gpa": self.gpa,
            "grade": self.grade,
            "status": self.status,
        }


def aggregate(marks: Iterable, policy: GradePolicy = DEFAULT_POLICY) -> Aggregate:
    """
    Fold the current marks of one attempt into its result figures.

    ``marks`` are ExamMark rows (or anything with ``marks_obtained`` and
    ``grade_point``). A single zero grade point fails the attempt and
    forces GPA 0 / grade F.
    """
    marks = list(marks)
    if not marks:
        return Aggregate(total_marks=0.0, gpa=0.0, status=None, grade=None, subject_count=0)

    total = round(sum(float(m.marks_obtained) for m in marks), 2)
    points = [float(m.grade_point) for m in marks]

    if any(p == 0 for p in points):
        return Aggregate(
            total_marks=total,
            gpa=0.0,
            status=FAIL,
            grade=policy.fail_letter,
            subject_count=len(marks),
        )

    # halves round up: 3.125 is 3.13
    mean = sum(Decimal(str(p)) for p in points) / len(points)
    gpa = min(float(mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)), policy.max_grade_point)
    return Aggregate(
        total_marks=total,
        gpa=gpa,
        status=PASS,
        grade=policy.grade_for_gpa(gpa),
        subject_count=len(marks),
    )
