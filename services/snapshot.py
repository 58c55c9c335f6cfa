from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from models.exam_mark import ExamMark
from models.result import Result

HASH_VERSION = "1.0"

CRITICAL_FIELDS = (
    "result_id",
    "roll_number",
    "exam_name",
    "session",
    "gpa",
    "grade",
    "total_marks",
    "status",
)


@dataclass(frozen=True)
class SubjectMark:
    subject_id: int
    subject_name: str
    subject_category: str
    marks_obtained: float
    grade: Optional[str] = None
    grade_point: Optional[float] = None

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "SubjectMark":
        return SubjectMark(
            subject_id=int(data["subject_id"]),
            subject_name=str(data["subject_name"]),
            subject_category=str(data["subject_category"]),
            marks_obtained=float(data["marks_obtained"]),
            grade=data.get("grade"),
            grade_point=None if data.get("grade_point") is None else float(data["grade_point"]),
        )


@dataclass(frozen=True)
class Snapshot:
    """
    The record stored in the fingerprint store for one Result.

    Serialized as canonical JSON (sorted keys, no whitespace) so the same
    content always yields the same bytes.
    """

    result_id: str
    roll_number: str
    exam_name: str
    session: str
    gpa: float
    grade: Optional[str]
    total_marks: float
    status: Optional[str]
    published: bool
    published_by: Optional[str]
    published_at: Optional[str]
    student: Dict[str, Any]
    institution: Dict[str, Any]
    board: Dict[str, Any]
    subject_marks: Tuple[SubjectMark, ...]
    generated_at: str
    hash_version: str = HASH_VERSION
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        for name in ("result_id", "roll_number", "exam_name", "session", "generated_at"):
            if not getattr(self, name):
                raise ValueError(f"snapshot field {name} is required")

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["subject_marks"] = [asdict(m) for m in self.subject_marks]
        if not d["extra"]:
            d.pop("extra")
        return d

    def to_bytes(self) -> bytes:
        return json.dumps(
            self.to_dict(),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")

    def sorted_marks(self) -> Tuple[SubjectMark, ...]:
        return tuple(sorted(self.subject_marks, key=lambda m: m.subject_id))

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Snapshot":
        missing = [k for k in CRITICAL_FIELDS + ("subject_marks", "generated_at") if k not in data]
        if missing:
            raise ValueError(f"snapshot missing fields: {', '.join(missing)}")
        known = {
            "result_id", "roll_number", "exam_name", "session", "gpa", "grade",
            "total_marks", "status", "published", "published_by", "published_at",
            "student", "institution", "board", "subject_marks", "generated_at",
            "hash_version", "extra",
        }
        return Snapshot(
            result_id=str(data["result_id"]),
            roll_number=str(data["roll_number"]),
            exam_name=str(data["exam_name"]),
            session=str(data["session"]),
            gpa=float(data["gpa"]),
            grade=data.get("grade"),
            total_marks=float(data["total_marks"]),
            status=data.get("status"),
            published=bool(data.get("published", False)),
            published_by=data.get("published_by"),
            published_at=data.get("published_at"),
            student=dict(data.get("student") or {}),
            institution=dict(data.get("institution") or {}),
            board=dict(data.get("board") or {}),
            subject_marks=tuple(SubjectMark.from_dict(m) for m in data["subject_marks"]),
            generated_at=str(data["generated_at"]),
            hash_version=str(data.get("hash_version") or HASH_VERSION),
            extra={
                **dict(data.get("extra") or {}),
                **{k: v for k, v in data.items() if k not in known},
            },
        )

    @staticmethod
    def from_bytes(raw: bytes) -> "Snapshot":
        return Snapshot.from_dict(json.loads(raw.decode("utf-8")))


def _iso(value) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return value.replace(microsecond=0).isoformat()
    return value.isoformat()


def build_snapshot(result: Result, generated_at) -> Snapshot:
    """Assemble the snapshot of ``result`` from live relational data."""
    attempt = result.attempt
    student = attempt.student
    institution = attempt.institution
    board = attempt.board

    marks = (
        ExamMark.query
        .filter_by(roll_number=result.roll_number)
        .order_by(ExamMark.subject_id.asc())
        .all()
    )

    return Snapshot(
        result_id=result.result_id,
        roll_number=result.roll_number,
        exam_name=result.exam_name,
        session=result.session,
        gpa=round(float(result.gpa or 0), 2),
        grade=result.grade,
        total_marks=round(float(result.total_marks or 0), 2),
        status=result.status,
        published=bool(result.published),
        published_by=result.published_by,
        published_at=_iso(result.published_at),
        student={
            "registration_number": attempt.registration_number,
            "name": student.full_name if student else "Unknown",
            "father_name": student.father_name if student else None,
            "mother_name": student.mother_name if student else None,
            "date_of_birth": _iso(student.date_of_birth) if student else None,
        },
        institution={
            "id": attempt.institution_id,
            "name": institution.institution_name if institution else "Unknown",
        },
        board={
            "id": attempt.board_id,
            "name": board.board_name if board else "Unknown",
        },
        subject_marks=tuple(
            SubjectMark(
                subject_id=m.subject_id,
                subject_name=m.subject.subject_name,
                subject_category=m.subject.subject_category,
                marks_obtained=float(m.marks_obtained),
                grade=m.grade,
                grade_point=float(m.grade_point),
            )
            for m in marks
        ),
        generated_at=_iso(generated_at),
    )
