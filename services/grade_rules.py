"""
Grade policy tables.

Two independent tables live on one policy object:

- mark bands: percentage of full marks -> (letter, grade point)
- GPA bands: average grade point -> final transcript letter

Boards register their own policy by name; the app factory picks one with
the GRADE_POLICY setting and injects it into the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

FAIL_LETTER = "F"
MAX_GRADE_POINT = 5.00


@dataclass(frozen=True)
class MarkBand:
    min_percent: float
    letter: str
    point: float


@dataclass(frozen=True)
class GpaBand:
    min_gpa: float
    letter: str


@dataclass(frozen=True)
class GradePolicy:
    name: str
    version: str
    mark_bands: Tuple[MarkBand, ...]
    gpa_bands: Tuple[GpaBand, ...]
    max_grade_point: float = MAX_GRADE_POINT
    fail_letter: str = FAIL_LETTER
    meta: Dict[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if not self.mark_bands or not self.gpa_bands:
            raise ValueError("grade policy needs both mark and GPA bands")
        # tables are evaluated top-down, highest threshold first
        object.__setattr__(
            self, "mark_bands",
            tuple(sorted(self.mark_bands, key=lambda b: b.min_percent, reverse=True)),
        )
        object.__setattr__(
            self, "gpa_bands",
            tuple(sorted(self.gpa_bands, key=lambda b: b.min_gpa, reverse=True)),
        )

    def grade_for_mark(
        self,
        marks_obtained: float,
        full_marks: float = 100,
        pass_marks: Optional[float] = None,
    ) -> Tuple[str, float]:
        marks = float(marks_obtained)
        full = float(full_marks or 100)
        if marks < 0 or marks > full:
            raise ValueError(f"marks {marks} outside 0..{full}")

        if pass_marks is not None and marks < float(pass_marks):
            return self.fail_letter, 0.0

        percent = marks * 100.0 / full
        for band in self.mark_bands:
            if percent >= band.min_percent:
                return band.letter, float(band.point)
        return self.fail_letter, 0.0

    def grade_for_gpa(self, gpa: float) -> str:
        value = float(gpa)
        for band in self.gpa_bands:
            if value >= band.min_gpa:
                return band.letter
        return self.fail_letter


# Canonical board table. The GPA table has no B+ band: a 3.00 average maps
# to B, matching the per-subject letter for a 3.00 grade point.
BOARD_2025 = GradePolicy(
    name="board-2025",
    version="1.0",
    mark_bands=(
        MarkBand(80, "A+", 5.00),
        MarkBand(70, "A", 4.00),
        MarkBand(60, "A-", 3.50),
        MarkBand(50, "B", 3.00),
        MarkBand(40, "C", 2.00),
        MarkBand(33, "D", 1.00),
        MarkBand(0, "F", 0.00),
    ),
    gpa_bands=(
        GpaBand(5.00, "A+"),
        GpaBand(4.00, "A"),
        GpaBand(3.50, "A-"),
        GpaBand(3.00, "B"),
        GpaBand(2.00, "C"),
        GpaBand(1.00, "D"),
    ),
)

_POLICIES: Dict[str, GradePolicy] = {BOARD_2025.name: BOARD_2025}

DEFAULT_POLICY = BOARD_2025


def register_policy(policy: GradePolicy) -> None:
    _POLICIES[policy.name] = policy


def get_policy(name: str) -> GradePolicy:
    try:
        return _POLICIES[name]
    except KeyError:
        raise KeyError(f"unknown grade policy: {name}") from None


def grade_for_mark(marks_obtained, full_marks=100, pass_marks=None, policy=DEFAULT_POLICY):
    return policy.grade_for_mark(marks_obtained, full_marks, pass_marks)


def grade_for_gpa(gpa, policy=DEFAULT_POLICY):
    return policy.grade_for_gpa(gpa)
