from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from extensions import db
from models.result import Result
from services.errors import StoreUnavailable
from services.fingerprint_store import FingerprintStore
from services.snapshot import CRITICAL_FIELDS, Snapshot, build_snapshot

logger = logging.getLogger(__name__)

VERIFIED = "verified"
RESULT_NOT_FOUND = "result not found"
NO_FINGERPRINT = "no fingerprint"
CONTENT_MISSING = "content missing"
FINGERPRINT_MISMATCH = "fingerprint mismatch"
CONTENT_UNREADABLE = "content unreadable"
STORE_UNAVAILABLE = "store unavailable"
FIELD_MISMATCH = "field mismatch"
SUBJECT_MARKS_MISMATCH = "subject marks mismatch"
SNAPSHOT_MISMATCH = "snapshot mismatch"


@dataclass(frozen=True)
class VerificationResult:
    verified: bool
    reason: str
    result_id: str
    fingerprint_id: Optional[str] = None
    mismatches: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self):
        return {
            "verified": self.verified,
            "reason": self.reason,
            "result_id": self.result_id,
            "fingerprint_id": self.fingerprint_id,
            "mismatches": list(self.mismatches),
        }


def compare_snapshots(stored: Snapshot, current: Snapshot) -> Tuple[str, Tuple[str, ...]]:
    """Return (reason, mismatches); reason is VERIFIED when they agree."""
    fields = tuple(
        name for name in CRITICAL_FIELDS
        if getattr(stored, name) != getattr(current, name)
    )
    if fields:
        return FIELD_MISMATCH, fields

    stored_marks = [(m.subject_id, m.marks_obtained) for m in stored.sorted_marks()]
    current_marks = [(m.subject_id, m.marks_obtained) for m in current.sorted_marks()]
    if stored_marks != current_marks:
        stored_map = dict(stored_marks)
        current_map = dict(current_marks)
        subjects = sorted(set(stored_map) | set(current_map))
        diff = tuple(
            f"subject:{sid}" for sid in subjects
            if stored_map.get(sid) != current_map.get(sid)
        )
        return SUBJECT_MARKS_MISMATCH, diff

    return VERIFIED, ()


class IntegrityVerifier:
    """
    Read-only check of a Result against the snapshot its fingerprint
    points at. Takes no locks and writes nothing.
    """

    def __init__(self, store: FingerprintStore):
        self.store = store

    def load_snapshot(self, fingerprint_id: str) -> Optional[Snapshot]:
        raw = self.store.get(fingerprint_id)
        if raw is None:
            return None
        return Snapshot.from_bytes(raw)

    def verify(self, result_id: str, strict: bool = False) -> VerificationResult:
        result = db.session.get(Result, result_id)
        if result is None:
            return VerificationResult(False, RESULT_NOT_FOUND, result_id)

        fingerprint_id = result.fingerprint_id
        if not fingerprint_id:
            return VerificationResult(False, NO_FINGERPRINT, result_id)

        def failed(reason, mismatches=()):
            logger.warning("VERIFY_FAILED result=%s fp=%s reason=%s %s",
                           result_id, fingerprint_id, reason, list(mismatches))
            return VerificationResult(False, reason, result_id, fingerprint_id, tuple(mismatches))

        try:
            raw = self.store.get(fingerprint_id)
        except StoreUnavailable as e:
            logger.error("Fingerprint store unavailable verifying %s: %s", result_id, e)
            return VerificationResult(False, STORE_UNAVAILABLE, result_id, fingerprint_id)

        if raw is None:
            return failed(CONTENT_MISSING)

        # the blob must still hash to the id the result points at
        try:
            content_id = self.store.compute_id(raw)
        except StoreUnavailable as e:
            logger.error("Fingerprint store unavailable verifying %s: %s", result_id, e)
            return VerificationResult(False, STORE_UNAVAILABLE, result_id, fingerprint_id)
        if content_id != fingerprint_id:
            return failed(FINGERPRINT_MISMATCH)

        try:
            stored = Snapshot.from_bytes(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Unreadable snapshot %s for %s: %s", fingerprint_id, result_id, e)
            return failed(CONTENT_UNREADABLE)

        current = build_snapshot(result, stored.generated_at)

        reason, mismatches = compare_snapshots(stored, current)
        if reason != VERIFIED:
            return failed(reason, mismatches)

        if strict and current.to_bytes() != raw:
            return failed(SNAPSHOT_MISMATCH)

        return VerificationResult(True, VERIFIED, result_id, fingerprint_id)
