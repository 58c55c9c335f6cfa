"""
Result ledger: the only writer of results and result_histories.

Every operation follows the same shape:

1. take the per-result lock and select the Result row FOR UPDATE
2. change relational state and commit
3. build a snapshot, ``put`` it in the fingerprint store, save the new
   fingerprint id and append the audit entry

A store failure in step 3 never undoes step 2. It is logged with the
result id and surfaced to the caller (StoreUnavailable for single results,
a ``failed`` entry in the BatchReport for batches); the fingerprint stays
stale until ``refresh_fingerprint`` is run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from extensions import db
from models.exam_mark import ExamMark
from models.result import Result
from services import attempt_service
from services.aggregator import Aggregate, aggregate
from services.audit_trail import AuditTrail
from services.errors import IncompleteAggregate, NotFound, StoreUnavailable
from services.fingerprint_store import FingerprintStore
from services.grade_rules import DEFAULT_POLICY, GradePolicy
from services.locks import KeyedLock
from services.snapshot import build_snapshot

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    # naive UTC, the way DateTime columns hand values back
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


@dataclass
class BatchReport:
    succeeded: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    pending: List[str] = field(default_factory=list)
    cancelled: bool = False

    def fail(self, key: str, reason: str) -> None:
        self.failed[key] = reason

    def counts(self) -> Dict[str, int]:
        return {
            "succeeded": len(self.succeeded),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
            "pending": len(self.pending),
        }


def _cancelled(cancel) -> bool:
    return cancel is not None and cancel.is_set()


class ResultLedger:
    def __init__(
        self,
        store: FingerprintStore,
        *,
        policy: GradePolicy = DEFAULT_POLICY,
        clock: Callable[[], datetime] = utc_now,
        locks: Optional[KeyedLock] = None,
        audit: Optional[AuditTrail] = None,
    ):
        self.store = store
        self.policy = policy
        self.clock = clock
        self.locks = locks or KeyedLock()
        self.audit = audit or AuditTrail()

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get_result(self, result_id: str) -> Result:
        result = db.session.get(Result, result_id)
        if result is None:
            raise NotFound(f"Result {result_id} not found.")
        return result

    def results_for_roll(self, roll_number: str) -> List[Result]:
        return (
            Result.query
            .filter_by(roll_number=roll_number)
            .order_by(Result.session.desc(), Result.exam_name.asc())
            .all()
        )

    def history(self, result_id: str):
        return self.audit.list_for(result_id)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _now(self, clock=None) -> datetime:
        return (clock or self.clock)()

    @staticmethod
    def _select_for_update(result_id: str) -> Optional[Result]:
        return (
            Result.query
            .filter_by(result_id=result_id)
            .with_for_update()
            .first()
        )

    def _aggregate_for(self, roll_number: str) -> Aggregate:
        marks = ExamMark.query.filter_by(roll_number=roll_number).all()
        return aggregate(marks, self.policy)

    @staticmethod
    def _apply_aggregate(result: Result, agg: Aggregate, now: datetime) -> None:
        result.total_marks = agg.total_marks
        result.gpa = agg.gpa
        result.grade = agg.grade
        result.status = agg.status
        result.updated_at = now

    @staticmethod
    def _require_complete(result: Result) -> None:
        if result.is_pending:
            raise IncompleteAggregate("incomplete aggregate")

    @staticmethod
    def _clear_publication(result: Result) -> None:
        result.published = False
        result.published_by = None
        result.published_at = None

    def _stamp(
        self,
        result: Result,
        *,
        now: datetime,
        actor: Optional[str],
        kind: str,
        previous_data: Optional[dict],
        new_data: Optional[dict],
        previous_fingerprint_id: Optional[str],
        audit_on_failure: bool = True,
    ) -> str:
        """Fingerprint the committed state of ``result`` and audit it."""
        result_id = result.result_id
        try:
            snapshot = build_snapshot(result, now)
            new_fingerprint_id = self.store.put(snapshot.to_bytes())
        except StoreUnavailable as e:
            logger.error(
                "FINGERPRINT_FAILED result=%s kind=%s retry_required=1 error=%s",
                result_id, kind, e,
            )
            if audit_on_failure:
                try:
                    self.audit.record(
                        result_id=result_id,
                        modification_type=kind,
                        modified_by=actor,
                        previous_data=previous_data,
                        new_data=new_data,
                        previous_fingerprint_id=previous_fingerprint_id,
                        new_fingerprint_id=None,
                        timestamp=now,
                    )
                    db.session.commit()
                except Exception:
                    db.session.rollback()
                    raise
            raise

        try:
            result.fingerprint_id = new_fingerprint_id
            self.audit.record(
                result_id=result_id,
                modification_type=kind,
                modified_by=actor,
                previous_data=previous_data,
                new_data=new_data,
                previous_fingerprint_id=previous_fingerprint_id,
                new_fingerprint_id=new_fingerprint_id,
                timestamp=now,
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("FINGERPRINT result=%s kind=%s id=%s", result_id, kind, new_fingerprint_id)
        return new_fingerprint_id

    # ------------------------------------------------------------------
    # mark mutations
    # ------------------------------------------------------------------

    def on_mark_mutated(self, roll_number: str, actor: Optional[str], clock=None) -> Optional[Result]:
        """
        Bring the attempt's Result in line with its current marks.

        Creates the Result on the first mark, and always clears publication.
        Returns None when the attempt has neither marks nor a Result.
        Raises StoreUnavailable after committing if fingerprinting fails.
        """
        attempt = attempt_service.get_attempt(roll_number)
        result_id = attempt.result_id

        with self.locks.hold(result_id):
            now = self._now(clock)
            try:
                result = self._select_for_update(result_id)
                agg = self._aggregate_for(roll_number)
                created = result is None

                if created and agg.incomplete:
                    db.session.rollback()
                    logger.info("No marks and no result for roll=%s, nothing to do", roll_number)
                    return None

                if created:
                    result = Result(
                        result_id=result_id,
                        roll_number=attempt.roll_number,
                        exam_name=attempt.exam_name,
                        session=attempt.session,
                        published=False,
                        created_at=now,
                    )
                    db.session.add(result)
                    previous_data = None
                    was_published = False
                else:
                    previous_data = {**result.aggregate_state(), **result.publication_state()}
                    was_published = bool(result.published)

                previous_fingerprint_id = result.fingerprint_id
                self._apply_aggregate(result, agg, now)
                self._clear_publication(result)
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

            if was_published:
                logger.info("Result %s unpublished by mark change (actor=%s)", result_id, actor)
            if agg.incomplete:
                logger.warning("Result %s has no marks left; status pending", result_id)

            new_data = {**agg.as_dict(), **result.publication_state()}
            if was_published:
                new_data["invalidated_publication"] = True

            self._stamp(
                result,
                now=now,
                actor=actor,
                kind="initial_hash" if created else "marks_update",
                previous_data=previous_data,
                new_data=new_data,
                previous_fingerprint_id=previous_fingerprint_id,
            )
            return result

    # ------------------------------------------------------------------
    # publication
    # ------------------------------------------------------------------

    def publish(self, result_ids: Iterable[str], actor: Optional[str], clock=None, cancel=None) -> BatchReport:
        """
        Publish every Draft result in ``result_ids``.

        The publication flags for the whole batch commit together; each
        result is then fingerprinted on its own, so a store failure leaves
        that result published with a stale fingerprint and reported failed.
        """
        ids = list(dict.fromkeys(result_ids))
        report = BatchReport()
        if not ids:
            return report

        with self.locks.hold(*ids):
            now = self._now(clock)
            transitioned = []
            try:
                rows = {
                    r.result_id: r
                    for r in (
                        Result.query
                        .filter(Result.result_id.in_(ids))
                        .with_for_update()
                        .all()
                    )
                }
                for result_id in ids:
                    result = rows.get(result_id)
                    if result is None:
                        report.fail(result_id, "not found")
                    elif result.published:
                        report.skipped.append(result_id)
                    else:
                        try:
                            self._require_complete(result)
                        except IncompleteAggregate as e:
                            report.fail(result_id, str(e))
                            continue
                        previous_data = result.publication_state()
                        result.published = True
                        result.published_by = actor
                        result.published_at = now
                        transitioned.append((result, previous_data))
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

            if report.skipped:
                logger.info("Publish skipped already published: %s", ", ".join(report.skipped))

            for index, (result, previous_data) in enumerate(transitioned):
                if _cancelled(cancel):
                    report.cancelled = True
                    report.pending.extend(r.result_id for r, _ in transitioned[index:])
                    logger.warning("Publish cancelled, %d results left without fingerprint", len(report.pending))
                    break
                try:
                    self._stamp(
                        result,
                        now=now,
                        actor=actor,
                        kind="publication",
                        previous_data=previous_data,
                        new_data=result.publication_state(),
                        previous_fingerprint_id=result.fingerprint_id,
                    )
                    report.succeeded.append(result.result_id)
                except StoreUnavailable as e:
                    report.fail(result.result_id, f"store unavailable: {e}")

        return report

    def unpublish(self, result_ids: Iterable[str], actor: Optional[str], clock=None, cancel=None) -> BatchReport:
        """Return Published results to Draft. The fingerprint is left as is."""
        ids = list(dict.fromkeys(result_ids))
        report = BatchReport()

        for index, result_id in enumerate(ids):
            if _cancelled(cancel):
                report.cancelled = True
                report.pending.extend(ids[index:])
                break

            with self.locks.hold(result_id):
                now = self._now(clock)
                try:
                    result = self._select_for_update(result_id)
                    if result is None:
                        db.session.rollback()
                        report.fail(result_id, "not found")
                        continue
                    if not result.published:
                        db.session.rollback()
                        report.skipped.append(result_id)
                        continue

                    previous_data = result.publication_state()
                    self._clear_publication(result)
                    self.audit.record(
                        result_id=result_id,
                        modification_type="unpublication",
                        modified_by=actor,
                        previous_data=previous_data,
                        new_data=result.publication_state(),
                        previous_fingerprint_id=result.fingerprint_id,
                        new_fingerprint_id=result.fingerprint_id,
                        timestamp=now,
                    )
                    db.session.commit()
                except Exception:
                    db.session.rollback()
                    raise
            report.succeeded.append(result_id)

        return report

    # ------------------------------------------------------------------
    # maintenance
    # ------------------------------------------------------------------

    def recalculate(self, roll_numbers: Iterable[str], actor: Optional[str], clock=None, cancel=None) -> BatchReport:
        """
        Re-aggregate each attempt from its current marks.

        Always unpublishes and re-fingerprints. Appends ``recalculation``
        (data change) and then ``hash_update`` (new fingerprint).
        """
        rolls = list(dict.fromkeys(roll_numbers))
        report = BatchReport()

        for index, roll_number in enumerate(rolls):
            if _cancelled(cancel):
                report.cancelled = True
                report.pending.extend(rolls[index:])
                break

            try:
                attempt = attempt_service.get_attempt(roll_number)
            except NotFound as e:
                report.fail(roll_number, str(e))
                continue
            result_id = attempt.result_id

            with self.locks.hold(result_id):
                now = self._now(clock)
                try:
                    result = self._select_for_update(result_id)
                    agg = self._aggregate_for(roll_number)
                    if result is None and agg.incomplete:
                        db.session.rollback()
                        report.skipped.append(roll_number)
                        continue
                    if result is None:
                        result = Result(
                            result_id=result_id,
                            roll_number=attempt.roll_number,
                            exam_name=attempt.exam_name,
                            session=attempt.session,
                            published=False,
                            created_at=now,
                        )
                        db.session.add(result)
                        previous_data = None
                    else:
                        previous_data = {**result.aggregate_state(), **result.publication_state()}

                    previous_fingerprint_id = result.fingerprint_id
                    self._apply_aggregate(result, agg, now)
                    self._clear_publication(result)
                    db.session.flush()
                    self.audit.record(
                        result_id=result_id,
                        modification_type="recalculation",
                        modified_by=actor,
                        previous_data=previous_data,
                        new_data={**agg.as_dict(), **result.publication_state()},
                        previous_fingerprint_id=previous_fingerprint_id,
                        new_fingerprint_id=None,
                        timestamp=now,
                    )
                    db.session.commit()
                except Exception:
                    db.session.rollback()
                    raise

                try:
                    self._stamp(
                        result,
                        now=now,
                        actor=actor,
                        kind="hash_update",
                        previous_data=agg.as_dict(),
                        new_data=agg.as_dict(),
                        previous_fingerprint_id=previous_fingerprint_id,
                        audit_on_failure=False,
                    )
                except StoreUnavailable as e:
                    report.fail(roll_number, f"store unavailable: {e}")
                    continue
            report.succeeded.append(roll_number)

        return report

    def refresh_fingerprint(self, result_id: str, actor: Optional[str], clock=None) -> str:
        """Re-stamp a result without recomputing it."""
        with self.locks.hold(result_id):
            now = self._now(clock)
            try:
                result = self._select_for_update(result_id)
                if result is None:
                    raise NotFound(f"Result {result_id} not found.")
                previous_fingerprint_id = result.fingerprint_id
                state = result.aggregate_state()
            except Exception:
                db.session.rollback()
                raise

            return self._stamp(
                result,
                now=now,
                actor=actor,
                kind="hash_update",
                previous_data=state,
                new_data=state,
                previous_fingerprint_id=previous_fingerprint_id,
                audit_on_failure=False,
            )

    def refresh_fingerprints(self, exam_name: str, session: str, actor: Optional[str], clock=None, cancel=None) -> BatchReport:
        result_ids = [
            rid for (rid,) in (
                db.session.query(Result.result_id)
                .filter_by(exam_name=exam_name, session=session)
                .order_by(Result.result_id.asc())
                .all()
            )
        ]
        report = BatchReport()
        for index, result_id in enumerate(result_ids):
            if _cancelled(cancel):
                report.cancelled = True
                report.pending.extend(result_ids[index:])
                break
            try:
                self.refresh_fingerprint(result_id, actor, clock=clock)
                report.succeeded.append(result_id)
            except StoreUnavailable as e:
                report.fail(result_id, f"store unavailable: {e}")

        logger.info("Hash refresh %s/%s: %s", exam_name, session, report.counts())
        return report

    def record_revalidation(
        self,
        result_id: str,
        actor: Optional[str],
        *,
        previous_data: dict,
        new_data: dict,
        previous_fingerprint_id: Optional[str],
        new_fingerprint_id: Optional[str],
        clock=None,
    ):
        with self.locks.hold(result_id):
            try:
                entry = self.audit.record(
                    result_id=result_id,
                    modification_type="revalidation_update",
                    modified_by=actor,
                    previous_data=previous_data,
                    new_data=new_data,
                    previous_fingerprint_id=previous_fingerprint_id,
                    new_fingerprint_id=new_fingerprint_id,
                    timestamp=self._now(clock),
                )
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            return entry
