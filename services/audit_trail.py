from __future__ import annotations

import logging
from typing import List, Optional

from extensions import db
from models.result_history import MODIFICATION_TYPES, ResultHistory

logger = logging.getLogger(__name__)


class AuditTrail:
    """
    Append-only log of Result transitions.

    Only ``record`` writes; entries are flushed into the caller's
    transaction and committed with it. No update or delete is exposed and
    the model refuses both.
    """

    def record(
        self,
        *,
        result_id: str,
        modification_type: str,
        modified_by: Optional[str],
        previous_data: Optional[dict],
        new_data: Optional[dict],
        previous_fingerprint_id: Optional[str],
        new_fingerprint_id: Optional[str],
        timestamp,
    ) -> ResultHistory:
        if modification_type not in MODIFICATION_TYPES:
            raise ValueError(f"unknown modification type: {modification_type}")
        if timestamp is None:
            raise ValueError("timestamp is required")

        entry = ResultHistory(
            result_id=result_id,
            modified_by=modified_by,
            modification_type=modification_type,
            previous_data=previous_data,
            new_data=new_data,
            previous_fingerprint_id=previous_fingerprint_id,
            new_fingerprint_id=new_fingerprint_id,
            timestamp=timestamp,
        )
        db.session.add(entry)
        db.session.flush()
        logger.debug(
            "AUDIT result=%s type=%s fp %s -> %s",
            result_id, modification_type, previous_fingerprint_id, new_fingerprint_id,
        )
        return entry

    def list_for(self, result_id: str) -> List[ResultHistory]:
        """Entries for one result, newest first."""
        return (
            ResultHistory.query
            .filter_by(result_id=result_id)
            .order_by(ResultHistory.timestamp.desc(), ResultHistory.audit_id.desc())
            .all()
        )
