from sqlalchemy import event

from extensions import db

MODIFICATION_TYPES = (
    "marks_update",
    "publication",
    "unpublication",
    "hash_update",
    "recalculation",
    "initial_hash",
    "revalidation_update",
)


class ResultHistory(db.Model):
    """Append-only audit entry for one state change of a Result."""

    __tablename__ = "result_histories"

    audit_id = db.Column(db.Integer, primary_key=True)

    result_id = db.Column(
        db.String(100),
        db.ForeignKey("results.result_id"),
        nullable=False,
        index=True
    )

    modified_by = db.Column(db.String(64), nullable=True)
    modification_type = db.Column(
        db.Enum(*MODIFICATION_TYPES, name="modification_type"),
        nullable=False
    )

    previous_data = db.Column(db.JSON, nullable=True)
    new_data = db.Column(db.JSON, nullable=True)

    previous_fingerprint_id = db.Column(db.String(128), nullable=True)
    new_fingerprint_id = db.Column(db.String(128), nullable=True)

    timestamp = db.Column(db.DateTime, nullable=False)

    def to_dict(self):
        return {
            "audit_id": self.audit_id,
            "result_id": self.result_id,
            "modified_by": self.modified_by,
            "modification_type": self.modification_type,
            "previous_data": self.previous_data,
            "new_data": self.new_data,
            "previous_fingerprint_id": self.previous_fingerprint_id,
            "new_fingerprint_id": self.new_fingerprint_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<ResultHistory {self.result_id} {self.modification_type}>"


class ImmutableAuditEntry(Exception):
    pass


@event.listens_for(ResultHistory, "before_update")
def _refuse_update(mapper, connection, target):
    raise ImmutableAuditEntry(f"audit entry {target.audit_id} cannot be modified")


@event.listens_for(ResultHistory, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise ImmutableAuditEntry(f"audit entry {target.audit_id} cannot be deleted")
