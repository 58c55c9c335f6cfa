from extensions import db


class ResultRevalidationRequest(db.Model):
    __tablename__ = "result_revalidation_requests"

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    request_id = db.Column(db.Integer, primary_key=True)

    roll_number = db.Column(
        db.String(20),
        db.ForeignKey("form_fillups.roll_number"),
        nullable=False
    )

    subject_id = db.Column(
        db.Integer,
        db.ForeignKey("subjects.subject_id"),
        nullable=False
    )

    reason = db.Column(db.Text, nullable=True)
    original_marks = db.Column(db.Float, nullable=False)
    updated_marks = db.Column(db.Float, nullable=True)

    status = db.Column(
        db.Enum("Pending", "Approved", "Rejected", name="revalidation_status"),
        nullable=False,
        default="Pending"
    )

    requested_by = db.Column(db.String(64), nullable=True)
    reviewed_by = db.Column(db.String(64), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    review_comment = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, server_default=db.func.now())

    subject = db.relationship("Subject", lazy=True)

    def __repr__(self):
        return f"<ResultRevalidationRequest {self.request_id} {self.status}>"
