from extensions import db


class Result(db.Model):
    __tablename__ = "results"

    PASS = "Pass"
    FAIL = "Fail"

    # exam_name + session + roll_number
    result_id = db.Column(db.String(100), primary_key=True)

    roll_number = db.Column(
        db.String(20),
        db.ForeignKey("form_fillups.roll_number"),
        nullable=False
    )

    exam_name = db.Column(db.String(50), nullable=False)
    session = db.Column(db.String(10), nullable=False)

    total_marks = db.Column(db.Float, nullable=False, default=0)
    gpa = db.Column(db.Float, nullable=False, default=0)
    grade = db.Column(db.String(5), nullable=True)
    # NULL while the attempt has no marks
    status = db.Column(db.Enum("Pass", "Fail", name="result_status"), nullable=True)

    fingerprint_id = db.Column(db.String(128), nullable=True)

    published = db.Column(db.Boolean, nullable=False, default=False)
    published_by = db.Column(db.String(64), nullable=True)
    published_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=True)

    attempt = db.relationship("FormFillup", backref=db.backref("results", lazy=True))
    histories = db.relationship(
        "ResultHistory",
        backref="result",
        lazy="dynamic",
        order_by="ResultHistory.audit_id.desc()"
    )

    @staticmethod
    def make_id(exam_name, session, roll_number):
        return f"{exam_name}_{session}_{roll_number}"

    @property
    def is_pending(self):
        return self.status is None

    def publication_state(self):
        return {
            "published": bool(self.published),
            "published_by": self.published_by,
            "published_at": self.published_at.isoformat() if self.published_at else None,
        }

    def aggregate_state(self):
        return {
            "total_marks": self.total_marks,
            "gpa": self.gpa,
            "grade": self.grade,
            "status": self.status,
        }

    def __repr__(self):
        return f"<Result {self.result_id} published={self.published}>"
