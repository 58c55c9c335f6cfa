from extensions import db


class ExamMark(db.Model):
    __tablename__ = "exam_marks"

    detail_id = db.Column(db.Integer, primary_key=True)

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

    marks_obtained = db.Column(db.Float, nullable=False)
    grade = db.Column(db.String(5), nullable=False)
    grade_point = db.Column(db.Float, nullable=False)

    # recorder identity, supplied by the calling collaborator
    entered_by = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime,
        server_default=db.func.now(),
        onupdate=db.func.now()
    )

    __table_args__ = (
        db.UniqueConstraint("roll_number", "subject_id", name="unique_roll_subject"),
    )

    def __repr__(self):
        return f"<ExamMark roll={self.roll_number} subject={self.subject_id}>"
