from extensions import db


class FormFillup(db.Model):
    """One student's registration for one exam/session (the attempt)."""

    __tablename__ = "form_fillups"

    roll_number = db.Column(db.String(20), primary_key=True)

    registration_number = db.Column(
        db.String(20),
        db.ForeignKey("students.registration_number"),
        nullable=False
    )

    exam_name = db.Column(db.String(50), nullable=False)  # SSC, HSC
    session = db.Column(db.String(10), nullable=False)
    group = db.Column(db.String(30), nullable=False)  # Science, Commerce, Arts

    board_id = db.Column(
        db.Integer,
        db.ForeignKey("boards.board_id"),
        nullable=False
    )

    institution_id = db.Column(
        db.Integer,
        db.ForeignKey("institutions.institution_id"),
        nullable=False
    )

    created_at = db.Column(db.DateTime, server_default=db.func.now())

    exam_marks = db.relationship("ExamMark", backref="form_fillup", lazy=True)

    @property
    def result_id(self):
        from models.result import Result
        return Result.make_id(self.exam_name, self.session, self.roll_number)

    def __repr__(self):
        return f"<FormFillup {self.roll_number}>"
