# models/subjects.py
from extensions import db
from datetime import datetime


class Subject(db.Model):
    __tablename__ = 'subjects'

    COMPULSORY = "compulsory"
    GROUP_SPECIFIC = "group-specific"

    subject_id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    subject_name = db.Column(db.String(100), nullable=False)
    subject_category = db.Column(db.String(50), nullable=False)  # compulsory | group-specific
    subject_code = db.Column(db.String(20), nullable=True)
    full_marks = db.Column(db.Float, nullable=False, default=100)
    pass_marks = db.Column(db.Float, nullable=False, default=33)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    exam_marks = db.relationship('ExamMark', backref='subject', lazy=True)

    __table_args__ = (
        db.UniqueConstraint("subject_name", "subject_category", name="unique_subject_category"),
    )

    def __repr__(self):
        return f"<Subject {self.subject_name}>"
