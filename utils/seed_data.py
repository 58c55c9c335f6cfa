from extensions.db import db
from models.subjects import Subject


SSC_SUBJECTS = [
    {"subject_name": "Bangla", "subject_category": Subject.COMPULSORY, "subject_code": "101"},
    {"subject_name": "English", "subject_category": Subject.COMPULSORY, "subject_code": "107"},
    {"subject_name": "Mathematics", "subject_category": Subject.COMPULSORY, "subject_code": "109"},
    {"subject_name": "Religion", "subject_category": Subject.COMPULSORY, "subject_code": "111"},
    {"subject_name": "Physics", "subject_category": Subject.GROUP_SPECIFIC, "subject_code": "136"},
    {"subject_name": "Chemistry", "subject_category": Subject.GROUP_SPECIFIC, "subject_code": "137"},
    {"subject_name": "Biology", "subject_category": Subject.GROUP_SPECIFIC, "subject_code": "138"},
    {"subject_name": "Accounting", "subject_category": Subject.GROUP_SPECIFIC, "subject_code": "146"},
]


def seed_subjects(subjects=SSC_SUBJECTS):
    created = 0
    for s in subjects:
        existing = Subject.query.filter_by(
            subject_name=s["subject_name"],
            subject_category=s["subject_category"]
        ).first()

        if not existing:
            db.session.add(
                Subject(
                    subject_name=s["subject_name"],
                    subject_category=s["subject_category"],
                    subject_code=s.get("subject_code"),
                    full_marks=s.get("full_marks", 100),
                    pass_marks=s.get("pass_marks", 33),
                )
            )
            created += 1

    db.session.commit()
    print(f"✅ Subjects verified ({created} added)")
    return created


def run_seed():
    seed_subjects()
