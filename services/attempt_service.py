from models.form_fillup import FormFillup
from services.errors import NotFound


def get_attempt(roll_number: str):
    attempt = FormFillup.query.filter_by(roll_number=roll_number).first()

    if not attempt:
        raise NotFound(f"Form fillup not found for roll number {roll_number}.")

    return attempt


def find_attempt(roll_number: str, registration_number: str):
    attempt = get_attempt(roll_number)

    if attempt.registration_number != registration_number:
        raise NotFound(
            f"Registration number {registration_number} does not match roll number {roll_number}."
        )

    return attempt
