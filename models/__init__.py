from .subjects import Subject
from .student import Student
from .institution import Institution, Board
from .form_fillup import FormFillup
from .exam_mark import ExamMark
from .result import Result
from .result_history import ResultHistory
from .revalidation_request import ResultRevalidationRequest
__all__ = ["Subject", "Student", "Institution", "Board", "FormFillup", "ExamMark", "Result", "ResultHistory", "ResultRevalidationRequest"]
