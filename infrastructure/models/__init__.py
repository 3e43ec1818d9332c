"""Infrastructure models package exports."""
from .base import Base, metadata
from .student import StudentModel
from .enrollment import EnrollmentModel
from .course import CourseModel

__all__ = [
    "Base",
    "metadata",
    "StudentModel",
    "EnrollmentModel",
    "CourseModel",
]
