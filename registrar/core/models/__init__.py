from registrar.auth.models import User
from registrar.core.models.school import School
from registrar.core.models.academic_year import AcademicYear
from registrar.core.models.class_model import SchoolClass
from registrar.core.models.student import Student
from registrar.core.models.guardian import Guardian, student_guardians
from registrar.core.models.enrollment import Enrollment

__all__ = [
    "AcademicYear",
    "Enrollment",
    "Guardian",
    "School",
    "SchoolClass",
    "Student",
    "User",
    "student_guardians",
]
