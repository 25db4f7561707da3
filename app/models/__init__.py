"""Models Package - Export all models for easy imports"""

from app.models.base import BaseModel, TimestampMixin
from app.models.enums import Shift
from app.models.academic import (
    Student,
    Subject,
    Teacher,
    student_subjects,
    teacher_subjects,
)


__all__ = [
    # Base classes
    "BaseModel",
    "TimestampMixin",

    # Enums
    "Shift",

    # Registry
    "Student",
    "Subject",
    "Teacher",
    "student_subjects",
    "teacher_subjects",
]
