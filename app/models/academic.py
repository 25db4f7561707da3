"""Students, teachers, subjects and their associations"""

from sqlalchemy import Column, Enum, ForeignKey, Integer, String, Table, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.database import Base
from app.models.base import BaseModel, TimestampMixin
from app.models.enums import Shift


# Association tables
student_subjects = Table(
    "student_subjects",
    Base.metadata,
    Column("student_id", Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", String(50), ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)

teacher_subjects = Table(
    "teacher_subjects",
    Base.metadata,
    Column("teacher_id", Uuid(as_uuid=True), ForeignKey("teachers.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", String(50), ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)


class Subject(Base, TimestampMixin):
    """
    Course offered by the college. The identifier is chosen by the registrar
    (e.g. "BSI101") rather than generated.
    """
    __tablename__ = "subjects"

    id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    year = Column(Integer, nullable=False)
    credits = Column(Integer, nullable=False, default=0)

    students = relationship("Student", secondary=student_subjects, back_populates="subjects")
    teachers = relationship("Teacher", secondary=teacher_subjects, back_populates="subjects")

    def __repr__(self) -> str:
        return f"<Subject {self.id} {self.name}>"


class Student(BaseModel):
    """
    Enrolled student. ``enrollment`` is issued once at creation
    (``<year><shift><seq4>``) and never rewritten.
    """
    __tablename__ = "students"
    __table_args__ = (UniqueConstraint("enrollment", name="uq_students_enrollment"),)

    enrollment = Column(String(20), nullable=False)
    name = Column(String(255), nullable=False)
    current_year = Column(Integer, nullable=False, default=1)
    shift = Column(
        Enum(Shift, name="student_shift", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        index=True,
    )

    subjects = relationship(
        "Subject",
        secondary=student_subjects,
        back_populates="students",
        order_by="Subject.id",
    )

    def __repr__(self) -> str:
        return f"<Student {self.enrollment} {self.name}>"


class Teacher(BaseModel):
    """
    Teaching staff member. ``registry_code`` is issued once at creation
    (``<DEPT>-<seq4>``) and survives department changes.
    """
    __tablename__ = "teachers"
    __table_args__ = (
        UniqueConstraint("registry", name="uq_teachers_registry"),
        UniqueConstraint("email", name="uq_teachers_email"),
    )

    # "registry" is reserved on declarative classes; the column keeps its name
    registry_code = Column("registry", String(20), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    department = Column(String(255), nullable=False)

    subjects = relationship(
        "Subject",
        secondary=teacher_subjects,
        back_populates="teachers",
        order_by="Subject.id",
    )

    def __repr__(self) -> str:
        return f"<Teacher {self.registry_code} {self.name}>"
