from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

from app.models.enums import Shift


# Subjects

class SubjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    year: int = Field(..., ge=1, description="Course year in which the subject is offered")
    credits: int = Field(0, ge=0)


class SubjectCreate(SubjectBase):
    id: str = Field(..., min_length=1, max_length=50, description="Registrar-chosen code, e.g. BSI101")

    model_config = ConfigDict(str_strip_whitespace=True)


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    year: Optional[int] = Field(None, ge=1)
    credits: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(str_strip_whitespace=True)


class SubjectResponse(SubjectBase):
    id: str

    model_config = ConfigDict(from_attributes=True)


# Students

class StudentCreate(BaseModel):
    """The enrollment code is issued by the server; clients send name and shift."""
    name: str = Field(..., min_length=1, max_length=255)
    # Checked by the service so a bad letter is reported as INVALID_SHIFT
    shift: str = Field(..., description="M (morning), T (afternoon) or N (night)")
    current_year: int = Field(1, ge=0, description="0 means first year")
    subject_ids: List[str] = Field(default_factory=list)

    model_config = ConfigDict(str_strip_whitespace=True)


class StudentUpdate(BaseModel):
    """Enrollment is not updatable."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    current_year: Optional[int] = Field(None, ge=1)
    shift: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)


class StudentResponse(BaseModel):
    id: UUID
    enrollment: str
    name: str
    current_year: int
    shift: Shift
    subjects: List[SubjectResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Teachers

class TeacherCreate(BaseModel):
    """The registry code is issued by the server from the department prefix."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    department: str = Field(..., min_length=1, max_length=255)
    subject_ids: List[str] = Field(default_factory=list)

    model_config = ConfigDict(str_strip_whitespace=True)


class TeacherUpdate(BaseModel):
    """Registry is not updatable, even when the department changes."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    department: Optional[str] = Field(None, min_length=1, max_length=255)

    model_config = ConfigDict(str_strip_whitespace=True)


class TeacherResponse(BaseModel):
    id: UUID
    registry: str = Field(validation_alias=AliasChoices("registry_code", "registry"))
    name: str
    email: str
    department: str
    subjects: List[SubjectResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
