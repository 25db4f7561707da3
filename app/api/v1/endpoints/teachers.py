from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.config import settings
from app.core.rate_limit import limiter
from app.schemas.academic import TeacherCreate, TeacherResponse, TeacherUpdate
from app.schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse
from app.services.teacher_service import TeacherService

router = APIRouter()


@router.post("", response_model=SuccessResponse[TeacherResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_CREATE)
async def create_teacher(
    request: Request,
    teacher_in: TeacherCreate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Create a teacher. The registry code (e.g. COMP-0001) is generated from the
    first four letters of the department.
    """
    teacher = await TeacherService.create_teacher(db, teacher_in)
    return SuccessResponse(data=TeacherResponse.model_validate(teacher), message="Teacher created successfully")


@router.get("", response_model=PaginatedResponse[TeacherResponse])
async def list_teachers(
    name: Optional[str] = None,
    department: Optional[str] = None,
    email: Optional[str] = None,
    page: deps.Pagination = Depends(deps.pagination),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    List teachers. Filters match case-insensitive substrings.
    """
    teachers, total = await TeacherService.list_teachers(
        db, name=name, department=department, email=email, skip=page.skip, limit=page.limit
    )
    return PaginatedResponse(
        data=[TeacherResponse.model_validate(t) for t in teachers],
        meta=PaginationMeta.build(page.page, page.limit, total),
    )


@router.get("/{teacher_id}", response_model=SuccessResponse[TeacherResponse])
async def get_teacher(
    teacher_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    teacher = await TeacherService.get_teacher(db, teacher_id)
    return SuccessResponse(data=TeacherResponse.model_validate(teacher))


@router.put("/{teacher_id}", response_model=SuccessResponse[TeacherResponse])
async def update_teacher(
    teacher_id: UUID,
    teacher_in: TeacherUpdate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    teacher = await TeacherService.update_teacher(db, teacher_id, teacher_in)
    return SuccessResponse(data=TeacherResponse.model_validate(teacher), message="Teacher updated successfully")


@router.delete("/{teacher_id}", response_model=SuccessResponse)
async def delete_teacher(
    teacher_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    await TeacherService.delete_teacher(db, teacher_id)
    return SuccessResponse(data=None, message="Teacher deleted successfully")


@router.post("/{teacher_id}/subjects/{subject_id}", response_model=SuccessResponse[TeacherResponse])
async def add_subject_to_teacher(
    teacher_id: UUID,
    subject_id: str,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    teacher = await TeacherService.add_subject(db, teacher_id, subject_id)
    return SuccessResponse(data=TeacherResponse.model_validate(teacher), message="Subject added to teacher")


@router.delete("/{teacher_id}/subjects/{subject_id}", response_model=SuccessResponse[TeacherResponse])
async def remove_subject_from_teacher(
    teacher_id: UUID,
    subject_id: str,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    teacher = await TeacherService.remove_subject(db, teacher_id, subject_id)
    return SuccessResponse(data=TeacherResponse.model_validate(teacher), message="Subject removed from teacher")
