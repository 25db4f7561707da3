"""API V1 Router"""

from fastapi import APIRouter

from app.api.v1.endpoints import students, subjects, teachers

# Create API v1 router
api_router = APIRouter()

api_router.include_router(subjects.router, prefix="/subjects", tags=["Subjects"])
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(teachers.router, prefix="/teachers", tags=["Teachers"])
