"""Base Models and Mixins shared by the registry tables"""

import uuid
from datetime import datetime
from sqlalchemy import Column, DateTime, Uuid

from app.database import Base


class TimestampMixin:
    """
    Provides:
    - created_at timestamp
    - updated_at timestamp
    """
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class BaseModel(Base, TimestampMixin):
    """
    Base model class for entities with a generated identity.

    Provides:
    - UUID primary key
    - created_at / updated_at timestamps
    """
    __abstract__ = True

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
