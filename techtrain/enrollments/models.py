from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class CreateEnrollmentRequest(BaseModel):
    course_id: str = Field(min_length=1)
    schedule_id: Optional[str] = None

class ProgressRequest(BaseModel):
    # Entier 0..100; une valeur >= 100 clôture l'inscription
    progress: int = Field(ge=0, le=100, strict=True)
