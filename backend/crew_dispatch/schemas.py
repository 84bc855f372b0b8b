"""Pydantic schemas for API requests/responses."""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime


# Complaint types
class ComplaintTypeCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def _name_min_length(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("name is required and must be at least 2 characters long")
        return value


class ComplaintTypeResponse(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


# Crews
class CrewCreate(BaseModel):
    name: str = Field(min_length=1)
    phone: Optional[str] = None
    simultaneous_limit: int = Field(default=1, ge=1)
    complaint_type_ids: list[int] = []


class CrewUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    simultaneous_limit: Optional[int] = Field(default=None, ge=1)
    complaint_type_ids: Optional[list[int]] = None


class CrewResponse(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    simultaneous_limit: int
    is_available: bool
    last_assigned_at: Optional[datetime] = None
    assigned_complaint_ids: list[int] = []
    complaint_types: list[ComplaintTypeResponse] = []

    model_config = ConfigDict(from_attributes=True)


# Crew messages
class CrewMessageCreate(BaseModel):
    content: str = Field(min_length=1)
    sender: str = Field(min_length=1)


class CrewMessageResponse(BaseModel):
    id: int
    crew_id: int
    content: str
    sender: str
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Assignments
class ComplaintSnapshot(BaseModel):
    """Complaint details copied verbatim into the assignment record."""
    complaint_type: Optional[str] = None
    complaint_date: Optional[datetime] = None
    priority: Optional[str] = None
    detail: Optional[str] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    # Only used to notify the complainant, never stored.
    complainant_name: Optional[str] = None
    complainant_phone: Optional[str] = None


class AssignComplaintRequest(BaseModel):
    complaint_id: int = Field(gt=0)
    crew_id: int = Field(gt=0)
    complaint: ComplaintSnapshot = Field(default_factory=ComplaintSnapshot)
    notify: bool = False


class TransitionRequest(BaseModel):
    notify: bool = False


class AssignmentRecordResponse(BaseModel):
    id: int
    complaint_id: int
    crew_id: int
    status: str
    complaint_type: Optional[str] = None
    complaint_date: Optional[datetime] = None
    priority: Optional[str] = None
    detail: Optional[str] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    registered_at: datetime
    assigned_at: datetime
    in_process_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AssignComplaintResponse(BaseModel):
    message: str
    crew: CrewResponse
    record: AssignmentRecordResponse


# System
class HealthCheckResponse(BaseModel):
    status: str
    database: str
    version: str
