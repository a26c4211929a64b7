"""
Registration schemas: members, attendance, salvations, testimonies, trainings.
"""
from typing import Optional
from datetime import date
from pydantic import BaseModel, Field

from app.models.member import Gender, AgeGroup
from app.models.training import TrainingStatus
from app.schemas.common import BaseResponse


class MemberCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    gender: Gender = Gender.MALE
    age_group: AgeGroup = AgeGroup.ADULT
    envelope_number: Optional[str] = Field(None, max_length=30)
    branch: Optional[str] = Field(None, max_length=100)


class MemberResponse(BaseResponse):
    member_number: str
    full_name: str
    phone: Optional[str] = None
    gender: Gender
    age_group: AgeGroup
    envelope_number: Optional[str] = None
    branch: Optional[str] = None


class AttendanceCreate(BaseModel):
    member_id: str
    attendance_date: date
    attendance_type: str = Field(..., min_length=1, max_length=50)
    service_type: str = Field(..., min_length=1, max_length=100)


class AttendanceResponse(BaseResponse):
    member_id: str
    member_number: str
    full_name: str
    attendance_date: date
    attendance_type: str
    service_type: str


class AttendanceRecordResult(BaseModel):
    record: AttendanceResponse
    updated: bool
    message: str


class SalvationCreate(BaseModel):
    member_id: str
    salvation_date: date
    notes: Optional[str] = None


class SalvationResponse(BaseResponse):
    member_id: str
    member_number: str
    full_name: str
    salvation_date: date
    notes: Optional[str] = None


class TestimonyCreate(BaseModel):
    member_id: Optional[str] = None
    testimony_date: date
    witness_name: str = Field(..., min_length=1, max_length=200)
    problem: Optional[str] = None
    testimony: str = Field(..., min_length=1)


class TestimonyResponse(BaseResponse):
    member_id: Optional[str] = None
    member_number: Optional[str] = None
    full_name: Optional[str] = None
    testimony_date: date
    witness_name: str
    problem: Optional[str] = None
    testimony: str


class TrainingCreate(BaseModel):
    member_id: str
    lesson: str = Field(..., min_length=1, max_length=200)
    training_date: date
    teacher: Optional[str] = Field(None, max_length=200)
    advice: Optional[str] = None
    ministry: Optional[str] = Field(None, max_length=200)


class TrainingResponse(BaseResponse):
    member_id: str
    lesson: str
    training_date: date
    teacher: Optional[str] = None
    advice: Optional[str] = None
    ministry: Optional[str] = None
    status: TrainingStatus
