# models.py

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


def utcnow():
    return datetime.now(timezone.utc)


class MedicalRecord(SQLModel, table=True):
    __tablename__ = "medical_records"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)

    name: Optional[str] = Field(default=None, index=True)
    gender: Optional[str] = None
    age: Optional[int] = None
    birth_date: Optional[str] = None
    nationality: Optional[str] = None
    birth_place: Optional[str] = None
    native_place: Optional[str] = None
    ethnicity: Optional[str] = None
    id_number: Optional[str] = None
    occupation: Optional[str] = None
    marital_status: Optional[str] = None
    phone: Optional[str] = None
    current_address: Optional[str] = None
    postal_code: Optional[str] = None
    household_address: Optional[str] = None
    household_postal_code: Optional[str] = None
    work_unit: Optional[str] = None
    work_phone: Optional[str] = None
    work_postal_code: Optional[str] = None

    contact_person: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    admission_info: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    discharge_info: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    diagnosis_info: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    pathology_info: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    medical_personnel: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    quality_control: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
