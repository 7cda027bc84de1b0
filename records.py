# records.py
import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlmodel import col, select

from db import get_session
from models import MedicalRecord, utcnow
from output.storage import form_to_storage, storage_to_form

logger = logging.getLogger(__name__)

# Columns shown in the record list
SUMMARY_FIELDS = ("id", "name", "gender", "age", "created_at", "diagnosis_info")


class RecordNotFound(LookupError):
    pass


def save_record(form, created_by: Optional[str] = None) -> MedicalRecord:
    """
    Persist a confirmed form record (FormRecord or flat dict)
    """
    row = form_to_storage(form)
    with get_session() as session:
        record = MedicalRecord(**row, created_by=created_by)
        session.add(record)
        session.commit()
        session.refresh(record)
        logger.info(f"Saved medical record with ID: {record.id}")
        return record


def list_records(search: str = "", offset: int = 0, limit: int = 50) -> List[MedicalRecord]:
    """Newest first; search matches name (case-insensitive) or id substrings"""
    with get_session() as session:
        query = select(MedicalRecord)
        if search:
            query = query.where(or_(
                col(MedicalRecord.name).icontains(search, autoescape=True),
                col(MedicalRecord.id).icontains(search, autoescape=True),
            ))
        query = query.order_by(col(MedicalRecord.created_at).desc()).offset(offset).limit(limit)
        return list(session.exec(query).all())


def get_record(record_id: str) -> MedicalRecord:
    with get_session() as session:
        record = session.get(MedicalRecord, record_id)
        if record is None:
            raise RecordNotFound(f"Medical record {record_id} not found")
        return record


def get_record_form(record_id: str):
    """Stored record reshaped back into the flat edit form"""
    record = get_record(record_id)
    return storage_to_form(record.model_dump())


def update_record(record_id: str, form) -> MedicalRecord:
    row = form_to_storage(form)
    with get_session() as session:
        record = session.get(MedicalRecord, record_id)
        if record is None:
            raise RecordNotFound(f"Medical record {record_id} not found")
        for key, value in row.items():
            setattr(record, key, value)
        record.updated_at = utcnow()
        session.add(record)
        session.commit()
        session.refresh(record)
        logger.info(f"Updated medical record {record_id}")
        return record


def delete_record(record_id: str) -> None:
    with get_session() as session:
        record = session.get(MedicalRecord, record_id)
        if record is None:
            raise RecordNotFound(f"Medical record {record_id} not found")
        session.delete(record)
        session.commit()
        logger.info(f"Deleted medical record {record_id}")


def summarize(record: MedicalRecord) -> dict:
    data = record.model_dump()
    return {key: data[key] for key in SUMMARY_FIELDS}
