# normalize/transformer.py
import logging
import math
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from normalize import codes
from normalize.schema import (
    AdmissionGroup,
    ContactGroup,
    DiagnosisGroup,
    DischargeGroup,
    FormRecord,
    MappingMetadata,
    OtherDiagnosis,
    PathologyGroup,
    PersonnelGroup,
    QualityGroup,
    RawExtraction,
)

logger = logging.getLogger(__name__)

CN_DATE = re.compile(r"(\d{4})年(\d{2})月(\d{2})日")
# ages past three digits are OCR noise, not ages
LEADING_INT = re.compile(r"^\s*(\d{1,3})(?!\d)")


class InvalidInputShape(ValueError):
    """Raised when the OCR result is not a JSON object"""


# --- leaf coercions -------------------------------------------------------

def first_present(*values: Any) -> Any:
    """First value that is not None or an empty string"""
    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and value == "":
            continue
        return value
    return None


def text(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return codes.number_text(value)
    return ""


def postal_code(value: Any) -> str:
    return text(value).strip()


def iso_date(value: Any) -> str:
    """Rewrite 'YYYY年MM月DD日' to 'YYYY-MM-DD'; anything else unchanged"""
    raw = text(value)
    match = CN_DATE.search(raw)
    if match:
        return f"{match.group(1)}-{match.group(2)}-{match.group(3)}"
    return raw


def parse_age(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        match = LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return None


def as_list(value: Any) -> List[str]:
    """Array-bearing field: lists pass, strings split on ',', else empty"""
    if isinstance(value, list):
        return [text(item) for item in value]
    if isinstance(value, str):
        if not value.strip():
            return []
        return [item.strip() for item in value.split(",")]
    return []


# --- group extractors -----------------------------------------------------

def extract_basic(raw: RawExtraction) -> Dict[str, Any]:
    return {
        "name": text(raw.name),
        "gender": codes.GENDER.to_label(first_present(raw.gender_label, raw.gender)),
        "age": parse_age(raw.age),
        "birth_date": iso_date(raw.birth_date),
        "nationality": text(raw.nationality),
        "birth_place": text(raw.birth_place),
        "native_place": text(raw.native_place),
        "ethnicity": text(raw.ethnicity),
        "id_number": text(raw.id_number),
        "occupation": text(raw.occupation),
        "marital_status": codes.MARITAL_STATUS.to_label(
            first_present(raw.marital_label, raw.marital_status)),
        "phone": text(raw.phone),
        "current_address": text(raw.current_address),
        "postal_code": postal_code(raw.postal_code),
        "household_address": text(raw.household_address),
        "household_postal_code": postal_code(raw.household_postal_code),
        "work_unit": text(first_present(raw.work_unit_address, raw.work_unit_and_address)),
        "work_phone": text(raw.work_phone),
        "work_postal_code": text(raw.work_postal_code),
    }


def extract_contact(group: Optional[ContactGroup]) -> Dict[str, str]:
    group = group or ContactGroup()
    return {
        "contact_name": text(group.name),
        "contact_phone": text(group.phone),
        "contact_relationship": text(group.relationship),
        "contact_address": text(group.address),
    }


def extract_admission(group: Optional[AdmissionGroup], raw: RawExtraction) -> Dict[str, str]:
    group = group or AdmissionGroup()
    return {
        "admission_department": text(group.department),
        "transfer_department": text(first_present(raw.transfer_department, group.transfer_department)),
        "admission_ward": text(first_present(group.ward, group.room)),
        "admission_time": text(group.time),
        "admission_path": codes.ADMISSION_PATH.to_label(first_present(group.path, raw.admission_path)),
    }


def extract_discharge(group: Optional[DischargeGroup]) -> Dict[str, str]:
    group = group or DischargeGroup()
    return {
        "discharge_time": text(group.time),
        "discharge_department": text(group.department),
        "discharge_ward": text(first_present(group.ward, group.room)),
        "actual_days": text(group.actual_days),
    }


def align_other_diagnoses(names: List[str], disease_codes: List[str],
                          conditions: List[str]) -> List[OtherDiagnosis]:
    """
    Zip the three parallel arrays by index, padding the short ones with ''
    Index i is assumed to describe the same diagnosis in every array
    """
    lengths = (len(names), len(disease_codes), len(conditions))
    size = max(lengths)
    if len(set(lengths)) > 1:
        logger.warning(
            f"Other-diagnosis arrays differ in length {lengths}; "
            f"alignment of {size} entries is low confidence"
        )

    def at(items: List[str], i: int) -> str:
        return items[i] if i < len(items) else ""

    return [
        OtherDiagnosis(
            diagnosis=at(names, i),
            disease_code=at(disease_codes, i),
            admission_condition=codes.ADMISSION_CONDITION.to_label(at(conditions, i)),
        )
        for i in range(size)
    ]


def extract_diagnosis(group: Optional[DiagnosisGroup]) -> Dict[str, Any]:
    group = group or DiagnosisGroup()

    outpatient_codes = as_list(first_present(group.outpatient_disease_codes, group.disease_code))

    condition = group.inpatient_admission_condition
    if first_present(condition) is None:
        condition = group.admission_condition
        if isinstance(condition, list):
            condition = condition[0] if condition else None

    other = align_other_diagnoses(
        as_list(group.other_diagnoses),
        as_list(first_present(group.other_disease_codes, group.other_diagnosis_disease_codes)),
        as_list(first_present(group.other_admission_conditions,
                              group.other_diagnosis_admission_conditions)),
    )

    return {
        "outpatient_diagnosis": text(group.outpatient_diagnosis),
        "outpatient_disease_code": outpatient_codes[0] if outpatient_codes else "",
        "main_diagnosis": text(group.main_diagnosis),
        "main_disease_code": text(first_present(group.main_disease_code, group.disease_code)),
        "admission_condition": codes.ADMISSION_CONDITION.to_label(condition),
        "other_diagnoses": other,
    }


def extract_pathology(group: Optional[PathologyGroup], raw: RawExtraction) -> Dict[str, str]:
    group = group or PathologyGroup()
    return {
        "pathology_diagnosis": text(group.pathology_diagnosis),
        "pathology_number": text(group.pathology_number),
        "disease_code": text(group.disease_code),
        "drug_allergy": codes.DRUG_ALLERGY.to_label(first_present(raw.drug_allergy, group.drug_allergy)),
        "allergy_drugs": text(first_present(raw.allergy_drugs, group.allergy_drugs)),
        "blood_type": codes.BLOOD_TYPE.to_label(first_present(raw.blood_type, group.blood_type)),
        "rh": codes.RH.to_label(first_present(raw.rh, group.rh)),
        "autopsy": codes.AUTOPSY.to_label(
            first_present(raw.autopsy, group.autopsy_of_deceased, group.autopsy)),
        "external_cause": text(first_present(group.external_cause, group.external_cause_short)),
        "external_cause_code": text(
            first_present(group.external_cause_code, group.external_cause_code_short)),
    }


def extract_personnel(group: Optional[PersonnelGroup]) -> Dict[str, str]:
    group = group or PersonnelGroup()
    return {
        "department_director": text(group.department_director),
        "attending_physician": text(first_present(group.chief_physician, group.chief_physician_short)),
        "treating_physician": text(group.treating_physician),
        "resident_physician": text(group.resident_physician),
        "intern_physician": text(group.intern_physician),
        "fellow_physician": text(group.fellow_physician),
        "responsible_nurse": text(group.responsible_nurse),
        "coder": text(group.coder),
    }


def extract_quality(group: Optional[QualityGroup]) -> Dict[str, str]:
    group = group or QualityGroup()
    return {
        "quality": text(group.quality),
        "quality_physician": text(group.physician),
        "quality_nurse": text(group.nurse),
        "quality_date": iso_date(group.date),
    }


# --- metadata -------------------------------------------------------------

def is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list)):
        return len(value) > 0
    return True


def build_metadata(fields: Dict[str, Any]) -> MappingMetadata:
    total = len(fields)
    filled = sum(1 for value in fields.values() if is_filled(value))
    return MappingMetadata(
        total_fields=total,
        filled_fields=filled,
        fill_rate=round(filled / total * 100, 1) if total else 0.0,
        basic_info=bool(fields["name"] and fields["gender"]),
        diagnosis_info=bool(fields["main_diagnosis"] or fields["outpatient_diagnosis"]),
        contact_info=bool(fields["contact_name"] or fields["contact_phone"]),
        admission_info=bool(fields["admission_department"] or fields["admission_time"]),
        mapping_timestamp=datetime.now(timezone.utc).isoformat(),
    )


# --- entry point ----------------------------------------------------------

def normalize(raw: Any) -> FormRecord:
    """
    Map an OCR extraction onto the fixed intake form schema.
    Missing or oddly-typed values fall back to field defaults; only a
    non-object input is an error.
    """
    if not isinstance(raw, Mapping):
        raise InvalidInputShape(
            f"OCR result must be a JSON object, got {type(raw).__name__}"
        )

    extraction = RawExtraction.model_validate(dict(raw))

    fields: Dict[str, Any] = {}
    fields.update(extract_basic(extraction))
    fields.update(extract_contact(extraction.contact))
    fields.update(extract_admission(extraction.admission, extraction))
    fields.update(extract_discharge(extraction.discharge))
    fields.update(extract_diagnosis(extraction.diagnosis))
    fields.update(extract_pathology(extraction.pathology, extraction))
    fields.update(extract_personnel(extraction.personnel))
    fields.update(extract_quality(extraction.quality))

    metadata = build_metadata(fields)
    logger.info(
        f"Mapped OCR result: {metadata.filled_fields}/{metadata.total_fields} fields "
        f"({metadata.fill_rate}%), diagnosis={'yes' if metadata.diagnosis_info else 'no'}, "
        f"basic={'yes' if metadata.basic_info else 'no'}"
    )

    return FormRecord(**fields, metadata=metadata)


def normalize_result(raw: Any) -> Dict[str, Any]:
    """Normalized record as a plain dict, ready for JSON responses"""
    return normalize(raw).model_dump()
