# output/storage.py
import re
from typing import Any, Dict, List, Optional

from normalize.schema import FormRecord, OtherDiagnosis

SCALAR_COLUMNS = [
    "name", "gender", "birth_date", "nationality", "birth_place",
    "native_place", "ethnicity", "id_number", "occupation", "marital_status",
    "phone", "current_address", "postal_code", "household_address",
    "household_postal_code", "work_unit", "work_phone", "work_postal_code",
]

# JSON column -> {stored key: form field}
JSON_COLUMNS = {
    "contact_person": {
        "name": "contact_name",
        "phone": "contact_phone",
        "relationship": "contact_relationship",
        "address": "contact_address",
    },
    "admission_info": {
        "department": "admission_department",
        "transfer_department": "transfer_department",
        "ward": "admission_ward",
        "time": "admission_time",
        "path": "admission_path",
    },
    "discharge_info": {
        "time": "discharge_time",
        "department": "discharge_department",
        "ward": "discharge_ward",
        "actual_days": "actual_days",
    },
    "diagnosis_info": {
        "outpatient_diagnosis": "outpatient_diagnosis",
        "outpatient_disease_code": "outpatient_disease_code",
        "main_diagnosis": "main_diagnosis",
        "main_disease_code": "main_disease_code",
        "admission_condition": "admission_condition",
    },
    "pathology_info": {
        "pathology_diagnosis": "pathology_diagnosis",
        "pathology_number": "pathology_number",
        "disease_code": "disease_code",
        "drug_allergy": "drug_allergy",
        "allergy_drugs": "allergy_drugs",
        "blood_type": "blood_type",
        "rh": "rh",
        "autopsy": "autopsy",
        "external_cause": "external_cause",
        "external_cause_code": "external_cause_code",
    },
    "medical_personnel": {
        "department_director": "department_director",
        "attending_physician": "attending_physician",
        "treating_physician": "treating_physician",
        "resident_physician": "resident_physician",
        "intern_physician": "intern_physician",
        "fellow_physician": "fellow_physician",
        "responsible_nurse": "responsible_nurse",
        "coder": "coder",
    },
    "quality_control": {
        "quality": "quality",
        "quality_physician": "quality_physician",
        "quality_nurse": "quality_nurse",
        "quality_date": "quality_date",
    },
}


def stay_days(value: Any) -> Optional[int]:
    """'12天' -> 12; blank or digit-free values -> None"""
    if value is None or value == "":
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    digits = re.sub(r"[^\d]", "", str(value))
    if not digits or len(digits) > 5:
        return None
    return int(digits)


def kept_diagnoses(entries: List[Any]) -> List[Dict[str, str]]:
    """Drop entries where all three parts are blank"""
    kept = []
    for entry in entries or []:
        diagnosis = entry if isinstance(entry, OtherDiagnosis) else OtherDiagnosis.model_validate(entry)
        if not diagnosis.is_blank():
            kept.append(diagnosis.model_dump())
    return kept


def form_to_storage(form) -> Dict[str, Any]:
    """
    Flat form record (FormRecord or dict) -> medical_records column values
    Groups contact/admission/discharge/diagnosis/pathology/personnel/quality
    fields into their JSON columns.
    """
    if isinstance(form, FormRecord):
        fields = form.form_fields()
    else:
        data = {key: value for key, value in dict(form).items() if key != "metadata"}
        fields = FormRecord.model_validate(data).form_fields()

    row: Dict[str, Any] = {column: fields[column] for column in SCALAR_COLUMNS}
    row["age"] = fields["age"]

    for column, mapping in JSON_COLUMNS.items():
        row[column] = {key: fields[field] for key, field in mapping.items()}

    row["discharge_info"]["actual_days"] = stay_days(fields["actual_days"])
    row["diagnosis_info"]["other_diagnoses"] = kept_diagnoses(fields["other_diagnoses"])
    return row


def storage_to_form(row: Dict[str, Any]) -> FormRecord:
    """Stored medical_records row -> flat form record for editing"""
    fields: Dict[str, Any] = {column: row.get(column) or "" for column in SCALAR_COLUMNS}
    fields["age"] = row.get("age")

    for column, mapping in JSON_COLUMNS.items():
        group = row.get(column) or {}
        for key, field in mapping.items():
            value = group.get(key)
            fields[field] = "" if value is None else str(value)

    diagnosis_info = row.get("diagnosis_info") or {}
    fields["other_diagnoses"] = kept_diagnoses(diagnosis_info.get("other_diagnoses") or [])
    return FormRecord.model_validate(fields)
