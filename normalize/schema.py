# normalize/schema.py
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RawGroup(BaseModel):
    """Nested sub-object of an OCR extraction; every path optional"""
    model_config = ConfigDict(extra="ignore", frozen=True)


class ContactGroup(RawGroup):
    name: Any = Field(None, alias="姓名")
    phone: Any = Field(None, alias="电话")
    relationship: Any = Field(None, alias="关系")
    address: Any = Field(None, alias="地址")


class AdmissionGroup(RawGroup):
    department: Any = Field(None, alias="入院科别")
    transfer_department: Any = Field(None, alias="转科科别")
    ward: Any = Field(None, alias="入院病房")
    room: Any = Field(None, alias="病房")
    time: Any = Field(None, alias="入院时间")
    path: Any = Field(None, alias="入院途径")


class DischargeGroup(RawGroup):
    time: Any = Field(None, alias="出院时间")
    department: Any = Field(None, alias="出院科别")
    ward: Any = Field(None, alias="出院病房")
    room: Any = Field(None, alias="病房")
    actual_days: Any = Field(None, alias="实际住院天数")


class DiagnosisGroup(RawGroup):
    outpatient_diagnosis: Any = Field(None, alias="门急诊诊断")
    outpatient_disease_codes: Any = Field(None, alias="门急诊疾病编码")
    disease_code: Any = Field(None, alias="疾病编码")
    main_diagnosis: Any = Field(None, alias="主要诊断")
    main_disease_code: Any = Field(None, alias="主要诊断疾病编码")
    inpatient_admission_condition: Any = Field(None, alias="住院诊断入院病情")
    admission_condition: Any = Field(None, alias="入院病情")
    other_diagnoses: Any = Field(None, alias="其他诊断")
    other_disease_codes: Any = Field(None, alias="其他疾病编码")
    other_diagnosis_disease_codes: Any = Field(None, alias="其他诊断疾病编码")
    other_admission_conditions: Any = Field(None, alias="其他入院病情")
    other_diagnosis_admission_conditions: Any = Field(None, alias="其他诊断入院病情")


class PathologyGroup(RawGroup):
    pathology_diagnosis: Any = Field(None, alias="病理诊断")
    pathology_number: Any = Field(None, alias="病理号")
    disease_code: Any = Field(None, alias="疾病编码")
    drug_allergy: Any = Field(None, alias="药物过敏")
    allergy_drugs: Any = Field(None, alias="过敏药物")
    blood_type: Any = Field(None, alias="血型")
    rh: Any = Field(None, alias="Rh")
    autopsy_of_deceased: Any = Field(None, alias="死亡患者尸检")
    autopsy: Any = Field(None, alias="尸检")
    external_cause: Any = Field(None, alias="损伤、中毒的外部原因")
    external_cause_short: Any = Field(None, alias="损伤中毒外部原因")
    external_cause_code: Any = Field(None, alias="损伤、中毒的外部原因疾病编码")
    external_cause_code_short: Any = Field(None, alias="损伤中毒外部原因编码")


class PersonnelGroup(RawGroup):
    department_director: Any = Field(None, alias="科主任")
    chief_physician: Any = Field(None, alias="主任（副主任）医师")
    chief_physician_short: Any = Field(None, alias="主任医师")
    treating_physician: Any = Field(None, alias="主治医师")
    resident_physician: Any = Field(None, alias="住院医师")
    intern_physician: Any = Field(None, alias="实习医师")
    fellow_physician: Any = Field(None, alias="进修医师")
    responsible_nurse: Any = Field(None, alias="责任护士")
    coder: Any = Field(None, alias="编码员")


class QualityGroup(RawGroup):
    quality: Any = Field(None, alias="病案质量")
    physician: Any = Field(None, alias="质控医师")
    nurse: Any = Field(None, alias="质控护士")
    date: Any = Field(None, alias="质控日期")


class RawExtraction(RawGroup):
    """
    Typed view over the OCR service's JSON answer
    Leaves stay untyped (Any) since the service may put a code where a label
    was expected or vice versa; sub-objects that are not objects become None
    """
    name: Any = Field(None, alias="姓名")
    gender_label: Any = Field(None, alias="性别")
    gender: Any = Field(None, alias="gender")
    age: Any = Field(None, alias="年龄")
    birth_date: Any = Field(None, alias="出生日期")
    nationality: Any = Field(None, alias="国籍")
    birth_place: Any = Field(None, alias="出生地")
    native_place: Any = Field(None, alias="籍贯")
    ethnicity: Any = Field(None, alias="民族")
    id_number: Any = Field(None, alias="身份证号")
    occupation: Any = Field(None, alias="职业")
    marital_label: Any = Field(None, alias="婚姻")
    marital_status: Any = Field(None, alias="marital_status")
    phone: Any = Field(None, alias="电话")
    current_address: Any = Field(None, alias="现住址")
    postal_code: Any = Field(None, alias="邮编")
    household_address: Any = Field(None, alias="户口地址")
    household_postal_code: Any = Field(None, alias="户口邮编")
    work_unit_address: Any = Field(None, alias="工作单位地址")
    work_unit_and_address: Any = Field(None, alias="工作单位及地址")
    work_phone: Any = Field(None, alias="单位电话")
    work_postal_code: Any = Field(None, alias="单位邮编")
    transfer_department: Any = Field(None, alias="转科科别")
    admission_path: Any = Field(None, alias="admission_path")

    # English top-level overrides some OCR prompts emit for pathology fields
    drug_allergy: Any = Field(None, alias="drug_allergy")
    allergy_drugs: Any = Field(None, alias="allergy_drugs")
    blood_type: Any = Field(None, alias="blood_type")
    rh: Any = Field(None, alias="rh")
    autopsy: Any = Field(None, alias="autopsy")

    contact: Optional[ContactGroup] = Field(None, alias="联系人")
    admission: Optional[AdmissionGroup] = Field(None, alias="入院信息")
    discharge: Optional[DischargeGroup] = Field(None, alias="出院信息")
    diagnosis: Optional[DiagnosisGroup] = Field(None, alias="诊断信息")
    pathology: Optional[PathologyGroup] = Field(None, alias="病理信息")
    personnel: Optional[PersonnelGroup] = Field(None, alias="医务人员")
    quality: Optional[QualityGroup] = Field(None, alias="病案质量")

    @field_validator(
        "contact", "admission", "discharge", "diagnosis",
        "pathology", "personnel", "quality",
        mode="before",
    )
    @classmethod
    def object_or_none(cls, v):
        if not isinstance(v, dict):
            return None
        return v


class OtherDiagnosis(BaseModel):
    diagnosis: str = ""
    disease_code: str = ""
    admission_condition: str = ""

    def is_blank(self) -> bool:
        return not (self.diagnosis.strip() or self.disease_code.strip()
                    or self.admission_condition.strip())


class MappingMetadata(BaseModel):
    total_fields: int
    filled_fields: int
    fill_rate: float
    basic_info: bool
    diagnosis_info: bool
    contact_info: bool
    admission_info: bool
    mapping_timestamp: str


class FormRecord(BaseModel):
    """Fully-keyed intake form; every field always present"""

    # basic
    name: str = ""
    gender: str = ""
    age: Optional[int] = None
    birth_date: str = ""
    nationality: str = ""
    birth_place: str = ""
    native_place: str = ""
    ethnicity: str = ""
    id_number: str = ""
    occupation: str = ""
    marital_status: str = ""
    phone: str = ""
    current_address: str = ""
    postal_code: str = ""
    household_address: str = ""
    household_postal_code: str = ""
    work_unit: str = ""
    work_phone: str = ""
    work_postal_code: str = ""

    # contact person
    contact_name: str = ""
    contact_phone: str = ""
    contact_relationship: str = ""
    contact_address: str = ""

    # admission / discharge
    admission_department: str = ""
    transfer_department: str = ""
    admission_ward: str = ""
    admission_time: str = ""
    admission_path: str = ""
    discharge_time: str = ""
    discharge_department: str = ""
    discharge_ward: str = ""
    actual_days: str = ""

    # diagnosis
    outpatient_diagnosis: str = ""
    outpatient_disease_code: str = ""
    main_diagnosis: str = ""
    main_disease_code: str = ""
    admission_condition: str = ""
    other_diagnoses: List[OtherDiagnosis] = Field(default_factory=list)

    # pathology
    pathology_diagnosis: str = ""
    pathology_number: str = ""
    disease_code: str = ""
    drug_allergy: str = ""
    allergy_drugs: str = ""
    blood_type: str = ""
    rh: str = ""
    autopsy: str = ""
    external_cause: str = ""
    external_cause_code: str = ""

    # medical personnel
    department_director: str = ""
    attending_physician: str = ""
    treating_physician: str = ""
    resident_physician: str = ""
    intern_physician: str = ""
    fellow_physician: str = ""
    responsible_nurse: str = ""
    coder: str = ""

    # quality control
    quality: str = ""
    quality_physician: str = ""
    quality_nurse: str = ""
    quality_date: str = ""

    metadata: Optional[MappingMetadata] = None

    @classmethod
    def field_names(cls) -> List[str]:
        return [name for name in cls.model_fields if name != "metadata"]

    def form_fields(self) -> dict:
        """Field values without the metadata sub-record"""
        return self.model_dump(exclude={"metadata"})
