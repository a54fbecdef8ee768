# schemas.py
"""
Request/response models for the public API.

Wire names are camelCase (``imageBase64``, ``histopathologicalData`` ...);
Python attributes stay snake_case.
"""
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

YesNo = Literal["Yes", "No"]
YesNoFormer = Literal["Yes", "No", "Former"]
YesNoUnknown = Literal["Yes", "No", "Unknown"]
RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "UNKNOWN"]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------------------
# Patient history
# ----------------------------
class AdditionalPatientData(CamelModel):
    lesion_location: Optional[
        Literal["Tongue", "Buccal Mucosa", "Floor of Mouth", "Hard Palate", "Soft Palate", "Gingiva", "Lip"]
    ] = None
    lesion_duration: Optional[str] = None
    lesion_growth_rate: Optional[Literal["Slow", "Moderate", "Rapid"]] = None
    previous_oral_conditions: Optional[List[str]] = None
    medications: Optional[List[str]] = None
    alcohol_consumption: Optional[Literal["None", "Occasional", "Moderate", "Heavy"]] = None
    occupation: Optional[str] = None
    dietary_habits: Optional[List[str]] = None
    oral_hygiene: Optional[Literal["Poor", "Fair", "Good", "Excellent"]] = None
    recent_dental_work: Optional[bool] = None
    last_dental_visit: Optional[str] = None


class HistopathologicalData(CamelModel):
    """Risk factors, symptoms and lesion characteristics collected before a scan."""

    age: RequiredText
    tobacco: YesNoFormer
    smoking: YesNoFormer
    pan_masala: YesNoFormer
    symptom_duration: RequiredText

    pain_level: Optional[Literal["None", "Mild", "Moderate", "Severe"]] = None
    difficulty_swallowing: Optional[YesNo] = None
    weight_loss: Optional[YesNo] = None
    family_history: Optional[YesNoUnknown] = None
    immune_compromised: Optional[YesNoUnknown] = None
    persistent_sore_throat: Optional[YesNo] = None
    voice_changes: Optional[YesNo] = None
    lumps_in_neck: Optional[YesNo] = None
    frequent_mouth_sores: Optional[YesNo] = None
    poor_dental_hygiene: Optional[YesNo] = None

    additional_data: Optional[AdditionalPatientData] = None


# ----------------------------
# Analyze
# ----------------------------
class AnalyzeRequest(CamelModel):
    image_base64: Optional[str] = None
    histopathological_data: Optional[HistopathologicalData] = None


class AnalyzeResponse(CamelModel):
    analysis: str
    confidence: int
    risk: RiskLevel
    raw_analysis: str
    scan_id: Optional[str] = None


# ----------------------------
# Scans
# ----------------------------
class ScanCreate(CamelModel):
    image_data: str = Field(..., min_length=1)
    patient_id: Optional[str] = None


class ScanSummary(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    status: Optional[str] = None
    created_at: datetime


class ScanOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    patient_id: Optional[str] = None
    image_url: str
    patient_data: Optional[dict[str, Any]] = None
    diagnosis: Optional[str] = None
    analysis: Optional[str] = None
    raw_analysis: Optional[str] = None
    confidence: Optional[int] = None
    risk: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ----------------------------
# Patients
# ----------------------------
class PatientIn(CamelModel):
    name: str = Field(..., min_length=1)
    age: Optional[int] = None
    gender: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    smoking: bool = False
    tobacco: bool = False
    pan_masala: bool = False
    medical_history: Optional[str] = None


class PatientOut(PatientIn):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    doctor_id: str
    created_at: datetime
    updated_at: datetime
    scans: List[ScanSummary] = []


# ----------------------------
# Users
# ----------------------------
class UserCreate(CamelModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    name: Optional[str] = None


class UserOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    email: str
    name: Optional[str] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None
