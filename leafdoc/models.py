"""
Pydantic request/response models for the Leafdoc AI Service API.

Wire keys are camelCase (the mobile client's convention); Python attributes
are snake_case.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Any, Optional


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Chat ---

class ChatTurn(ApiModel):
    """One client-side chat message. Roles other than assistant/model count as user."""
    model_config = ConfigDict(frozen=True)

    role: Optional[str] = None
    content: Optional[str] = None

    @field_validator("role", "content", mode="before")
    @classmethod
    def scalar_to_text(cls, v: Any) -> Any:
        # Truthy numbers and booleans become text; zero, false and nested
        # objects count as no content
        if isinstance(v, (bool, int, float)):
            return str(v).lower() if v else None
        if isinstance(v, (dict, list)):
            return None
        return v


class ReportContext(ApiModel):
    """Diagnosis the chat is about. Absent values become display sentinels."""

    plant_name: str = "Unknown"
    disease: str = "Unknown"
    severity: str = "N/A"
    health_score: str = "N/A"

    @field_validator("*", mode="before")
    @classmethod
    def fill_sentinel(cls, v: Any, info) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        if isinstance(v, bool):
            return str(v).lower()
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        if isinstance(v, (int, float)):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v


class ChatRequest(ApiModel):
    message: Optional[str] = None
    report_context: Optional[ReportContext] = None
    history: Optional[list[ChatTurn]] = None


class ChatResponse(ApiModel):
    reply: str


# --- Diagnosis ---

class Treatment(ApiModel):
    model_config = ConfigDict(frozen=True)

    immediate: list[str] = []
    remedies: list[str] = []
    duration: str = ""
    success_rate: float = Field(default=0, ge=0, le=100)


class CareGuide(ApiModel):
    model_config = ConfigDict(frozen=True)

    watering: str = ""
    sunlight: str = ""
    soil: str = ""
    fertilizer: str = ""
    temperature: str = ""


class DiagnosisRecord(ApiModel):
    """Validated analysis of one leaf image."""
    model_config = ConfigDict(frozen=True)

    is_plant_leaf: bool
    plant_name: str = ""
    scientific_name: str = ""
    family: str = ""
    confidence: float = Field(default=0, ge=0, le=100)
    health_score: float = Field(default=0, ge=0, le=100)
    risk_level: str = ""
    disease: str = ""
    severity: str = ""
    affected_parts: list[str] = []
    disease_duration: str = ""
    symptoms: list[str] = []
    treatment: Treatment = Treatment()
    care_guide: CareGuide = CareGuide()
    prevention_tips: list[str] = []
    notes: str = ""


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""
    error: str
