"""
Pydantic models for the registry API.

Record models allow extra fields: bundles are pass-through for anything the
sanitizer does not know about.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any

from ..core.schema import AgentRole, RelationshipType, SystemMode


class EducationModel(BaseModel):
    model_config = ConfigDict(extra='allow')

    isStudying: bool = False
    schoolName: Optional[str] = ''
    grade: Optional[str] = ''
    reasonNotStudying: Optional[str] = None


class ResidentModel(BaseModel):
    model_config = ConfigDict(extra='allow')

    id: str
    name: str
    cpf: str
    rg: str = ''
    birthDate: str
    relationship: str = RelationshipType.OTHER.value
    neighborhood: str
    education: EducationModel

    @field_validator('id', 'name')
    @classmethod
    def must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('cannot be empty')
        return v


class TerritoryModel(BaseModel):
    model_config = ConfigDict(extra='allow')

    id: str
    neighborhood: str
    street: Optional[str] = None
    number: Optional[str] = None
    block: Optional[str] = None
    lot: Optional[str] = None
    notes: Optional[str] = None


class AgentModel(BaseModel):
    model_config = ConfigDict(extra='allow')

    id: str
    name: str
    username: str
    role: str = AgentRole.OPERATOR.value


class InstitutionModel(BaseModel):
    model_config = ConfigDict(extra='allow')

    name: Optional[str] = None
    logoUrl: Optional[str] = None
    cnpj: str
    city: str
    systemMode: str = SystemMode.SERVER.value


class BundleModel(BaseModel):
    model_config = ConfigDict(extra='allow')

    version: str
    timestamp: str
    institution: InstitutionModel
    agents: List[AgentModel]
    residents: List[ResidentModel]
    logs: List[Dict[str, Any]] = Field(max_length=1000)
    territories: List[TerritoryModel]
    config: Optional[Dict[str, Any]] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    system_mode: str
    residents: int
    territories: int


class StateSummaryResponse(BaseModel):
    counts: Dict[str, int]
    health_grade: str
    health_label: str
    backup_due: bool
    last_backup_date: Optional[str] = None


class BundleFileResponse(BaseModel):
    filename: str
    bundle: Dict[str, Any]


class MergeSummaryResponse(BaseModel):
    success: bool
    message: str
    source_name: str
    new: int
    updated: int
    skipped_territories: int
    placeholder_matches: int


class RestoreResponse(BaseModel):
    success: bool
    residents: int
    territories: int
    agents: int


class LogListResponse(BaseModel):
    logs: List[Dict[str, Any]]


class ValidationFieldError(BaseModel):
    field: str
    message: str


class BundleValidationResponse(BaseModel):
    valid: bool
    errors: List[ValidationFieldError]
