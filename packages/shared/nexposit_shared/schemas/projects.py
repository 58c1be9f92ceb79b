from typing import Optional
from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from .common import DEFAULT_PROJECT_COLOR, HEX_COLOR_PATTERN
from .contexts import check_name_length


class ProjectCreate(BaseModel):
    name: str
    description: Optional[str] = None
    color_code: str = Field(default=DEFAULT_PROJECT_COLOR, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def _name_length(cls, v: str) -> str:
        return check_name_length(v, "Project")


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color_code: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def _name_length(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return check_name_length(v, "Project")


class ProjectRead(BaseModel):
    id: UUID
    context_id: UUID
    name: str
    description: Optional[str] = None
    color_code: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PublicProjectRead(BaseModel):
    """Display-only projection: no membership data."""
    id: UUID
    name: str
    color_code: str

    model_config = {"from_attributes": True}


class ProjectMemberAdd(BaseModel):
    user_id: UUID


class ProjectMemberRead(BaseModel):
    user_id: UUID
    email: str
    full_name: str
    created_at: datetime
