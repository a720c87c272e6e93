from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from flowspace.core.messages import DivisionMessages


def _normalize_name(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError(DivisionMessages.NAME_REQUIRED)
    return normalized


class DivisionCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _normalize_name(value)


class DivisionUpdate(BaseModel):
    name: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _normalize_name(value)


class DivisionSummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class DivisionRead(DivisionSummary):
    created_at: datetime
    updated_at: datetime
    user_count: int = 0
