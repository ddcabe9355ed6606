from __future__ import annotations

import uuid
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ValidationFailure

T = TypeVar("T", bound=BaseModel)


class OperatorInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    name: str = Field(..., min_length=1, max_length=300)
    id: Optional[uuid.UUID] = None


class DomainDiscoveryJob(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)
    operator_id: uuid.UUID
    operator_name: str = Field(..., min_length=1, max_length=300)


class DomainVerificationJob(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)
    operator_id: uuid.UUID
    domain: str = Field(..., min_length=1, max_length=253)
    brand_tokens: list[str] = Field(default_factory=list)

    @field_validator("domain")
    @classmethod
    def _lowercase_domain(cls, value: str) -> str:
        return value.lower()

    @field_validator("brand_tokens")
    @classmethod
    def _drop_blank_tokens(cls, value: list[str]) -> list[str]:
        return [token for token in (t.strip() for t in value) if token]


def validate_payload(model: type[T], payload: Any) -> T:
    """Parse a job payload, raising ``ValidationFailure`` when it is malformed."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailure(f"Invalid {model.__name__} payload", errors=exc.errors()) from exc
