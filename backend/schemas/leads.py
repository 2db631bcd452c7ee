"""Data contracts for lead capture: consultation emails and the contact form."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class _LeadBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(..., max_length=254, pattern=EMAIL_PATTERN)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class ConsultationEmailRequest(_LeadBase):
    investmentData: Dict[str, Any] = Field(..., min_length=1)


class ContactRequest(_LeadBase):
    name: str = Field(..., min_length=1, max_length=200)
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
    timestamp: Optional[str] = None


class ConsultationEmailRecord(BaseModel):
    id: int
    email: str
    investmentData: Dict[str, Any]
    ip: Optional[str]
    status: str
    createdAt: str


class ContactRecord(BaseModel):
    id: int
    name: str
    email: str
    subject: str
    message: str
    ip: Optional[str]
    status: str
    createdAt: str


class LeadAck(BaseModel):
    success: bool = True
    message: str
