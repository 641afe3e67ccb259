from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContactSubmission(BaseModel):
    """A validated, normalized contact form submission."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    full_name: str = Field(..., alias="nombreCompleto", max_length=100)
    email: str = Field(..., alias="correoElectronico")
    phone: str = Field(..., alias="telefono")
    subject: str = Field(..., alias="asunto", max_length=150)
    message: str = Field(..., alias="mensaje", min_length=10, max_length=1000)


class ContactSuccessResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[List[str]] = None


class HealthResponse(BaseModel):
    status: str = "OK"
