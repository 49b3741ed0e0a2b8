"""Public form configuration schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PublicFormCreate(BaseModel):
    slug: str = Field(..., min_length=1, max_length=128, pattern=r"^[a-z0-9][a-z0-9-]*$")
    title: str = Field(..., min_length=1, max_length=255)
    auto_analyze: bool = True
    is_active: bool = True


class PublicFormRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slug: str
    title: str
    auto_analyze: bool
    is_active: bool
