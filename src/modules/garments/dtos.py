"""Garment registry DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class ScanResult(BaseModel):
    """Outcome of a reconciled scan.

    ``order_transitioned`` is ``True`` only for the scan that moved the
    order to its next status.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    garment: Any
    order: Any
    order_transitioned: bool = False


class UpdateGarmentDTO(BaseModel):
    """Editable garment details.  ``None`` leaves a field unchanged."""

    model_config = ConfigDict(frozen=True)

    description: Optional[str] = None
    notes: Optional[str] = None
    image_ref: Optional[str] = None

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v

    def changes(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)
