"""Pydantic schemas for API contracts."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScanRequest(BaseModel):
    payload: str | None = Field(default=None, min_length=1, description="Raw QRIS text")
    image_base64: str | None = Field(default=None, min_length=1, description="Base64 encoded QR image")

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "ScanRequest":
        if (self.payload is None) == (self.image_base64 is None):
            raise ValueError("provide exactly one of payload or image_base64")
        return self


class PayloadSummaryResponse(BaseModel):
    merchant_name: str | None
    merchant_city: str | None
    point_of_initiation: str | None
    currency: str | None
    amount: str | None
    crc: str | None
    crc_valid: bool
    is_dynamic: bool
    global_ids: list[str]


class ScanResponse(BaseModel):
    history_id: int
    payload: str
    merchant_name: str
    summary: PayloadSummaryResponse


class ConvertRequest(BaseModel):
    payload: str = Field(min_length=1, description="Static QRIS payload string")
    amount: int = Field(strict=True, description="Transaction amount in rupiah")
    render: bool = True
    size: int | None = Field(default=None, ge=256, le=2048)


class ConvertResponse(BaseModel):
    payload: str
    crc: str
    merchant_name: str
    amount: int
    amount_display: str
    qr_png_base64: str | None = None


class RenderRequest(BaseModel):
    payload: str = Field(min_length=1)
    size: int | None = Field(default=None, ge=256, le=2048)
    title: str | None = Field(default=None, max_length=40, description="Label printed under the code")


class HistoryEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    payload: str
    merchant_name: str
    created_at: datetime
