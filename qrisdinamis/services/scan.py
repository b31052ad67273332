"""Scan handling services: image or text in, saved static payload out."""
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import QRISError
from ..models import SavedQR
from ..qris_encoder import PayloadSummary, describe_payload, extract_merchant_name
from ..scanner import decode_qr_image
from .errors import err_bad_payload, err_qr_not_found, from_codec_error
from .history import HistoryService

logger = logging.getLogger("qrisdinamis.scan")


@dataclass(slots=True)
class ScanResult:
    payload: str
    merchant_name: str
    summary: PayloadSummary
    entry: SavedQR


class ScanService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def handle_scan(self, *, payload: str | None = None, image_base64: str | None = None) -> ScanResult:
        if image_base64 is not None:
            payload = self._decode_image(image_base64)
        if payload is None:
            raise err_bad_payload("Either payload or image_base64 is required")

        payload = payload.strip()
        if not payload:
            raise err_bad_payload("Payload is empty")
        try:
            summary = describe_payload(payload)
        except QRISError as exc:
            raise from_codec_error(exc) from exc

        merchant_name = extract_merchant_name(payload)
        entry = await HistoryService(self.session).save(payload=payload, merchant_name=merchant_name)
        logger.info(
            "payload scanned",
            extra={"merchant_name": merchant_name, "dynamic": summary.is_dynamic, "crc_valid": summary.crc_valid},
        )
        return ScanResult(payload=payload, merchant_name=merchant_name, summary=summary, entry=entry)

    @staticmethod
    def _decode_image(image_base64: str) -> str:
        try:
            image_bytes = base64.b64decode(image_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise err_bad_payload("image_base64 is not valid base64") from exc

        decoded = decode_qr_image(image_bytes)
        if decoded is None:
            raise err_qr_not_found("QR Code tidak ditemukan atau tidak valid. Pastikan gambar jelas.")
        return decoded
