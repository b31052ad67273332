"""Static to dynamic QRIS conversion service."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import settings
from ..errors import QRISError
from ..monitoring import record_conversion
from ..qris_encoder import TAG_POINT_OF_INITIATION, EncodedPayload, build_dynamic_payload, extract_merchant_name
from ..renderer import render_qr_payload
from ..tlv import parse_tlv
from .errors import from_codec_error

logger = logging.getLogger("qrisdinamis.converter")


def format_rupiah(amount: int) -> str:
    """Format ``amount`` the way Indonesian receipts do, e.g. ``Rp 25.000``."""

    return "Rp " + f"{amount:,}".replace(",", ".")


@dataclass(slots=True)
class ConvertResult:
    encoded: EncodedPayload
    merchant_name: str
    amount: int
    amount_display: str
    qr_png_base64: str | None = None


class PaymentConverter:
    def __init__(self, qr_size: int | None = None):
        self.qr_size = qr_size or settings.qr_size

    def convert(self, *, payload: str, amount: int, render: bool = True, size: int | None = None) -> ConvertResult:
        try:
            encoded = build_dynamic_payload(payload, amount)
        except QRISError as exc:
            record_conversion("failure")
            raise from_codec_error(exc) from exc

        # build_dynamic_payload already decoded the same payload, so this cannot fail here.
        if not any(item.tag == TAG_POINT_OF_INITIATION for item in parse_tlv(payload)):
            logger.warning(
                "payload has no point-of-initiation field, converted payload stays unflagged",
                extra={"crc": encoded.crc},
            )

        merchant_name = extract_merchant_name(payload)
        record_conversion("success")
        logger.info(
            "payload converted",
            extra={"merchant_name": merchant_name, "amount": amount, "crc": encoded.crc},
        )

        qr_png_base64 = None
        if render:
            qr_png_base64 = render_qr_payload(encoded.payload, size=size or self.qr_size)["png_base64"]

        return ConvertResult(
            encoded=encoded,
            merchant_name=merchant_name,
            amount=amount,
            amount_display=format_rupiah(amount),
            qr_png_base64=qr_png_base64,
        )
