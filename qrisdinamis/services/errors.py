"""Shared service error definitions."""
from __future__ import annotations

from dataclasses import dataclass

from ..errors import FieldTooLong, InvalidAmount, MalformedPayload, QRISError


@dataclass(slots=True)
class ServiceError(Exception):
    code: str
    message: str
    status_code: int = 400

    def __str__(self) -> str:  # noqa: D401 override
        return f"{self.code}: {self.message}"


def err_malformed_payload(message: str | None = None) -> ServiceError:
    return ServiceError(code="ERR_MALFORMED_PAYLOAD", message=message or "Payload is not valid QRIS TLV", status_code=422)


def err_field_too_long(message: str | None = None) -> ServiceError:
    return ServiceError(code="ERR_FIELD_TOO_LONG", message=message or "Field value exceeds 99 characters", status_code=422)


def err_invalid_amount(message: str | None = None) -> ServiceError:
    return ServiceError(code="ERR_INVALID_AMOUNT", message=message or "Amount must be a positive integer", status_code=400)


def err_qr_not_found(message: str | None = None) -> ServiceError:
    return ServiceError(code="ERR_QR_NOT_FOUND", message=message or "No QR code found in image", status_code=422)


def err_bad_payload(message: str | None = None) -> ServiceError:
    return ServiceError(code="ERR_BAD_PAYLOAD", message=message or "Invalid request payload", status_code=400)


def err_not_found(message: str | None = None) -> ServiceError:
    return ServiceError(code="ERR_NOT_FOUND", message=message or "Resource not found", status_code=404)


def from_codec_error(exc: QRISError) -> ServiceError:
    """Translate a codec failure into its service error."""

    if isinstance(exc, MalformedPayload):
        return err_malformed_payload(str(exc))
    if isinstance(exc, FieldTooLong):
        return err_field_too_long(str(exc))
    if isinstance(exc, InvalidAmount):
        return err_invalid_amount(str(exc))
    return err_bad_payload(str(exc))
