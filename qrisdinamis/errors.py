"""Errors raised by the QRIS payload codec."""
from __future__ import annotations


class QRISError(ValueError):
    """Base class for payload codec failures."""


class MalformedPayload(QRISError):
    """Raised when a payload cannot be decoded as flat TLV."""


class FieldTooLong(QRISError):
    """Raised when a field value does not fit the two-digit length encoding."""


class InvalidAmount(QRISError):
    """Raised when a conversion amount is not a positive integer."""
