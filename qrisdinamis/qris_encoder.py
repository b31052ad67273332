"""QRIS static-to-dynamic payload conversion."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

from .crc import crc16_ccitt
from .errors import InvalidAmount, MalformedPayload
from .tlv import TLVItem, build_tlv, parse_tlv

TAG_POINT_OF_INITIATION = "01"
TAG_CURRENCY = "53"
TAG_AMOUNT = "54"
TAG_MERCHANT_NAME = "59"
TAG_MERCHANT_CITY = "60"
TAG_CRC = "63"
TAG_GLOBAL_ID = "00"
MERCHANT_ACCOUNT_TAGS = frozenset(f"{n:02d}" for n in range(26, 52))

INITIATION_STATIC = "11"
INITIATION_DYNAMIC = "12"

CRC_HEADER = f"{TAG_CRC}04"
UNKNOWN_MERCHANT = "Unknown Merchant"


@dataclass(frozen=True)
class EncodedPayload:
    payload: str
    crc: str


@dataclass(frozen=True)
class PayloadSummary:
    merchant_name: str | None
    merchant_city: str | None
    point_of_initiation: str | None
    currency: str | None
    amount: str | None
    crc: str | None
    crc_valid: bool
    global_ids: tuple[str, ...] = ()

    @property
    def is_dynamic(self) -> bool:
        return self.point_of_initiation == INITIATION_DYNAMIC


def _first_value(items: Iterable[TLVItem], tag: str) -> str | None:
    return next((item.value for item in items if item.tag == tag), None)


def apply_dynamic_edits(items: Iterable[TLVItem], amount: int) -> list[TLVItem]:
    """Switch decoded fields to dynamic mode carrying ``amount``.

    The returned list has no CRC field; it is appended after serialization.
    """

    edited = list(items)

    for idx, item in enumerate(edited):
        if item.tag == TAG_POINT_OF_INITIATION:
            edited[idx] = replace(item, value=INITIATION_DYNAMIC)
            break

    edited = [item for item in edited if item.tag not in (TAG_AMOUNT, TAG_CRC)]

    amount_item = TLVItem(tag=TAG_AMOUNT, value=str(amount))
    currency_idx = next((idx for idx, item in enumerate(edited) if item.tag == TAG_CURRENCY), None)
    if currency_idx is None:
        edited.append(amount_item)
    else:
        edited.insert(currency_idx + 1, amount_item)
    return edited


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Amount must be an integer, got {type(amount).__name__}")
    if amount < 1:
        raise InvalidAmount(f"Amount must be positive, got {amount}")


def seal_payload(payload_no_crc: str) -> EncodedPayload:
    """Append Tag 63 with the CRC16 of everything before it."""

    crc_input = f"{payload_no_crc}{CRC_HEADER}"
    crc = crc16_ccitt(crc_input)
    return EncodedPayload(payload=f"{crc_input}{crc}", crc=crc)


def build_dynamic_payload(base_payload: str, amount: int) -> EncodedPayload:
    """Convert a static QRIS payload into a dynamic one with a fixed amount."""

    _check_amount(amount)
    items = list(parse_tlv(base_payload))
    edited = apply_dynamic_edits(items, amount)
    return seal_payload(build_tlv(edited))


def convert_to_dynamic(base_payload: str, amount: int) -> str:
    return build_dynamic_payload(base_payload, amount).payload


def extract_merchant_name(payload: str) -> str:
    """Return Tag 59 of ``payload``, or ``UNKNOWN_MERCHANT`` if unavailable."""

    try:
        name = _first_value(parse_tlv(payload), TAG_MERCHANT_NAME)
    except MalformedPayload:
        return UNKNOWN_MERCHANT
    return UNKNOWN_MERCHANT if name is None else name


def verify_crc(payload: str) -> bool:
    """Check that a payload ends in a Tag 63 matching its own contents."""

    if len(payload) < 8 or payload[-8:-4] != CRC_HEADER:
        return False
    return crc16_ccitt(payload[:-4]) == payload[-4:]


def _global_ids(items: Iterable[TLVItem]) -> tuple[str, ...]:
    """Collect sub-tag 00 of merchant account templates that decode cleanly."""

    ids: list[str] = []
    for item in items:
        if item.tag not in MERCHANT_ACCOUNT_TAGS:
            continue
        try:
            children = item.children()
        except MalformedPayload:
            # Opaque account data, not a nested template.
            continue
        global_id = _first_value(children, TAG_GLOBAL_ID)
        if global_id is not None:
            ids.append(global_id)
    return tuple(ids)


def describe_payload(payload: str) -> PayloadSummary:
    items = list(parse_tlv(payload))
    return PayloadSummary(
        merchant_name=_first_value(items, TAG_MERCHANT_NAME),
        merchant_city=_first_value(items, TAG_MERCHANT_CITY),
        point_of_initiation=_first_value(items, TAG_POINT_OF_INITIATION),
        currency=_first_value(items, TAG_CURRENCY),
        amount=_first_value(items, TAG_AMOUNT),
        crc=_first_value(items, TAG_CRC),
        crc_valid=bool(items) and items[-1].tag == TAG_CRC and verify_crc(payload),
        global_ids=_global_ids(items),
    )
