"""Utility helpers to build and parse EMV-style TLV payloads."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from .errors import FieldTooLong, MalformedPayload

HEADER_SIZE = 4
MAX_VALUE_LENGTH = 99


@dataclass(frozen=True)
class TLVItem:
    tag: str
    value: str

    @property
    def length(self) -> int:
        return len(self.value)

    def serialize(self) -> str:
        if self.length > MAX_VALUE_LENGTH:
            raise FieldTooLong(f"Tag {self.tag} value has {self.length} characters, limit is {MAX_VALUE_LENGTH}")
        return f"{self.tag}{self.length:02d}{self.value}"

    def children(self) -> list[TLVItem]:
        """Decode the value as a nested TLV template."""

        return list(parse_tlv(self.value))


def build_tlv(items: Iterable[TLVItem]) -> str:
    """Serialize iterable of TLV items into EMV string."""

    return "".join(item.serialize() for item in items)


def parse_tlv(payload: str) -> Iterator[TLVItem]:
    """Parse TLV payload string into TLV items.

    Decoding is a single forward pass; an empty payload yields nothing.
    Lengths count characters, so only ASCII payloads are accepted.
    """

    if not payload.isascii():
        raise MalformedPayload("Payload contains non-ASCII characters")
    idx = 0
    total = len(payload)
    while idx < total:
        if total - idx < HEADER_SIZE:
            raise MalformedPayload(f"Truncated TLV header at offset {idx}")
        tag = payload[idx : idx + 2]
        length_raw = payload[idx + 2 : idx + 4]
        if not (length_raw.isascii() and length_raw.isdigit()):
            raise MalformedPayload(f"Invalid length {length_raw!r} for tag {tag!r} at offset {idx}")
        value_start = idx + HEADER_SIZE
        value_end = value_start + int(length_raw)
        if value_end > total:
            raise MalformedPayload(f"Length of tag {tag!r} exceeds payload at offset {idx}")
        yield TLVItem(tag=tag, value=payload[value_start:value_end])
        idx = value_end
