"""
Item serial decoding and re-encoding.

An item serial is a marker-prefixed bit-packed string (see ``blcrypt.bit_pack_decode``)
whose decoded bytes follow a fixed layout selected by the discriminant character
right after the marker. Only the offsets below are known; anything else is exposed
through the raw field dump so it can be inspected but not edited.

Decoding never raises: a serial that cannot be mapped comes back as an ``error``
item with confidence ``none``. Encoding never raises either: on any failure the
original serial is returned unchanged.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .main import SerialEncodeError, blcrypt

STAT_FIELDS = ("primary_stat", "secondary_stat", "level", "rarity", "manufacturer", "item_class")
RAW_WINDOW = 20
POTENTIAL_STAT_RANGE = (100, 10000)
POTENTIAL_FLAG_LIMIT = 100

CONFIDENCE_HIGH = "high"
CONFIDENCE_MEDIUM = "medium"
CONFIDENCE_LOW = "low"
CONFIDENCE_NONE = "none"

_UNPACK = {1: "<B", 2: "<H"}


@dataclass(frozen=True)
class FieldSpec:
    """One stat stored at a fixed byte offset of the decoded payload."""

    name: str
    offset: int
    width: int
    writable: bool = False
    accept: Optional[Callable[[int, int], bool]] = None

    @property
    def span(self) -> range:
        return range(self.offset, self.offset + self.width)

    def fits(self, length: int) -> bool:
        return self.offset + self.width <= length

    def read(self, data: bytes) -> Optional[int]:
        if not self.fits(len(data)):
            return None
        (value,) = struct.unpack_from(_UNPACK[self.width], data, self.offset)
        if self.accept is not None and not self.accept(value, len(data)):
            return None
        return value

    def write(self, data: bytearray, value: int) -> None:
        struct.pack_into(_UNPACK[self.width], data, self.offset, value)


@dataclass(frozen=True)
class ItemLayout:
    category: str
    fields: Tuple[FieldSpec, ...]
    confidence: Callable[[bytes], str]

    def write_fields(self) -> Tuple[FieldSpec, ...]:
        """Writable fields, minus those whose bytes sit inside a wider writable field."""
        writable = [entry for entry in self.fields if entry.writable]
        return tuple(
            entry for entry in writable
            if not any(
                other.width > entry.width and set(entry.span) <= set(other.span)
                for other in writable
            )
        )


def _byte_equals(offset: int, sentinel: int) -> Callable[[bytes], str]:
    def check(data: bytes) -> str:
        if len(data) > offset and data[offset] == sentinel:
            return CONFIDENCE_HIGH
        return CONFIDENCE_MEDIUM
    return check


def _length_in(*lengths: int) -> Callable[[bytes], str]:
    def check(data: bytes) -> str:
        return CONFIDENCE_HIGH if len(data) in lengths else CONFIDENCE_MEDIUM
    return check


ITEM_LAYOUTS: Dict[str, ItemLayout] = {
    "r": ItemLayout(
        category="weapon",
        fields=(
            FieldSpec("primary_stat", 0, 2, writable=True),
            FieldSpec("secondary_stat", 12, 2, writable=True),
            FieldSpec("manufacturer", 4, 1, writable=True),
            FieldSpec("item_class", 8, 1, writable=True),
            # high byte of primary_stat
            FieldSpec("rarity", 1, 1, writable=True),
            # high byte of secondary_stat; only meaningful for these two values
            FieldSpec("level", 13, 1, accept=lambda value, _length: value in (2, 34)),
        ),
        confidence=_length_in(24, 26),
    ),
    "e": ItemLayout(
        category="equipment",
        fields=(
            FieldSpec("primary_stat", 2, 2, writable=True),
            FieldSpec("secondary_stat", 8, 2, writable=True),
            FieldSpec("level", 10, 2, accept=lambda _value, length: length > 38),
            FieldSpec("manufacturer", 1, 1, writable=True),
            FieldSpec("item_class", 3, 1, writable=True),
            FieldSpec("rarity", 9, 1, writable=True),
        ),
        confidence=_byte_equals(1, 49),
    ),
    "d": ItemLayout(
        category="equipment_alt",
        fields=(
            FieldSpec("primary_stat", 4, 2, writable=True),
            FieldSpec("secondary_stat", 8, 2, writable=True),
            FieldSpec("level", 10, 2),
            FieldSpec("manufacturer", 5, 1, writable=True),
            FieldSpec("item_class", 6, 1, writable=True),
            FieldSpec("rarity", 14, 1),
        ),
        confidence=_byte_equals(5, 15),
    ),
}

GENERIC_CATEGORIES = {
    "w": "weapon_special",
    "u": "utility",
    "f": "consumable",
    "!": "special",
}
GENERIC_FIELDS = (
    FieldSpec("manufacturer", 1, 1),
    FieldSpec("rarity", 2, 1),
)


@dataclass
class DecodedItem:
    serial: str
    item_type: str
    item_category: str
    length: int
    stats: Dict[str, int] = field(default_factory=dict)
    raw_fields: Dict[str, Any] = field(default_factory=dict)
    confidence: str = CONFIDENCE_NONE

    def to_record(self) -> Dict[str, Any]:
        return {
            "original_serial": self.serial,
            "item_type": self.item_type,
            "category": self.item_category,
            "confidence": self.confidence,
            "stats": {name: self.stats[name] for name in STAT_FIELDS if self.stats.get(name) is not None},
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "DecodedItem":
        stats = record.get("stats") or {}
        return cls(
            serial=str(record["original_serial"]),
            item_type=str(record.get("item_type", "?")),
            item_category=str(record.get("category", "unknown")),
            length=0,
            stats={name: stats[name] for name in STAT_FIELDS if stats.get(name) is not None},
            confidence=str(record.get("confidence", CONFIDENCE_NONE)),
        )


def extract_fields(data: bytes) -> Dict[str, Any]:
    """Every plausible little-endian value near the start of a payload, for diagnostics."""
    fields: Dict[str, Any] = {}
    if len(data) >= 4:
        fields["header_le"] = struct.unpack_from("<I", data, 0)[0]
        fields["header_be"] = struct.unpack_from(">I", data, 0)[0]
    if len(data) >= 8:
        fields["field2_le"] = struct.unpack_from("<I", data, 4)[0]
    if len(data) >= 12:
        fields["field3_le"] = struct.unpack_from("<I", data, 8)[0]

    low, high = POTENTIAL_STAT_RANGE
    potential_stats: List[List[int]] = []
    for offset in range(0, min(len(data) - 1, RAW_WINDOW), 2):
        value = struct.unpack_from("<H", data, offset)[0]
        fields[f"val16_at_{offset}"] = value
        if low <= value <= high:
            potential_stats.append([offset, value])
    fields["potential_stats"] = potential_stats

    potential_flags: List[List[int]] = []
    for offset in range(min(len(data), RAW_WINDOW)):
        value = data[offset]
        fields[f"byte_{offset}"] = value
        if value < POTENTIAL_FLAG_LIMIT:
            potential_flags.append([offset, value])
    fields["potential_flags"] = potential_flags
    return fields


def item_type_of(serial: str) -> str:
    marker = blcrypt.SERIAL_MARKER
    if len(serial) > len(marker) and serial.startswith(marker):
        return serial[len(marker)]
    return "?"


def _decode_with_layout(serial: str, item_type: str, data: bytes, layout: ItemLayout) -> DecodedItem:
    stats = {}
    for entry in layout.fields:
        value = entry.read(data)
        if value is not None:
            stats[entry.name] = value
    return DecodedItem(
        serial=serial,
        item_type=item_type,
        item_category=layout.category,
        length=len(data),
        stats=stats,
        raw_fields=extract_fields(data),
        confidence=layout.confidence(data),
    )


def _decode_generic(serial: str, item_type: str, data: bytes) -> DecodedItem:
    raw_fields = extract_fields(data)
    stats = {}
    potential = raw_fields["potential_stats"]
    if potential:
        stats["primary_stat"] = potential[0][1]
    if len(potential) > 1:
        stats["secondary_stat"] = potential[1][1]
    for entry in GENERIC_FIELDS:
        value = entry.read(data)
        if value is not None:
            stats[entry.name] = value
    marker = blcrypt.SERIAL_MARKER
    recognised = serial.startswith(marker) and len(serial) > len(marker) and len(data) > 0
    return DecodedItem(
        serial=serial,
        item_type=item_type,
        item_category=GENERIC_CATEGORIES.get(item_type, "unknown"),
        length=len(data),
        stats=stats,
        raw_fields=raw_fields,
        confidence=CONFIDENCE_LOW if recognised else CONFIDENCE_NONE,
    )


def decode_item_serial(serial: str) -> DecodedItem:
    try:
        data = blcrypt.bit_pack_decode(serial)
        item_type = item_type_of(serial)
        layout = ITEM_LAYOUTS.get(item_type)
        if layout is None:
            return _decode_generic(serial, item_type, data)
        return _decode_with_layout(serial, item_type, data, layout)
    except Exception as exc:
        return DecodedItem(
            serial=serial,
            item_type="error",
            item_category="decode_failed",
            length=0,
            stats={},
            raw_fields={"error": str(exc)},
            confidence=CONFIDENCE_NONE,
        )


def _reframe(encoded: str, original: str) -> str:
    """Drop trailing zero characters that only exist because of 8/6-bit re-framing."""
    marker = blcrypt.SERIAL_MARKER
    payload = [ch for ch in original[len(marker):] if ch in blcrypt._CHAR_MAP]
    if any(blcrypt._CHAR_MAP[ch] >= 64 for ch in payload):
        return encoded
    body = encoded[len(marker):]
    tail = body[len(payload):]
    if tail and set(tail) == {blcrypt.CHAR_SET[0]}:
        return marker + body[:len(payload)]
    return encoded


def encode_item_serial(item: DecodedItem) -> str:
    try:
        original = blcrypt.bit_pack_decode(item.serial)
        data = bytearray(original)
        layout = ITEM_LAYOUTS.get(item.item_type)
        if layout is not None:
            for entry in layout.write_fields():
                value = item.stats.get(entry.name)
                if value is None or not entry.fits(len(data)):
                    continue
                try:
                    entry.write(data, int(value))
                except struct.error as exc:
                    raise SerialEncodeError(f"{entry.name}={value!r} does not fit {entry.width} byte(s)") from exc
        if bytes(data) == original:
            return item.serial
        # the discriminant is the leading six bits of the payload, so the bare marker is enough
        serial = _reframe(blcrypt.bit_pack_encode(bytes(data), blcrypt.SERIAL_MARKER), item.serial)
        if item_type_of(serial) != item.item_type:
            raise SerialEncodeError(
                f"edit would change item type {item.item_type!r} to {item_type_of(serial)!r}"
            )
        return serial
    except Exception as exc:
        blcrypt._warn(f"Failed to encode item serial {str(item.serial)[:24]!r}: {exc}")
        return item.serial
