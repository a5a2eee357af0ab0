"""Data models used across the pipeline and the query layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Iterable

from nsw_sales.common.numbers import coerce_number

# Compact alias -> TransactionRecord attribute. Order is the on-disk key order.
COMPACT_FIELD_ALIASES: dict[str, str] = {
    "a": "address",
    "s": "suburb",
    "p": "postcode",
    "t": "property_type",
    "$": "sale_price",
    "d": "sale_date",
    "l": "district_code",
    "m": "area",
    "y": "year",
    "z": "zoning",
    "n": "nature_of_property",
}

# Expanded (camelCase) name -> TransactionRecord attribute.
EXPANDED_FIELD_NAMES: dict[str, str] = {
    "address": "address",
    "suburb": "suburb",
    "postcode": "postcode",
    "propertyType": "property_type",
    "salePrice": "sale_price",
    "saleDate": "sale_date",
    "districtCode": "district_code",
    "area": "area",
    "year": "year",
    "zoning": "zoning",
    "natureOfProperty": "nature_of_property",
}

SHAPE_COMPACT = "compact"
SHAPE_EXPANDED = "expanded"

_NUMERIC_FIELDS = {"sale_price", "area", "year"}
_NULLABLE_FIELDS = {"sale_date"}


@dataclass(frozen=True)
class TransactionRecord:
    address: str
    suburb: str
    sale_price: int | float
    year: int
    district_code: str = ""
    property_id: str = ""
    sale_counter: str = ""
    download_timestamp: str = ""
    property_name: str = ""
    unit_number: str = ""
    house_number: str = ""
    street_name: str = ""
    locality: str = ""
    postcode: str = ""
    area: int | float = 0
    area_unit: str = ""
    contract_date: str = ""
    settlement_date: str = ""
    sale_date: str | None = None
    zoning: str = ""
    nature_of_property: str = ""
    primary_purpose: str = ""
    strata_lot: str = ""
    property_type: str = "Property"

    @property
    def address_key(self) -> str:
        return self.address.lower()

    def to_compact(self) -> dict[str, Any]:
        return {alias: getattr(self, attr) for alias, attr in COMPACT_FIELD_ALIASES.items()}

    def to_expanded(self) -> dict[str, Any]:
        return {name: getattr(self, attr) for name, attr in EXPANDED_FIELD_NAMES.items()}

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _coerce(attr: str, value: Any) -> Any:
    # Stored artifacts are not trusted to carry the right JSON types.
    if attr in _NUMERIC_FIELDS:
        number = coerce_number(value)
        return int(number) if attr == "year" else number
    if attr in _NULLABLE_FIELDS:
        return value if isinstance(value, str) and value else None
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _decode(payload: dict, names: dict[str, str]) -> TransactionRecord:
    values = {attr: _coerce(attr, payload.get(key)) for key, attr in names.items()}
    if not values["property_type"]:
        values["property_type"] = "Property"
    return TransactionRecord(**values)


def decode_compact(payload: dict) -> TransactionRecord:
    return _decode(payload, COMPACT_FIELD_ALIASES)


def decode_expanded(payload: dict) -> TransactionRecord:
    return _decode(payload, EXPANDED_FIELD_NAMES)


RECORD_DECODERS: dict[str, Callable[[dict], TransactionRecord]] = {
    SHAPE_COMPACT: decode_compact,
    SHAPE_EXPANDED: decode_expanded,
}


def resolve_shape(records: list[dict]) -> str:
    """Decide the record shape of one artifact from its first record."""
    for record in records:
        if isinstance(record, dict):
            return SHAPE_COMPACT if "a" in record else SHAPE_EXPANDED
    return SHAPE_COMPACT


def decode_records(records: Iterable[Any]) -> list[TransactionRecord]:
    items = [record for record in records if isinstance(record, dict)]
    decoder = RECORD_DECODERS[resolve_shape(items)]
    return [decoder(record) for record in items]


@dataclass(frozen=True)
class ChunkEntry:
    filename: str
    count: int
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"filename": self.filename, "count": self.count, "size": self.size}


@dataclass(frozen=True)
class Manifest:
    year: int
    total_properties: int
    chunks: list[ChunkEntry] = field(default_factory=list)
    created: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "totalProperties": self.total_properties,
            "chunks": [chunk.to_dict() for chunk in self.chunks],
            "created": self.created,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "Manifest":
        return cls(
            year=int(payload["year"]),
            total_properties=int(payload.get("totalProperties", 0)),
            chunks=[
                ChunkEntry(
                    filename=str(chunk["filename"]),
                    count=int(chunk.get("count", 0)),
                    size=int(chunk.get("size", 0)),
                )
                for chunk in payload.get("chunks", [])
            ],
            created=str(payload.get("created", "")),
        )
