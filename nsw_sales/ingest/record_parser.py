"""Parse NSW property sales `B` records into TransactionRecord values.

Field positions (semicolon delimited)::

    0 record type      5 property name   10 postcode      15 purchase price
    1 district code    6 unit number     11 area          16 zoning
    2 property id      7 house number    12 area type     17 nature of property
    3 sale counter     8 street name     13 contract date 18 primary purpose
    4 download time    9 locality        14 settle date   19 strata lot
"""

from __future__ import annotations

from dataclasses import dataclass, field

from nsw_sales.common.constants import (
    FIELD_DELIMITER,
    MAX_SALE_PRICE,
    MIN_FIELD_COUNT,
    MIN_SALE_PRICE,
    SALE_RECORD_PREFIX,
)
from nsw_sales.common.models import TransactionRecord
from nsw_sales.common.numbers import parse_number


@dataclass
class ParseResult:
    records: list[TransactionRecord] = field(default_factory=list)
    candidates: int = 0
    rejected: int = 0

    def extend(self, other: "ParseResult") -> None:
        self.records.extend(other.records)
        self.candidates += other.candidates
        self.rejected += other.rejected


def format_settlement_date(raw: str) -> str | None:
    if not raw or len(raw) != 8:
        return None
    return f"{raw[0:4]}-{raw[4:6]}-{raw[6:8]}"


def classify_property_type(nature: str, purpose: str) -> str:
    if nature == "V":
        return "Vacant Land"
    if nature == "R":
        return "Residence"
    if purpose and "RESIDENCE" in purpose:
        return "House"
    if purpose and "UNIT" in purpose:
        return "Unit"
    if purpose and "TOWNHOUSE" in purpose:
        return "Townhouse"
    if nature == "3" and purpose:
        return purpose
    return "Property"


def compose_address(unit: str, house: str, street: str) -> str:
    address = ""
    if unit:
        address += unit + "/"
    if house:
        address += house + " "
    if street:
        address += street
    return address.strip().upper()


def is_sale_candidate(line: str) -> bool:
    return line.startswith(SALE_RECORD_PREFIX)


def parse_record_line(line: str, year: int) -> TransactionRecord | None:
    """Return the validated record for one `B` line, or None when rejected."""
    fields = line.rstrip("\r\n").split(FIELD_DELIMITER)
    if len(fields) < MIN_FIELD_COUNT:
        return None

    unit = fields[6]
    house = fields[7]
    street = fields[8]
    locality = fields[9]
    nature = fields[17]
    purpose = fields[18]
    settlement = fields[14]

    address = compose_address(unit, house, street)
    suburb = locality.upper()
    price = parse_number(fields[15])

    if not address or not suburb:
        return None
    if not MIN_SALE_PRICE < price < MAX_SALE_PRICE:
        return None

    return TransactionRecord(
        address=address,
        suburb=suburb,
        sale_price=price,
        year=int(year),
        district_code=fields[1],
        property_id=fields[2],
        sale_counter=fields[3],
        download_timestamp=fields[4],
        property_name=fields[5],
        unit_number=unit,
        house_number=house,
        street_name=street,
        locality=locality,
        postcode=fields[10],
        area=parse_number(fields[11]),
        area_unit=fields[12],
        contract_date=fields[13],
        settlement_date=settlement,
        sale_date=format_settlement_date(settlement),
        zoning=fields[16],
        nature_of_property=nature,
        primary_purpose=purpose,
        strata_lot=fields[19],
        property_type=classify_property_type(nature, purpose),
    )


def parse_raw_content(content: str, year: int) -> ParseResult:
    result = ParseResult()
    for line in content.splitlines():
        if not is_sale_candidate(line):
            continue
        result.candidates += 1
        record = parse_record_line(line, year)
        if record is None:
            result.rejected += 1
            continue
        result.records.append(record)
    return result


def decode_raw_bytes(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")
