"""
Parsers for the BestChange bundle members.

Every member is CP1251 text, one record per line, fields separated by ";".
The vendor format is loosely specified: rows that do not fit are skipped
and counted, never fatal. Only structural problems (missing member,
corrupt archive) abort a run, and those are raised elsewhere.

Member layouts:
    bm_cy.dat     id;<unused>;name;...
    bm_exch.dat   id;name;...
    bm_rates.dat  from_id;to_id;exchanger_id;rate_give;rate_receive;reserve;...
    bm_info.dat   key = value
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import pandas as pd

from config import BUNDLE_ENCODING, FIELD_DELIMITER
from data.models import Currency, Exchanger, MemberStats, Metadata, Rate, RateTable
from utils.logging import get_logger

logger = get_logger(__name__)

CURRENCY_MIN_FIELDS = 3
EXCHANGER_MIN_FIELDS = 2
RATE_MIN_FIELDS = 5

# Russian month names as they appear in last_update (genitive case)
MONTH_TRANSLATIONS = {
    "января": "January",
    "февраля": "February",
    "марта": "March",
    "апреля": "April",
    "мая": "May",
    "июня": "June",
    "июля": "July",
    "августа": "August",
    "сентября": "September",
    "октября": "October",
    "ноября": "November",
    "декабря": "December",
}

_MONTH_PATTERNS = [
    (re.compile(re.escape(ru), re.IGNORECASE), en) for ru, en in MONTH_TRANSLATIONS.items()
]


class ParseError(Exception):
    """Base exception for bundle parsing errors."""

    pass


class MalformedRowError(ParseError):
    """Raised for a single row that does not match its member's layout."""

    pass


class UnrecognizedDateError(ParseError):
    """Raised when last_update cannot be turned into a datetime."""

    pass


@dataclass
class ParsedMember:
    """Records parsed from one member, with row counts."""

    records: Any
    parsed: int = 0
    skipped: int = 0

    @property
    def stats(self) -> MemberStats:
        return MemberStats(parsed=self.parsed, skipped=self.skipped)


@dataclass
class _RowCounter:
    member: str
    parsed: int = 0
    skipped: int = 0

    def skip(self, line_no: int, error: MalformedRowError) -> None:
        self.skipped += 1
        logger.debug("%s line %d skipped: %s", self.member, line_no, error)

    def report(self) -> None:
        if self.skipped:
            logger.info("%s: %d rows parsed, %d skipped", self.member, self.parsed, self.skipped)


# =============================================================================
# Shared helpers
# =============================================================================


def decode_lines(raw: bytes) -> list[tuple[int, str]]:
    """
    Decode a member and split it into non-blank lines.

    Args:
        raw: Member bytes in the bundle encoding

    Returns:
        List of (1-based line number, line text) tuples
    """
    text = raw.decode(BUNDLE_ENCODING, errors="replace")
    return [(i, line) for i, line in enumerate(text.splitlines(), start=1) if line.strip()]


def _split(line: str, min_fields: int) -> list[str]:
    fields = line.split(FIELD_DELIMITER)
    if len(fields) < min_fields:
        raise MalformedRowError(f"expected at least {min_fields} fields, got {len(fields)}")
    return fields


def _to_int(value: str, name: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise MalformedRowError(f"{name} is not an integer: {value!r}") from None


def _to_positive_float(value: str, name: str) -> float:
    try:
        number = float(value.strip())
    except ValueError:
        raise MalformedRowError(f"{name} is not a number: {value!r}") from None
    if not math.isfinite(number) or number <= 0:
        raise MalformedRowError(f"{name} must be a positive number, got {value!r}")
    return number


# =============================================================================
# Member parsers
# =============================================================================


def parse_currencies(raw: bytes) -> ParsedMember:
    """
    Parse bm_cy.dat.

    Field 0 is the id, field 2 the display name. The last row for a
    duplicated id wins.

    Returns:
        ParsedMember with a dict of Currency by id
    """
    counter = _RowCounter("currencies")
    currencies: dict[int, Currency] = {}

    for line_no, line in decode_lines(raw):
        try:
            fields = _split(line, CURRENCY_MIN_FIELDS)
            currency = Currency(id=_to_int(fields[0], "id"), name=fields[2].strip())
        except MalformedRowError as e:
            counter.skip(line_no, e)
            continue
        currencies[currency.id] = currency
        counter.parsed += 1

    counter.report()
    return ParsedMember(currencies, parsed=counter.parsed, skipped=counter.skipped)


def parse_exchangers(raw: bytes) -> ParsedMember:
    """
    Parse bm_exch.dat.

    Field 0 is the id, field 1 the name.

    Returns:
        ParsedMember with a dict of Exchanger by id, in ascending id order
    """
    counter = _RowCounter("exchangers")
    exchangers: dict[int, Exchanger] = {}

    for line_no, line in decode_lines(raw):
        try:
            fields = _split(line, EXCHANGER_MIN_FIELDS)
            exchanger = Exchanger(id=_to_int(fields[0], "id"), name=fields[1].strip())
        except MalformedRowError as e:
            counter.skip(line_no, e)
            continue
        exchangers[exchanger.id] = exchanger
        counter.parsed += 1

    counter.report()
    ordered = {key: exchangers[key] for key in sorted(exchangers)}
    return ParsedMember(ordered, parsed=counter.parsed, skipped=counter.skipped)


def _parse_rate_row(line: str) -> Rate:
    fields = _split(line, RATE_MIN_FIELDS)

    rate_give = _to_positive_float(fields[3], "rate_give")
    rate_receive = _to_positive_float(fields[4], "rate_receive")

    return Rate(
        from_currency_id=_to_int(fields[0], "from_currency_id"),
        to_currency_id=_to_int(fields[1], "to_currency_id"),
        exchanger_id=_to_int(fields[2], "exchanger_id"),
        rate_give=rate_give,
        rate_receive=rate_receive,
        rate=rate_give / rate_receive,
        reserve=fields[5] if len(fields) > 5 else "",
    )


def parse_rates(raw: bytes) -> ParsedMember:
    """
    Parse bm_rates.dat.

    Rows with fewer than five fields, or with a give/receive amount that is
    not a positive number, are skipped. A later row for the same
    (from, to, exchanger) triple replaces the earlier one.

    Returns:
        ParsedMember with the nested from -> to -> exchanger rate table
    """
    counter = _RowCounter("rates")
    rates: RateTable = {}

    for line_no, line in decode_lines(raw):
        try:
            rate = _parse_rate_row(line)
        except MalformedRowError as e:
            counter.skip(line_no, e)
            continue
        by_to = rates.setdefault(rate.from_currency_id, {})
        by_to.setdefault(rate.to_currency_id, {})[rate.exchanger_id] = rate
        counter.parsed += 1

    counter.report()
    return ParsedMember(rates, parsed=counter.parsed, skipped=counter.skipped)


# =============================================================================
# Metadata
# =============================================================================


def translate_months(text: str) -> str:
    """Replace Russian month names with their English equivalents."""
    for pattern, english in _MONTH_PATTERNS:
        text = pattern.sub(english, text)
    return text


def parse_last_update(text: str) -> datetime:
    """
    Parse the localized last_update value.

    Example:
        "18 октября 2026, 12:34:56" -> datetime(2026, 10, 18, 12, 34, 56)

    Raises:
        UnrecognizedDateError: Unknown month token or unparseable text
    """
    translated = translate_months(text.strip())
    try:
        timestamp = pd.Timestamp(translated)
    except (ValueError, OverflowError) as e:
        raise UnrecognizedDateError(f"Cannot parse last_update {text!r}: {e}") from e
    if pd.isna(timestamp):
        raise UnrecognizedDateError(f"Cannot parse last_update {text!r}")
    return timestamp.to_pydatetime()


def parse_metadata(raw: bytes) -> Metadata:
    """
    Parse bm_info.dat.

    current_version is kept verbatim and last_update is parsed into a
    datetime. A last_update that cannot be parsed is logged and left unset.
    Other keys are kept as strings in `extra`.
    """
    metadata = Metadata()

    for _, line in decode_lines(raw):
        parts = line.split("=", 1)
        if len(parts) < 2:
            continue
        key, value = parts[0].strip(), parts[1].strip()

        if key == "current_version":
            metadata.version = value
        elif key == "last_update":
            try:
                metadata.last_update = parse_last_update(value)
            except UnrecognizedDateError as e:
                logger.warning("%s", e)
        else:
            metadata.extra[key] = value

    return metadata
