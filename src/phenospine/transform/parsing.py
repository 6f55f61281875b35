"""
Typed parsing of raw cell values into phenopacket field values.

Every function either returns a value or raises :class:`ParsingError`
naming what was being parsed and the offending raw value. Nothing is
defaulted here.

Time elements:
    A value that parses as a timestamp becomes a timestamp time element.
    Otherwise an ISO8601 duration (``P12Y5M28D``) becomes an age. Anything
    else is a ``ParsingError("TimeElement", value)``.

Accepted date formats: ``%Y``, ``%Y-%m-%d``, ``%Y.%m.%d``, ``%m/%d/%Y``,
``%d-%m-%Y``, ``%d.%m.%Y`` plus ISO8601 datetimes.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timezone

import phenopackets.schema.v2 as pps2
from google.protobuf.timestamp_pb2 import Timestamp

from phenospine.core.errors import ParsingError

ISO8601_DURATION_PATTERN = re.compile(r"^P(\d+Y)?(\d+M)?(\d+D)?(T(\d+H)?(\d+M)?(\d+S)?)?$")

DATE_FORMATS = (
    "%Y",
    "%Y-%m-%d",
    "%Y.%m.%d",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
)


def parse_datetime(value: str) -> datetime | None:
    """Best-effort datetime parse; None if no accepted format fits."""
    text = value.strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_timestamp(value: str) -> Timestamp:
    parsed = parse_datetime(value)
    if parsed is None:
        raise ParsingError("Timestamp", value)
    timestamp = Timestamp()
    timestamp.FromDatetime(parsed)
    return timestamp


def is_iso8601_duration(value: str) -> bool:
    text = value.strip()
    if text in ("P", "PT") or text.endswith("T"):
        return False
    return ISO8601_DURATION_PATTERN.match(text) is not None


def parse_time_element(value: str) -> pps2.TimeElement:
    parsed = parse_datetime(value)
    if parsed is not None:
        timestamp = Timestamp()
        timestamp.FromDatetime(parsed)
        return pps2.TimeElement(timestamp=timestamp)
    if is_iso8601_duration(value):
        return pps2.TimeElement(age=pps2.Age(iso8601duration=value.strip()))
    raise ParsingError("TimeElement", value)


def parse_sex(value: str) -> int:
    """``MALE``/``FEMALE``/``OTHER_SEX``/``UNKNOWN_SEX`` (any case) to the enum value."""
    try:
        return pps2.Sex.Value(value.strip().upper())
    except ValueError:
        raise ParsingError("Sex", value) from None


def parse_vital_status(value: str) -> int:
    """``ALIVE``/``DECEASED``/``UNKNOWN_STATUS`` (any case) to the enum value."""
    try:
        return pps2.VitalStatus.Status.Value(value.strip().upper())
    except ValueError:
        raise ParsingError("VitalStatus", value) from None


def parse_survival_time_days(value: str) -> int:
    """Whole, non-negative number of days (``"12"`` or ``"12.0"``)."""
    try:
        number = float(value.strip())
    except ValueError:
        raise ParsingError("SurvivalTimeDays", value) from None
    if number < 0 or not number.is_integer():
        raise ParsingError("SurvivalTimeDays", value, reason="expected a whole number of days")
    return int(number)


def parse_bool(value: str) -> bool:
    text = value.strip().lower()
    if text in ("true", "1", "yes", "y", "t"):
        return True
    if text in ("false", "0", "no", "n", "f"):
        return False
    raise ParsingError("Boolean", value)


def parse_float(value: str) -> float:
    try:
        return float(value.strip())
    except ValueError:
        raise ParsingError("Float", value) from None


def iso8601_age(birth: date, on: date) -> str:
    """Calendar age at ``on`` of someone born on ``birth``, e.g. ``P12Y5M28D``.

    Zero components are left out; the day of birth itself is ``P0D``.
    """
    if on < birth:
        raise ParsingError("Age", on.isoformat(), reason=f"date precedes date of birth {birth.isoformat()}")
    months = (on.year - birth.year) * 12 + on.month - birth.month
    if on.day < birth.day:
        months -= 1
    anchor_year, anchor_month = divmod(birth.year * 12 + birth.month - 1 + months, 12)
    anchor_month += 1
    anchor = date(anchor_year, anchor_month, min(birth.day, calendar.monthrange(anchor_year, anchor_month)[1]))
    years, months = divmod(months, 12)
    days = (on - anchor).days
    parts = [f"{n}{unit}" for n, unit in ((years, "Y"), (months, "M"), (days, "D")) if n]
    return "P" + ("".join(parts) or "0D")


__all__ = [
    "ISO8601_DURATION_PATTERN",
    "DATE_FORMATS",
    "parse_datetime",
    "parse_timestamp",
    "is_iso8601_duration",
    "parse_time_element",
    "parse_sex",
    "parse_vital_status",
    "parse_survival_time_days",
    "parse_bool",
    "parse_float",
    "iso8601_age",
]
