"""Defensive field parsing shared by the carrier mappers. Nothing here raises."""
import math
from datetime import datetime

import dateutil.parser

from cargo_gateway.schemas import TrackingResult
from cargo_gateway.status import FlagPolicy, StatusInfo, derive_flags


def parse_float(value, default: float | None = 0.0) -> float | None:
    if value is None or isinstance(value, bool):
        return default
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            number = float(str(value).strip().replace(",", "."))
    except (ValueError, OverflowError):
        return default
    # NaN and infinity count as garbage
    return number if math.isfinite(number) else default


def parse_int(value, default: int = 1) -> int:
    number = parse_float(value, None)
    if number is None:
        return default
    return int(number)


def parse_datetime(value, dayfirst: bool = True) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    raw = str(value).strip()
    try:
        # ISO first; dayfirst would swap month/day on "2024-03-05"
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return dateutil.parser.parse(raw, dayfirst=dayfirst)
    except (ValueError, OverflowError):
        return None


def text(value) -> str | None:
    """Scalar text out of an XML/JSON value; lists collapse to their first item."""
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None or isinstance(value, dict):
        return None
    value = str(value).strip()
    return value or None


def as_list(value) -> list:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def build_tracking_result(carrier: str, tracking_number: str, info: StatusInfo, policy: FlagPolicy,
                          **fields) -> TrackingResult:
    """The one place where a status triple and its derived flags meet."""
    flags = derive_flags(info.status, policy)
    # missing timestamp -> model default (now)
    if fields.get("last_updated") is None:
        fields.pop("last_updated", None)
    return TrackingResult(
        tracking_number=tracking_number,
        carrier=carrier,
        status=info.status,
        status_description=info.description,
        status_category=info.category,
        is_delivered=flags.is_delivered,
        is_in_transit=flags.is_in_transit,
        has_issue=flags.has_issue,
        **fields,
    )
