"""
Canonical tracking status model.

Every carrier code table maps onto TrackingStatus; the category of a status is
fixed here once, and the boolean flags on a TrackingResult come from
derive_flags() with the carrier's FlagPolicy.

    CREATED -> COLLECTED -> IN_TRANSIT -> [ARRIVED_AT_FACILITY|AT_BRANCH] -> OUT_FOR_DELIVERY -> DELIVERED
                                                                          -> DELIVERY_FAILED -> OUT_FOR_DELIVERY | RETURNED_TO_SENDER
    any non-terminal -> CANCELLED | LOST | DAMAGED
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple


class TrackingStatus(str, Enum):
    CREATED = "CREATED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    NOT_PROCESSED = "NOT_PROCESSED"
    PROCESSING = "PROCESSING"
    AWAITING_COLLECTION = "AWAITING_COLLECTION"
    COLLECTED = "COLLECTED"
    SORTED = "SORTED"
    IN_TRANSIT = "IN_TRANSIT"
    ARRIVED = "ARRIVED"
    ARRIVED_AT_HUB = "ARRIVED_AT_HUB"
    ARRIVED_AT_FACILITY = "ARRIVED_AT_FACILITY"
    AT_BRANCH = "AT_BRANCH"
    AT_WAREHOUSE = "AT_WAREHOUSE"
    INTERNATIONAL_DEPARTURE = "INTERNATIONAL_DEPARTURE"
    INTERNATIONAL_ARRIVAL = "INTERNATIONAL_ARRIVAL"
    CUSTOMS_CLEARANCE = "CUSTOMS_CLEARANCE"
    AWAITING_CLEARANCE = "AWAITING_CLEARANCE"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    PARTIAL_DELIVERY = "PARTIAL_DELIVERY"
    DELIVERY_ATTEMPTED = "DELIVERY_ATTEMPTED"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    ADDRESS_INCORRECT = "ADDRESS_INCORRECT"
    RECIPIENT_NOT_FOUND = "RECIPIENT_NOT_FOUND"
    WAITING = "WAITING"
    WAITING_RECIPIENT = "WAITING_RECIPIENT"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    ON_HOLD = "ON_HOLD"
    HELD_AT_LOCATION = "HELD_AT_LOCATION"
    REDIRECTED = "REDIRECTED"
    DELAYED = "DELAYED"
    EXCEPTION = "EXCEPTION"
    RETURNED = "RETURNED"
    RETURNED_TO_SENDER = "RETURNED_TO_SENDER"
    CANCELLED = "CANCELLED"
    DAMAGED = "DAMAGED"
    LOST = "LOST"
    UNKNOWN = "UNKNOWN"


class StatusCategory(str, Enum):
    CREATED = "created"
    PROCESSING = "processing"
    AWAITING = "awaiting"
    PICKUP = "pickup"
    TRANSIT = "transit"
    INTERNATIONAL = "international"
    CUSTOMS = "customs"
    WAREHOUSE = "warehouse"
    DELIVERY = "delivery"
    DELIVERED = "delivered"
    PARTIAL = "partial"
    ATTEMPTED = "attempted"
    FAILED = "failed"
    WAITING = "waiting"
    PAYMENT = "payment"
    HOLD = "hold"
    REDIRECTED = "redirected"
    DELAYED = "delayed"
    EXCEPTION = "exception"
    RETURNED = "returned"
    CANCELLED = "cancelled"
    DAMAGED = "damaged"
    LOST = "lost"
    UNKNOWN = "unknown"


S = TrackingStatus
C = StatusCategory

STATUS_CATEGORIES: Mapping[TrackingStatus, StatusCategory] = MappingProxyType({
    S.CREATED: C.CREATED,
    S.ACKNOWLEDGED: C.PROCESSING,
    S.NOT_PROCESSED: C.PROCESSING,
    S.PROCESSING: C.PROCESSING,
    S.AWAITING_COLLECTION: C.AWAITING,
    S.COLLECTED: C.PICKUP,
    S.SORTED: C.TRANSIT,
    S.IN_TRANSIT: C.TRANSIT,
    S.ARRIVED: C.TRANSIT,
    S.ARRIVED_AT_HUB: C.TRANSIT,
    S.ARRIVED_AT_FACILITY: C.TRANSIT,
    S.AT_BRANCH: C.TRANSIT,
    S.AT_WAREHOUSE: C.WAREHOUSE,
    S.INTERNATIONAL_DEPARTURE: C.INTERNATIONAL,
    S.INTERNATIONAL_ARRIVAL: C.INTERNATIONAL,
    S.CUSTOMS_CLEARANCE: C.CUSTOMS,
    S.AWAITING_CLEARANCE: C.CUSTOMS,
    S.OUT_FOR_DELIVERY: C.DELIVERY,
    S.DELIVERED: C.DELIVERED,
    S.PARTIAL_DELIVERY: C.PARTIAL,
    S.DELIVERY_ATTEMPTED: C.ATTEMPTED,
    S.DELIVERY_FAILED: C.FAILED,
    S.ADDRESS_INCORRECT: C.FAILED,
    S.RECIPIENT_NOT_FOUND: C.FAILED,
    S.WAITING: C.WAITING,
    S.WAITING_RECIPIENT: C.WAITING,
    S.PAYMENT_REQUIRED: C.PAYMENT,
    S.ON_HOLD: C.HOLD,
    S.HELD_AT_LOCATION: C.HOLD,
    S.REDIRECTED: C.REDIRECTED,
    S.DELAYED: C.DELAYED,
    S.EXCEPTION: C.EXCEPTION,
    S.RETURNED: C.RETURNED,
    S.RETURNED_TO_SENDER: C.RETURNED,
    S.CANCELLED: C.CANCELLED,
    S.DAMAGED: C.DAMAGED,
    S.LOST: C.LOST,
    S.UNKNOWN: C.UNKNOWN,
})

TERMINAL_STATUSES = frozenset({
    S.DELIVERED, S.RETURNED, S.RETURNED_TO_SENDER, S.CANCELLED, S.LOST, S.DAMAGED,
})

# Statuses that are always an issue, whatever the carrier says.
BASE_ISSUES = frozenset({S.LOST, S.DAMAGED, S.CANCELLED})


class StatusInfo(NamedTuple):
    status: TrackingStatus
    description: str
    category: StatusCategory


class TrackingFlags(NamedTuple):
    is_delivered: bool
    is_in_transit: bool
    has_issue: bool


@dataclass(frozen=True)
class FlagPolicy:
    """Per-carrier allow-lists for the in-transit and issue flags."""
    in_transit: frozenset = field(default_factory=frozenset)
    issues: frozenset = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "in_transit", frozenset(self.in_transit))
        object.__setattr__(self, "issues", frozenset(self.issues) | BASE_ISSUES)
        if S.DELIVERED in self.issues:
            raise ValueError("DELIVERED cannot be flagged as an issue")
        if S.DELIVERED in self.in_transit:
            raise ValueError("DELIVERED cannot be flagged as in transit")


def status_table(entries: dict) -> Mapping[str, StatusInfo]:
    """Freezes a {code: (status, description)} dict into an immutable code table."""
    table = {}
    for code, (status, description) in entries.items():
        table[code] = StatusInfo(status, description, STATUS_CATEGORIES[status])
    return MappingProxyType(table)


def resolve_status(table: Mapping[str, StatusInfo], code, raw_description: str | None = None,
                   fallback: TrackingStatus = S.UNKNOWN, fallback_text: str = "Bilinmeyen durum") -> StatusInfo:
    """Looks a carrier code up; a miss never raises, it falls back to UNKNOWN/PROCESSING."""
    key = str(code).strip() if code is not None else ""
    info = table.get(key)
    if info is not None:
        return info
    return StatusInfo(fallback, (raw_description or "").strip() or key or fallback_text,
                      STATUS_CATEGORIES[fallback])


def derive_flags(status: TrackingStatus, policy: FlagPolicy) -> TrackingFlags:
    return TrackingFlags(
        is_delivered=status == S.DELIVERED,
        is_in_transit=status in policy.in_transit,
        has_issue=status in policy.issues,
    )


def is_terminal(status: TrackingStatus) -> bool:
    return status in TERMINAL_STATUSES
