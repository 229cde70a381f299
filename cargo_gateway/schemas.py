# schemas.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from cargo_gateway.status import (
    BASE_ISSUES,
    STATUS_CATEGORIES,
    StatusCategory,
    TrackingStatus,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Location(BaseModel):
    city: Optional[str] = None
    branch: Optional[str] = None
    facility: Optional[str] = None
    country: Optional[str] = None


class Party(BaseModel):
    name: Optional[str] = None
    company: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None


class ShipmentInfo(BaseModel):
    weight: Optional[float] = None
    desi: Optional[float] = None
    pieces: int = 1
    service_type: str = "STANDARD"
    dimensions: Optional[str] = None
    shipment_date: Optional[str] = None
    estimated_delivery: Optional[str] = None
    actual_delivery: Optional[str] = None


class Pricing(BaseModel):
    total_cost: float = 0.0
    cod_amount: float = 0.0
    currency: str = "TRY"


class ShipmentMovement(BaseModel):
    """One entry of the carrier's movement history. Read-only."""
    date: Optional[str] = None
    time: Optional[str] = None
    timestamp: Optional[datetime] = None
    location: Optional[str] = None
    description: Optional[str] = None
    status_code: Optional[str] = None
    facility: Optional[str] = None
    operation_code: Optional[str] = None


class TrackingResult(BaseModel):
    tracking_number: str
    carrier: str
    status: TrackingStatus
    status_code: Optional[str] = None
    status_description: str
    status_category: StatusCategory
    current_location: Location = Field(default_factory=Location)
    sender: Party = Field(default_factory=Party)
    recipient: Party = Field(default_factory=Party)
    shipment_info: ShipmentInfo = Field(default_factory=ShipmentInfo)
    pricing: Pricing = Field(default_factory=Pricing)
    reference_number: Optional[str] = None
    tracking_url: Optional[str] = None
    last_updated: datetime = Field(default_factory=utc_now)
    is_delivered: bool = False
    is_in_transit: bool = False
    has_issue: bool = False
    movements: list[ShipmentMovement] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_status_consistency(self):
        if self.status_category != STATUS_CATEGORIES[self.status]:
            raise ValueError(
                f"status {self.status.value} belongs to category "
                f"{STATUS_CATEGORIES[self.status].value}, not {self.status_category.value}"
            )
        if self.is_delivered != (self.status == TrackingStatus.DELIVERED):
            raise ValueError("is_delivered must be true exactly when status is DELIVERED")
        if self.is_delivered and self.has_issue:
            raise ValueError("a delivered shipment cannot carry an issue flag")
        if self.status in BASE_ISSUES and not self.has_issue:
            raise ValueError(f"{self.status.value} must be flagged as an issue")
        return self


class CostEstimate(BaseModel):
    """Always an approximation, never an authoritative carrier price."""
    carrier: str
    estimated_cost: Decimal = Field(..., ge=0)
    currency: str = "TRY"
    service_type: str = "STANDARD"
    breakdown: dict[str, Any] = Field(default_factory=dict)
    weight: float = 1
    desi: Optional[float] = None
    from_city: str = ""
    to_city: str = ""
    is_estimate: bool = True
    source: str = "formula"
    note: Optional[str] = None
    estimated_delivery_days: Optional[str] = None
    valid_until: datetime = Field(default_factory=lambda: utc_now() + timedelta(hours=24))


class CostRequest(BaseModel):
    from_city: str = ""
    to_city: str = ""
    weight: float = Field(1, ge=0, allow_inf_nan=False)
    desi: float = Field(1, ge=0, allow_inf_nan=False)
    service_type: str = "STANDARD"
    payment_type: str = "SENDER"
    collection_amount: float = Field(0, ge=0, allow_inf_nan=False)
    is_international: bool = False

    @field_validator("from_city", "to_city", "service_type", mode="before")
    @classmethod
    def normalize_upper(cls, v):
        return (v or "").strip().upper()


class RateLimiterState(BaseModel):
    request_count: int
    max_requests: int
    window_seconds: float
    window_start: float
    reset_at: datetime


class TrackingNumberCheck(BaseModel):
    is_valid: bool
    message: str
    cleaned_number: Optional[str] = None
    format: Optional[str] = None


class ShipmentResult(BaseModel):
    carrier: str
    success: bool = True
    message: str
    tracking_number: Optional[str] = None
    reference_number: Optional[str] = None
    barcode: Optional[str] = None
    cargo_key: Optional[str] = None
    invoice_key: Optional[str] = None
    job_id: Optional[str] = None
    cost: Optional[float] = None
    estimated_delivery: Optional[str] = None
    tracking_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class CancellationResult(BaseModel):
    carrier: str
    success: bool = True
    message: str
    tracking_number: str
    status: str = "CANCELLED"
    reason: Optional[str] = None
    job_id: Optional[str] = None
    operation_code: Optional[str] = None
    operation_message: Optional[str] = None
    cancelled_at: datetime = Field(default_factory=utc_now)


class ConnectionTestResult(BaseModel):
    carrier: str
    success: bool
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ServiceInfo(BaseModel):
    code: str
    name: str
    description: str
    estimated_days: str
    tracking: bool = True
    insurance: bool = True
    cod: bool = False


class CargoSummary(BaseModel):
    tracking_number: Optional[str] = None
    reference_number: Optional[str] = None
    status: Optional[str] = None
    status_description: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_city: Optional[str] = None
    shipment_date: Optional[str] = None
    delivery_date: Optional[str] = None
    weight: float = 0.0
    pieces: int = 1
    total_cost: float = 0.0


class Branch(BaseModel):
    branch_code: Optional[str] = None
    branch_name: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    working_hours: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


# --- Request bodies for the HTTP layer ---

class BulkTrackRequest(BaseModel):
    tracking_numbers: list[str]


class CancelRequest(BaseModel):
    id: str
    reason: str = "Customer request"


class BulkTrackResponse(BaseModel):
    carrier: str
    total: int
    found: int
    results: list[Optional[TrackingResult]]
