import re
import time
from abc import ABC, abstractmethod
from typing import Mapping, Optional

from pydantic import ValidationError

from cargo_gateway.cities import cities_up_to
from cargo_gateway.config import CarrierSettings
from cargo_gateway.errors import (
    CarrierError,
    InvalidInput,
    InvalidTrackingNumber,
    NotFound,
    ParseError,
    UnsupportedOperation,
)
from cargo_gateway.logger import get_logger
from cargo_gateway.pricing import ESTIMATE_NOTE, money
from cargo_gateway.rate_limiter import RateLimiter
from cargo_gateway.schemas import (
    CancellationResult,
    ConnectionTestResult,
    CostEstimate,
    CostRequest,
    ServiceInfo,
    ShipmentResult,
    TrackingNumberCheck,
    TrackingResult,
)
from cargo_gateway.status import StatusCategory

ALNUM = re.compile(r"^[A-Za-z0-9]+$")


class CarrierAdapter(ABC):
    """
    One adapter per carrier. Owns its settings, its rate limiter and its wire
    client; the shared tracking flow (validate -> limit -> fetch -> normalize)
    lives here, the carrier specifics in the subclasses.
    """

    carrier_id: str = ""
    name: str = ""
    version: str = "1.0.0"
    api_type: str = ""
    env_prefix: str = ""
    default_url: str = ""
    default_rate_limit: int = 60
    default_bulk_delay: float = 0.0
    max_bulk: int = 50

    status_codes: Mapping = {}
    service_types: dict[str, str] = {}
    delivery_days: dict[str, str] = {}
    default_delivery_days: str = "2-5"
    cod_services = frozenset({"COLLECTION"})
    supported_plate: int = 81

    min_length: int = 8
    max_length: int = 30

    features: dict[str, bool] = {}

    def __init__(self, settings: Optional[CarrierSettings] = None, limiter: Optional[RateLimiter] = None,
                 client=None, session=None, sleep=time.sleep):
        self.logger = get_logger(self.carrier_id.lower())
        self.settings = settings or CarrierSettings.from_env(
            self.env_prefix,
            base_url=self.default_url,
            max_requests=self.default_rate_limit,
            bulk_delay=self.default_bulk_delay,
        )
        self.limiter = limiter or RateLimiter(
            self.settings.max_requests, self.settings.window_seconds, name=self.carrier_id
        )
        self.client = client if client is not None else self.build_client(session)
        self._sleep = sleep

    # --- Hooks ---

    @abstractmethod
    def build_client(self, session=None):
        """Wire client for this carrier, built from self.settings."""

    @abstractmethod
    def fetch_tracking(self, tracking_number: str, **options) -> Optional[TrackingResult]:
        """One tracking call with an already validated number."""

    def fetch_detail(self, tracking_number: str, **options) -> Optional[TrackingResult]:
        return self.fetch_tracking(tracking_number, **options)

    @abstractmethod
    def estimate_cost(self, request: CostRequest) -> CostEstimate:
        ...

    @abstractmethod
    def ping(self) -> dict:
        """Cheapest real call proving the carrier is reachable; returns details."""

    def endpoints(self) -> dict:
        return {"base": self.settings.base_url}

    # --- Tracking numbers ---

    def check_format(self, cleaned: str) -> TrackingNumberCheck:
        if not (self.min_length <= len(cleaned) <= self.max_length):
            return TrackingNumberCheck(
                is_valid=False,
                message=f"Tracking number length should be between {self.min_length}-{self.max_length} characters",
                cleaned_number=cleaned,
            )
        if not ALNUM.match(cleaned):
            return TrackingNumberCheck(
                is_valid=False,
                message="Tracking number should contain only letters and numbers",
                cleaned_number=cleaned,
            )
        return TrackingNumberCheck(
            is_valid=True,
            message="Valid tracking number",
            cleaned_number=cleaned,
            format="numeric" if cleaned.isdigit() else "alphanumeric",
        )

    def validate_tracking_number(self, tracking_number) -> TrackingNumberCheck:
        if not tracking_number or not isinstance(tracking_number, str):
            return TrackingNumberCheck(is_valid=False, message="Invalid tracking number format")
        cleaned = re.sub(r"\s+", "", tracking_number)
        if not cleaned:
            return TrackingNumberCheck(is_valid=False, message="Invalid tracking number format")
        return self.check_format(cleaned)

    def _require_valid(self, tracking_number) -> str:
        check = self.validate_tracking_number(tracking_number)
        if not check.is_valid:
            raise InvalidTrackingNumber(check.message, carrier=self.carrier_id)
        return check.cleaned_number

    # --- Tracking ---

    def _tracked(self, fetch, tracking_number, **options) -> Optional[TrackingResult]:
        number = self._require_valid(tracking_number)
        self.limiter.check_and_increment()
        self.logger.info(f"{self.name} tracking request: {number}")
        try:
            return fetch(number, **options)
        except NotFound:
            return None
        except ParseError as e:
            self.logger.error(f"❌ {self.name} unreadable response for {number}: {e.message}")
            raise
        except (ValueError, TypeError, ArithmeticError) as e:
            # pydantic's ValidationError is a ValueError too
            self.logger.error(f"❌ {self.name} unreadable response for {number}: {e}")
            raise ParseError(f"Could not normalize carrier response: {e}", carrier=self.carrier_id) from e

    def track(self, tracking_number: str, **options) -> Optional[TrackingResult]:
        """Current status of one shipment; None when the carrier has no record of it."""
        return self._tracked(self.fetch_tracking, tracking_number, **options)

    def track_detail(self, tracking_number: str, **options) -> Optional[TrackingResult]:
        """Like track(), with the movement history filled in where the carrier offers it."""
        return self._tracked(self.fetch_detail, tracking_number, **options)

    @property
    def bulk_delay(self) -> float:
        return self.settings.bulk_delay

    def track_multiple(self, tracking_numbers, **options) -> list[Optional[TrackingResult]]:
        """
        Sequential bulk tracking. The output has one slot per input, in input
        order; a slot is None when that number failed for any carrier reason.
        """
        if not tracking_numbers:
            raise InvalidInput("Tracking numbers array is required", carrier=self.carrier_id)
        if len(tracking_numbers) > self.max_bulk:
            raise InvalidInput(f"Maximum {self.max_bulk} tracking numbers allowed", carrier=self.carrier_id)

        results = []
        for index, number in enumerate(tracking_numbers):
            if index and self.bulk_delay > 0:
                self._sleep(self.bulk_delay)
            try:
                results.append(self.track(number, **options))
            except CarrierError as e:
                self.logger.warning(f"⚠️ Failed to track {number}: {e}")
                results.append(None)
        return results

    def filter_by_status_category(self, results, category) -> list[TrackingResult]:
        try:
            wanted = StatusCategory(category)
        except ValueError as e:
            raise InvalidInput(f"Unknown status category: {category}", carrier=self.carrier_id) from e
        return [result for result in results if result is not None and result.status_category == wanted]

    # --- Cost ---

    def calculate_cost(self, params) -> CostEstimate:
        if isinstance(params, CostRequest):
            request = params
        else:
            try:
                request = CostRequest(**(params or {}))
            except ValidationError as e:
                raise InvalidInput(f"Invalid cost parameters: {e.errors()[0]['msg']}", carrier=self.carrier_id) from e
        return self.estimate_cost(request)

    def build_estimate(self, request: CostRequest, total, breakdown: dict, source: str = "formula",
                       currency: str = "TRY") -> CostEstimate:
        return CostEstimate(
            carrier=self.carrier_id,
            estimated_cost=money(total),
            currency=currency,
            service_type=request.service_type or "STANDARD",
            breakdown=breakdown,
            weight=request.weight,
            desi=request.desi,
            from_city=request.from_city,
            to_city=request.to_city,
            source=source,
            note=ESTIMATE_NOTE.format(carrier=self.name),
            estimated_delivery_days=self.estimated_delivery_days(request.service_type),
        )

    # --- Shipments ---

    def create_shipment(self, data: dict) -> ShipmentResult:
        raise UnsupportedOperation(f"{self.name} offers no shipment creation API", carrier=self.carrier_id)

    def cancel_shipment(self, shipment_id: str, reason: str = "Customer request") -> CancellationResult:
        raise UnsupportedOperation(f"{self.name} offers no cancellation API", carrier=self.carrier_id)

    @staticmethod
    def require_fields(data: dict, fields, carrier: str):
        if not isinstance(data, dict):
            raise InvalidInput("Shipment data must be an object", carrier=carrier)
        missing = [name for name in fields if not data.get(name)]
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}", carrier=carrier)

    # --- Introspection ---

    def test_connection(self) -> ConnectionTestResult:
        try:
            details = self.ping()
        except CarrierError as e:
            self.logger.error(f"❌ {self.name} connection test failed: {e.message}")
            return ConnectionTestResult(carrier=self.carrier_id, success=False, message=e.message)
        self.logger.info(f"{self.name} connection test completed")
        return ConnectionTestResult(
            carrier=self.carrier_id,
            success=True,
            message="Connection successful",
            details={"status_codes": len(self.status_codes), **details},
        )

    def get_status(self) -> dict:
        """Configuration and limiter snapshot. No network call."""
        return {
            "service": self.name,
            "carrier": self.carrier_id,
            "version": self.version,
            "environment": self.settings.environment,
            "api_type": self.api_type,
            "endpoints": self.endpoints(),
            "rate_limiter": self.limiter.snapshot().model_dump(mode="json"),
            "features": dict(self.features),
            "status_codes": len(self.status_codes),
            "service_types": len(self.service_types),
            "supported_cities": len(self.list_cities()),
            "credentials": {
                "configured": self.settings.has_credentials,
                "username": self.settings.masked_username(),
            },
        }

    def estimated_delivery_days(self, service_type: str) -> str:
        return self.delivery_days.get((service_type or "").upper(), self.default_delivery_days)

    def get_service_info(self, service_type: str) -> ServiceInfo:
        code = (service_type or "STANDARD").upper()
        label = self.service_types.get(code)
        return ServiceInfo(
            code=code,
            name=label or "Bilinmeyen Servis",
            description=f"{self.name} {label or code} servisi",
            estimated_days=self.estimated_delivery_days(code),
            cod=code in self.cod_services,
        )

    def list_services(self) -> list[ServiceInfo]:
        return [self.get_service_info(code) for code in self.service_types]

    def list_cities(self) -> dict[str, str]:
        return cities_up_to(self.supported_plate)
