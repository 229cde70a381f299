import re

from cargo_gateway.clients.rest import RestClient
from cargo_gateway.errors import CarrierBusinessError, InvalidInput, ParseError, TransportError
from cargo_gateway.mappers.common import parse_float, text
from cargo_gateway.mappers.surat_mapper import CARRIER, STATUS_CODES, TRACKING_URL, SuratMapper
from cargo_gateway.pricing import extra_units, is_inter_city
from cargo_gateway.schemas import (
    CancellationResult,
    CostEstimate,
    CostRequest,
    ShipmentResult,
    TrackingNumberCheck,
)
from cargo_gateway.services.base import CarrierAdapter

TRACKING_FORMATS = (
    ("Standard", re.compile(r"^[0-9]{10,15}$")),
    ("Barcode", re.compile(r"^[0-9]{13}$")),
    ("Reference", re.compile(r"^[A-Z]{2,3}[0-9]{8,12}$")),
)

MOBILE_PHONE = re.compile(r"^(\+90|0)?5[0-9]{9}$")

SHIPMENT_REQUIRED = ("senderName", "senderAddress", "receiverName", "receiverAddress", "receiverPhone")


class SuratService(CarrierAdapter):
    """Sürat Kargo REST/JSON API. Basic auth by default, HMAC signing when an API key pair is configured."""

    carrier_id = CARRIER
    name = "Sürat Kargo"
    api_type = "REST/JSON"
    env_prefix = "SURAT_CARGO"
    default_url = "https://ws.suratkargo.com.tr"
    default_rate_limit = 120
    default_bulk_delay = 0.25
    max_bulk = 50

    status_codes = STATUS_CODES
    service_types = {
        "STANDARD": "Standart Kargo",
        "EXPRESS": "Sürat Express",
        "NEXT_DAY": "Ertesi Gün",
        "SAME_DAY": "Aynı Gün",
        "ECONOMY": "Ekonomik",
        "CARGO_PLUS": "Sürat Plus",
        "INTERNATIONAL": "Uluslararası",
        "COLLECTION": "Tahsilatlı",
    }
    delivery_days = {
        "STANDARD": "2-3 gün",
        "EXPRESS": "1-2 gün",
        "NEXT_DAY": "1 gün",
        "SAME_DAY": "Aynı gün",
        "ECONOMY": "3-5 gün",
        "CARGO_PLUS": "1-2 gün",
        "INTERNATIONAL": "5-10 gün",
        "COLLECTION": "2-3 gün",
    }
    default_delivery_days = "2-3 gün"
    supported_plate = 81

    features = {
        "track": True,
        "track_detail": True,
        "bulk_tracking": True,
        "price_calculation": True,
        "create_shipment": True,
        "cancel_shipment": True,
    }

    BASE_COST = 12
    PER_UNIT = 2
    INTER_CITY_FEE = 8
    VAT_RATE = 0.18
    SERVICE_MULTIPLIERS = {
        "STANDARD": 1.0,
        "EXPRESS": 1.5,
        "NEXT_DAY": 2.0,
        "SAME_DAY": 3.0,
        "ECONOMY": 0.8,
        "INTERNATIONAL": 4.0,
    }

    def build_client(self, session=None):
        settings = self.settings
        return RestClient(
            CARRIER,
            base_url=settings.base_url,
            auth_mode="hmac" if settings.api_key and settings.api_secret else "basic",
            username=settings.username,
            password=settings.password,
            api_key=settings.api_key,
            api_secret=settings.api_secret,
            timeout=settings.timeout,
            session=session,
        )

    def endpoints(self) -> dict:
        base = self.settings.base_url
        return {
            "track": f"{base}/api/v1/tracking/{{number}}",
            "detail": f"{base}/api/v1/tracking/{{number}}/detail",
            "pricing": f"{base}/api/v1/pricing/calculate",
            "create": f"{base}/api/v1/shipments/create",
            "cancel": f"{base}/api/v1/shipments/{{number}}/cancel",
            "status": f"{base}/api/v1/status",
        }

    def _call(self, method: str, path: str, params: dict | None = None) -> dict:
        self.limiter.check_and_increment()
        result = self.client.send(method, path, params)
        if not isinstance(result, dict):
            raise ParseError(f"Expected a JSON object from {path}", carrier=CARRIER)
        return result

    def check_format(self, cleaned: str) -> TrackingNumberCheck:
        cleaned = cleaned.upper()
        for format_name, pattern in TRACKING_FORMATS:
            if pattern.match(cleaned):
                return TrackingNumberCheck(
                    is_valid=True, message="Geçerli takip numarası", cleaned_number=cleaned, format=format_name,
                )
        return TrackingNumberCheck(
            is_valid=False, message="Geçersiz takip numarası formatı", cleaned_number=cleaned, format="Unknown",
        )

    # --- Tracking ---

    def fetch_tracking(self, tracking_number: str, **options):
        data = self.client.send("GET", f"/api/v1/tracking/{tracking_number}")
        return SuratMapper.parse_tracking_response(data, tracking_number)

    def fetch_detail(self, tracking_number: str, **options):
        data = self.client.send("GET", f"/api/v1/tracking/{tracking_number}/detail")
        return SuratMapper.parse_tracking_response(data, tracking_number)

    # --- Cost ---

    def formula_cost(self, request: CostRequest) -> CostEstimate:
        units = max(request.weight, request.desi)
        weight_cost = extra_units(units) * self.PER_UNIT
        multiplier = self.SERVICE_MULTIPLIERS.get(request.service_type, 1.0)
        city_extra = self.INTER_CITY_FEE if is_inter_city(request.from_city, request.to_city) else 0
        net = (self.BASE_COST + weight_cost) * multiplier + city_extra
        taxes = net * self.VAT_RATE
        return self.build_estimate(request, net + taxes, {
            "base_cost": self.BASE_COST,
            "weight_cost": weight_cost,
            "service_multiplier": multiplier,
            "city_extra": city_extra,
            "taxes": round(taxes, 2),
        })

    def estimate_cost(self, request: CostRequest) -> CostEstimate:
        if not self.settings.has_credentials:
            return self.formula_cost(request)

        payload = {
            "fromCity": request.from_city,
            "toCity": request.to_city,
            "weight": request.weight or 1,
            "desi": request.desi or 1,
            "serviceType": request.service_type or "STANDARD",
            "paymentType": request.payment_type or "SENDER",
            "collectionAmount": request.collection_amount,
        }
        try:
            result = self._call("POST", "/api/v1/pricing/calculate", payload)
        except (TransportError, ParseError) as e:
            self.logger.warning(f"⚠️ Pricing endpoint unavailable, using formula: {e}")
            return self.formula_cost(request)

        # parse_float drops NaN/inf; zero and negative prices are unusable too
        price = parse_float(result.get("price"), None)
        if price is None or price <= 0:
            return self.formula_cost(request)

        return self.build_estimate(
            request,
            price,
            {
                "base_cost": parse_float(result.get("baseCost"), None) or round(price * 0.8, 2),
                "weight_cost": parse_float(result.get("weightCost"), None) or round(price * 0.15, 2),
                "distance_cost": parse_float(result.get("distanceCost"), None) or round(price * 0.05, 2),
                "taxes": parse_float(result.get("taxes"), None) or round(price * self.VAT_RATE, 2),
            },
            source="carrier",
            currency=text(result.get("currency")) or "TRY",
        )

    # --- Shipments ---

    def validate_shipment_data(self, data: dict):
        self.require_fields(data, SHIPMENT_REQUIRED, CARRIER)
        phone = re.sub(r"\s", "", str(data["receiverPhone"]))
        if not MOBILE_PHONE.match(phone):
            raise InvalidInput("Invalid phone number format", carrier=CARRIER)

    def shipment_payload(self, data: dict) -> dict:
        return {
            "customerCode": self.settings.customer_code,
            "sender": {
                "name": data.get("senderName"),
                "address": data.get("senderAddress"),
                "city": data.get("senderCity"),
                "district": data.get("senderDistrict"),
                "phone": data.get("senderPhone"),
                "email": data.get("senderEmail"),
            },
            "receiver": {
                "name": data.get("receiverName"),
                "address": data.get("receiverAddress"),
                "city": data.get("receiverCity"),
                "district": data.get("receiverDistrict"),
                "phone": data.get("receiverPhone"),
                "email": data.get("receiverEmail"),
            },
            "shipment": {
                "description": data.get("description") or "Genel Kargo",
                "weight": data.get("weight") or 1,
                "desi": data.get("desi") or 1,
                "pieces": data.get("pieces") or 1,
                "serviceType": data.get("serviceType") or "STANDARD",
                "paymentType": data.get("paymentType") or "SENDER",
                "collectionAmount": data.get("collectionAmount") or 0,
                "insurance": bool(data.get("insurance")),
                "insuranceAmount": data.get("insuranceAmount") or 0,
            },
            "reference": {
                "customerRef": data.get("customerReference"),
                "description": data.get("referenceDescription"),
            },
        }

    def create_shipment(self, data: dict) -> ShipmentResult:
        self.validate_shipment_data(data)
        result = self._call("POST", "/api/v1/shipments/create", self.shipment_payload(data))
        if not result.get("success"):
            raise CarrierBusinessError(
                text(result.get("message")) or "Unknown error", carrier=CARRIER, code=text(result.get("code")),
            )
        number = text(result.get("trackingNumber"))
        self.logger.info(f"{self.name} shipment created: {number}")
        return ShipmentResult(
            carrier=CARRIER,
            message="Gönderi başarıyla oluşturuldu",
            tracking_number=number,
            reference_number=text(result.get("referenceNumber")),
            barcode=text(result.get("barcode")),
            cost=parse_float(result.get("cost"), None),
            estimated_delivery=text(result.get("estimatedDelivery")),
            tracking_url=TRACKING_URL.format(number=number) if number else None,
        )

    def cancel_shipment(self, shipment_id: str, reason: str = "Customer request") -> CancellationResult:
        number = self._require_valid(shipment_id)
        result = self._call("POST", f"/api/v1/shipments/{number}/cancel", {
            "reason": reason,
            "customerCode": self.settings.customer_code,
        })
        if result.get("success") is False:
            raise CarrierBusinessError(
                text(result.get("message")) or "Cancellation failed", carrier=CARRIER, code=text(result.get("code")),
            )
        return CancellationResult(
            carrier=CARRIER,
            message="Gönderi başarıyla iptal edildi",
            tracking_number=number,
            reason=reason,
            status=text(result.get("status")) or "CANCELLED",
        )

    # --- API status ---

    def get_api_status(self) -> dict:
        result = self._call("GET", "/api/v1/status")
        return {
            "service": "Sürat Kargo API",
            "status": text(result.get("status")) or "active",
            "customer": self.settings.customer_code,
            "supported_services": list(self.service_types),
        }

    def ping(self) -> dict:
        return self.get_api_status()
