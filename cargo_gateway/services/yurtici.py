import secrets
import string

from cargo_gateway.clients.soap import SoapClient
from cargo_gateway.errors import AuthError, InvalidInput
from cargo_gateway.mappers.yurtici_mapper import CARRIER, STATUS_CODES, YurticiMapper
from cargo_gateway.pricing import MAJOR_CITIES, extra_units, is_inter_city, is_major_route
from cargo_gateway.schemas import CancellationResult, CostEstimate, CostRequest, ShipmentResult
from cargo_gateway.services.base import CarrierAdapter

SERVICE_PATH = "/KOPSWebServices/ShippingOrderDispatcherServices"
NAMESPACE = "http://yurticikargo.com.tr/ShippingOrderDispatcherServices"

KEY_ALPHABET = string.ascii_uppercase + string.digits

CARGO_KEY = 0
INVOICE_KEY = 1

SHIPMENT_REQUIRED = ("receiverCustName", "receiverAddress", "receiverPhone1")

SHIPMENT_OPTIONAL = (
    "cityName", "townName", "receiverPhone2", "receiverPhone3", "emailAddress",
    "taxOfficeId", "taxNumber", "taxOfficeName", "waybillNo",
    "specialField1", "specialField2", "specialField3", "description",
    "orgGeoCode", "privilegeOrder", "custProdId", "orgReceiverCustId",
)


def generate_key(length: int = 15) -> str:
    """Random cargo/invoice key: uppercase letters and digits."""
    return "".join(secrets.choice(KEY_ALPHABET) for _ in range(length))


class YurticiService(CarrierAdapter):
    """Yurtiçi Kargo ShippingOrderDispatcherServices (SOAP 1.1, described by its WSDL)."""

    carrier_id = CARRIER
    name = "Yurtiçi Kargo"
    api_type = "SOAP/XML"
    env_prefix = "YURTICI_CARGO"
    default_url = "http://webservices.yurticikargo.com:8080"
    default_rate_limit = 100
    default_bulk_delay = 1.0
    max_bulk = 50
    max_length = 25

    status_codes = STATUS_CODES
    service_types = {
        "STANDARD": "Yurtiçi Standart",
        "EXPRESS": "Yurtiçi Express",
        "NEXT_DAY": "Ertesi Gün",
        "SAME_DAY": "Aynı Gün",
        "CARGO_PLUS": "Yurtiçi Plus",
        "INTERNATIONAL": "Uluslararası",
        "COLLECTION": "Tahsilatlı",
    }
    delivery_days = {
        "SAME_DAY": "0 (Aynı Gün)",
        "NEXT_DAY": "1",
        "EXPRESS": "1-2",
        "CARGO_PLUS": "1-3",
        "STANDARD": "2-5",
        "COLLECTION": "2-5",
        "INTERNATIONAL": "5-15",
    }
    supported_plate = 50

    features = {
        "track": True,
        "track_detail": True,
        "bulk_tracking": True,
        "invoice_key_lookup": True,
        "price_calculation": True,
        "create_shipment": True,
        "cancel_shipment": True,
    }

    BASE_COST = 15
    PER_KG = 3
    PER_DESI = 2.5
    INTER_CITY_FEE = 5
    MAJOR_ROUTE_DISCOUNT = 0.95
    ROUTE_CITIES = MAJOR_CITIES | {"ADANA"}
    SERVICE_MULTIPLIERS = {
        "STANDARD": 1.0,
        "EXPRESS": 1.4,
        "NEXT_DAY": 1.8,
        "SAME_DAY": 2.5,
        "CARGO_PLUS": 1.2,
        "INTERNATIONAL": 3.0,
        "COLLECTION": 1.3,
    }

    @property
    def service_url(self) -> str:
        return f"{self.settings.base_url.rstrip('/')}{SERVICE_PATH}"

    @property
    def wsdl_url(self) -> str:
        return f"{self.service_url}?wsdl"

    def build_client(self, session=None):
        return SoapClient(
            CARRIER,
            endpoint=self.service_url,
            namespace=NAMESPACE,
            credentials={
                "wsUserName": self.settings.username,
                "wsPassword": self.settings.password,
                "userLanguage": self.settings.language,
            },
            soap_version="1.1",
            wsdl_url=self.wsdl_url,
            qualify_params=False,
            timeout=self.settings.timeout,
            session=session,
        )

    def endpoints(self) -> dict:
        return {"service": self.service_url, "wsdl": self.wsdl_url}

    def _require_credentials(self):
        if not (self.settings.username and self.settings.password):
            raise AuthError("Yurtiçi Kargo credentials not configured", carrier=CARRIER)

    @staticmethod
    def _key_type(key_type) -> int:
        if key_type not in (CARGO_KEY, INVOICE_KEY):
            raise InvalidInput("key_type must be 0 (cargo key) or 1 (invoice key)", carrier=CARRIER)
        return key_type

    def _query(self, operation: str, keys: str, key_type: int):
        self._require_credentials()
        return self.client.send(operation, {
            "keys": keys,
            "keyType": key_type,
            "addHistoricalData": True,
            "onlyTracking": False,
        })

    # --- Tracking ---

    def track(self, tracking_number: str, key_type: int = CARGO_KEY, **options):
        return super().track(tracking_number, key_type=self._key_type(key_type), **options)

    def track_detail(self, tracking_number: str, key_type: int = CARGO_KEY, **options):
        return super().track_detail(tracking_number, key_type=self._key_type(key_type), **options)

    def fetch_tracking(self, tracking_number: str, key_type: int = CARGO_KEY, **options):
        element = self._query("queryShipment", tracking_number, key_type)
        return YurticiMapper.parse_tracking_response(element, tracking_number)

    def fetch_detail(self, tracking_number: str, key_type: int = CARGO_KEY, **options):
        element = self._query("queryShipmentDetail", tracking_number, key_type)
        return YurticiMapper.parse_tracking_response(element, tracking_number, with_movements=True)

    # --- Shipments ---

    def create_shipment(self, data: dict) -> ShipmentResult:
        self.require_fields(data, SHIPMENT_REQUIRED, CARRIER)
        self._require_credentials()
        self.limiter.check_and_increment()

        cargo_key = data.get("cargoKey") or generate_key()
        invoice_key = data.get("invoiceKey") or generate_key()
        params = {
            "cargoKey": cargo_key,
            "invoiceKey": invoice_key,
            "receiverCustName": data["receiverCustName"],
            "receiverAddress": data["receiverAddress"],
            "receiverPhone1": data["receiverPhone1"],
            **{name: data.get(name) or "" for name in SHIPMENT_OPTIONAL},
            "desi": data.get("desi") or "1",
            "kg": data.get("kg") or "1",
            "cargoCount": data.get("cargoCount") or "1",
        }

        self.logger.info(f"{self.name} createShipment request for: {cargo_key}")
        element = self.client.send("createShipment", params)
        return YurticiMapper.parse_create_result(element, cargo_key, invoice_key)

    def cancel_shipment(self, shipment_id: str, reason: str = "Customer request") -> CancellationResult:
        cargo_key = self._require_valid(shipment_id)
        self._require_credentials()
        self.limiter.check_and_increment()

        self.logger.info(f"{self.name} cancelShipment request for: {cargo_key}")
        element = self.client.send("cancelShipment", {"cargoKeys": cargo_key})
        return YurticiMapper.parse_cancel_result(element, cargo_key, reason)

    # --- Cost ---

    def estimate_cost(self, request: CostRequest) -> CostEstimate:
        weight_cost = extra_units(request.weight) * self.PER_KG
        desi_cost = extra_units(request.desi) * self.PER_DESI
        multiplier = self.SERVICE_MULTIPLIERS.get(request.service_type, 1.0)

        city_extra = self.INTER_CITY_FEE if is_inter_city(request.from_city, request.to_city) else 0
        major_route = is_major_route(request.from_city, request.to_city, self.ROUTE_CITIES)
        if major_route:
            city_extra *= self.MAJOR_ROUTE_DISCOUNT
        total = (self.BASE_COST + max(weight_cost, desi_cost)) * multiplier + city_extra

        return self.build_estimate(request, total, {
            "base_cost": self.BASE_COST,
            "weight_cost": weight_cost,
            "desi_cost": desi_cost,
            "service_multiplier": multiplier,
            "city_extra": city_extra,
            "major_city_discount": "5%" if major_route else "0%",
        })

    def ping(self) -> dict:
        descriptor = self.client.load_descriptor()
        return {
            "wsdl_url": self.wsdl_url,
            "location": descriptor.location,
            "operations": sorted(descriptor.operations),
            "service_types": len(self.service_types),
            "has_credentials": bool(self.settings.username and self.settings.password),
        }
