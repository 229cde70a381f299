from cargo_gateway.clients.soap import SoapClient
from cargo_gateway.mappers.aras_mapper import CARRIER, STATUS_CODES, ArasMapper
from cargo_gateway.pricing import MAJOR_CITIES, extra_units, is_inter_city, is_major_route
from cargo_gateway.schemas import Branch, CargoSummary, CostEstimate, CostRequest, ShipmentMovement
from cargo_gateway.services.base import CarrierAdapter

NAMESPACE = "http://tempuri.org/"


class ArasService(CarrierAdapter):
    """Aras Kargo over its SOAP 1.2 service (araskargo.asmx). Read-only: no shipment API."""

    carrier_id = CARRIER
    name = "Aras Kargo"
    api_type = "SOAP/XML"
    env_prefix = "ARAS_CARGO"
    default_url = "https://kargotakip.araskargo.com.tr/araskargo.asmx"
    default_rate_limit = 120
    default_bulk_delay = 0.1
    max_bulk = 50
    max_length = 30

    status_codes = STATUS_CODES
    service_types = {"STANDARD": "Aras Standart"}
    delivery_days = {"STANDARD": "1-3"}
    default_delivery_days = "1-3"
    cod_services = frozenset()
    supported_plate = 50

    features = {
        "track": True,
        "track_detail": True,
        "bulk_tracking": True,
        "movements": True,
        "date_range_query": True,
        "branches": True,
        "price_calculation": True,
        "create_shipment": False,
        "cancel_shipment": False,
    }

    BASE_COST = 15
    PER_KG = 5
    INTER_CITY_FEE = 10
    MAJOR_ROUTE_FEE = 5

    def build_client(self, session=None):
        return SoapClient(
            CARRIER,
            endpoint=self.settings.base_url,
            namespace=NAMESPACE,
            credentials={
                "user": self.settings.username,
                "pass": self.settings.password,
                "musteri_kodu": self.settings.customer_code,
            },
            soap_version="1.2",
            timeout=self.settings.timeout,
            session=session,
        )

    def endpoints(self) -> dict:
        base = self.settings.base_url
        return {
            "track": f"{base}/KargoBilgi",
            "movements": f"{base}/KargoHareketBilgisi",
            "date_range": f"{base}/KargoHareket",
            "delivered": f"{base}/KargoTeslimTarihi",
            "undelivered": f"{base}/KargoTeslimEdilmemis",
            "branches": f"{base}/TumSubeler",
        }

    def _call(self, operation: str, params: dict | None = None):
        self.limiter.check_and_increment()
        return self.client.send(operation, params)

    # --- Tracking ---

    def fetch_tracking(self, tracking_number: str, **options):
        root = self.client.send("KargoBilgi", {"kargo_no": tracking_number})
        return ArasMapper.parse_tracking_response(root, tracking_number)

    def fetch_detail(self, tracking_number: str, **options):
        result = self.fetch_tracking(tracking_number)
        if result is None:
            return None
        root = self._call("KargoHareketBilgisi", {"kargo_no": tracking_number})
        return result.model_copy(update={"movements": ArasMapper.parse_movements(root)})

    def get_movements(self, tracking_number: str) -> list[ShipmentMovement]:
        number = self._require_valid(tracking_number)
        root = self._call("KargoHareketBilgisi", {"kargo_no": number})
        return ArasMapper.parse_movements(root)

    # --- Cargo lists (dates as DD-MM-YYYY) ---

    def get_cargos_by_date_range(self, start_date: str, end_date: str) -> list[CargoSummary]:
        root = self._call("KargoHareket", {"tarih1": start_date, "tarih2": end_date})
        return ArasMapper.parse_cargo_list(root)

    def get_delivered_cargos(self, date: str) -> list[CargoSummary]:
        root = self._call("KargoTeslimTarihi", {"tarih": date})
        return ArasMapper.parse_cargo_list(root)

    def get_undelivered_cargos(self) -> list[CargoSummary]:
        return ArasMapper.parse_cargo_list(self._call("KargoTeslimEdilmemis"))

    def get_branches(self) -> list[Branch]:
        return ArasMapper.parse_branches(self._call("TumSubeler"))

    # --- Cost ---

    def estimate_cost(self, request: CostRequest) -> CostEstimate:
        weight_cost = extra_units(request.weight) * self.PER_KG
        city_extra = self.INTER_CITY_FEE if is_inter_city(request.from_city, request.to_city) else 0
        major_extra = self.MAJOR_ROUTE_FEE if is_major_route(request.from_city, request.to_city, MAJOR_CITIES) else 0
        total = self.BASE_COST + weight_cost + city_extra + major_extra
        return self.build_estimate(request, total, {
            "base_cost": self.BASE_COST,
            "weight_cost": weight_cost,
            "city_extra": city_extra,
            "major_route_extra": major_extra,
        })

    def ping(self) -> dict:
        self.client.send("KargoTeslimEdilmemis")
        return {"endpoint": self.settings.base_url}
