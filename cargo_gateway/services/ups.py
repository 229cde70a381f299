from cargo_gateway.clients.scraper import FormScraper
from cargo_gateway.errors import ParseError
from cargo_gateway.mappers.ups_mapper import CARRIER, STATUS_CODES, UPSMapper
from cargo_gateway.pricing import MAJOR_CITIES, extra_units, is_inter_city, is_major_route
from cargo_gateway.schemas import CostEstimate, CostRequest
from cargo_gateway.services.base import CarrierAdapter

TRACKING_PAGE = "/gonderi_takip.aspx"

DOMESTIC_FORM = {
    "ctl00$ContentPlaceHolder1$txtDomesticTracking": "{number}",
    "ctl00$ContentPlaceHolder1$btnDomesticTrack": "Ara",
}
INTERNATIONAL_FORM = {
    "ctl00$ContentPlaceHolder1$txtInternationalTracking": "{number}",
    "ctl00$ContentPlaceHolder1$btnInternationalTrack": "Ara",
}


class UPSService(CarrierAdapter):
    """
    UPS Türkiye has no public tracking API; the public tracking page is
    submitted like a browser would and the result page is scraped.
    """

    carrier_id = CARRIER
    name = "UPS Kargo"
    api_type = "Web Scraping"
    env_prefix = "UPS_CARGO"
    default_url = "https://www.ups.com.tr"
    default_rate_limit = 60
    default_bulk_delay = 2.0
    max_bulk = 20
    min_length = 6
    max_length = 35

    status_codes = STATUS_CODES
    service_types = {
        "STANDARD": "Standart Kargo",
        "EXPRESS": "UPS Express",
        "EXPRESS_PLUS": "UPS Express Plus",
        "EXPEDITED": "Hızlandırılmış",
        "GROUND": "Kara Yolu",
        "AIR": "Hava Yolu",
        "INTERNATIONAL": "Uluslararası",
    }
    delivery_days = {
        "EXPRESS_PLUS": "1",
        "EXPRESS": "1-2",
        "EXPEDITED": "2-3",
        "STANDARD": "2-5",
        "GROUND": "3-7",
        "AIR": "1-3",
        "INTERNATIONAL": "3-10",
    }
    cod_services = frozenset()
    supported_plate = 35

    features = {
        "track": True,
        "track_detail": False,
        "bulk_tracking": True,
        "international_tracking": True,
        "price_calculation": True,
        "create_shipment": False,
        "cancel_shipment": False,
    }

    BASE_COST = 25
    INTERNATIONAL_BASE_COST = 100
    PER_KG = 8
    INTERNATIONAL_PER_KG = 15
    INTER_CITY_FEE = 10
    MAJOR_ROUTE_DISCOUNT = 0.9
    SERVICE_MULTIPLIERS = {
        "STANDARD": 1.0,
        "EXPRESS": 1.5,
        "EXPRESS_PLUS": 2.0,
        "EXPEDITED": 1.3,
        "AIR": 1.8,
        "INTERNATIONAL": 2.5,
    }

    @property
    def tracking_url(self) -> str:
        return f"{self.settings.base_url.rstrip('/')}{TRACKING_PAGE}"

    def build_client(self, session=None):
        return FormScraper(CARRIER, self.tracking_url, timeout=self.settings.timeout, session=session)

    def endpoints(self) -> dict:
        return {
            "domestic": f"{self.tracking_url} (Yurtiçi)",
            "international": f"{self.tracking_url} (Yurtdışı)",
        }

    @staticmethod
    def is_international(tracking_number: str) -> bool:
        """1Z... numbers and anything longer than 12 characters are international."""
        number = (tracking_number or "").strip().upper()
        return number.startswith("1Z") or len(number) > 12

    def _scrape(self, tracking_number: str, form: dict):
        fields = {key: value.format(number=tracking_number) for key, value in form.items()}
        html = self.client.send(fields)
        return UPSMapper.parse_tracking_response(html, tracking_number, self.tracking_url)

    def fetch_tracking(self, tracking_number: str, domestic: bool = True, **options):
        if domestic:
            result = self._scrape(tracking_number, DOMESTIC_FORM)
            if result is not None:
                return result
            self.logger.info(f"{self.name} no domestic result for {tracking_number}, trying international")
        return self._scrape(tracking_number, INTERNATIONAL_FORM)

    def estimate_cost(self, request: CostRequest) -> CostEstimate:
        international = request.is_international
        base = self.INTERNATIONAL_BASE_COST if international else self.BASE_COST
        per_kg = self.INTERNATIONAL_PER_KG if international else self.PER_KG
        weight_cost = extra_units(request.weight) * per_kg
        multiplier = self.SERVICE_MULTIPLIERS.get(request.service_type, 1.0)

        city_extra = 0
        if not international and is_inter_city(request.from_city, request.to_city):
            city_extra = self.INTER_CITY_FEE
        major_route = not international and is_major_route(request.from_city, request.to_city, MAJOR_CITIES)
        # the discount only trims the route surcharge, never the parcel cost
        if major_route:
            city_extra *= self.MAJOR_ROUTE_DISCOUNT
        total = (base + weight_cost) * multiplier + city_extra

        return self.build_estimate(request, total, {
            "base_cost": base,
            "weight_cost": weight_cost,
            "service_multiplier": multiplier,
            "city_extra": city_extra,
            "major_route_discount": "10%" if major_route else "0%",
            "is_international": international,
        })

    def ping(self) -> dict:
        html = self.client.fetch_page(self.settings.base_url, timeout=10)
        if "UPS" not in html or "takip" not in html.lower():
            raise ParseError("Landing page does not look like the UPS tracking site", carrier=CARRIER)
        return {"endpoint": self.settings.base_url, "service_types": len(self.service_types)}
