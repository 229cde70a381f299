"""
UPS Türkiye tracking page -> canonical model.

There is no API: the data is pulled out of the result page by label text
("Durum", "Konum", ...). Any markup change on ups.com.tr can silently break
this extraction; nothing validates the page structure.
"""
import re
from datetime import datetime

from bs4 import BeautifulSoup

from cargo_gateway.cities import ascii_fold
from cargo_gateway.mappers.common import build_tracking_result
from cargo_gateway.schemas import Location, Party, ShipmentInfo
from cargo_gateway.status import (
    FlagPolicy,
    StatusCategory,
    StatusInfo,
    TrackingStatus as S,
    resolve_status,
    status_table,
)

CARRIER = "UPS"

STATUS_CODES = status_table({
    "01": (S.COLLECTED, "Kargo Alındı"),
    "02": (S.IN_TRANSIT, "Yolda"),
    "03": (S.ARRIVED_AT_HUB, "Merkeze Ulaştı"),
    "04": (S.OUT_FOR_DELIVERY, "Dağıtıma Çıktı"),
    "05": (S.DELIVERED, "Teslim Edildi"),
    "06": (S.DELIVERY_ATTEMPTED, "Teslimat Denendi"),
    "07": (S.EXCEPTION, "İstisna Durumu"),
    "08": (S.RETURNED_TO_SENDER, "Gönderene İade"),
    "09": (S.DELAYED, "Gecikme"),
    "10": (S.DAMAGED, "Hasarlı"),
    "11": (S.LOST, "Kayıp"),
    "12": (S.HELD_AT_LOCATION, "Lokasyonda Bekletiliyor"),
    "13": (S.AWAITING_CLEARANCE, "Gümrük Bekliyor"),
    "14": (S.INTERNATIONAL_DEPARTURE, "Uluslararası Çıkış"),
    "15": (S.INTERNATIONAL_ARRIVAL, "Uluslararası Varış"),
    "16": (S.PROCESSING, "İşlem Görüyor"),
})

FLAGS = FlagPolicy(
    in_transit={S.IN_TRANSIT, S.OUT_FOR_DELIVERY, S.ARRIVED_AT_HUB},
    issues={S.EXCEPTION, S.DELAYED},
)

# First match wins, so the more specific phrases come first. Keywords are ASCII-folded.
TEXT_RULES = (
    (("teslim edildi", "delivered"), "05"),
    (("denendi", "attempt"), "06"),
    (("iade", "return"), "08"),
    (("iptal", "cancel"), None),
    (("hasar", "damage"), "10"),
    (("kayip", "lost"), "11"),
    (("gumruk", "customs", "clearance"), "13"),
    (("dagitim", "delivery"), "04"),
    (("gecikme", "delay"), "09"),
    (("bekletil", "held"), "12"),
    (("istisna", "exception"), "07"),
    (("merkez", "hub"), "03"),
    (("yolda", "transit"), "02"),
    (("alindi", "picked"), "01"),
)

CANCELLED = StatusInfo(S.CANCELLED, "İptal Edildi", StatusCategory.CANCELLED)

LABELS = {
    "status": "Durum",
    "location": "Konum",
    "date": "Tarih",
    "time": "Saat",
    "recipient": "Alıcı",
    "address": "Adres",
    "sender": "Gönderen",
    "weight": "Ağırlık",
    "dimensions": "Boyut",
}

DATE_PATTERNS = (
    re.compile(r"(\d{2})\.(\d{2})\.(\d{4})(?:\s+(\d{2}):(\d{2}))?"),
    re.compile(r"(\d{2})/(\d{2})/(\d{4})(?:\s+(\d{2}):(\d{2}))?"),
    re.compile(r"(\d{2})-(\d{2})-(\d{4})(?:\s+(\d{2}):(\d{2}))?"),
)

WEIGHT_PATTERN = re.compile(r"([0-9]+(?:[.,][0-9]+)?)\s*(kg|gr|g|pound|lbs|lb)?", re.IGNORECASE)

SERVICE_RULES = (
    (r"\bexpress plus\b", "EXPRESS_PLUS"),
    (r"\bexpress\b", "EXPRESS"),
    (r"\bexpedited\b", "EXPEDITED"),
    (r"\binternational\b|\buluslararasi\b", "INTERNATIONAL"),
    (r"\bair\b|\bhava yolu\b", "AIR"),
    (r"\bground\b|\bkara yolu\b", "GROUND"),
)


def page_text(html: str) -> str:
    soup = BeautifulSoup(html or "", "html.parser")
    for node in soup(["script", "style"]):
        node.decompose()
    return soup.get_text("\n")


def extract_label(page: str, label: str) -> str | None:
    """'Durum: Yolda' or '<td>Durum</td><td>Yolda</td>' -> 'Yolda'."""
    match = re.search(rf"\b{label}\b[:\s]*([^\n]*)", page, re.IGNORECASE)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


class UPSMapper:

    @staticmethod
    def status_from_text(status_text: str | None) -> StatusInfo:
        raw = (status_text or "").strip()
        if raw in STATUS_CODES:
            return STATUS_CODES[raw]

        folded = ascii_fold(raw).lower()
        for keywords, code in TEXT_RULES:
            if any(keyword in folded for keyword in keywords):
                return STATUS_CODES[code] if code else CANCELLED
        return resolve_status(STATUS_CODES, None, raw, fallback=S.PROCESSING, fallback_text="Bilinmiyor")

    @staticmethod
    def parse_weight(weight_text: str | None) -> float | None:
        if not weight_text:
            return None
        match = WEIGHT_PATTERN.search(weight_text)
        if not match:
            return None
        value = float(match.group(1).replace(",", "."))
        unit = (match.group(2) or "kg").lower()

        # Normalize to kg
        if unit in ("g", "gr"):
            return value / 1000
        if unit in ("pound", "lb", "lbs"):
            return round(value * 0.453592, 3)
        return value

    @staticmethod
    def parse_datetime(date_text: str | None, time_text: str | None = None) -> datetime | None:
        if not date_text:
            return None
        combined = date_text.strip()
        if time_text:
            combined = f"{combined} {time_text.strip()}"
        for pattern in DATE_PATTERNS:
            match = pattern.search(combined)
            if match:
                day, month, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
                hour, minute = int(match.group(4) or 0), int(match.group(5) or 0)
                try:
                    return datetime(year, month, day, hour, minute)
                except ValueError:
                    return None
        return None

    @staticmethod
    def detect_service_type(page: str) -> str:
        folded = ascii_fold(page).lower()
        for pattern, service in SERVICE_RULES:
            if re.search(pattern, folded):
                return service
        return "STANDARD"

    @staticmethod
    def parse_tracking_response(html: str, tracking_number: str, tracking_url: str | None = None):
        page = page_text(html)
        fields = {key: extract_label(page, label) for key, label in LABELS.items()}

        if not fields["status"]:
            return None  # no result block on the page

        info = UPSMapper.status_from_text(fields["status"])

        return build_tracking_result(
            CARRIER,
            tracking_number,
            info,
            FLAGS,
            status_code=fields["status"],
            current_location=Location(city=fields["location"], country="Türkiye"),
            recipient=Party(name=fields["recipient"], address=fields["address"]),
            sender=Party(name=fields["sender"]),
            shipment_info=ShipmentInfo(
                weight=UPSMapper.parse_weight(fields["weight"]),
                dimensions=fields["dimensions"],
                service_type=UPSMapper.detect_service_type(page),
            ),
            tracking_url=tracking_url,
            last_updated=UPSMapper.parse_datetime(fields["date"], fields["time"]),
        )
