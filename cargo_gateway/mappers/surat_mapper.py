from cargo_gateway.mappers.common import (
    as_list,
    build_tracking_result,
    parse_datetime,
    parse_float,
    parse_int,
    text,
)
from cargo_gateway.schemas import Location, Party, Pricing, ShipmentInfo, ShipmentMovement
from cargo_gateway.status import FlagPolicy, StatusInfo, TrackingStatus as S, resolve_status, status_table

CARRIER = "SURAT"
TRACKING_URL = "https://www.suratkargo.com.tr/kargo-takip?code={number}"

STATUS_CODES = status_table({
    "CRT": (S.CREATED, "Gönderi Oluşturuldu"),
    "TES": (S.COLLECTED, "Teslim Alındı"),
    "ACK": (S.ACKNOWLEDGED, "Kayıt Alındı"),
    "SRT": (S.SORTED, "Ayrıma Alındı"),
    "TRN": (S.IN_TRANSIT, "Yolda"),
    "ARR": (S.ARRIVED, "Varış Noktasında"),
    "OFD": (S.OUT_FOR_DELIVERY, "Dağıtıma Çıkarıldı"),
    "DEL": (S.DELIVERED, "Teslim Edildi"),
    "RTN": (S.RETURNED, "İade Edildi"),
    "CNL": (S.CANCELLED, "İptal Edildi"),
    "FAI": (S.DELIVERY_FAILED, "Teslimat Başarısız"),
    "DLY": (S.DELAYED, "Gecikme"),
    "DMG": (S.DAMAGED, "Hasarlı"),
    "LST": (S.LOST, "Kayıp"),
    "HLD": (S.ON_HOLD, "Beklemede"),
    "WAI": (S.WAITING, "Alıcı Bekleniyor"),
})

FLAGS = FlagPolicy(
    in_transit={S.SORTED, S.IN_TRANSIT, S.ARRIVED, S.OUT_FOR_DELIVERY},
    issues={S.DELIVERY_FAILED, S.DELAYED},
)


def _party(data) -> Party:
    if not isinstance(data, dict):
        return Party()
    return Party(
        name=text(data.get("name")),
        company=text(data.get("company")),
        city=text(data.get("city")),
        address=text(data.get("address")),
        phone=text(data.get("phone")),
    )


class SuratMapper:
    """Maps Sürat REST tracking JSON onto the canonical model."""

    @staticmethod
    def normalize_status(code, raw_description=None) -> StatusInfo:
        return resolve_status(STATUS_CODES, code, raw_description)

    @staticmethod
    def parse_tracking_response(data, tracking_number: str):
        if not isinstance(data, dict) or not data or data.get("error"):
            return None

        # Some endpoints wrap the record in "data"
        record = data.get("data") if isinstance(data.get("data"), dict) else data
        if not record.get("statusCode") and not record.get("trackingNumber"):
            return None

        code = text(record.get("statusCode"))
        info = SuratMapper.normalize_status(code, text(record.get("statusDescription")))
        location = record.get("currentLocation") if isinstance(record.get("currentLocation"), dict) else {}

        return build_tracking_result(
            CARRIER,
            tracking_number,
            info,
            FLAGS,
            status_code=code,
            reference_number=text(record.get("referenceNumber")),
            current_location=Location(
                city=text(location.get("city")),
                branch=text(location.get("branch")),
                facility=text(location.get("facility")),
                country="TR",
            ),
            sender=_party(record.get("sender")),
            recipient=_party(record.get("receiver")),
            shipment_info=ShipmentInfo(
                weight=parse_float(record.get("weight")),
                desi=parse_float(record.get("desi"), None),
                pieces=parse_int(record.get("pieces")),
                service_type=text(record.get("serviceType")) or "STANDARD",
                shipment_date=text(record.get("shipmentDate")),
                estimated_delivery=text(record.get("estimatedDelivery")),
                actual_delivery=text(record.get("actualDelivery")),
            ),
            pricing=Pricing(
                total_cost=parse_float(record.get("price")),
                cod_amount=parse_float(record.get("collectionAmount")),
                currency=text(record.get("currency")) or "TRY",
            ),
            tracking_url=TRACKING_URL.format(number=tracking_number),
            last_updated=parse_datetime(text(record.get("lastUpdate")), dayfirst=False),
            movements=SuratMapper.parse_movements(record),
        )

    @staticmethod
    def parse_movements(data) -> list[ShipmentMovement]:
        if not isinstance(data, dict):
            return []
        movements = []
        for movement in as_list(data.get("movements")):
            if not isinstance(movement, dict):
                continue
            date, time_ = text(movement.get("date")), text(movement.get("time"))
            movements.append(ShipmentMovement(
                date=date,
                time=time_,
                timestamp=parse_datetime(f"{date} {time_ or ''}".strip()) if date else None,
                location=text(movement.get("location")),
                description=text(movement.get("description")),
                status_code=text(movement.get("status")),
                facility=text(movement.get("facilityName")),
                operation_code=text(movement.get("facilityCode")),
            ))
        return movements
