from cargo_gateway.clients.soap import local_name, to_dict
from cargo_gateway.errors import CarrierBusinessError
from cargo_gateway.mappers.common import as_list, build_tracking_result, parse_datetime, text
from cargo_gateway.schemas import CancellationResult, Location, ShipmentMovement, ShipmentResult
from cargo_gateway.status import FlagPolicy, StatusInfo, TrackingStatus as S, resolve_status, status_table

CARRIER = "YURTICI"
TRACKING_URL = "https://www.yurticikargo.com/tr/online/cargo-tracking?code={number}"

STATUS_CODES = status_table({
    "NOP": (S.NOT_PROCESSED, "Kargo İşlem Görmemiş"),
    "CLT": (S.COLLECTED, "Kargo Alındı"),
    "TRN": (S.IN_TRANSIT, "Transfer Merkezi"),
    "BRN": (S.AT_BRANCH, "Şubede"),
    "OFD": (S.OUT_FOR_DELIVERY, "Dağıtıma Çıktı"),
    "DLV": (S.DELIVERED, "Teslim Edildi"),
    "ATP": (S.DELIVERY_ATTEMPTED, "Teslimat Denendi"),
    "RTN": (S.RETURNED_TO_SENDER, "İade"),
    "CNL": (S.CANCELLED, "İptal Edildi"),
    "EXC": (S.EXCEPTION, "İstisna Durumu"),
    "HLD": (S.ON_HOLD, "Beklemede"),
    "DMG": (S.DAMAGED, "Hasarlı"),
    "LST": (S.LOST, "Kayıp"),
    "WRH": (S.AT_WAREHOUSE, "Depoda"),
    "CUS": (S.CUSTOMS_CLEARANCE, "Gümrük İşlemleri"),
    "AWC": (S.AWAITING_COLLECTION, "Alım Bekliyor"),
})

FLAGS = FlagPolicy(
    in_transit={S.IN_TRANSIT, S.OUT_FOR_DELIVERY, S.AT_BRANCH},
    issues={S.EXCEPTION},
)


def result_payload(element, wrapper: str = "ShippingDeliveryVO") -> dict:
    """
    The value object Yurtiçi returns, as a dict. Depending on the binding it
    is either the response element itself, a <return> child or a named VO.
    """
    if element is None:
        return {}
    data = to_dict(element)
    if not isinstance(data, dict):
        return {}
    if local_name(element.tag) == wrapper:
        return data
    for key in (wrapper, "return"):
        inner = data.get(key)
        if isinstance(inner, list):
            inner = inner[0] if inner else None
        if isinstance(inner, dict):
            return inner
    return data


def is_success(payload: dict) -> bool:
    return text(payload.get("outFlag")) == "0"


class YurticiMapper:

    @staticmethod
    def normalize_status(code, raw_description=None) -> StatusInfo:
        return resolve_status(STATUS_CODES, code, raw_description)

    @staticmethod
    def parse_tracking_response(element, tracking_number: str, with_movements: bool = False):
        """queryShipment / queryShipmentDetail result -> TrackingResult, None when not found."""
        payload = result_payload(element)
        if not payload or not is_success(payload):
            return None

        detail = payload.get("shippingDeliveryDetailVO")
        if isinstance(detail, list):
            detail = detail[0] if detail else None
        if not isinstance(detail, dict):
            return None

        code = text(detail.get("operationStatus"))
        info = YurticiMapper.normalize_status(code, text(detail.get("operationMessage")))
        movements = YurticiMapper.parse_movements(payload) if with_movements else []

        return build_tracking_result(
            CARRIER,
            tracking_number,
            info,
            FLAGS,
            status_code=code,
            reference_number=text(detail.get("invoiceKey")),
            current_location=Location(
                branch=text(detail.get("unitName")) or (movements[-1].location if movements else None),
                country="TR",
            ),
            tracking_url=TRACKING_URL.format(number=tracking_number),
            last_updated=parse_datetime(text(detail.get("operationDate"))),
            movements=movements,
        )

    @staticmethod
    def parse_movements(payload: dict) -> list[ShipmentMovement]:
        movements = []
        for movement in as_list(payload.get("shippingMovementsVO")):
            if not isinstance(movement, dict):
                continue
            stamp = text(movement.get("movementDateTime"))
            movements.append(ShipmentMovement(
                timestamp=parse_datetime(stamp),
                date=stamp,
                location=text(movement.get("unitName")),
                description=text(movement.get("movementDescription")),
                operation_code=text(movement.get("eventCode")),
            ))
        return movements

    @staticmethod
    def parse_create_result(element, cargo_key: str, invoice_key: str) -> ShipmentResult:
        payload = result_payload(element)
        if not is_success(payload):
            raise CarrierBusinessError(
                text(payload.get("outResult")) or "Unknown error",
                carrier=CARRIER,
                code=text(payload.get("errCode")),
            )
        return ShipmentResult(
            carrier=CARRIER,
            message=text(payload.get("outResult")) or "Shipment created successfully",
            tracking_number=cargo_key,
            cargo_key=cargo_key,
            invoice_key=invoice_key,
            job_id=text(payload.get("jobId")),
            tracking_url=TRACKING_URL.format(number=cargo_key),
        )

    @staticmethod
    def parse_cancel_result(element, cargo_key: str, reason: str | None = None) -> CancellationResult:
        payload = result_payload(element)
        if not is_success(payload):
            raise CarrierBusinessError(
                text(payload.get("outResult")) or "Unknown error",
                carrier=CARRIER,
                code=text(payload.get("errCode")),
            )
        detail = payload.get("shippingCancelDetailVO")
        if isinstance(detail, list):
            detail = detail[0] if detail else None
        detail = detail if isinstance(detail, dict) else {}
        return CancellationResult(
            carrier=CARRIER,
            message=text(payload.get("outResult")) or "Shipment cancelled successfully",
            tracking_number=cargo_key,
            reason=reason,
            job_id=text(detail.get("jobId")),
            operation_code=text(detail.get("operationCode")),
            operation_message=text(detail.get("operationMessage")),
        )
