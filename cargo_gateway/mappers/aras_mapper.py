from cargo_gateway.clients.soap import rows
from cargo_gateway.mappers.common import (
    build_tracking_result,
    parse_datetime,
    parse_float,
    parse_int,
    text,
)
from cargo_gateway.schemas import Branch, CargoSummary, Location, Party, Pricing, ShipmentInfo, ShipmentMovement
from cargo_gateway.status import FlagPolicy, StatusInfo, TrackingStatus as S, resolve_status, status_table

CARRIER = "ARAS"
TRACKING_URL = "https://kargotakip.araskargo.com.tr/?ref={number}"

STATUS_CODES = status_table({
    "01": (S.COLLECTED, "Kargo Teslim Alındı"),
    "02": (S.IN_TRANSIT, "Yolda"),
    "03": (S.ARRIVED_AT_FACILITY, "Merkeze Geldi"),
    "04": (S.OUT_FOR_DELIVERY, "Dağıtıma Çıkarıldı"),
    "05": (S.DELIVERED, "Teslim Edildi"),
    "06": (S.DELIVERY_FAILED, "Teslimat Başarısız"),
    "07": (S.RETURNED_TO_SENDER, "Gönderene İade"),
    "08": (S.CANCELLED, "İptal Edildi"),
    "09": (S.DELAYED, "Gecikme"),
    "10": (S.DAMAGED, "Hasarlı"),
    "11": (S.LOST, "Kayıp"),
    "12": (S.WAITING_RECIPIENT, "Alıcı Bekleniyor"),
    "13": (S.ADDRESS_INCORRECT, "Adres Hatalı"),
    "14": (S.RECIPIENT_NOT_FOUND, "Alıcı Bulunamadı"),
    "15": (S.PAYMENT_REQUIRED, "Ödeme Bekleniyor"),
    "16": (S.CUSTOMS_CLEARANCE, "Gümrük İşlemleri"),
    "17": (S.REDIRECTED, "Yönlendirildi"),
    "18": (S.PARTIAL_DELIVERY, "Kısmi Teslimat"),
})

FLAGS = FlagPolicy(
    in_transit={S.IN_TRANSIT, S.OUT_FOR_DELIVERY, S.ARRIVED_AT_FACILITY},
    issues={S.DELIVERY_FAILED},
)


class ArasMapper:
    """Maps Aras 'NewDataSet/Table' rows onto the canonical model."""

    @staticmethod
    def normalize_status(code, raw_description=None) -> StatusInfo:
        return resolve_status(STATUS_CODES, code, raw_description)

    @staticmethod
    def parse_tracking_response(root, tracking_number: str):
        table = rows(root)
        if not table:
            return None  # no record for this number

        cargo = table[0]
        info = ArasMapper.normalize_status(text(cargo.get("DURUM_KODU")), text(cargo.get("DURUM_ACIKLAMA")))

        return build_tracking_result(
            CARRIER,
            tracking_number,
            info,
            FLAGS,
            status_code=text(cargo.get("DURUM_KODU")),
            reference_number=text(cargo.get("REFERANS_NO")),
            current_location=Location(
                city=text(cargo.get("BULUNDUGU_YER")) or text(cargo.get("SON_KONUM")),
                branch=text(cargo.get("SUBE_ADI")),
                facility=text(cargo.get("TESIS_ADI")),
                country="TR",
            ),
            sender=Party(
                name=text(cargo.get("GONDEREN_ADI")),
                company=text(cargo.get("GONDEREN_FIRMA")),
                city=text(cargo.get("GONDEREN_IL")),
                phone=text(cargo.get("GONDEREN_TEL")),
            ),
            recipient=Party(
                name=text(cargo.get("ALICI_ADI")),
                company=text(cargo.get("ALICI_FIRMA")),
                city=text(cargo.get("ALICI_IL")),
                address=text(cargo.get("ALICI_ADRES")),
                phone=text(cargo.get("ALICI_TEL")),
            ),
            shipment_info=ShipmentInfo(
                weight=parse_float(cargo.get("AGIRLIK")),
                pieces=parse_int(cargo.get("ADET")),
                service_type=text(cargo.get("SERVIS_TIPI")) or "STANDARD",
                shipment_date=text(cargo.get("SEVK_TARIHI")),
                estimated_delivery=text(cargo.get("TAHMINI_TESLIMAT")),
                actual_delivery=text(cargo.get("TESLIMAT_TARIHI")),
            ),
            pricing=Pricing(
                total_cost=parse_float(cargo.get("UCRET")),
                cod_amount=parse_float(cargo.get("KAPIDA_ODEME")),
                currency="TRY",
            ),
            tracking_url=TRACKING_URL.format(number=tracking_number),
            last_updated=parse_datetime(text(cargo.get("SON_GUNCELLEME"))),
        )

    @staticmethod
    def parse_movements(root) -> list[ShipmentMovement]:
        movements = []
        for movement in rows(root):
            date, time_ = text(movement.get("TARIH")), text(movement.get("SAAT"))
            movements.append(ShipmentMovement(
                date=date,
                time=time_,
                timestamp=parse_datetime(f"{date} {time_ or ''}".strip()) if date else None,
                location=text(movement.get("KONUM")),
                description=text(movement.get("ACIKLAMA")),
                status_code=text(movement.get("DURUM_KODU")),
                facility=text(movement.get("TESIS")),
                operation_code=text(movement.get("ISLEM_KODU")),
            ))
        return movements

    @staticmethod
    def parse_cargo_list(root) -> list[CargoSummary]:
        return [
            CargoSummary(
                tracking_number=text(cargo.get("KARGO_NO")),
                reference_number=text(cargo.get("REFERANS_NO")),
                status=text(cargo.get("DURUM")),
                status_description=text(cargo.get("DURUM_ACIKLAMA")),
                recipient_name=text(cargo.get("ALICI_ADI")),
                recipient_city=text(cargo.get("ALICI_IL")),
                shipment_date=text(cargo.get("SEVK_TARIHI")),
                delivery_date=text(cargo.get("TESLIMAT_TARIHI")),
                weight=parse_float(cargo.get("AGIRLIK")),
                pieces=parse_int(cargo.get("ADET")),
                total_cost=parse_float(cargo.get("UCRET")),
            )
            for cargo in rows(root)
        ]

    @staticmethod
    def parse_branches(root) -> list[Branch]:
        return [
            Branch(
                branch_code=text(branch.get("SUBE_KODU")),
                branch_name=text(branch.get("SUBE_ADI")),
                city=text(branch.get("IL")),
                district=text(branch.get("ILCE")),
                address=text(branch.get("ADRES")),
                phone=text(branch.get("TELEFON")),
                working_hours=text(branch.get("CALISMA_SAATLERI")),
                latitude=parse_float(branch.get("ENLEM"), None),
                longitude=parse_float(branch.get("BOYLAM"), None),
            )
            for branch in rows(root)
        ]
