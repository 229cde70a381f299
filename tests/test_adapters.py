# =============================================================================
# Tests for the carrier adapters (Aras, Sürat, UPS, Yurtiçi)
# =============================================================================

import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from cargo_gateway.errors import (
    AuthError,
    CarrierBusinessError,
    InvalidInput,
    InvalidTrackingNumber,
    ParseError,
    RateLimitExceeded,
    UnsupportedOperation,
)
from cargo_gateway.mappers import aras_mapper
from cargo_gateway.mappers.aras_mapper import ArasMapper
from cargo_gateway.mappers.common import build_tracking_result
from cargo_gateway.rate_limiter import RateLimiter
from cargo_gateway.registry import CarrierRegistry, default_registry
from cargo_gateway.services.aras import ArasService
from cargo_gateway.services.surat import SuratService
from cargo_gateway.services.ups import UPSService
from cargo_gateway.services.yurtici import KEY_ALPHABET, YurticiService, generate_key
from cargo_gateway.status import StatusCategory, TrackingStatus

from conftest import YURTICI_WSDL, aras_envelope, yurtici_envelope

DELIVERED_ROW = "<Table><DURUM_KODU>05</DURUM_KODU><ALICI_ADI>Ayşe</ALICI_ADI></Table>"

YURTICI_FOUND = (
    "<ShippingDeliveryVO><outFlag>0</outFlag>"
    "<shippingDeliveryDetailVO><operationStatus>DLV</operationStatus>"
    "<invoiceKey>INV1</invoiceKey></shippingDeliveryDetailVO>"
    "<shippingMovementsVO><movementDateTime>2024-03-01 10:00</movementDateTime>"
    "<unitName>KADIKÖY</unitName><eventCode>CLT</eventCode></shippingMovementsVO>"
    "<shippingMovementsVO><movementDateTime>2024-03-02 11:00</movementDateTime>"
    "<unitName>ÇANKAYA</unitName><eventCode>DLV</eventCode></shippingMovementsVO>"
    "</ShippingDeliveryVO>"
)

UPS_RESULT = "<html><body><div>Durum: Teslim Edildi</div><div>Konum: ISTANBUL</div></body></html>"
UPS_FORM = '<form><input type="hidden" name="__VIEWSTATE" value="vs" /></form>'


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def aras(settings_for, session, sleep):
    return ArasService(settings=settings_for(ArasService), session=session, sleep=sleep)


@pytest.fixture
def surat(settings_for, session, sleep):
    return SuratService(settings=settings_for(SuratService), session=session, sleep=sleep)


@pytest.fixture
def ups(settings_for, session, sleep):
    return UPSService(settings=settings_for(UPSService), session=session, sleep=sleep)


@pytest.fixture
def yurtici(settings_for, session, sleep):
    return YurticiService(settings=settings_for(YurticiService), session=session, sleep=sleep)


# =============================================================================
# Tracking number validation
# =============================================================================

class TestValidation:

    def test_whitespace_is_stripped(self, aras):
        check = aras.validate_tracking_number("  1234 5678 90 ")
        assert check.is_valid
        assert check.cleaned_number == "1234567890"
        assert check.format == "numeric"

    @pytest.mark.parametrize("number", ["ABC-123456", "1234567", "", "   ", None, 12345678])
    def test_invalid_numbers(self, aras, number):
        assert aras.validate_tracking_number(number).is_valid is False

    @pytest.mark.parametrize("number,fmt", [
        ("1234567890", "Standard"),
        ("1234567890123", "Standard"),
        ("AB12345678", "Reference"),
    ])
    def test_surat_formats(self, surat, number, fmt):
        check = surat.validate_tracking_number(number)
        assert check.is_valid
        assert check.format == fmt

    def test_surat_reference_is_case_insensitive(self, surat):
        check = surat.validate_tracking_number("ab12345678")
        assert check.is_valid
        assert check.format == "Reference"
        assert check.cleaned_number == "AB12345678"

    def test_surat_rejects_unknown_format(self, surat):
        check = surat.validate_tracking_number("12345")
        assert check.is_valid is False
        assert check.format == "Unknown"

    def test_ups_accepts_short_numbers(self, ups):
        assert ups.validate_tracking_number("1Z1234").is_valid
        assert not ups.validate_tracking_number("12345").is_valid

    def test_yurtici_max_length(self, yurtici):
        assert yurtici.validate_tracking_number("A" * 25).is_valid
        assert not yurtici.validate_tracking_number("A" * 26).is_valid

    def test_invalid_number_raises_before_io(self, aras, session):
        with pytest.raises(InvalidTrackingNumber):
            aras.track("12")
        session.request.assert_not_called()
        assert aras.limiter.request_count == 0


# =============================================================================
# Tracking
# =============================================================================

class TestTracking:

    def test_aras_track(self, aras, session, response):
        session.request.return_value = response(200, aras_envelope("KargoBilgi", DELIVERED_ROW))
        result = aras.track("1234567890")
        assert result.status == TrackingStatus.DELIVERED
        assert result.is_delivered is True
        assert result.recipient.name == "Ayşe"
        assert aras.limiter.request_count == 1

    def test_aras_no_record_is_none(self, aras, session, response):
        session.request.return_value = response(200, aras_envelope("KargoBilgi", ""))
        assert aras.track("1234567890") is None

    def test_aras_detail_counts_both_calls(self, aras, session, response):
        movements = "<Table><TARIH>01.03.2024</TARIH><KONUM>ISTANBUL</KONUM><DURUM_KODU>01</DURUM_KODU></Table>"
        session.request.side_effect = [
            response(200, aras_envelope("KargoBilgi", DELIVERED_ROW)),
            response(200, aras_envelope("KargoHareketBilgisi", movements)),
        ]
        result = aras.track_detail("1234567890")
        assert [m.location for m in result.movements] == ["ISTANBUL"]
        assert aras.limiter.request_count == 2

    def test_surat_not_found_is_none(self, surat, session, response):
        session.request.return_value = response(404, {"message": "Kayıt bulunamadı"})
        assert surat.track("1234567890123") is None

    def test_surat_track_path(self, surat, session, response):
        session.request.return_value = response(200, {"trackingNumber": "1234567890123", "statusCode": "DEL"})
        result = surat.track("1234567890123")
        assert result.is_delivered
        assert session.request.call_args.args == ("GET", "https://ws.suratkargo.com.tr/api/v1/tracking/1234567890123")

    def test_remote_429_is_rate_limit(self, surat, session, response):
        session.request.return_value = response(429, {"message": "slow down"})
        with pytest.raises(RateLimitExceeded):
            surat.track("1234567890123")

    def test_local_limit(self, settings_for, session, response):
        adapter = SuratService(settings=settings_for(SuratService), session=session,
                               limiter=RateLimiter(max_requests=2, name="SURAT"))
        session.request.return_value = response(200, {"statusCode": "TRN"})
        adapter.track("1234567890")
        adapter.track("1234567890")
        with pytest.raises(RateLimitExceeded):
            adapter.track("1234567890")
        assert session.request.call_count == 2

    def test_ups_falls_back_to_international(self, ups, session, response):
        session.request.side_effect = [
            response(200, UPS_FORM), response(200, "<html>Sonuç bulunamadı</html>"),
            response(200, UPS_FORM), response(200, UPS_RESULT),
        ]
        result = ups.track("1Z999AA10123456784")

        assert result.status == TrackingStatus.DELIVERED
        assert result.current_location.city == "ISTANBUL"
        assert session.request.call_count == 4
        last_post = session.request.call_args_list[-1].kwargs["data"]
        assert last_post["ctl00$ContentPlaceHolder1$txtInternationalTracking"] == "1Z999AA10123456784"
        assert last_post["__VIEWSTATE"] == "vs"
        assert ups.limiter.request_count == 1

    def test_ups_is_international(self):
        assert UPSService.is_international("1z999aa1")
        assert UPSService.is_international("1234567890123")
        assert not UPSService.is_international("123456789")

    def test_yurtici_track_with_invoice_key(self, yurtici, session, response):
        session.request.side_effect = [
            response(200, YURTICI_WSDL),
            response(200, yurtici_envelope("queryShipment", YURTICI_FOUND)),
        ]
        result = yurtici.track("INV0000001", key_type=1)
        assert result.is_delivered
        assert result.movements == []
        assert b"<keyType>1</keyType>" in session.request.call_args.kwargs["data"]

    def test_yurtici_detail_movements(self, yurtici, session, response):
        session.request.side_effect = [
            response(200, YURTICI_WSDL),
            response(200, yurtici_envelope("queryShipmentDetail", YURTICI_FOUND)),
        ]
        result = yurtici.track_detail("ABCDE12345FGHIJ")
        assert [m.operation_code for m in result.movements] == ["CLT", "DLV"]

    @pytest.mark.parametrize("key_type", [2, -1, "0"])
    def test_yurtici_rejects_bad_key_type(self, yurtici, session, key_type):
        with pytest.raises(InvalidInput):
            yurtici.track("ABCDE12345", key_type=key_type)
        session.request.assert_not_called()

    def test_yurtici_requires_credentials(self, settings_for, session):
        adapter = YurticiService(settings=settings_for(YurticiService, username=None, password=None), session=session)
        with pytest.raises(AuthError):
            adapter.track("ABCDE12345")
        session.request.assert_not_called()


# =============================================================================
# Bulk tracking
# =============================================================================

class TestBulkTracking:

    def test_one_slot_per_input(self, aras, session, response, sleep):
        session.request.return_value = response(200, aras_envelope("KargoBilgi", DELIVERED_ROW))
        numbers = [f"12345678{i:02d}" for i in range(50)]
        numbers[10] = "12"

        results = aras.track_multiple(numbers)

        assert len(results) == 50
        assert results[10] is None
        assert sum(1 for r in results if r is None) == 1
        assert results[0].tracking_number == "1234567800"
        assert session.request.call_count == 49
        assert sleep.call_count == 49
        sleep.assert_called_with(0.1)

    def test_non_finite_fields_do_not_break_the_batch(self, aras, session, response):
        corrupt = "<Table><DURUM_KODU>02</DURUM_KODU><ADET>NaN</ADET><AGIRLIK>1e400</AGIRLIK></Table>"
        session.request.side_effect = [
            response(200, aras_envelope("KargoBilgi", DELIVERED_ROW)),
            response(200, aras_envelope("KargoBilgi", corrupt)),
            response(200, aras_envelope("KargoBilgi", DELIVERED_ROW)),
        ]
        results = aras.track_multiple(["1234567890", "1234567891", "1234567892"])
        assert results[1].shipment_info.pieces == 1
        assert results[1].shipment_info.weight == 0.0

    def test_unreadable_item_becomes_none(self, aras, session, response):
        session.request.return_value = response(200, aras_envelope("KargoBilgi", DELIVERED_ROW))
        real_parse = ArasMapper.parse_tracking_response

        def parse(root, number):
            if number == "1234567891":
                raise ValueError("cannot convert float NaN to integer")
            return real_parse(root, number)

        with patch.object(ArasMapper, "parse_tracking_response", side_effect=parse):
            results = aras.track_multiple(["1234567890", "1234567891", "1234567892"])

        assert [r is None for r in results] == [False, True, False]
        assert results[2].is_delivered

    def test_unreadable_single_track_is_parse_error(self, aras, session, response):
        session.request.return_value = response(200, aras_envelope("KargoBilgi", DELIVERED_ROW))
        with patch.object(ArasMapper, "parse_tracking_response", side_effect=TypeError("bad row")):
            with pytest.raises(ParseError) as exc:
                aras.track("1234567890")
        assert exc.value.carrier == "ARAS"
        assert isinstance(exc.value.__cause__, TypeError)

    def test_too_many_numbers_fail_before_io(self, aras, session):
        with pytest.raises(InvalidInput):
            aras.track_multiple([f"12345678{i:02d}" for i in range(51)])
        session.request.assert_not_called()

    def test_ups_bulk_cap(self, ups):
        with pytest.raises(InvalidInput):
            ups.track_multiple(["1Z12345678"] * 21)

    def test_empty_input(self, surat):
        with pytest.raises(InvalidInput):
            surat.track_multiple([])

    def test_single_item_does_not_sleep(self, surat, session, response, sleep):
        session.request.return_value = response(200, {"statusCode": "TRN"})
        surat.track_multiple(["1234567890"])
        sleep.assert_not_called()

    def test_filter_by_status_category(self, aras):
        delivered = build_tracking_result(
            "ARAS", "1234567890", aras.status_codes["05"], aras_mapper.FLAGS
        )
        moving = build_tracking_result(
            "ARAS", "1234567891", aras.status_codes["02"], aras_mapper.FLAGS
        )
        results = [delivered, None, moving]
        assert aras.filter_by_status_category(results, "delivered") == [delivered]
        assert aras.filter_by_status_category(results, StatusCategory.TRANSIT) == [moving]
        with pytest.raises(InvalidInput):
            aras.filter_by_status_category(results, "flying")


# =============================================================================
# Aras movement, cargo list and branch queries
# =============================================================================

CARGO_ROWS = (
    "<Table><KARGO_NO>1234567890</KARGO_NO><DURUM>05</DURUM><ALICI_ADI>Ayşe</ALICI_ADI>"
    "<ALICI_IL>ANKARA</ALICI_IL><AGIRLIK>2,5</AGIRLIK><ADET>2</ADET><UCRET>40</UCRET></Table>"
    "<Table><KARGO_NO>1234567891</KARGO_NO><DURUM>02</DURUM></Table>"
)

BRANCH_ROWS = (
    "<Table><SUBE_KODU>101</SUBE_KODU><SUBE_ADI>Kadıköy</SUBE_ADI><IL>ISTANBUL</IL>"
    "<ENLEM>40,9901</ENLEM><BOYLAM>29.0290</BOYLAM></Table>"
    "<Table><SUBE_KODU>202</SUBE_KODU><SUBE_ADI>Çankaya</SUBE_ADI><IL>ANKARA</IL></Table>"
)


def sent_operation(session):
    kwargs = session.request.call_args.kwargs
    return kwargs["headers"]["Content-Type"], kwargs["data"]


class TestArasQueries:

    def test_movements(self, aras, session, response):
        rows = (
            "<Table><TARIH>01.03.2024</TARIH><SAAT>10:00</SAAT><KONUM>ISTANBUL</KONUM>"
            "<DURUM_KODU>01</DURUM_KODU></Table>"
            "<Table><TARIH>02.03.2024</TARIH><KONUM>ANKARA</KONUM><DURUM_KODU>05</DURUM_KODU></Table>"
        )
        session.request.return_value = response(200, aras_envelope("KargoHareketBilgisi", rows))

        movements = aras.get_movements(" 1234 567890 ")

        content_type, payload = sent_operation(session)
        assert 'action="http://tempuri.org/KargoHareketBilgisi"' in content_type
        assert b"<tns:KargoHareketBilgisi>" in payload
        assert b"<tns:kargo_no>1234567890</tns:kargo_no>" in payload
        assert [m.location for m in movements] == ["ISTANBUL", "ANKARA"]
        assert movements[0].time == "10:00"
        assert aras.limiter.request_count == 1

    def test_movements_reject_invalid_number_before_io(self, aras, session):
        with pytest.raises(InvalidTrackingNumber):
            aras.get_movements("12")
        session.request.assert_not_called()
        assert aras.limiter.request_count == 0

    def test_cargos_by_date_range(self, aras, session, response):
        session.request.return_value = response(200, aras_envelope("KargoHareket", CARGO_ROWS))

        cargos = aras.get_cargos_by_date_range("01-03-2024", "07-03-2024")

        content_type, payload = sent_operation(session)
        assert 'action="http://tempuri.org/KargoHareket"' in content_type
        assert b"<tns:tarih1>01-03-2024</tns:tarih1>" in payload
        assert b"<tns:tarih2>07-03-2024</tns:tarih2>" in payload
        assert [c.tracking_number for c in cargos] == ["1234567890", "1234567891"]
        assert cargos[0].weight == 2.5
        assert cargos[0].pieces == 2
        assert cargos[0].total_cost == 40.0
        assert cargos[1].pieces == 1
        assert aras.limiter.request_count == 1

    def test_delivered_cargos(self, aras, session, response):
        session.request.return_value = response(200, aras_envelope("KargoTeslimTarihi", CARGO_ROWS))

        cargos = aras.get_delivered_cargos("05-03-2024")

        content_type, payload = sent_operation(session)
        assert 'action="http://tempuri.org/KargoTeslimTarihi"' in content_type
        assert b"<tns:tarih>05-03-2024</tns:tarih>" in payload
        assert cargos[0].recipient_city == "ANKARA"
        assert aras.limiter.request_count == 1

    def test_undelivered_cargos_send_only_credentials(self, aras, session, response):
        session.request.return_value = response(200, aras_envelope("KargoTeslimEdilmemis", CARGO_ROWS))

        cargos = aras.get_undelivered_cargos()

        content_type, payload = sent_operation(session)
        assert 'action="http://tempuri.org/KargoTeslimEdilmemis"' in content_type
        assert b"<tns:user>apiuser</tns:user>" in payload
        assert b"<tns:musteri_kodu>C100</tns:musteri_kodu>" in payload
        assert b"tarih" not in payload
        assert len(cargos) == 2
        assert aras.limiter.request_count == 1

    def test_empty_list(self, aras, session, response):
        session.request.return_value = response(200, aras_envelope("KargoTeslimEdilmemis", ""))
        assert aras.get_undelivered_cargos() == []

    def test_branches(self, aras, session, response):
        session.request.return_value = response(200, aras_envelope("TumSubeler", BRANCH_ROWS))

        branches = aras.get_branches()

        content_type, _ = sent_operation(session)
        assert 'action="http://tempuri.org/TumSubeler"' in content_type
        assert [b.branch_code for b in branches] == ["101", "202"]
        assert branches[0].latitude == pytest.approx(40.9901)
        assert branches[0].longitude == pytest.approx(29.029)
        assert branches[1].latitude is None
        assert aras.limiter.request_count == 1

    def test_queries_share_the_limiter(self, settings_for, session, response):
        adapter = ArasService(settings=settings_for(ArasService), session=session,
                              limiter=RateLimiter(max_requests=2, name="ARAS"))
        session.request.return_value = response(200, aras_envelope("TumSubeler", ""))
        adapter.get_branches()
        adapter.get_undelivered_cargos()
        with pytest.raises(RateLimitExceeded):
            adapter.get_delivered_cargos("05-03-2024")
        assert session.request.call_count == 2


# =============================================================================
# Cost estimates
# =============================================================================

def route(from_city, to_city, **extra):
    return {"from_city": from_city, "to_city": to_city, **extra}


class TestCostEstimates:

    @pytest.mark.parametrize("fixture_name,base", [
        ("aras", Decimal("15.00")),
        ("ups", Decimal("25.00")),
        ("yurtici", Decimal("15.00")),
    ])
    def test_intra_city_single_kg_is_base_cost(self, request, fixture_name, base):
        adapter = request.getfixturevalue(fixture_name)
        estimate = adapter.calculate_cost(route("Istanbul", "İSTANBUL"))
        assert estimate.estimated_cost == base
        assert estimate.is_estimate is True

    @pytest.mark.parametrize("fixture_name", ["aras", "ups", "yurtici"])
    def test_inter_city_costs_more(self, request, fixture_name):
        adapter = request.getfixturevalue(fixture_name)
        same = adapter.calculate_cost(route("BURSA", "BURSA"))
        other = adapter.calculate_cost(route("BURSA", "SIVAS"))
        assert other.estimated_cost > same.estimated_cost

    @pytest.mark.parametrize("fixture_name", ["aras", "ups", "yurtici"])
    def test_heavier_costs_more(self, request, fixture_name):
        adapter = request.getfixturevalue(fixture_name)
        light = adapter.calculate_cost(route("ISTANBUL", "ANKARA", weight=1))
        heavy = adapter.calculate_cost(route("ISTANBUL", "ANKARA", weight=5, desi=5))
        assert heavy.estimated_cost > light.estimated_cost

    def test_aras_formula(self, aras):
        estimate = aras.calculate_cost(route("istanbul", "ankara", weight=3))
        assert estimate.estimated_cost == Decimal("40.00")
        assert estimate.breakdown["major_route_extra"] == 5
        assert estimate.estimated_delivery_days == "1-3"

    def test_ups_major_route_discount(self, ups):
        estimate = ups.calculate_cost(route("ISTANBUL", "ANKARA"))
        assert estimate.estimated_cost == Decimal("34.00")
        assert estimate.breakdown["city_extra"] == 9.0
        assert estimate.breakdown["major_route_discount"] == "10%"

    def test_ups_international(self, ups):
        estimate = ups.calculate_cost(route("ISTANBUL", "BERLIN", weight=2, is_international=True))
        assert estimate.estimated_cost == Decimal("115.00")
        assert estimate.breakdown["city_extra"] == 0

    def test_yurtici_uses_larger_of_weight_and_desi(self, yurtici):
        estimate = yurtici.calculate_cost(route("IZMIR", "IZMIR", weight=3, desi=5))
        assert estimate.estimated_cost == Decimal("25.00")

    def test_yurtici_adana_counts_as_major(self, yurtici):
        estimate = yurtici.calculate_cost(route("ISTANBUL", "ADANA"))
        assert estimate.estimated_cost == Decimal("19.75")

    def test_invalid_parameters(self, aras):
        with pytest.raises(InvalidInput):
            aras.calculate_cost(route("ISTANBUL", "ANKARA", weight=-1))

    def test_surat_formula_without_credentials(self, settings_for, session):
        adapter = SuratService(settings=settings_for(SuratService, username=None, password=None), session=session)
        assert adapter.calculate_cost(route("ISTANBUL", "ISTANBUL")).estimated_cost == Decimal("14.16")
        assert adapter.calculate_cost(route("ISTANBUL", "IZMIR")).estimated_cost == Decimal("23.60")
        session.request.assert_not_called()

    def test_surat_carrier_price(self, surat, session, response):
        session.request.return_value = response(200, {"price": "55.5", "currency": "TRY"})
        estimate = surat.calculate_cost(route("ISTANBUL", "IZMIR", weight=2))

        assert estimate.estimated_cost == Decimal("55.50")
        assert estimate.source == "carrier"
        body = json.loads(session.request.call_args.kwargs["data"])
        assert body["fromCity"] == "ISTANBUL"
        assert body["weight"] == 2

    def test_surat_falls_back_when_pricing_is_down(self, surat, session):
        session.request.side_effect = requests.ConnectionError("down")
        estimate = surat.calculate_cost(route("ISTANBUL", "ISTANBUL"))
        assert estimate.source == "formula"
        assert estimate.estimated_cost == Decimal("14.16")

    def test_surat_falls_back_without_price(self, surat, session, response):
        session.request.return_value = response(200, {"price": None})
        assert surat.calculate_cost(route("ISTANBUL", "ISTANBUL")).source == "formula"

    @pytest.mark.parametrize("fixture_name", ["aras", "ups", "yurtici"])
    @pytest.mark.parametrize("weight", [1, 5, 10, 28, 30, 50, 120])
    def test_inter_city_never_cheaper_at_any_weight(self, request, fixture_name, weight):
        adapter = request.getfixturevalue(fixture_name)
        same = adapter.calculate_cost(route("ISTANBUL", "ISTANBUL", weight=weight, desi=weight))
        other = adapter.calculate_cost(route("ISTANBUL", "ANKARA", weight=weight, desi=weight))
        assert other.estimated_cost > same.estimated_cost

    @pytest.mark.parametrize("field", ["weight", "desi", "collection_amount"])
    @pytest.mark.parametrize("value", [float("inf"), float("nan"), "Infinity"])
    def test_non_finite_parameters_are_invalid(self, aras, field, value):
        with pytest.raises(InvalidInput):
            aras.calculate_cost(route("ISTANBUL", "ANKARA", **{field: value}))

    @pytest.mark.parametrize("price", ["NaN", "Infinity", "-inf", -5, 0, "0"])
    def test_surat_falls_back_on_unusable_price(self, surat, session, response, price):
        session.request.return_value = response(200, {"price": price, "currency": "TRY"})
        estimate = surat.calculate_cost(route("ISTANBUL", "ISTANBUL"))
        assert estimate.source == "formula"
        assert estimate.estimated_cost == Decimal("14.16")


# =============================================================================
# Shipments
# =============================================================================

SURAT_SHIPMENT = {
    "senderName": "Depo",
    "senderAddress": "Ataşehir",
    "receiverName": "Mehmet Kaya",
    "receiverAddress": "Bornova",
    "receiverPhone": "0555 123 45 67",
}


class TestShipments:

    @pytest.mark.parametrize("fixture_name", ["aras", "ups"])
    def test_unsupported_carriers(self, request, fixture_name):
        adapter = request.getfixturevalue(fixture_name)
        with pytest.raises(UnsupportedOperation):
            adapter.create_shipment({"receiverName": "x"})
        with pytest.raises(UnsupportedOperation):
            adapter.cancel_shipment("1234567890")

    def test_surat_missing_fields(self, surat, session):
        with pytest.raises(InvalidInput) as exc:
            surat.create_shipment({"senderName": "Depo"})
        assert "receiverPhone" in exc.value.message
        session.request.assert_not_called()

    def test_surat_bad_phone(self, surat):
        with pytest.raises(InvalidInput):
            surat.create_shipment({**SURAT_SHIPMENT, "receiverPhone": "212 555 00"})

    def test_surat_create(self, surat, session, response):
        session.request.return_value = response(200, {
            "success": True, "trackingNumber": "1234567890123", "cost": "42.5",
        })
        result = surat.create_shipment(SURAT_SHIPMENT)

        assert result.tracking_number == "1234567890123"
        assert result.cost == 42.5
        assert result.tracking_url.endswith("1234567890123")
        args, kwargs = session.request.call_args
        assert args[1].endswith("/api/v1/shipments/create")
        body = json.loads(kwargs["data"])
        assert body["receiver"]["name"] == "Mehmet Kaya"
        assert body["customerCode"] == "C100"

    def test_surat_create_rejected(self, surat, session, response):
        session.request.return_value = response(200, {"success": False, "message": "Adres eksik", "code": "E12"})
        with pytest.raises(CarrierBusinessError) as exc:
            surat.create_shipment(SURAT_SHIPMENT)
        assert exc.value.message == "Adres eksik"
        assert exc.value.code == "E12"

    def test_surat_cancel(self, surat, session, response):
        session.request.return_value = response(200, {"success": True})
        result = surat.cancel_shipment("1234567890123", "Müşteri vazgeçti")
        assert result.status == "CANCELLED"
        assert session.request.call_args.args[1].endswith("/api/v1/shipments/1234567890123/cancel")

    def test_yurtici_create(self, yurtici, session, response):
        session.request.side_effect = [
            response(200, YURTICI_WSDL),
            response(200, yurtici_envelope(
                "createShipment", "<return><outFlag>0</outFlag><outResult>Başarılı</outResult><jobId>9001</jobId></return>"
            )),
        ]
        result = yurtici.create_shipment({
            "receiverCustName": "Ayşe Demir",
            "receiverAddress": "Çankaya / Ankara",
            "receiverPhone1": "05551234567",
        })

        assert len(result.cargo_key) == 15
        assert result.tracking_number == result.cargo_key
        assert result.job_id == "9001"
        assert yurtici.limiter.request_count == 1
        payload = session.request.call_args.kwargs["data"]
        assert b"<receiverCustName>" in payload
        assert b"<wsUserName>apiuser</wsUserName>" in payload

    def test_yurtici_create_keeps_given_keys(self, yurtici, session, response):
        session.request.side_effect = [
            response(200, YURTICI_WSDL),
            response(200, yurtici_envelope("createShipment", "<return><outFlag>0</outFlag></return>")),
        ]
        result = yurtici.create_shipment({
            "cargoKey": "MYKEY0001", "invoiceKey": "INV0001",
            "receiverCustName": "A", "receiverAddress": "B", "receiverPhone1": "05551234567",
        })
        assert result.cargo_key == "MYKEY0001"
        assert result.invoice_key == "INV0001"

    def test_yurtici_create_rejected(self, yurtici, session, response):
        session.request.side_effect = [
            response(200, YURTICI_WSDL),
            response(200, yurtici_envelope(
                "createShipment", "<return><outFlag>1</outFlag><outResult>Geçersiz adres</outResult>"
                                  "<errCode>60020</errCode></return>"
            )),
        ]
        with pytest.raises(CarrierBusinessError) as exc:
            yurtici.create_shipment({"receiverCustName": "A", "receiverAddress": "B", "receiverPhone1": "1"})
        assert exc.value.message == "Geçersiz adres"
        assert exc.value.code == "60020"

    def test_yurtici_create_missing_fields(self, yurtici, session):
        with pytest.raises(InvalidInput):
            yurtici.create_shipment({"receiverCustName": "A"})
        session.request.assert_not_called()

    def test_yurtici_cancel(self, yurtici, session, response):
        session.request.side_effect = [
            response(200, YURTICI_WSDL),
            response(200, yurtici_envelope(
                "cancelShipment",
                "<return><outFlag>0</outFlag><shippingCancelDetailVO><jobId>5</jobId></shippingCancelDetailVO></return>",
            )),
        ]
        result = yurtici.cancel_shipment("ABCDE12345", "Yanlış adres")
        assert result.job_id == "5"
        assert result.reason == "Yanlış adres"
        assert b"<cargoKeys>ABCDE12345</cargoKeys>" in session.request.call_args.kwargs["data"]

    def test_generated_keys(self):
        key = generate_key()
        assert len(key) == 15
        assert set(key) <= set(KEY_ALPHABET)


# =============================================================================
# Connection test, status and introspection
# =============================================================================

class TestIntrospection:

    def test_connection_success(self, aras, session, response):
        session.request.return_value = response(200, aras_envelope("KargoTeslimEdilmemis", ""))
        result = aras.test_connection()
        assert result.success is True
        assert result.details["status_codes"] == 18
        assert aras.limiter.request_count == 0

    def test_connection_failure_is_reported(self, aras, session):
        session.request.side_effect = requests.ConnectionError("dns failure")
        result = aras.test_connection()
        assert result.success is False
        assert "Could not reach" in result.message

    def test_ups_ping_checks_landing_page(self, ups, session, response):
        session.request.return_value = response(200, "<html>UPS Kargo Takip</html>")
        assert ups.test_connection().success is True
        session.request.return_value = response(200, "<html>Bakım çalışması</html>")
        assert ups.test_connection().success is False

    def test_yurtici_ping_reads_descriptor(self, yurtici, session, response):
        session.request.return_value = response(200, YURTICI_WSDL)
        result = yurtici.test_connection()
        assert result.success is True
        assert "queryShipment" in result.details["operations"]

    def test_surat_api_status(self, surat, session, response):
        session.request.return_value = response(200, {"status": "maintenance"})

        status = surat.get_api_status()

        assert session.request.call_args.args == ("GET", "https://ws.suratkargo.com.tr/api/v1/status")
        assert status["status"] == "maintenance"
        assert status["customer"] == "C100"
        assert "SAME_DAY" in status["supported_services"]
        assert surat.limiter.request_count == 1

    def test_surat_api_status_defaults_to_active(self, surat, session, response):
        session.request.return_value = response(200, {})
        assert surat.get_api_status()["status"] == "active"

    def test_surat_api_status_needs_an_object(self, surat, session, response):
        session.request.return_value = response(200, ["active"])
        with pytest.raises(ParseError):
            surat.get_api_status()

    def test_status_makes_no_network_call(self, aras, session):
        status = aras.get_status()
        session.request.assert_not_called()
        assert status["carrier"] == "ARAS"
        assert status["rate_limiter"]["max_requests"] == 120
        assert status["credentials"] == {"configured": True, "username": "api***"}
        assert status["supported_cities"] == 50

    def test_service_info(self, surat, aras):
        info = surat.get_service_info("express")
        assert info.code == "EXPRESS"
        assert info.estimated_days == "1-2 gün"
        assert surat.get_service_info("COLLECTION").cod is True
        assert aras.get_service_info("UNKNOWN").name == "Bilinmeyen Servis"
        assert [s.code for s in aras.list_services()] == ["STANDARD"]

    @pytest.mark.parametrize("fixture_name,count", [("aras", 50), ("surat", 81), ("ups", 35), ("yurtici", 50)])
    def test_city_lists(self, request, fixture_name, count):
        cities = request.getfixturevalue(fixture_name).list_cities()
        assert len(cities) == count
        assert cities["ISTANBUL"] == "34"


# =============================================================================
# Registry
# =============================================================================

class TestRegistry:

    def test_lookup_is_case_insensitive(self, aras, ups):
        registry = CarrierRegistry([aras, ups])
        assert registry.get(" aras ") is aras
        assert "ups" in registry
        assert len(registry) == 2

    def test_unknown_carrier(self, aras):
        registry = CarrierRegistry([aras])
        with pytest.raises(InvalidInput):
            registry.get("mng")

    def test_default_registry_has_every_carrier(self):
        assert default_registry().carriers() == ["ARAS", "SURAT", "UPS", "YURTICI"]
