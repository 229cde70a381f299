from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from cargo_gateway.errors import (
    AuthError,
    CarrierBusinessError,
    CarrierError,
    InvalidInput,
    NotFound,
    ParseError,
    RateLimitExceeded,
    TransportError,
    UnknownCarrier,
    UnsupportedOperation,
)
from cargo_gateway.logger import get_logger
from cargo_gateway.registry import CarrierRegistry, default_registry
from cargo_gateway.schemas import BulkTrackRequest, BulkTrackResponse, CancelRequest, CostRequest
from cargo_gateway.services.base import CarrierAdapter

logger = get_logger("api")

router = APIRouter(prefix="/cargo/{carrier}", tags=["cargo"])

# Order matters: UnknownCarrier is an InvalidInput.
ERROR_STATUS = (
    (UnknownCarrier, 404),
    (InvalidInput, 400),
    (UnsupportedOperation, 501),
    (NotFound, 404),
    (AuthError, 502),
    (RateLimitExceeded, 429),
    (TransportError, 503),
    (ParseError, 502),
    (CarrierBusinessError, 422),
)


def http_status(error: CarrierError) -> int:
    for kind, status in ERROR_STATUS:
        if isinstance(error, kind):
            return status
    return 500


def to_http(error: CarrierError) -> HTTPException:
    status = http_status(error)
    if status >= 500:
        logger.error(f"❌ {error}")
    return HTTPException(status_code=status, detail=str(error))


def get_registry() -> CarrierRegistry:
    return default_registry()


def get_adapter(carrier: str, registry: CarrierRegistry = Depends(get_registry)) -> CarrierAdapter:
    try:
        return registry.get(carrier)
    except CarrierError as e:
        raise to_http(e) from e


def call(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except CarrierError as e:
        raise to_http(e) from e


def _options(key_type: Optional[int]) -> dict:
    return {} if key_type is None else {"key_type": key_type}


@router.get("/track/detail/{tracking_number}")
def track_detail(tracking_number: str, key_type: Optional[int] = None,
                 adapter: CarrierAdapter = Depends(get_adapter)):
    result = call(adapter.track_detail, tracking_number, **_options(key_type))
    if result is None:
        raise HTTPException(status_code=404, detail=f"{adapter.name} shipment not found")
    return result


@router.get("/track/{tracking_number}")
def track(tracking_number: str, key_type: Optional[int] = None, adapter: CarrierAdapter = Depends(get_adapter)):
    result = call(adapter.track, tracking_number, **_options(key_type))
    if result is None:
        raise HTTPException(status_code=404, detail=f"{adapter.name} shipment not found")
    return result


@router.post("/track/bulk", response_model=BulkTrackResponse)
def track_bulk(request: BulkTrackRequest, key_type: Optional[int] = None,
               adapter: CarrierAdapter = Depends(get_adapter)):
    results = call(adapter.track_multiple, request.tracking_numbers, **_options(key_type))
    return BulkTrackResponse(
        carrier=adapter.carrier_id,
        total=len(results),
        found=sum(1 for result in results if result is not None),
        results=results,
    )


@router.post("/calculate-cost")
def calculate_cost(request: CostRequest, adapter: CarrierAdapter = Depends(get_adapter)):
    return call(adapter.calculate_cost, request)


@router.post("/shipment/create")
def create_shipment(data: dict[str, Any] = Body(...), adapter: CarrierAdapter = Depends(get_adapter)):
    return call(adapter.create_shipment, data)


@router.post("/shipment/cancel")
def cancel_shipment(request: CancelRequest, adapter: CarrierAdapter = Depends(get_adapter)):
    return call(adapter.cancel_shipment, request.id, request.reason)


@router.get("/status")
def status(adapter: CarrierAdapter = Depends(get_adapter)):
    return adapter.get_status()


@router.get("/test")
def test_connection(adapter: CarrierAdapter = Depends(get_adapter)):
    return adapter.test_connection()


@router.get("/validate/{tracking_number}")
def validate(tracking_number: str, adapter: CarrierAdapter = Depends(get_adapter)):
    return adapter.validate_tracking_number(tracking_number)


@router.get("/services")
def services(adapter: CarrierAdapter = Depends(get_adapter)):
    return adapter.list_services()


@router.get("/cities")
def cities(adapter: CarrierAdapter = Depends(get_adapter)):
    return adapter.list_cities()
