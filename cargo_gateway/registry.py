"""Carrier id -> adapter instance. Each adapter is built once and owns its own limiter."""
from functools import lru_cache

from cargo_gateway.errors import UnknownCarrier
from cargo_gateway.logger import get_logger
from cargo_gateway.services.aras import ArasService
from cargo_gateway.services.base import CarrierAdapter
from cargo_gateway.services.surat import SuratService
from cargo_gateway.services.ups import UPSService
from cargo_gateway.services.yurtici import YurticiService

logger = get_logger("registry")

ADAPTER_CLASSES = (ArasService, SuratService, UPSService, YurticiService)


class CarrierRegistry:

    def __init__(self, adapters=None):
        self._adapters: dict[str, CarrierAdapter] = {}
        for adapter in adapters or ():
            self.register(adapter)

    def register(self, adapter: CarrierAdapter):
        self._adapters[adapter.carrier_id.upper()] = adapter

    def get(self, carrier: str) -> CarrierAdapter:
        adapter = self._adapters.get((carrier or "").strip().upper())
        if adapter is None:
            raise UnknownCarrier(f"Unknown carrier: {carrier}. Supported: {', '.join(self.carriers())}")
        return adapter

    def carriers(self) -> list[str]:
        return sorted(self._adapters)

    def __contains__(self, carrier) -> bool:
        return (carrier or "").strip().upper() in self._adapters

    def __len__(self):
        return len(self._adapters)


@lru_cache(maxsize=1)
def default_registry() -> CarrierRegistry:
    """Adapters configured from the environment (.env included), built on first use."""
    registry = CarrierRegistry(cls() for cls in ADAPTER_CLASSES)
    logger.info(f"Carrier registry ready: {', '.join(registry.carriers())}")
    return registry
