"""
Shared pieces of the fixed-formula cost estimates.

Each carrier keeps its own constants (base cost, per-kg rate, multipliers);
the route classification and rounding are identical everywhere.
"""
from decimal import Decimal, ROUND_HALF_UP

from cargo_gateway.cities import normalize_city

MAJOR_CITIES = frozenset({"ISTANBUL", "ANKARA", "IZMIR", "ANTALYA", "BURSA"})

ESTIMATE_NOTE = "Bu tahmine dayalı bir fiyattır. Kesin fiyat için {carrier} ile iletişime geçiniz."

CENT = Decimal("0.01")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def is_inter_city(from_city, to_city) -> bool:
    return normalize_city(from_city) != normalize_city(to_city)


def is_major_route(from_city, to_city, major_cities=MAJOR_CITIES) -> bool:
    """Both ends are major cities AND they differ; a same-city route never counts."""
    return (
        is_inter_city(from_city, to_city)
        and normalize_city(from_city) in major_cities
        and normalize_city(to_city) in major_cities
    )


def extra_units(value, free_units: float = 1.0) -> float:
    """Chargeable kg/desi above what the base cost already covers."""
    try:
        return max(0.0, float(value) - free_units)
    except (TypeError, ValueError):
        return 0.0
