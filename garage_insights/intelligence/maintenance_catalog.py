"""Vehicle-type aware maintenance catalog.

The catalog is computed on demand from make/model/year; nothing here is stored
against a specific vehicle. Unknown years are treated as modern vehicles.
"""

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Final


class VehicleType(str, Enum):
    TRUCK = "truck"
    SUV = "suv"
    LUXURY = "luxury"
    SPORTS = "sports"
    ELECTRIC = "electric"
    HYBRID = "hybrid"
    STANDARD = "standard"


class ServiceCategory(str, Enum):
    MINOR = "minor"
    MAJOR = "major"


@dataclass(frozen=True)
class MaintenanceItem:
    service_name: str
    category: ServiceCategory
    recommended_mileage: int
    recommended_months: int


ELECTRIC_MAKES: Final[tuple[str, ...]] = ("tesla",)
ELECTRIC_MODEL_KEYWORDS: Final[tuple[str, ...]] = ("electric",)
HYBRID_MODEL_KEYWORDS: Final[tuple[str, ...]] = ("hybrid", "prius", "ioniq")
TRUCK_MODEL_KEYWORDS: Final[tuple[str, ...]] = (
    "f-150", "f150", "f-250", "f250", "f-350", "silverado", "sierra", "ram",
    "1500", "2500", "3500", "tundra", "tacoma", "titan", "frontier", "colorado",
    "canyon", "ranger", "gladiator", "ridgeline",
)
SUV_MODEL_KEYWORDS: Final[tuple[str, ...]] = (
    "suv", "explorer", "expedition", "tahoe", "suburban", "yukon", "pilot",
    "passport", "highlander", "4runner", "sequoia", "pathfinder", "armada",
    "durango", "grand cherokee", "wrangler", "bronco", "defender", "range rover",
    "rav4", "cr-v", "crv", "cx-5", "cx5", "tucson", "santa fe", "sorento",
    "telluride", "palisade", "atlas", "tiguan", "outback", "forester",
    "crosstrek", "equinox", "traverse", "blazer", "escape", "edge", "rogue",
    "murano", "sportage", "seltos",
)
LUXURY_MAKE_KEYWORDS: Final[tuple[str, ...]] = (
    "bmw", "mercedes", "mercedes-benz", "audi", "lexus", "infiniti", "acura",
    "porsche", "jaguar", "land rover", "volvo", "genesis", "maserati", "bentley",
    "rolls-royce", "ferrari", "lamborghini", "aston martin", "cadillac", "lincoln",
)
SPORTS_MODEL_KEYWORDS: Final[tuple[str, ...]] = (
    "mustang", "camaro", "corvette", "challenger", "charger", "370z", "350z",
    "supra", "gt-r", "gtr", "wrx", "sti", "miata", "mx-5", "86", "brz",
)

# "ev" as its own word or followed by a model number ("ev6"), never inside a word.
_EV_TOKEN = re.compile(r"\bev(?:\d+|\b)")


def _contains_any(value: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in value for keyword in keywords)


def classify_vehicle(make: str | None, model: str | None) -> VehicleType:
    """Classify a vehicle from its make and model names. Falls back to STANDARD."""
    make_lower = (make or "").strip().lower()
    model_lower = (model or "").strip().lower()

    if (
        make_lower in ELECTRIC_MAKES
        or _contains_any(model_lower, ELECTRIC_MODEL_KEYWORDS)
        or _EV_TOKEN.search(model_lower)
    ):
        return VehicleType.ELECTRIC
    if _contains_any(model_lower, HYBRID_MODEL_KEYWORDS):
        return VehicleType.HYBRID
    if _contains_any(model_lower, TRUCK_MODEL_KEYWORDS):
        return VehicleType.TRUCK
    if _contains_any(model_lower, SUV_MODEL_KEYWORDS):
        return VehicleType.SUV
    if _contains_any(make_lower, LUXURY_MAKE_KEYWORDS):
        return VehicleType.LUXURY
    if _contains_any(model_lower, SPORTS_MODEL_KEYWORDS):
        return VehicleType.SPORTS
    return VehicleType.STANDARD


def oil_change_interval(
    year: int | None,
    vehicle_type: VehicleType,
    today: date | None = None,
) -> tuple[int, int]:
    """Return (miles, months) for oil changes, shorter for older vehicles."""
    current_year = (today or date.today()).year
    vehicle_age = current_year - year if year else 0

    if vehicle_age > 15:
        return 3000, 3
    if vehicle_age > 10:
        return 4000, 4
    if vehicle_type in (VehicleType.LUXURY, VehicleType.ELECTRIC):
        return 10000, 12
    return 5000, 6


def build_maintenance_schedule(
    make: str | None,
    model: str | None,
    year: int | None,
    today: date | None = None,
) -> list[MaintenanceItem]:
    """Return every catalog entry that applies to the given vehicle."""
    vehicle_type = classify_vehicle(make, model)
    is_electric = vehicle_type is VehicleType.ELECTRIC
    is_hybrid = vehicle_type is VehicleType.HYBRID
    is_heavy = vehicle_type in (VehicleType.TRUCK, VehicleType.SUV)
    modern_year = year if year else (today or date.today()).year

    minor, major = ServiceCategory.MINOR, ServiceCategory.MAJOR
    items: list[MaintenanceItem] = []

    def add(name: str, category: ServiceCategory, miles: int, months: int) -> None:
        items.append(MaintenanceItem(name, category, miles, months))

    # Routine maintenance
    if not is_electric:
        oil_miles, oil_months = oil_change_interval(year, vehicle_type, today=today)
        add("Oil Change", minor, oil_miles, oil_months)
    add("Tire Rotation", minor, 7500, 6)
    if not is_electric:
        add("Engine Air Filter", minor, 20000 if vehicle_type is VehicleType.TRUCK else 30000, 24)
    if modern_year >= 2000:
        add("Cabin Air Filter", minor, 25000, 24)
    add("Wiper Blades", minor, 20000, 12)
    add("Battery Inspection", minor, 25000, 12)
    add("Brake Inspection", minor, 15000, 12)

    # Significant maintenance
    add("Brake Pads Replacement", major, 40000 if is_heavy else 50000, 48)
    if not is_electric:
        add(
            "Transmission Fluid Change",
            major,
            80000 if vehicle_type is VehicleType.LUXURY else 60000,
            48,
        )
        add("Coolant Flush", major, 30000, 36)
    if not is_electric and not is_hybrid:
        add("Spark Plugs", major, 100000 if modern_year >= 2010 else 60000, 60)
    if not is_electric and modern_year < 2015:
        add("Power Steering Fluid", major, 50000, 48)
    add("Brake Fluid Flush", major, 30000, 24)
    if not is_electric:
        add("Serpentine Belt", major, 60000, 48)
    if not is_electric and modern_year < 2012:
        add("Timing Belt", major, 90000, 72)
    if not is_electric and not is_hybrid and modern_year < 2010:
        add("Fuel Filter", major, 30000, 36)

    # Drivetrain specific
    if is_heavy:
        add("Differential Fluid (Front)", major, 30000, 24)
        add("Differential Fluid (Rear)", major, 30000, 24)
        add("Transfer Case Fluid", major, 60000, 48)
    if is_electric:
        add("Battery Coolant", major, 50000, 48)
        add("Electric Motor Inspection", major, 75000, 60)
    if is_hybrid:
        add("Hybrid Battery Inspection", major, 50000, 48)

    add("Wheel Alignment Check", minor, 25000, 24)
    return items
