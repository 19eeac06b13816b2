"""Expected-service computation.

Derives, for every vehicle, when each applicable catalog item is next due and
how urgent it is. `compute_expected_services` is pure; the `get_*` helpers load
the inputs from the database and delegate to it.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any, Final

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from garage_insights.core.domain_exceptions import RecordNotFoundError
from garage_insights.db.models import Vehicle
from garage_insights.intelligence.maintenance_catalog import (
    ServiceCategory,
    build_maintenance_schedule,
)

DUE_SOON_MILES: Final[int] = 1000
DUE_SOON_PRIORITY_BASE: Final[int] = 1000
UPCOMING_PRIORITY_BASE: Final[int] = 10000


class ServiceStatus(str, Enum):
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class FleetVehicle:
    id: int
    make: str
    model: str
    year: int | None
    mileage: int | None
    customer_name: str | None = None
    customer_email: str | None = None


@dataclass(frozen=True)
class ServiceHistoryEntry:
    service_type: str
    service_date: date | None
    mileage_at_service: int | None


@dataclass(frozen=True)
class ExpectedService:
    vehicle_id: int
    vehicle_info: str
    customer_name: str | None
    customer_email: str | None
    current_mileage: int | None
    service_name: str
    category: ServiceCategory
    recommended_mileage: int
    recommended_months: int
    next_due_mileage: int
    miles_until_due: int | None
    status: ServiceStatus
    # Sort key only; lower is more urgent.
    priority: int
    last_service_date: date | None
    last_service_mileage: int | None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        data["status"] = self.status.value
        data["last_service_date"] = (
            self.last_service_date.isoformat() if self.last_service_date else None
        )
        return data


def _normalize(name: str | None) -> str:
    return (name or "").strip().lower()


def _latest_matching(
    history: Iterable[ServiceHistoryEntry],
    service_name: str,
) -> ServiceHistoryEntry | None:
    target = _normalize(service_name)
    matching = [entry for entry in history if _normalize(entry.service_type) == target]
    if not matching:
        return None
    return max(
        matching,
        key=lambda entry: (
            entry.service_date or date.min,
            entry.mileage_at_service if entry.mileage_at_service is not None else -1,
        ),
    )


def next_due_mileage(
    interval: int,
    current_mileage: int | None,
    last_service_mileage: int | None,
) -> int:
    """Mileage at which a service is next due."""
    if last_service_mileage is not None:
        return last_service_mileage + interval
    if current_mileage is None:
        return interval
    # Smallest multiple of the interval strictly above the current reading.
    return (current_mileage // interval + 1) * interval


def classify_due_status(miles_until_due: int | None) -> ServiceStatus:
    if miles_until_due is None:
        return ServiceStatus.UPCOMING
    if miles_until_due <= 0:
        return ServiceStatus.OVERDUE
    if miles_until_due <= DUE_SOON_MILES:
        return ServiceStatus.DUE_SOON
    return ServiceStatus.UPCOMING


def urgency_priority(status: ServiceStatus, miles_until_due: int | None) -> int:
    """Map status and distance to a single ascending sort key.

    Overdue keys are <= 0, due-soon keys fall in (1000, 2000] and upcoming
    keys are >= 10000, so bands never interleave.
    """
    miles = miles_until_due or 0
    if status is ServiceStatus.OVERDUE:
        return miles
    if status is ServiceStatus.DUE_SOON:
        return DUE_SOON_PRIORITY_BASE + miles
    return UPCOMING_PRIORITY_BASE + miles


def compute_expected_services(
    vehicles: Iterable[FleetVehicle],
    history_by_vehicle: Mapping[int, Sequence[ServiceHistoryEntry]],
    today: date | None = None,
) -> list[ExpectedService]:
    """Return every applicable expected service across the fleet, most urgent first."""
    results: list[ExpectedService] = []

    for vehicle in vehicles:
        history = history_by_vehicle.get(vehicle.id, ())
        schedule = build_maintenance_schedule(vehicle.make, vehicle.model, vehicle.year, today=today)
        vehicle_info = " ".join(
            str(part) for part in (vehicle.year, vehicle.make, vehicle.model) if part
        )

        for item in schedule:
            if not item.recommended_mileage:
                continue

            last_service = _latest_matching(history, item.service_name)
            last_mileage = last_service.mileage_at_service if last_service else None
            due_at = next_due_mileage(item.recommended_mileage, vehicle.mileage, last_mileage)

            miles_until_due = due_at - vehicle.mileage if vehicle.mileage is not None else None
            status = classify_due_status(miles_until_due)

            results.append(
                ExpectedService(
                    vehicle_id=vehicle.id,
                    vehicle_info=vehicle_info,
                    customer_name=vehicle.customer_name,
                    customer_email=vehicle.customer_email,
                    current_mileage=vehicle.mileage,
                    service_name=item.service_name,
                    category=item.category,
                    recommended_mileage=item.recommended_mileage,
                    recommended_months=item.recommended_months,
                    next_due_mileage=due_at,
                    miles_until_due=miles_until_due,
                    status=status,
                    priority=urgency_priority(status, miles_until_due),
                    last_service_date=last_service.service_date if last_service else None,
                    last_service_mileage=last_mileage,
                )
            )

    results.sort(key=lambda service: (service.priority, service.vehicle_id, service.service_name))
    return results


def filter_due_for_reminder(services: Iterable[ExpectedService]) -> list[ExpectedService]:
    """Keep only overdue and due-soon services."""
    return [
        service
        for service in services
        if service.status in (ServiceStatus.OVERDUE, ServiceStatus.DUE_SOON)
    ]


def group_by_vehicle(services: Iterable[ExpectedService]) -> dict[int, list[ExpectedService]]:
    grouped: dict[int, list[ExpectedService]] = {}
    for service in services:
        grouped.setdefault(service.vehicle_id, []).append(service)
    return grouped


def _snapshot(vehicle: Vehicle) -> tuple[FleetVehicle, list[ServiceHistoryEntry]]:
    customer = vehicle.customer
    fleet_vehicle = FleetVehicle(
        id=vehicle.id,
        make=vehicle.make,
        model=vehicle.model,
        year=vehicle.year,
        mileage=vehicle.mileage,
        customer_name=customer.name if customer else None,
        customer_email=customer.email if customer else None,
    )
    history = [
        ServiceHistoryEntry(
            service_type=log.service_type,
            service_date=log.service_date,
            mileage_at_service=log.mileage_at_service,
        )
        for log in vehicle.service_logs
    ]
    return fleet_vehicle, history


def _load_vehicles(db: Session, vehicle_id: int | None = None) -> list[Vehicle]:
    stmt = (
        select(Vehicle)
        .options(selectinload(Vehicle.customer), selectinload(Vehicle.service_logs))
        .order_by(Vehicle.id.asc())
    )
    if vehicle_id is not None:
        stmt = stmt.where(Vehicle.id == vehicle_id)
    return list(db.scalars(stmt).all())


def _compute_for(vehicles: list[Vehicle]) -> list[ExpectedService]:
    fleet: list[FleetVehicle] = []
    history_by_vehicle: dict[int, list[ServiceHistoryEntry]] = {}
    for vehicle in vehicles:
        fleet_vehicle, history = _snapshot(vehicle)
        fleet.append(fleet_vehicle)
        history_by_vehicle[fleet_vehicle.id] = history
    return compute_expected_services(fleet, history_by_vehicle)


def get_expected_services(db: Session) -> list[ExpectedService]:
    return _compute_for(_load_vehicles(db))


def get_expected_services_for_vehicle(db: Session, vehicle_id: int) -> list[ExpectedService]:
    vehicles = _load_vehicles(db, vehicle_id=vehicle_id)
    if not vehicles:
        raise RecordNotFoundError(f"Vehicle {vehicle_id} not found.")
    return _compute_for(vehicles)


def get_services_due_for_reminder(db: Session) -> list[ExpectedService]:
    return filter_due_for_reminder(get_expected_services(db))


def get_expected_services_by_vehicle(db: Session) -> dict[int, list[ExpectedService]]:
    return group_by_vehicle(get_expected_services(db))
