"""Read-only access to customers, vehicles and service history."""

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from garage_insights.db.models import Customer, ServiceLog, Vehicle

DEFAULT_LIST_LIMIT = 100


def list_vehicles_with_customers(
    db: Session,
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
) -> list[Vehicle]:
    """Return vehicles with their owning customer eagerly loaded."""
    return list(
        db.scalars(
            select(Vehicle)
            .options(selectinload(Vehicle.customer))
            .order_by(Vehicle.id.asc())
            .limit(limit)
            .offset(offset)
        ).all()
    )


def get_vehicle(db: Session, vehicle_id: int) -> Vehicle | None:
    return db.scalar(select(Vehicle).where(Vehicle.id == vehicle_id))


def list_customer_vehicles(db: Session, customer_id: int) -> list[Vehicle]:
    return list(
        db.scalars(
            select(Vehicle)
            .where(Vehicle.customer_id == customer_id)
            .order_by(Vehicle.id.asc())
        ).all()
    )


def list_customers(
    db: Session,
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
) -> list[Customer]:
    return list(
        db.scalars(
            select(Customer)
            .order_by(Customer.id.asc())
            .limit(limit)
            .offset(offset)
        ).all()
    )


def get_customer(db: Session, customer_id: int) -> Customer | None:
    return db.scalar(select(Customer).where(Customer.id == customer_id))


def list_service_history(db: Session, vehicle_id: int) -> list[ServiceLog]:
    """Return a vehicle's service logs, most recent first."""
    return list(
        db.scalars(
            select(ServiceLog)
            .where(ServiceLog.vehicle_id == vehicle_id)
            .order_by(ServiceLog.service_date.desc(), ServiceLog.id.desc())
        ).all()
    )
