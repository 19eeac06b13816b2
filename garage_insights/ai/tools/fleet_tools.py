"""
Fleet read tools exposed to the AI layer.

Thin wrappers over the read-only fleet stores and the expected-service engine.
The agent never touches database models directly.
"""

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from garage_insights.ai.tools.serialization import make_json_safe
from garage_insights.core.domain_exceptions import RecordNotFoundError
from garage_insights.intelligence.expected_services import get_expected_services_for_vehicle
from garage_insights.services.fleet_service import (
    get_customer,
    get_vehicle,
    list_customer_vehicles,
    list_customers,
    list_service_history,
    list_vehicles_with_customers,
)


class NoArguments(BaseModel):
    pass


class VehicleLookup(BaseModel):
    vehicle_id: int = Field(description="The vehicle ID")


class CustomerLookup(BaseModel):
    customer_id: int = Field(description="The customer ID")


def tool_get_all_vehicles(db: Session, args: NoArguments) -> list[dict]:
    vehicles = list_vehicles_with_customers(db=db)
    return [
        {**make_json_safe(vehicle), "customer": make_json_safe(vehicle.customer)}
        for vehicle in vehicles
    ]


def tool_get_vehicle_service_history(db: Session, args: VehicleLookup):
    if get_vehicle(db=db, vehicle_id=args.vehicle_id) is None:
        raise RecordNotFoundError(f"Vehicle {args.vehicle_id} not found.")
    return list_service_history(db=db, vehicle_id=args.vehicle_id)


def tool_get_expected_services(db: Session, args: VehicleLookup):
    return get_expected_services_for_vehicle(db=db, vehicle_id=args.vehicle_id)


def tool_get_all_customers(db: Session, args: NoArguments):
    return list_customers(db=db)


def tool_get_customer_vehicles(db: Session, args: CustomerLookup):
    if get_customer(db=db, customer_id=args.customer_id) is None:
        raise RecordNotFoundError(f"Customer {args.customer_id} not found.")
    return list_customer_vehicles(db=db, customer_id=args.customer_id)
