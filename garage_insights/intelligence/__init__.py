"""Deterministic intelligence layer for fleet maintenance analytics."""

from garage_insights.intelligence.expected_services import (
    ExpectedService,
    ServiceStatus,
    compute_expected_services,
    filter_due_for_reminder,
    get_expected_services,
    get_expected_services_by_vehicle,
    get_expected_services_for_vehicle,
    get_services_due_for_reminder,
    group_by_vehicle,
)
from garage_insights.intelligence.maintenance_catalog import (
    MaintenanceItem,
    VehicleType,
    build_maintenance_schedule,
    classify_vehicle,
)

__all__ = [
    "ExpectedService",
    "MaintenanceItem",
    "ServiceStatus",
    "VehicleType",
    "build_maintenance_schedule",
    "classify_vehicle",
    "compute_expected_services",
    "filter_due_for_reminder",
    "get_expected_services",
    "get_expected_services_by_vehicle",
    "get_expected_services_for_vehicle",
    "get_services_due_for_reminder",
    "group_by_vehicle",
]
