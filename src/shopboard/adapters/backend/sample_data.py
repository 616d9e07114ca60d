"""Seed records for the in-memory backend and local demos."""

from __future__ import annotations

from datetime import datetime

from shopboard.adapters.backend.protocol import PROFILES, TICKETS, VEHICLES, Record
from shopboard.core.time import parse_timestamp


def _ts(value: str) -> datetime:
    parsed = parse_timestamp(value)
    assert parsed is not None
    return parsed


PROFILE_ROWS: list[Record] = [
    {"id": "mech-alex", "name": "Alex Rodriguez", "role": "employee"},
    {"id": "mech-lisa", "name": "Lisa Chen", "role": "employee"},
    {"id": "mech-tom", "name": "Tom Wilson", "role": "employee"},
    {"id": "cust-001", "name": "Dana Miller", "role": "customer", "phone": "555-0101"},
]

VEHICLE_ROWS: list[Record] = [
    {"id": "veh-001", "make": "Toyota", "model": "Camry", "year": 2020, "reg_no": "ABC-1234"},
    {"id": "veh-002", "make": "Honda", "model": "Civic", "year": 2019, "reg_no": "XYZ-5678"},
    {"id": "veh-003", "make": "Ford", "model": "Focus", "year": 2021, "reg_no": "DEF-9012"},
    {"id": "veh-004", "make": "BMW", "model": "X5", "year": 2022, "reg_no": "GHI-3456"},
    {"id": "veh-005", "make": "Mercedes", "model": "C-Class", "year": 2021, "reg_no": "JKL-7890"},
    {"id": "veh-006", "make": "Toyota", "model": "Prius", "year": 2020, "license_no": "MNO-1234"},
]

TICKET_ROWS: list[Record] = [
    {
        "id": "tkt-11111111-1111-1111-1111-111111111111",
        "ticket_number": "WO-001",
        "user_id": "cust-001",
        "vehicle_id": "veh-001",
        "primary_mechanic_id": "mech-alex",
        "priority": "high",
        "status": "in_progress",
        "description": "Engine making strange noise, needs diagnostic check",
        "created_at": _ts("2024-01-15T10:30:00Z"),
        "updated_at": _ts("2024-01-16T08:00:00Z"),
        "work_started_at": _ts("2024-01-15T11:00:00Z"),
        "estimated_completion_date": _ts("2024-01-18T16:00:00Z"),
    },
    {
        "id": "tkt-22222222-2222-2222-2222-222222222222",
        "ticket_number": "WO-002",
        "user_id": "cust-001",
        "vehicle_id": "veh-002",
        "primary_mechanic_id": "mech-lisa",
        "priority": "normal",
        "status": "completed",
        "description": "AC not blowing cold air properly",
        "created_at": _ts("2024-01-12T09:15:00Z"),
        "updated_at": _ts("2024-01-15T15:30:00Z"),
        "work_started_at": _ts("2024-01-13T09:00:00Z"),
        "work_completed_at": _ts("2024-01-15T15:30:00Z"),
    },
    {
        "id": "tkt-33333333-3333-3333-3333-333333333333",
        "ticket_number": "WO-003",
        "vehicle_id": "veh-003",
        "priority": "low",
        "status": "pending",
        "description": "Brake squeaking and oil change needed",
        "created_at": _ts("2024-01-14T14:20:00Z"),
        "updated_at": _ts("2024-01-14T14:20:00Z"),
    },
    {
        "id": "tkt-44444444-4444-4444-4444-444444444444",
        "ticket_number": "WO-004",
        "vehicle_id": "veh-004",
        "priority": "urgent",
        "status": "approved",
        "description": "Transmission issues - car jerks when shifting gears",
        "created_at": _ts("2024-01-16T11:45:00Z"),
        "updated_at": _ts("2024-01-16T12:00:00Z"),
    },
    {
        "id": "tkt-55555555-5555-5555-5555-555555555555",
        "ticket_number": "WO-005",
        "vehicle_id": "veh-005",
        "primary_mechanic_id": "mech-tom",
        "priority": "high",
        "status": "assigned",
        "description": "Engine oil leak detected",
        "created_at": _ts("2024-01-17T08:30:00Z"),
        "updated_at": _ts("2024-01-17T09:00:00Z"),
    },
    {
        "id": "tkt-66666666-6666-6666-6666-666666666666",
        "ticket_number": "WO-006",
        "vehicle_id": "veh-006",
        "priority": "normal",
        "status": "ready_for_pickup",
        "description": "Regular maintenance service",
        "created_at": _ts("2024-01-10T09:00:00Z"),
        "updated_at": _ts("2024-01-15T14:00:00Z"),
        "work_started_at": _ts("2024-01-10T10:00:00Z"),
    },
]


def sample_tables() -> dict[str, list[Record]]:
    """Fresh copies of the seed rows keyed by entity name."""
    return {
        TICKETS: [dict(row) for row in TICKET_ROWS],
        VEHICLES: [dict(row) for row in VEHICLE_ROWS],
        PROFILES: [dict(row) for row in PROFILE_ROWS],
    }
