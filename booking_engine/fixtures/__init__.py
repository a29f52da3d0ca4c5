"""Demo fixtures for the booking engine.

Contains seed data for:
- Tenants and their scheduling policies
- Staff, services and staff–service links
- Clients and a handful of existing bookings
"""

from booking_engine.fixtures.demo_data import (
    BOOKINGS,
    CLIENTS,
    DEMO_SALON_ID,
    DEMO_SPA_ID,
    SERVICES,
    STAFF,
    STAFF_SERVICES,
    TENANTS,
)
from booking_engine.fixtures.seed import seed_demo_data

__all__ = [
    "BOOKINGS",
    "CLIENTS",
    "DEMO_SALON_ID",
    "DEMO_SPA_ID",
    "SERVICES",
    "STAFF",
    "STAFF_SERVICES",
    "TENANTS",
    "seed_demo_data",
]
