"""Demo tenants, staff, services and bookings.

Loaded into a store at setup time; nothing in the engine reads these
constants directly.
"""

from datetime import datetime
from decimal import Decimal

from booking_engine.ports import BookingWritePort
from booking_engine.schemas.booking_schema import Booking, BookingStatus
from booking_engine.schemas.tenant_schema import Client, Service, StaffMember, Tenant

DEMO_SALON_ID = "cmg07xuar00021as72wkjf2ui"
DEMO_SPA_ID = "cmg07xuat00031as7i1s7sntj"
DEMO_CLINIC_ID = "ghpjimt3abg0rcpji8ghxbng"
DEMO_GYM_ID = "cmg07xuap00011as73nrihc8q"

TENANTS = [
    Tenant(id=DEMO_SALON_ID, name="Demo Salon", slug="demo-salon", plan="basic",
           time_zone="America/La_Paz", lead_time_min=60, max_advance_days=60),
    Tenant(id=DEMO_SPA_ID, name="Demo Spa", slug="demo-spa", plan="premium",
           time_zone="America/New_York", lead_time_min=120, max_advance_days=90,
           auto_approve=False),
    Tenant(id=DEMO_CLINIC_ID, name="Demo Clinic", slug="demo-clinic", plan="enterprise",
           time_zone="Europe/Madrid", lead_time_min=30, max_advance_days=120),
    Tenant(id=DEMO_GYM_ID, name="Demo Gym", slug="demo-gym", plan="basic",
           time_zone="Asia/Tokyo", lead_time_min=45, max_advance_days=60),
]

STAFF = [
    StaffMember(id="cmg07xud400101as7ee31qqtm", tenant_id=DEMO_SALON_ID, name="Alice Fernandez",
                email="alice.fernandez@demosalon.com", phone="+59171234567"),
    StaffMember(id="cmg07xud400111as7q8r3ybw3", tenant_id=DEMO_SALON_ID, name="Carlos Ramirez",
                email="carlos.ramirez@demosalon.com", phone="+59179876543"),
    StaffMember(id="cmg07xud600131as7rgtyjbf9", tenant_id=DEMO_SALON_ID, name="Sofia Morales",
                email="sofia.morales@demosalon.com", phone="+59170123456"),
    StaffMember(id="cmg07xuda00151as7sv5t3vtf", tenant_id=DEMO_SPA_ID, name="David Sanchez",
                email="david.sanchez@demosp.com", phone="+59171234567"),
    StaffMember(id="cmg07xuda00171as78jl0m7gh", tenant_id=DEMO_SPA_ID, name="Elena Torres",
                email="elena.torres@demosp.com", phone="+59169876543"),
]

CLIENTS = [
    Client(id="cmg07xub700081as75go8cbyw", tenant_id=DEMO_SALON_ID,
           user_id="cmg07xuco000p1as7o8yqtnwd", name="Michael Smith",
           email="michael.smith@demosalon.com", phone="+59160000001",
           notes="Prefers morning appointments"),
    Client(id="cmg07xubx000h1as7w2h9ome8", tenant_id=DEMO_SALON_ID,
           user_id="cmg07xucr000t1as7jepurzka", name="Sarah Johnson",
           email="sarah.johnson@demosalon.com", phone="+59160000002",
           notes="Allergic to certain products"),
    Client(id="cmg07xuby000j1as7jack828g", tenant_id=DEMO_SPA_ID,
           user_id="cmg07xucl000m1as7psff45n8", name="James Williams",
           email="james.williams@demosp.com", phone="+59160000003",
           notes="Interested in spa packages"),
    Client(id="cmg07xucl000n1as7i5c3kary", tenant_id=DEMO_SPA_ID,
           user_id="cmg07xucr000v1as7b6nng50v", name="Alice Brown",
           email="alice.brown@demosp.com", phone="+59160000004",
           notes="Prefers weekend appointments"),
    Client(id="cmg07xuco000r1as78vct6bxk", tenant_id=DEMO_GYM_ID,
           user_id="cmg07xucw000x1as7xpx2nrdl", name="Alex Davis",
           email="alex.davis@demosp.com", phone="+59160000005",
           notes="Has a membership plan"),
]

HAIRCUT_ID = "uf3b23w2h8cz6mgxnh4uio5a"
BEARD_TRIM_ID = "hd1u69b85kjakczj3w4027io"
MASSAGE_ID = "m1sswaiyc2kn5q91lsllrvmp"

SERVICES = [
    Service(id=HAIRCUT_ID, tenant_id=DEMO_SALON_ID, name="Haircut", category="Hair",
            duration_min=45, price=Decimal("25"), buffer_before=15, buffer_after=15),
    Service(id=BEARD_TRIM_ID, tenant_id=DEMO_SALON_ID, name="Beard Trim", category="Grooming",
            duration_min=30, price=Decimal("15"), buffer_before=10, buffer_after=10),
    Service(id=MASSAGE_ID, tenant_id=DEMO_SALON_ID, name="Relaxing Massage",
            category="Wellness", duration_min=60, price=Decimal("50"),
            buffer_before=20, buffer_after=20),
    Service(id="u9ih6clgecm0n0q9h347q8qs", tenant_id=DEMO_SPA_ID, name="Hair Coloring",
            category="Hair", duration_min=90, price=Decimal("70"),
            buffer_before=30, buffer_after=30),
    Service(id="o8jzldn6q3q2j4tjj36qe1ct", tenant_id=DEMO_SPA_ID, name="Facial Treatment",
            category="Skincare", duration_min=60, price=Decimal("60")),
    Service(id="brnboadxhnpddtag1fn4ywpr", tenant_id=DEMO_SPA_ID, name="Full Body Massage",
            category="Wellness", duration_min=90, price=Decimal("80")),
    Service(id="rbrwtwahab2mtg54nek4ovz2", tenant_id=DEMO_CLINIC_ID,
            name="General Consultation", category="Consultation",
            duration_min=30, price=Decimal("40")),
    Service(id="jejnwngo9s79xj4w6my4glpj", tenant_id=DEMO_CLINIC_ID, name="Dental Checkup",
            category="Consultation", duration_min=30, price=Decimal("40")),
    Service(id="lgbpgbsbj25wjsre4fs7903e", tenant_id=DEMO_GYM_ID,
            name="Personal Training Session", category="Fitness",
            duration_min=60, price=Decimal("80")),
    Service(id="c90nsd03k72i684fcglwxkdd", tenant_id=DEMO_GYM_ID, name="Yoga Class",
            category="Fitness", duration_min=60, price=Decimal("20")),
]

# (tenant_id, staff_id, service_id)
STAFF_SERVICES = [
    (DEMO_SALON_ID, "cmg07xud400101as7ee31qqtm", HAIRCUT_ID),
    (DEMO_SALON_ID, "cmg07xud400101as7ee31qqtm", BEARD_TRIM_ID),
    (DEMO_SALON_ID, "cmg07xud400111as7q8r3ybw3", HAIRCUT_ID),
    (DEMO_SALON_ID, "cmg07xud400111as7q8r3ybw3", BEARD_TRIM_ID),
    (DEMO_SALON_ID, "cmg07xud600131as7rgtyjbf9", HAIRCUT_ID),
    (DEMO_SALON_ID, "cmg07xud600131as7rgtyjbf9", BEARD_TRIM_ID),
    (DEMO_SPA_ID, "cmg07xuda00151as7sv5t3vtf", "u9ih6clgecm0n0q9h347q8qs"),
    (DEMO_SPA_ID, "cmg07xuda00151as7sv5t3vtf", "o8jzldn6q3q2j4tjj36qe1ct"),
    (DEMO_SPA_ID, "cmg07xuda00171as78jl0m7gh", "u9ih6clgecm0n0q9h347q8qs"),
    (DEMO_SPA_ID, "cmg07xuda00171as78jl0m7gh", "o8jzldn6q3q2j4tjj36qe1ct"),
]

_SERVICES_BY_ID = {s.id: s for s in SERVICES}


def _booking(
    booking_id: str, client_id: str, provider_id: str, service_id: str,
    starts_at: str, ends_at: str, status: BookingStatus, request_id: str,
) -> Booking:
    service = _SERVICES_BY_ID[service_id]
    return Booking(
        id=booking_id,
        tenant_id=service.tenant_id,
        client_id=client_id,
        provider_id=provider_id,
        service_id=service_id,
        starts_at=datetime.fromisoformat(starts_at),
        ends_at=datetime.fromisoformat(ends_at),
        status=status,
        price=service.price,
        request_id=request_id,
        buffer_before_min=service.buffer_before,
        buffer_after_min=service.buffer_after,
    )


BOOKINGS = [
    _booking("d331c4if65xaksv49q4mdfep", "cmg07xub700081as75go8cbyw",
             "cmg07xud400101as7ee31qqtm", HAIRCUT_ID,
             "2025-10-01T10:00:00-04:00", "2025-10-01T10:45:00-04:00",
             BookingStatus.CONFIRMED, "req_1"),
    _booking("wpm3vrqu8nsm8qk7j2sigh69", "cmg07xubx000h1as7w2h9ome8",
             "cmg07xud400111as7q8r3ybw3", BEARD_TRIM_ID,
             "2025-10-01T11:00:00-04:00", "2025-10-01T11:30:00-04:00",
             BookingStatus.APPROVED, "req_2"),
    _booking("n9wis05e04frzkosfr4jtcfo", "cmg07xub700081as75go8cbyw",
             "cmg07xud400101as7ee31qqtm", MASSAGE_ID,
             "2025-10-01T12:00:00-04:00", "2025-10-01T13:00:00-04:00",
             BookingStatus.PENDING, "req_3"),
    _booking("i5d6jah9awp0w7jq4hat08cm", "cmg07xub700081as75go8cbyw",
             "cmg07xud600131as7rgtyjbf9", BEARD_TRIM_ID,
             "2025-10-02T09:00:00-04:00", "2025-10-02T09:30:00-04:00",
             BookingStatus.CONFIRMED, "req_4"),
]
