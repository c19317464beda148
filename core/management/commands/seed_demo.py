from __future__ import annotations

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from core.models import Service, Staff
from core.scheduling import create_default_schedule
from users.models import Business


User = get_user_model()

DEMO_SERVICES = (
    # name, duration, price, deposit
    ("Haircut", 45, 3500, 1000),
    ("Beard Trim", 20, 1500, 500),
    ("Haircut & Beard", 60, 4500, 1500),
    ("Hair Wash & Style", 30, 2500, 0),
)

DEMO_STAFF = ("Carlos", "María")


class Command(BaseCommand):
    help = "Creates the demo business used by the booking page (idempotent)."

    def handle(self, *args, **options):
        created_counts = {}

        with transaction.atomic():
            business, business_created = Business.objects.get_or_create(
                slug="demo",
                defaults={
                    "name": "Demo Business - Hair Salon",
                    "location": "San Juan, Puerto Rico",
                    "timezone": settings.DEFAULT_BUSINESS_TIMEZONE,
                },
            )
            created_counts["business_created"] = int(business_created)

            owner, owner_created = User.objects.get_or_create(
                username="demo_owner",
                defaults={"email": "owner@demo.local", "business": business},
            )
            if owner_created:
                owner.set_password(getattr(settings, "DEMO_OWNER_PASSWORD", "demo-owner"))
                owner.save()
            created_counts["owner_created"] = int(owner_created)

            staff_members = []
            for display_name in DEMO_STAFF:
                member, _ = Staff.objects.get_or_create(
                    business=business, display_name=display_name
                )
                staff_members.append(member)
            created_counts["staff"] = len(staff_members)

            services_created = 0
            for name, duration, price, deposit in DEMO_SERVICES:
                service, created = Service.objects.get_or_create(
                    business=business,
                    name=name,
                    defaults={
                        "duration_min": duration,
                        "price_cents": price,
                        "deposit_cents": deposit,
                    },
                )
                if created:
                    service.staff.set(staff_members)
                    services_created += 1
            created_counts["services_created"] = services_created

            created_counts["rules_created"] = len(create_default_schedule(business))

        self.stdout.write(self.style.SUCCESS("Demo seed finished."))
        for k, v in created_counts.items():
            self.stdout.write(f"- {k}: {v}")
        self.stdout.write(f"Booking page slug: {business.slug}")
