from datetime import date

from django.core.management.base import BaseCommand, CommandError

from core.scheduling import expand_all_active
from users.models import Business


class Command(BaseCommand):
    """
    Materialize recurring series up to the booking horizon.

    Usage:
        python manage.py generate_recurring_appointments
        python manage.py generate_recurring_appointments --business demo
        python manage.py generate_recurring_appointments --until 2024-03-31
    """

    help = "Books upcoming occurrences of every active recurring series"

    def add_arguments(self, parser):
        parser.add_argument(
            "--business",
            type=str,
            default=None,
            help="Only the series of this business slug",
        )
        parser.add_argument(
            "--until",
            type=str,
            default=None,
            help="Horizon date (YYYY-MM-DD); defaults to today + RECURRING_HORIZON_DAYS",
        )

    def handle(self, *args, **options):
        business = None
        if options["business"]:
            business = Business.objects.filter(
                slug=options["business"], is_active=True
            ).first()
            if business is None:
                raise CommandError(f"Business '{options['business']}' not found.")

        horizon = None
        if options["until"]:
            try:
                horizon = date.fromisoformat(options["until"])
            except ValueError as exc:
                raise CommandError("--until must be YYYY-MM-DD") from exc

        results = expand_all_active(business=business, horizon_date=horizon)

        created = sum(len(result.created) for result in results.values())
        skipped = sum(len(result.skipped) for result in results.values())
        for series_id, result in results.items():
            if result.created or result.skipped:
                self.stdout.write(
                    f"- series {series_id}: {len(result.created)} created, "
                    f"{len(result.skipped)} skipped"
                )
        self.stdout.write(
            self.style.SUCCESS(
                f"{len(results)} series processed: {created} created, {skipped} skipped."
            )
        )
