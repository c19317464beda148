"""
iCalendar (.ics) export for appointments.
"""

import hashlib
from datetime import datetime, timezone as dt_timezone

from django.utils import timezone

from core.models import Appointment


def _ics_datetime(value: datetime) -> str:
    return value.astimezone(dt_timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _escape(text: str) -> str:
    """TEXT value escaping (RFC 5545 3.3.11)."""
    return (
        str(text)
        .replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


class ICSGenerator:
    """Builds a single-event calendar for an appointment."""

    # Minutes before the start at which calendar apps remind the customer
    REMINDERS = (24 * 60, 120)

    @staticmethod
    def generate_ics(appointment: Appointment) -> str:
        service = appointment.service
        business = appointment.business

        summary = f"{service.name} - {business.name}"
        now = timezone.now()

        ics_content = [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            "PRODID:-//BookIt//Appointment//EN",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
            "BEGIN:VEVENT",
            f"UID:{ICSGenerator._generate_uid(appointment)}",
            f"DTSTART:{_ics_datetime(appointment.starts_at)}",
            f"DTEND:{_ics_datetime(appointment.ends_at)}",
            f"DTSTAMP:{_ics_datetime(now)}",
            f"CREATED:{_ics_datetime(appointment.created_at)}",
            f"SUMMARY:{_escape(summary)}",
            f"DESCRIPTION:{_escape(ICSGenerator._build_description(appointment))}",
            f"LOCATION:{_escape(business.location or business.name)}",
            f"STATUS:{ICSGenerator._get_ics_status(appointment.status)}",
            f"SEQUENCE:{ICSGenerator._sequence(appointment)}",
        ]

        for minutes in ICSGenerator.REMINDERS:
            label = "tomorrow" if minutes >= 24 * 60 else f"in {minutes // 60} hours"
            ics_content.extend(
                [
                    "BEGIN:VALARM",
                    f"TRIGGER:-PT{minutes}M",
                    "ACTION:DISPLAY",
                    f"DESCRIPTION:{_escape(f'Reminder: {service.name} appointment {label}')}",
                    "END:VALARM",
                ]
            )

        ics_content.extend(["END:VEVENT", "END:VCALENDAR"])
        return "\r\n".join(ics_content) + "\r\n"

    @staticmethod
    def _generate_uid(appointment: Appointment) -> str:
        base_string = f"{appointment.business_id}-{appointment.id}-appointment"
        digest = hashlib.sha256(base_string.encode()).hexdigest()[:32]
        return f"{digest}@bookit.app"

    @staticmethod
    def _sequence(appointment: Appointment) -> int:
        # A cancellation must supersede the first export
        return 1 if appointment.status == Appointment.Status.CANCELED else 0

    @staticmethod
    def _build_description(appointment: Appointment) -> str:
        service = appointment.service
        lines = [f"Appointment for {service.name}"]
        if service.description:
            lines.append(service.description)
        if appointment.staff_id:
            lines.append(f"With: {appointment.staff.display_name}")
        lines.append(f"Duration: {service.duration_min} minutes")
        lines.append(f"Customer: {appointment.customer_name}")
        if appointment.notes and appointment.notes.strip():
            lines.append(f"Notes: {appointment.notes}")
        return "\n".join(lines)

    @staticmethod
    def _get_ics_status(appointment_status: str) -> str:
        status_mapping = {
            Appointment.Status.CONFIRMED: "CONFIRMED",
            Appointment.Status.COMPLETED: "CONFIRMED",
            Appointment.Status.PENDING: "TENTATIVE",
            Appointment.Status.CANCELED: "CANCELLED",
            Appointment.Status.NO_SHOW: "CANCELLED",
        }
        return status_mapping.get(appointment_status, "TENTATIVE")

    @staticmethod
    def get_filename(appointment: Appointment) -> str:
        return f"appointment-{appointment.id}.ics"
