from datetime import time

import pytest
from django.test import Client
from django.urls import reverse

from core.models import Appointment, AvailabilityRule, RecurringAppointmentSeries, Service
from core.scheduling import CustomerInfo, book_slot
from users.models import Business, CustomUser

from core.tests.helpers import local, next_weekday


@pytest.mark.django_db
class TestDjangoAdmin:

    def setup_method(self):
        self.client = Client()
        self.business = Business.objects.create(
            name="Barbería Boricua", slug="barberia-boricua", timezone="America/Puerto_Rico"
        )
        self.superuser = CustomUser.objects.create_superuser(
            username="admin",
            email="admin@example.com",
            password="admin123",
            business=self.business,
        )
        for weekday in range(1, 6):
            AvailabilityRule.objects.create(
                business=self.business, weekday=weekday, start_time=time(9), end_time=time(17)
            )
        self.service = Service.objects.create(
            business=self.business, name="Haircut", duration_min=45, price_cents=3500
        )

    def _login(self):
        self.client.login(username="admin", password="admin123")

    def test_admin_requires_login(self):
        response = self.client.get("/admin/")
        assert response.status_code == 302
        assert "/admin/login/" in response.url

    @pytest.mark.parametrize(
        "url_name",
        [
            "admin:users_business_changelist",
            "admin:users_customuser_changelist",
            "admin:core_staff_changelist",
            "admin:core_service_changelist",
            "admin:core_availabilityrule_changelist",
            "admin:core_availabilityexception_changelist",
            "admin:core_appointment_changelist",
            "admin:core_recurringappointmentseries_changelist",
            "admin:payments_payment_changelist",
        ],
    )
    def test_changelists_render(self, url_name):
        self._login()
        response = self.client.get(reverse(url_name))
        assert response.status_code == 200

    def test_business_change_page_lists_users(self):
        self._login()
        response = self.client.get(
            reverse("admin:users_business_change", args=[self.business.id])
        )
        assert response.status_code == 200
        assert b"1 users" in response.content

    def test_cancel_selected_action(self):
        appointment = book_slot(
            self.business,
            self.service,
            None,
            local(next_weekday(0), 10),
            CustomerInfo(name="Ana Rivera", phone="+17875550101"),
        )
        self._login()

        response = self.client.post(
            reverse("admin:core_appointment_changelist"),
            {"action": "cancel_selected", "_selected_action": [appointment.id]},
        )

        assert response.status_code == 302
        appointment.refresh_from_db()
        assert appointment.status == Appointment.Status.CANCELED

    def test_deactivate_series_action(self):
        series = RecurringAppointmentSeries.objects.create(
            business=self.business,
            service=self.service,
            customer_name="Ana Rivera",
            customer_phone="+17875550101",
            frequency=RecurringAppointmentSeries.Frequency.WEEKLY,
            start_date=next_weekday(0),
            time_of_day=time(10),
        )
        self._login()

        response = self.client.post(
            reverse("admin:core_recurringappointmentseries_changelist"),
            {"action": "deactivate_selected", "_selected_action": [series.id]},
        )

        assert response.status_code == 302
        series.refresh_from_db()
        assert series.is_active is False

    def test_deactivate_businesses_action(self):
        self._login()

        self.client.post(
            reverse("admin:users_business_changelist"),
            {"action": "deactivate_businesses", "_selected_action": [self.business.id]},
        )

        self.business.refresh_from_db()
        assert self.business.is_active is False
