from django.urls import include, path
from rest_framework.routers import DefaultRouter

from core.views import (
    AppointmentViewSet,
    AvailabilityExceptionViewSet,
    AvailabilityRuleViewSet,
    DaySummaryView,
    DefaultScheduleView,
    RecurringSeriesViewSet,
    ServiceViewSet,
    StaffViewSet,
)
from core.views_public import (
    PublicAppointmentICSView,
    PublicAppointmentView,
    PublicBookingView,
    PublicDaySummaryView,
    PublicServiceListView,
    PublicSlotListView,
)

router = DefaultRouter()
router.register("staff", StaffViewSet, basename="staff")
router.register("services", ServiceViewSet, basename="service")
router.register("availability/rules", AvailabilityRuleViewSet, basename="availability-rule")
router.register(
    "availability/exceptions",
    AvailabilityExceptionViewSet,
    basename="availability-exception",
)
router.register("appointments", AppointmentViewSet, basename="appointment")
router.register("recurring", RecurringSeriesViewSet, basename="recurring")

urlpatterns = [
    path(
        "availability/default-schedule/",
        DefaultScheduleView.as_view(),
        name="availability-default-schedule",
    ),
    path("availability/days/", DaySummaryView.as_view(), name="availability-days"),
    path("", include(router.urls)),
    # Public booking page
    path(
        "public/appointments/<int:pk>/",
        PublicAppointmentView.as_view(),
        name="public-appointment",
    ),
    path(
        "public/appointments/<int:pk>/ics/",
        PublicAppointmentICSView.as_view(),
        name="public-appointment-ics",
    ),
    path(
        "public/<slug:slug>/services/",
        PublicServiceListView.as_view(),
        name="public-services",
    ),
    path("public/<slug:slug>/slots/", PublicSlotListView.as_view(), name="public-slots"),
    path("public/<slug:slug>/days/", PublicDaySummaryView.as_view(), name="public-days"),
    path("public/<slug:slug>/book/", PublicBookingView.as_view(), name="public-book"),
]
