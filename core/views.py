import logging
from datetime import datetime, time, timedelta
from typing import Any, cast

from django.db import transaction
from django.http import HttpResponse
from django.utils.dateparse import parse_date
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status as drf_status
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import ModelViewSet

from core import observability
from core.mixins import BusinessScopedMixin
from core.models import (
    Appointment,
    AvailabilityException,
    AvailabilityRule,
    RecurringAppointmentSeries,
    Service,
    Staff,
)
from core.scheduling import (
    KEEP_STAFF,
    CustomerInfo,
    book_slot,
    cancel_appointment,
    create_default_schedule,
    deactivate_series,
    delete_series,
    expand_all_active,
    expand_series,
    reschedule_appointment,
    set_appointment_status,
    summarize_availability,
)
from core.scheduling.recurrence import cancel_future_occurrences
from core.serializers import (
    AppointmentSerializer,
    AppointmentStatusSerializer,
    AvailabilityExceptionSerializer,
    AvailabilityRuleSerializer,
    BookingRequestSerializer,
    DateRangeQuerySerializer,
    DayAvailabilitySerializer,
    ExpansionResultSerializer,
    RecurringSeriesSerializer,
    RescheduleSerializer,
    ServiceSerializer,
    SkippedOccurrenceSerializer,
    StaffSerializer,
)
from core.utils.ics import ICSGenerator

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "t", "yes", "y"}


def _is_true(value) -> bool:
    return str(value).lower() in TRUTHY


def _parse_date_param(params, name):
    raw = params.get(name)
    if not raw:
        return None
    value = parse_date(raw)
    if value is None:
        raise ValidationError({name: "Use the YYYY-MM-DD format."})
    return value


def ics_response(appointment: Appointment) -> HttpResponse:
    content = ICSGenerator.generate_ics(appointment)
    response = HttpResponse(
        content.encode("utf-8"), content_type="text/calendar; charset=utf-8"
    )
    filename = ICSGenerator.get_filename(appointment)
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    response["Cache-Control"] = "no-cache, no-store, must-revalidate"
    response["Pragma"] = "no-cache"
    response["Expires"] = "0"
    return response


# =====================================================
# CATALOG
# =====================================================


class StaffViewSet(BusinessScopedMixin, ModelViewSet):
    """Staff members. DELETE deactivates so past appointments keep their staff."""

    queryset = Staff.objects.all()
    serializer_class = StaffSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        active = self.request.query_params.get("active")
        if active is not None and self.action == "list":
            qs = qs.filter(is_active=_is_true(active))
        return qs

    def destroy(self, request, *args, **kwargs):
        staff = self.get_object()
        if staff.is_active:
            staff.is_active = False
            staff.save(update_fields=["is_active"])
            logger.info(
                "staff_deactivated",
                extra={"business_id": request.business.slug, "staff_id": staff.id},
            )
        return Response(status=drf_status.HTTP_204_NO_CONTENT)


class ServiceViewSet(BusinessScopedMixin, ModelViewSet):
    """Services. DELETE deactivates; booked appointments keep pointing at them."""

    queryset = Service.objects.prefetch_related("staff")
    serializer_class = ServiceSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        active = self.request.query_params.get("active")
        if active is not None and self.action == "list":
            qs = qs.filter(is_active=_is_true(active))
        return qs

    def destroy(self, request, *args, **kwargs):
        service = self.get_object()
        if service.is_active:
            service.is_active = False
            service.save(update_fields=["is_active", "updated_at"])
            logger.info(
                "service_deactivated",
                extra={"business_id": request.business.slug, "service_id": service.id},
            )
        return Response(status=drf_status.HTTP_204_NO_CONTENT)


# =====================================================
# AVAILABILITY
# =====================================================


def _filter_staff_param(qs, raw):
    """?staff=<id> for one staff member, ?staff=business for business-wide rows."""
    if raw in (None, ""):
        return qs
    if raw == "business":
        return qs.filter(staff__isnull=True)
    try:
        return qs.filter(staff_id=int(raw))
    except ValueError:
        raise ValidationError({"staff": "Use a staff id or 'business'."})


class AvailabilityRuleViewSet(BusinessScopedMixin, ModelViewSet):
    queryset = AvailabilityRule.objects.select_related("staff")
    serializer_class = AvailabilityRuleSerializer
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action == "list":
            qs = _filter_staff_param(qs, self.request.query_params.get("staff"))
        return qs


class AvailabilityExceptionViewSet(BusinessScopedMixin, ModelViewSet):
    """
    Date overrides. POST upserts on (staff, date): 201 when a new row is
    created, 200 when an existing override was replaced.
    """

    queryset = AvailabilityException.objects.select_related("staff")
    serializer_class = AvailabilityExceptionSerializer
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action != "list":
            return qs
        params = self.request.query_params
        start = _parse_date_param(params, "start")
        end = _parse_date_param(params, "end")
        if start:
            qs = qs.filter(date__gte=start)
        if end:
            qs = qs.filter(date__lte=end)
        return _filter_staff_param(qs, params.get("staff"))

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.perform_create(serializer)
        created = getattr(serializer, "_created", True)
        instance = serializer.instance
        logger.info(
            "availability_exception_saved",
            extra={
                "business_id": request.business.slug,
                "exception_id": instance.id,
                "date": instance.date.isoformat(),
                "staff_id": instance.staff_id,
                "is_closed": instance.is_closed,
                "was_created": created,
            },
        )
        return Response(
            serializer.data,
            status=drf_status.HTTP_201_CREATED if created else drf_status.HTTP_200_OK,
        )


class DefaultScheduleView(BusinessScopedMixin, APIView):
    """POST /api/availability/default-schedule/"""

    @extend_schema(
        request=None,
        responses={
            200: OpenApiTypes.OBJECT,
            201: AvailabilityRuleSerializer(many=True),
        },
    )
    def post(self, request):
        business = request.business
        with transaction.atomic():
            rules = create_default_schedule(business)

        if not rules:
            return Response(
                {"created": 0, "message": "Business already has availability rules."},
                status=drf_status.HTTP_200_OK,
            )

        logger.info(
            "default_schedule_created",
            extra={"business_id": business.slug, "rules": len(rules)},
        )
        data = AvailabilityRuleSerializer(
            rules, many=True, context={"business": business}
        ).data
        return Response(data, status=drf_status.HTTP_201_CREATED)


class DaySummaryView(BusinessScopedMixin, APIView):
    """GET /api/availability/days/?start=&end=&staff="""

    @extend_schema(
        parameters=[
            OpenApiParameter("start", OpenApiTypes.DATE, required=True),
            OpenApiParameter("end", OpenApiTypes.DATE, required=True),
            OpenApiParameter("staff", OpenApiTypes.INT, required=False),
        ],
        responses=DayAvailabilitySerializer(many=True),
    )
    def get(self, request):
        business = request.business
        query = DateRangeQuerySerializer(
            data=request.query_params, context={"business": business}
        )
        query.is_valid(raise_exception=True)
        params = cast(dict[str, Any], query.validated_data)

        days = summarize_availability(
            business, params.get("staff"), params["start"], params["end"]
        )
        observability.SLOT_QUERIES_TOTAL.labels(
            business_id=str(business.id), endpoint="dashboard_days"
        ).inc()
        return Response(DayAvailabilitySerializer(days, many=True).data)


# =====================================================
# APPOINTMENTS
# =====================================================


class AppointmentViewSet(BusinessScopedMixin, ModelViewSet):
    """
    Dashboard appointments.

    - list: ?start=&end= (local dates, inclusive), ?staff=, ?status=
    - create: books through the same guarded path as the public page
    - cancel / reschedule / status / ics actions
    Direct PUT/PATCH/DELETE are not exposed; every change goes through an action.
    """

    queryset = Appointment.objects.select_related("service", "staff", "business")
    serializer_class = AppointmentSerializer
    http_method_names = ["get", "post", "head", "options"]

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action != "list":
            return qs

        params = self.request.query_params
        tz = self.get_business().tzinfo
        # Dates are local to the business
        start = _parse_date_param(params, "start")
        end = _parse_date_param(params, "end")
        if start:
            qs = qs.filter(starts_at__gte=datetime.combine(start, time.min, tzinfo=tz))
        if end:
            next_day = end + timedelta(days=1)
            qs = qs.filter(starts_at__lt=datetime.combine(next_day, time.min, tzinfo=tz))

        staff = params.get("staff")
        if staff:
            qs = _filter_staff_param(qs, staff)
        status = params.get("status")
        if status:
            qs = qs.filter(status__in=status.split(","))
        return qs.order_by("starts_at", "id")

    @extend_schema(request=BookingRequestSerializer, responses={201: AppointmentSerializer})
    def create(self, request, *args, **kwargs):
        business = request.business
        serializer = BookingRequestSerializer(
            data=request.data, context={"business": business}
        )
        serializer.is_valid(raise_exception=True)
        data = cast(dict[str, Any], serializer.validated_data)

        appointment = book_slot(
            business,
            data["service"],
            data.get("staff"),
            data["starts_at"],
            CustomerInfo(
                name=data["customer_name"],
                phone=data["customer_phone"],
                email=data.get("customer_email", ""),
                locale=data.get("customer_locale", "es-PR"),
            ),
            source=Appointment.Source.DASHBOARD,
            notes=data.get("notes", ""),
        )
        return Response(
            AppointmentSerializer(appointment).data, status=drf_status.HTTP_201_CREATED
        )

    @extend_schema(request=None, responses={200: AppointmentSerializer})
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        appointment = self.get_object()
        cancel_appointment(appointment, origin="dashboard")
        return Response(AppointmentSerializer(appointment).data)

    @extend_schema(request=RescheduleSerializer, responses={200: AppointmentSerializer})
    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):
        appointment = self.get_object()
        serializer = RescheduleSerializer(
            data=request.data, context={"business": request.business}
        )
        serializer.is_valid(raise_exception=True)
        data = cast(dict[str, Any], serializer.validated_data)

        staff = data["staff"] if "staff" in data else KEEP_STAFF
        reschedule_appointment(appointment, data["starts_at"], staff=staff)
        return Response(AppointmentSerializer(appointment).data)

    @extend_schema(request=AppointmentStatusSerializer, responses={200: AppointmentSerializer})
    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):
        appointment = self.get_object()
        serializer = AppointmentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        set_appointment_status(appointment, serializer.validated_data["status"])
        return Response(AppointmentSerializer(appointment).data)

    @extend_schema(
        responses={
            200: OpenApiResponse(
                description="ICS calendar file", response=OpenApiTypes.BINARY
            )
        }
    )
    @action(detail=True, methods=["get"])
    def ics(self, request, pk=None):
        appointment = self.get_object()
        response = ics_response(appointment)
        observability.ICS_DOWNLOADS_TOTAL.labels(
            business_id=str(request.business.id), status="success"
        ).inc()
        logger.info(
            "ics_downloaded",
            extra={
                "business_id": request.business.slug,
                "appointment_id": appointment.id,
                "origin": "dashboard",
            },
        )
        return response


# =====================================================
# RECURRING SERIES
# =====================================================

# Fields whose change moves future occurrences
SCHEDULE_FIELDS = ("service", "staff", "frequency", "start_date", "end_date", "time_of_day")


class RecurringSeriesViewSet(BusinessScopedMixin, ModelViewSet):
    """
    Recurring series.

    - create: saves the series and books occurrences up to the horizon
    - update: schedule changes cancel future occurrences and regenerate;
      is_active=false deactivates (cancels future occurrences)
    - destroy: ?cancel_future=true cancels future occurrences first
    - generate: expands every active series of the business
    - skipped: occurrences that could not be booked
    """

    queryset = RecurringAppointmentSeries.objects.select_related("service", "staff")
    serializer_class = RecurringSeriesSerializer

    @extend_schema(responses={201: OpenApiTypes.OBJECT})
    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        series = serializer.save(business=request.business)
        result = expand_series(series)

        logger.info(
            "recurring_series_created",
            extra={
                "business_id": request.business.slug,
                "series_id": series.id,
                "frequency": series.frequency,
            },
        )
        series.refresh_from_db()
        return Response(
            {
                "series": self.get_serializer(series).data,
                "generation": result.as_dict(),
            },
            status=drf_status.HTTP_201_CREATED,
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        series = self.get_object()
        was_active = series.is_active
        before = {name: getattr(series, name) for name in SCHEDULE_FIELDS}

        serializer = self.get_serializer(series, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        generation = None
        canceled = 0
        with transaction.atomic():
            series = serializer.save()
            schedule_changed = any(
                getattr(series, name) != value for name, value in before.items()
            )

            if was_active and not series.is_active:
                # Already saved inactive; this only cancels what is ahead
                canceled = cancel_future_occurrences(series)
            elif series.is_active and (schedule_changed or not was_active):
                if schedule_changed:
                    canceled = cancel_future_occurrences(series)
                    series.skipped_occurrences.filter(resolved=False).delete()
                series.last_generated_date = None
                series.save(update_fields=["last_generated_date", "updated_at"])
                generation = expand_series(series)

        logger.info(
            "recurring_series_updated",
            extra={
                "business_id": request.business.slug,
                "series_id": series.id,
                "canceled_future": canceled,
                "regenerated": generation is not None,
            },
        )
        series.refresh_from_db()
        return Response(
            {
                "series": self.get_serializer(series).data,
                "canceled_future": canceled,
                "generation": generation.as_dict() if generation else None,
            }
        )

    @extend_schema(
        parameters=[OpenApiParameter("cancel_future", OpenApiTypes.BOOL, required=False)]
    )
    def destroy(self, request, *args, **kwargs):
        series = self.get_object()
        cancel_future = _is_true(request.query_params.get("cancel_future", "false"))
        canceled = delete_series(series, cancel_future=cancel_future)
        return Response({"canceled_future": canceled}, status=drf_status.HTTP_200_OK)

    @extend_schema(request=None, responses={200: OpenApiTypes.OBJECT})
    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):
        series = self.get_object()
        canceled = deactivate_series(series)
        return Response(
            {"series": self.get_serializer(series).data, "canceled_future": canceled}
        )

    @extend_schema(request=None, responses={200: ExpansionResultSerializer(many=True)})
    @action(detail=False, methods=["post"])
    def generate(self, request):
        results = expand_all_active(business=request.business)
        payload = [
            {"series": series_id, **result.as_dict()}
            for series_id, result in results.items()
        ]
        return Response(
            {
                "series": len(payload),
                "created": sum(item["created"] for item in payload),
                "skipped": sum(item["skipped"] for item in payload),
                "results": ExpansionResultSerializer(payload, many=True).data,
            }
        )

    @extend_schema(responses=SkippedOccurrenceSerializer(many=True))
    @action(detail=True, methods=["get"])
    def skipped(self, request, pk=None):
        series = self.get_object()
        qs = series.skipped_occurrences.all()
        if not _is_true(request.query_params.get("include_resolved", "false")):
            qs = qs.filter(resolved=False)
        return Response(SkippedOccurrenceSerializer(qs, many=True).data)
