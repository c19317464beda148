"""
Public booking page endpoints, addressed by business slug. No authentication.
"""

import logging
from typing import Any, cast

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status as drf_status
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core import observability
from core.mixins import PublicBusinessMixin
from core.models import Appointment, Service
from core.scheduling import CustomerInfo, book_slot, generate_slots, summarize_availability
from core.serializers import (
    BookingRequestSerializer,
    BookingResponseSerializer,
    DateRangeQuerySerializer,
    DayAvailabilitySerializer,
    PublicAppointmentSerializer,
    PublicServiceSerializer,
    SlotQuerySerializer,
)
from core.throttling import PublicBookingThrottle
from core.utils.cache import get_public_catalog, set_public_catalog
from core.views import ics_response
from payments.deposits import start_deposit
from users.serializers import PublicBusinessSerializer
from users.observability import USERS_THROTTLED_TOTAL

logger = logging.getLogger(__name__)


class PublicServiceListView(PublicBusinessMixin, APIView):
    """GET /api/public/<slug>/services/"""

    @extend_schema(responses=OpenApiTypes.OBJECT)
    def get(self, request, slug):
        business = request.business
        payload = get_public_catalog(business.id)
        if payload is None:
            services = (
                Service.objects.filter(business=business, is_active=True)
                .prefetch_related("staff")
                .order_by("name", "id")
            )
            payload = {
                "business": PublicBusinessSerializer(business).data,
                "services": PublicServiceSerializer(services, many=True).data,
            }
            set_public_catalog(business.id, payload)
        return Response(payload)


class PublicSlotListView(PublicBusinessMixin, APIView):
    """GET /api/public/<slug>/slots/?service=&date=&end_date=&staff="""

    @extend_schema(
        parameters=[
            OpenApiParameter("service", OpenApiTypes.INT, required=True),
            OpenApiParameter("date", OpenApiTypes.DATE, required=True),
            OpenApiParameter("end_date", OpenApiTypes.DATE, required=False),
            OpenApiParameter("staff", OpenApiTypes.INT, required=False),
        ],
        responses=OpenApiTypes.OBJECT,
    )
    def get(self, request, slug):
        business = request.business
        query = SlotQuerySerializer(
            data=request.query_params, context={"business": business}
        )
        query.is_valid(raise_exception=True)
        params = cast(dict[str, Any], query.validated_data)
        service = params["service"]
        staff = params.get("staff")

        slots = generate_slots(
            business, service, staff, params["date"], params["end_date"]
        )
        observability.SLOT_QUERIES_TOTAL.labels(
            business_id=str(business.id), endpoint="public_slots"
        ).inc()
        logger.debug(
            "slots_generated",
            extra={
                "business_id": business.slug,
                "service_id": service.id,
                "staff_id": staff.id if staff else None,
                "count": len(slots),
            },
        )
        return Response(
            {
                "timezone": business.timezone,
                "service": service.id,
                "staff": staff.id if staff else None,
                "start_date": params["date"].isoformat(),
                "end_date": params["end_date"].isoformat(),
                "slots": [slot.isoformat() for slot in slots],
            }
        )


class PublicDaySummaryView(PublicBusinessMixin, APIView):
    """GET /api/public/<slug>/days/?start=&end=&staff="""

    @extend_schema(
        parameters=[
            OpenApiParameter("start", OpenApiTypes.DATE, required=True),
            OpenApiParameter("end", OpenApiTypes.DATE, required=True),
            OpenApiParameter("staff", OpenApiTypes.INT, required=False),
        ],
        responses=DayAvailabilitySerializer(many=True),
    )
    def get(self, request, slug):
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
            business_id=str(business.id), endpoint="public_days"
        ).inc()
        return Response(DayAvailabilitySerializer(days, many=True).data)


class PublicBookingView(PublicBusinessMixin, APIView):
    """
    POST /api/public/<slug>/book/

    409 (E203) when the slot was taken or is no longer bookable. Services with
    a deposit come back pending with a Stripe checkout URL or ATH Movil
    instructions.
    """

    throttle_classes = [PublicBookingThrottle]
    throttle_scope = "public_booking"

    @extend_schema(
        request=BookingRequestSerializer,
        responses={
            201: BookingResponseSerializer,
            409: OpenApiResponse(description="Slot unavailable"),
        },
    )
    def post(self, request, slug):
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
            source=Appointment.Source.PUBLIC,
            notes=data.get("notes", ""),
        )
        payment = start_deposit(appointment)

        body = {
            "appointment_id": appointment.id,
            "status": appointment.status,
            "starts_at": appointment.local_starts_at(),
            "deposit_cents": appointment.deposit_cents,
            **payment,
        }
        return Response(
            BookingResponseSerializer(body).data, status=drf_status.HTTP_201_CREATED
        )

    def throttled(self, request, wait):
        USERS_THROTTLED_TOTAL.labels(scope="public_booking").inc()
        return super().throttled(request, wait)


class PublicAppointmentView(APIView):
    """GET /api/public/appointments/<id>/ confirmation summary."""

    permission_classes = [AllowAny]
    authentication_classes: list = []

    @extend_schema(responses=PublicAppointmentSerializer)
    def get(self, request, pk):
        appointment = _public_appointment(pk)
        return Response(PublicAppointmentSerializer(appointment).data)


class PublicAppointmentICSView(APIView):
    """GET /api/public/appointments/<id>/ics/"""

    permission_classes = [AllowAny]
    authentication_classes: list = []

    @extend_schema(
        responses={
            200: OpenApiResponse(
                description="ICS calendar file", response=OpenApiTypes.BINARY
            )
        }
    )
    def get(self, request, pk):
        appointment = _public_appointment(pk)
        response = ics_response(appointment)
        observability.ICS_DOWNLOADS_TOTAL.labels(
            business_id=str(appointment.business_id), status="success"
        ).inc()
        logger.info(
            "ics_downloaded",
            extra={
                "business_pk": appointment.business_id,
                "appointment_id": appointment.id,
                "origin": "public",
            },
        )
        return response


def _public_appointment(pk) -> Appointment:
    appointment = (
        Appointment.objects.select_related("business", "service", "staff")
        .filter(pk=pk, business__is_active=True)
        .first()
    )
    if appointment is None:
        raise NotFound("Appointment not found.")
    return appointment
