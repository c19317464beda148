from typing import Any, cast

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from bookit_backend.error_handling import BusinessError
from bookit_backend.validators import (
    sanitize_phone_number,
    sanitize_text_input,
    validate_date_range,
    validate_phone_number,
    validate_time_range,
)
from core.models import (
    Appointment,
    AvailabilityException,
    AvailabilityRule,
    RecurringAppointmentSeries,
    Service,
    SkippedOccurrence,
    Staff,
)

HHMM = cast(Any, "%H:%M")
TIME_INPUT_FORMATS = ["%H:%M", "%H:%M:%S"]


def _time_field(**kwargs):
    return serializers.TimeField(
        format=HHMM, input_formats=TIME_INPUT_FORMATS, **kwargs
    )


def _clean_phone(value: str) -> str:
    sanitized = sanitize_phone_number(value)
    try:
        validate_phone_number(sanitized)
    except DjangoValidationError as exc:
        raise serializers.ValidationError(exc.messages) from exc
    return sanitized


def _range_error(exc: BusinessError):
    return serializers.ValidationError(exc.message)


class BusinessContextMixin:
    """Scopes related-object fields to context["business"]."""

    scoped_fields: dict = {}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        business = self.context.get("business")
        for name, model in self.scoped_fields.items():
            field = self.fields.get(name)
            if field is None:
                continue
            target = getattr(field, "child_relation", field)
            target.queryset = (
                model.objects.filter(business=business)
                if business is not None
                else model.objects.none()
            )


class BusinessDateTimeField(serializers.DateTimeField):
    """Datetimes without an offset are wall-clock times of context["business"]."""

    def default_timezone(self):
        business = self.context.get("business")
        if business is not None:
            return business.tzinfo
        return super().default_timezone()


# =====================================================
# CATALOG
# =====================================================


class StaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ["id", "display_name", "phone", "role", "is_active", "user"]
        read_only_fields = ["id", "user"]

    def validate_display_name(self, value):
        sanitized = sanitize_text_input(value, max_length=120)
        if not sanitized:
            raise serializers.ValidationError("Display name is required.")
        return sanitized

    def validate_phone(self, value):
        if not value:
            return ""
        return _clean_phone(value)


class ServiceSerializer(BusinessContextMixin, serializers.ModelSerializer):
    scoped_fields = {"staff": Staff}

    staff = serializers.PrimaryKeyRelatedField(
        many=True, queryset=Staff.objects.none(), required=False
    )

    class Meta:
        model = Service
        fields = [
            "id",
            "name",
            "description",
            "duration_min",
            "price_cents",
            "deposit_cents",
            "buffer_before_min",
            "buffer_after_min",
            "max_per_slot",
            "is_active",
            "staff",
        ]
        read_only_fields = ["id"]

    def validate_name(self, value):
        sanitized = sanitize_text_input(value, max_length=120)
        if not sanitized:
            raise serializers.ValidationError("Service name is required.")
        return sanitized

    def validate_description(self, value):
        return sanitize_text_input(value, max_length=2000) if value else ""

    def validate_max_per_slot(self, value):
        if value < 1:
            raise serializers.ValidationError("Must be at least 1.")
        return value

    def validate(self, data):
        price = data.get("price_cents", getattr(self.instance, "price_cents", 0))
        deposit = data.get("deposit_cents", getattr(self.instance, "deposit_cents", 0))
        if deposit > price:
            raise serializers.ValidationError(
                {"deposit_cents": "Deposit cannot exceed the service price."}
            )
        return data


class PublicStaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = Staff
        fields = ["id", "display_name"]


class PublicServiceSerializer(serializers.ModelSerializer):
    staff = serializers.SerializerMethodField()
    requires_deposit = serializers.BooleanField(read_only=True)

    class Meta:
        model = Service
        fields = [
            "id",
            "name",
            "description",
            "duration_min",
            "price_cents",
            "deposit_cents",
            "requires_deposit",
            "staff",
        ]

    def get_staff(self, obj):
        active = [member for member in obj.staff.all() if member.is_active]
        return PublicStaffSerializer(active, many=True).data


# =====================================================
# AVAILABILITY
# =====================================================


class AvailabilityRuleSerializer(BusinessContextMixin, serializers.ModelSerializer):
    scoped_fields = {"staff": Staff}

    staff = serializers.PrimaryKeyRelatedField(
        queryset=Staff.objects.none(), required=False, allow_null=True
    )
    start_time = _time_field()
    end_time = _time_field()

    class Meta:
        model = AvailabilityRule
        fields = ["id", "staff", "weekday", "start_time", "end_time", "is_active"]
        read_only_fields = ["id"]

    def validate(self, data):
        start = data.get("start_time", getattr(self.instance, "start_time", None))
        end = data.get("end_time", getattr(self.instance, "end_time", None))
        try:
            validate_time_range(start, end)
        except BusinessError as exc:
            raise serializers.ValidationError({"end_time": exc.message})
        return data


class AvailabilityExceptionSerializer(BusinessContextMixin, serializers.ModelSerializer):
    scoped_fields = {"staff": Staff}

    staff = serializers.PrimaryKeyRelatedField(
        queryset=Staff.objects.none(), required=False, allow_null=True
    )
    start_time = _time_field(required=False, allow_null=True)
    end_time = _time_field(required=False, allow_null=True)

    class Meta:
        model = AvailabilityException
        fields = [
            "id",
            "staff",
            "date",
            "is_closed",
            "start_time",
            "end_time",
            "reason",
            "notes",
        ]
        read_only_fields = ["id"]
        # (business, staff, date) collisions are resolved by upsert in create()
        validators = []

    def validate_notes(self, value):
        return sanitize_text_input(value, max_length=1000) if value else ""

    def validate(self, data):
        is_closed = data.get("is_closed", getattr(self.instance, "is_closed", True))
        start = data.get("start_time", getattr(self.instance, "start_time", None))
        end = data.get("end_time", getattr(self.instance, "end_time", None))

        if is_closed:
            data["start_time"] = None
            data["end_time"] = None
            return data

        if start is None or end is None:
            raise serializers.ValidationError(
                {"start_time": "Hours are required when the day is not closed."}
            )
        try:
            validate_time_range(start, end)
        except BusinessError as exc:
            raise serializers.ValidationError({"end_time": exc.message})
        return data

    def create(self, validated_data):
        lookup = {
            "business": validated_data.pop("business"),
            "staff": validated_data.pop("staff", None),
            "date": validated_data.pop("date"),
        }
        instance, created = AvailabilityException.objects.update_or_create(
            **lookup, defaults=validated_data
        )
        self._created = created
        return instance


class WindowSerializer(serializers.Serializer):
    start = serializers.CharField()
    end = serializers.CharField()


class DayAvailabilitySerializer(serializers.Serializer):
    date = serializers.DateField()
    state = serializers.ChoiceField(choices=["open", "closed", "custom"])
    is_open = serializers.BooleanField()
    windows = serializers.SerializerMethodField()
    reason = serializers.CharField(allow_blank=True)
    source = serializers.CharField()

    def get_windows(self, obj) -> list[dict]:
        return [window.as_dict() for window in obj.windows]


class DateRangeQuerySerializer(BusinessContextMixin, serializers.Serializer):
    scoped_fields = {"staff": Staff}

    start = serializers.DateField()
    end = serializers.DateField()
    staff = serializers.PrimaryKeyRelatedField(
        queryset=Staff.objects.none(), required=False, allow_null=True
    )

    def validate(self, data):
        try:
            validate_date_range(data["start"], data["end"])
        except BusinessError as exc:
            raise _range_error(exc)
        return data


class SlotQuerySerializer(BusinessContextMixin, serializers.Serializer):
    scoped_fields = {"service": Service, "staff": Staff}

    service = serializers.PrimaryKeyRelatedField(queryset=Service.objects.none())
    date = serializers.DateField()
    end_date = serializers.DateField(required=False)
    staff = serializers.PrimaryKeyRelatedField(
        queryset=Staff.objects.none(), required=False, allow_null=True
    )

    def validate(self, data):
        data.setdefault("end_date", data["date"])
        try:
            validate_date_range(data["date"], data["end_date"])
        except BusinessError as exc:
            raise _range_error(exc)
        return data


# =====================================================
# APPOINTMENTS
# =====================================================


class AppointmentSerializer(serializers.ModelSerializer):
    service_name = serializers.CharField(source="service.name", read_only=True)
    staff_name = serializers.CharField(
        source="staff.display_name", read_only=True, default=None
    )

    class Meta:
        model = Appointment
        fields = [
            "id",
            "service",
            "service_name",
            "staff",
            "staff_name",
            "series",
            "customer_name",
            "customer_phone",
            "customer_email",
            "customer_locale",
            "starts_at",
            "ends_at",
            "blocked_from",
            "blocked_until",
            "status",
            "source",
            "notes",
            "deposit_cents",
            "payment_status",
            "created_at",
            "canceled_at",
        ]
        read_only_fields = fields


class CustomerFieldsMixin(serializers.Serializer):
    customer_name = serializers.CharField(max_length=120)
    customer_phone = serializers.CharField(max_length=32)
    customer_email = serializers.EmailField(required=False, allow_blank=True, default="")
    customer_locale = serializers.CharField(required=False, default="es-PR", max_length=10)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_customer_name(self, value):
        sanitized = sanitize_text_input(value, max_length=120)
        if not sanitized:
            raise serializers.ValidationError("Customer name is required.")
        return sanitized

    def validate_customer_phone(self, value):
        return _clean_phone(value)

    def validate_customer_email(self, value):
        return value.strip().lower() if value else ""

    def validate_notes(self, value):
        return sanitize_text_input(value, max_length=1000) if value else ""


class BookingRequestSerializer(BusinessContextMixin, CustomerFieldsMixin):
    """Booking submission (public page and dashboard)."""

    scoped_fields = {"service": Service, "staff": Staff}

    service = serializers.PrimaryKeyRelatedField(queryset=Service.objects.none())
    staff = serializers.PrimaryKeyRelatedField(
        queryset=Staff.objects.none(), required=False, allow_null=True
    )
    starts_at = BusinessDateTimeField()

    def validate_service(self, value):
        if not value.is_active:
            raise serializers.ValidationError("Service is not available.")
        return value

    def validate_staff(self, value):
        if value is not None and not value.is_active:
            raise serializers.ValidationError("Staff member is not available.")
        return value


class RescheduleSerializer(BusinessContextMixin, serializers.Serializer):
    scoped_fields = {"staff": Staff}

    starts_at = BusinessDateTimeField()
    staff = serializers.PrimaryKeyRelatedField(
        queryset=Staff.objects.none(), required=False, allow_null=True
    )


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[
            Appointment.Status.CONFIRMED,
            Appointment.Status.COMPLETED,
            Appointment.Status.NO_SHOW,
            Appointment.Status.CANCELED,
        ]
    )


class PublicAppointmentSerializer(serializers.ModelSerializer):
    """Confirmation summary shown to the customer after booking."""

    service_name = serializers.CharField(source="service.name", read_only=True)
    staff_name = serializers.CharField(
        source="staff.display_name", read_only=True, default=None
    )
    business_name = serializers.CharField(source="business.name", read_only=True)
    business_slug = serializers.CharField(source="business.slug", read_only=True)
    business_timezone = serializers.CharField(source="business.timezone", read_only=True)
    duration_min = serializers.IntegerField(source="service.duration_min", read_only=True)

    class Meta:
        model = Appointment
        fields = [
            "id",
            "business_name",
            "business_slug",
            "business_timezone",
            "service_name",
            "staff_name",
            "customer_name",
            "starts_at",
            "ends_at",
            "duration_min",
            "status",
            "deposit_cents",
            "payment_status",
        ]
        read_only_fields = fields


class BookingResponseSerializer(serializers.Serializer):
    appointment_id = serializers.IntegerField()
    status = serializers.CharField()
    starts_at = serializers.DateTimeField()
    requires_payment = serializers.BooleanField()
    deposit_cents = serializers.IntegerField()
    payment_url = serializers.URLField(required=False, allow_null=True)
    ath_movil = serializers.DictField(required=False, allow_null=True)


# =====================================================
# RECURRING SERIES
# =====================================================


class RecurringSeriesSerializer(BusinessContextMixin, serializers.ModelSerializer):
    scoped_fields = {"service": Service, "staff": Staff}

    service = serializers.PrimaryKeyRelatedField(queryset=Service.objects.none())
    staff = serializers.PrimaryKeyRelatedField(
        queryset=Staff.objects.none(), required=False, allow_null=True
    )
    time_of_day = _time_field()
    service_name = serializers.CharField(source="service.name", read_only=True)
    staff_name = serializers.CharField(
        source="staff.display_name", read_only=True, default=None
    )
    pending_skips = serializers.SerializerMethodField()

    class Meta:
        model = RecurringAppointmentSeries
        fields = [
            "id",
            "service",
            "service_name",
            "staff",
            "staff_name",
            "customer_name",
            "customer_phone",
            "customer_email",
            "frequency",
            "start_date",
            "end_date",
            "time_of_day",
            "notes",
            "is_active",
            "last_generated_date",
            "pending_skips",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "last_generated_date", "created_at", "updated_at"]

    def get_pending_skips(self, obj) -> int:
        return obj.skipped_occurrences.filter(resolved=False).count()

    def validate_customer_name(self, value):
        sanitized = sanitize_text_input(value, max_length=120)
        if not sanitized:
            raise serializers.ValidationError("Customer name is required.")
        return sanitized

    def validate_customer_phone(self, value):
        return _clean_phone(value)

    def validate_notes(self, value):
        return sanitize_text_input(value, max_length=1000) if value else ""

    def validate(self, data):
        start = data.get("start_date", getattr(self.instance, "start_date", None))
        end = data.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and end < start:
            raise serializers.ValidationError(
                {"end_date": "End date must be on or after the start date."}
            )
        service = data.get("service")
        if service is not None and not service.is_active:
            raise serializers.ValidationError({"service": "Service is not available."})
        return data


class SkippedOccurrenceSerializer(serializers.ModelSerializer):
    class Meta:
        model = SkippedOccurrence
        fields = ["id", "series", "date", "starts_at", "reason", "detail", "resolved", "created_at"]
        read_only_fields = ["id", "series", "date", "starts_at", "reason", "detail", "created_at"]


class ExpansionResultSerializer(serializers.Serializer):
    series = serializers.IntegerField()
    created = serializers.IntegerField()
    skipped = serializers.IntegerField()
    created_ids = serializers.ListField(child=serializers.IntegerField())
    skipped_dates = serializers.ListField(child=serializers.DateField())
