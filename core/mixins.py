from rest_framework.permissions import AllowAny

from bookit_backend.error_handling import ErrorCodes, TenantError
from users.models import Business
from users.permissions import IsBusinessMember


class BusinessScopedMixin:
    """
    Restricts a DRF view to the authenticated user's business.

    - request.business is set before the handler runs
    - get_queryset() is filtered by business
    - perform_create() stamps the business on new rows
    """

    permission_classes = [IsBusinessMember]
    business_field = "business"

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        business = getattr(request.user, "business", None)
        if business is None:
            raise TenantError("No business is attached to this user.")
        if not business.is_active:
            raise TenantError(
                "Business is inactive.", code=ErrorCodes.BUSINESS_TENANT_INACTIVE
            )
        request.business = business

    def get_business(self):
        return self.request.business

    def get_queryset(self):
        queryset = super().get_queryset()
        return queryset.filter(**{self.business_field: self.get_business()})

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["business"] = self.get_business()
        return context

    def perform_create(self, serializer):
        serializer.save(**{self.business_field: self.get_business()})


class PublicBusinessMixin:
    """
    Public booking page endpoints, addressed by business slug. Unknown or
    inactive businesses answer 404.
    """

    permission_classes = [AllowAny]
    authentication_classes: list = []

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        slug = kwargs.get("slug")
        business = Business.objects.filter(slug=slug, is_active=True).first()
        if business is None:
            raise TenantError("Business not found.")
        request.business = business

    def get_business(self):
        return self.request.business
