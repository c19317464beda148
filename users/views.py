import logging

from django.core.cache import cache
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from .observability import USERS_AUTH_EVENTS_TOTAL, USERS_THROTTLED_TOTAL
from .serializers import BusinessSerializer, EmailTokenObtainPairSerializer
from .throttling import AuthLoginThrottle

logger = logging.getLogger("users.auth")


def _me_business_cache_key(user_id: int, business_id: int, updated_at) -> str:
    updated_ts = str(int(updated_at.timestamp())) if updated_at else "0"
    return f"users:me-business:{user_id}:{business_id}:{updated_ts}"


class EmailTokenObtainPairView(TokenObtainPairView):
    serializer_class = EmailTokenObtainPairSerializer
    permission_classes = [AllowAny]
    throttle_classes = [AuthLoginThrottle]
    throttle_scope = "auth_login"

    def post(self, request, *args, **kwargs):
        try:
            resp = super().post(request, *args, **kwargs)
        except Exception:
            USERS_AUTH_EVENTS_TOTAL.labels(event="login", result="failure").inc()
            raise
        result = "success" if resp.status_code == status.HTTP_200_OK else "failure"
        USERS_AUTH_EVENTS_TOTAL.labels(event="login", result=result).inc()
        return resp

    def throttled(self, request, wait):  # pragma: no cover
        USERS_THROTTLED_TOTAL.labels(scope="auth_login").inc()
        return super().throttled(request, wait)


class MeBusinessView(APIView):
    """Business of the logged-in user; the dashboard needs its timezone."""

    permission_classes = [IsAuthenticated]
    CACHE_TTL = 30

    @extend_schema(responses=BusinessSerializer)
    def get(self, request):
        user = request.user
        business = getattr(user, "business", None)
        if business is None:
            raise NotFound("No business is attached to this user.")

        cache_key = _me_business_cache_key(user.id, business.id, business.updated_at)
        payload = cache.get(cache_key)
        cached_hit = payload is not None

        if not cached_hit:
            payload = BusinessSerializer(business).data
            cache.set(cache_key, payload, timeout=self.CACHE_TTL)

        logger.info(
            "business_bootstrap",
            extra={
                "user_id": user.id,
                "business_slug": business.slug,
                "cached": cached_hit,
            },
        )

        return Response(payload, status=status.HTTP_200_OK)
