from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.tokens import RefreshToken

from .models import Business, CustomUser


class BusinessSerializer(serializers.ModelSerializer):
    class Meta:
        model = Business
        fields = [
            "id",
            "name",
            "slug",
            "location",
            "timezone",
            "currency",
            "messaging_mode",
            "stripe_enabled",
            "ath_movil_enabled",
            "is_active",
        ]
        read_only_fields = fields


class PublicBusinessSerializer(serializers.ModelSerializer):
    """What the public booking page may know about a business."""

    class Meta:
        model = Business
        fields = [
            "name",
            "slug",
            "location",
            "timezone",
            "currency",
            "stripe_enabled",
            "ath_movil_enabled",
            "ath_movil_public_token",
        ]
        read_only_fields = fields


class EmailTokenObtainPairSerializer(serializers.Serializer):
    """Email/password login returning a JWT pair carrying the business claims."""

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        email = attrs.get("email")
        password = attrs.get("password")

        user = CustomUser.objects.filter(email__iexact=email).first()
        if user is None or not user.check_password(password):
            raise AuthenticationFailed("Invalid credentials.")

        if not user.is_active:
            raise AuthenticationFailed("Account is inactive.")

        refresh = RefreshToken.for_user(user)
        access_token = refresh.access_token
        if user.business:
            for token in (refresh, access_token):
                token["business_slug"] = user.business.slug
                token["business_id"] = str(user.business_id)

        return {
            "refresh": str(refresh),
            "access": str(access_token),
            "business": BusinessSerializer(user.business).data if user.business else None,
        }
