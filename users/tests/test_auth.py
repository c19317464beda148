import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from bookit_backend.error_handling import ErrorCodes

User = get_user_model()


@pytest.mark.django_db
class TestAuthEndpoints:

    def setup_method(self):
        self.client = APIClient()
        self.token_url = reverse("token_obtain_pair")
        self.refresh_url = reverse("token_refresh")
        self.me_business_url = reverse("me_business")

    def test_successful_login(self, user_fixture):
        payload = {"email": "owner@example.com", "password": "testpass"}
        response = self.client.post(self.token_url, data=payload)

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data
        assert "refresh" in response.data
        assert response.data["business"]["slug"] == "barberia-boricua"
        assert response.data["business"]["timezone"] == "America/Puerto_Rico"

        refresh = RefreshToken(response.data["refresh"])
        access = refresh.access_token
        assert refresh.get("business_slug") == "barberia-boricua"
        assert access.get("business_slug") == "barberia-boricua"
        assert refresh.get("business_id") == str(user_fixture.business_id)

    def test_login_email_is_case_insensitive(self, user_fixture):
        payload = {"email": "OWNER@example.com", "password": "testpass"}
        response = self.client.post(self.token_url, data=payload)
        assert response.status_code == status.HTTP_200_OK

    def test_login_invalid_credentials(self, user_fixture):
        payload = {"email": "owner@example.com", "password": "wrongpass"}
        response = self.client.post(self.token_url, data=payload)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["error"]["code"] == ErrorCodes.AUTH_INVALID_TOKEN

    def test_login_inactive_user(self, user_fixture):
        user_fixture.is_active = False
        user_fixture.save()

        payload = {"email": "owner@example.com", "password": "testpass"}
        response = self.client.post(self.token_url, data=payload)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_login_missing_fields(self):
        response = self.client.post(self.token_url, data={"email": "x@x.com"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "password" in response.data["error"]["details"]

    def test_login_user_without_business(self):
        User.objects.create_user(
            username="loner", email="loner@example.com", password="testpass"
        )
        response = self.client.post(
            self.token_url, data={"email": "loner@example.com", "password": "testpass"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["business"] is None

    def test_token_refresh(self, user_fixture):
        login = self.client.post(
            self.token_url, data={"email": "owner@example.com", "password": "testpass"}
        )
        response = self.client.post(self.refresh_url, data={"refresh": login.data["refresh"]})

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data

    def test_bearer_token_reaches_dashboard(self, user_fixture):
        login = self.client.post(
            self.token_url, data={"email": "owner@example.com", "password": "testpass"}
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")

        response = self.client.get("/api/services/")

        assert response.status_code == status.HTTP_200_OK

    def test_invalid_bearer_token(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")
        response = self.client.get("/api/services/")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_me_business(self, api_client):
        response = api_client.get(self.me_business_url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["slug"] == "barberia-boricua"
        assert response.data["currency"] == "USD"

    def test_me_business_without_business(self):
        user = User.objects.create_user(
            username="loner", email="loner@example.com", password="testpass"
        )
        self.client.force_authenticate(user=user)

        response = self.client.get(self.me_business_url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_me_business_requires_auth(self):
        response = self.client.get(self.me_business_url)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
