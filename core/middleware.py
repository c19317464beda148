from django.utils.deprecation import MiddlewareMixin


class BusinessMiddleware(MiddlewareMixin):
    """
    Sets request.business from a session-authenticated user (admin pages).
    API views authenticate with JWT inside DRF and resolve the business in
    BusinessScopedMixin.
    """

    def process_request(self, request):
        request.business = None

        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated:
            request.business = getattr(user, "business", None)

        return None
