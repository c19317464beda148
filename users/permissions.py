from rest_framework.permissions import BasePermission


class IsBusinessMember(BasePermission):
    """
    Authenticated user attached to an active business. Dashboard endpoints
    are scoped to that business through request.business.
    """

    message = "User is not attached to an active business."

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        business = getattr(user, "business", None)
        return bool(business and business.is_active)

    def has_object_permission(self, request, view, obj):
        return getattr(obj, "business_id", None) == request.user.business_id
