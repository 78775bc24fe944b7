from rest_framework.permissions import BasePermission


class HasUserType(BasePermission):
    """
    Role-based permission for API views
    Usage: permission_classes = [IsAuthenticated, HasUserType.of('hospital', 'super_admin')]
    """
    allowed_types = ()
    message = "Access denied"

    @classmethod
    def of(cls, *user_types):
        return type(f"HasUserType_{'_'.join(user_types)}", (cls,), {'allowed_types': user_types})

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser:
            return True
        return user.user_type in self.allowed_types


def is_platform_admin(user):
    return bool(user and user.is_authenticated and (user.is_superuser or user.user_type == 'super_admin'))
