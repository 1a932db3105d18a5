from rest_framework.permissions import BasePermission


class HasRole(BasePermission):
    """Allow access only to authenticated users whose role is in ``allowed_roles``"""
    allowed_roles = ()
    message = 'Access denied'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'role', None) in self.allowed_roles)


class IsSuperAdmin(HasRole):
    allowed_roles = ('superadmin',)
    message = 'Super Admin access required'


class IsSuperAdminOrIssuer(HasRole):
    allowed_roles = ('superadmin', 'issuer')
    message = 'Super Admin or Issuer access required'


class IsManager(HasRole):
    allowed_roles = ('superadmin', 'issuer', 'approver')
    message = 'Manager access required'
