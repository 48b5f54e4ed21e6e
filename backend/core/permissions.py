"""Tenant isolation and permission-flag checks for API views"""
import logging
from rest_framework.permissions import BasePermission

logger = logging.getLogger('backend.core')


class TenantIsolation(BasePermission):
    """
    The X-Tenant-ID header, when sent, must match the tenant in the token,
    and the token tenant must still be the user's tenant.
    """
    message = 'Tenant mismatch'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        token = request.auth
        token_tenant = token.get('tenant_id') if token is not None and hasattr(token, 'get') else None
        if token_tenant is not None and str(token_tenant) != str(user.tenant_id):
            logger.warning(f"Token tenant {token_tenant} does not match tenant of user {user.email}")
            return False

        header_tenant = request.headers.get('X-Tenant-ID')
        if header_tenant:
            expected = token_tenant if token_tenant is not None else user.tenant_id
            if str(header_tenant) != str(expected):
                logger.warning(f"User {user.email} sent tenant header {header_tenant}, token tenant is {expected}")
                return False
        return True


def require_permission(flag):
    """Build a permission class requiring a QMS permission flag (admins always pass)"""

    class HasQMSPermission(BasePermission):
        message = f'You do not have permission: {flag}'

        def has_permission(self, request, view):
            user = request.user
            if not user or not user.is_authenticated:
                return False
            return user.has_qms_permission(flag)

    HasQMSPermission.__name__ = f'Has_{flag}'
    return HasQMSPermission


def is_certificate_manager(user):
    """Admins and QA managers can see every certificate of their tenant"""
    return user.role in ('admin', 'qa_manager')
