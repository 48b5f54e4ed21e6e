"""Shared helpers: audit logging, record numbering and pagination"""
import logging
import re
from decimal import Decimal, ROUND_HALF_UP

from django.core.paginator import Paginator
from django.utils import timezone
from rest_framework.response import Response

from .models import AuditLog, Tenant

logger = logging.getLogger('backend.core')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_reference=None, tenant=None):
    """
    Create an audit trail entry

    Args:
        request: request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, certificate_issue, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user)
        object_reference: Record number or title
        tenant: Optional tenant override (defaults to the user's tenant)
    """
    try:
        audit_user = user
        if audit_user is None and request is not None and hasattr(request, 'user'):
            audit_user = request.user
        if audit_user is not None and not audit_user.is_authenticated:
            audit_user = None

        if not action or not model_name or object_id is None:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        if tenant is None and audit_user is not None:
            tenant = audit_user.tenant

        return AuditLog.objects.create(
            tenant=tenant,
            user=audit_user,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_reference=object_reference,
            changes=changes or {},
            ip_address=get_client_ip(request) if request else None,
        )
    except Exception as e:
        # Audit trail failures never fail the main operation
        logger.error(f"Failed to create audit log: {str(e)}", exc_info=True)
        return None


def generate_record_number(model, tenant, prefix, field):
    """
    Next PREFIX-YYYY-NNN number for a tenant.
    Must run inside transaction.atomic(); the tenant row is locked so that
    concurrent creates of the same tenant are serialized.
    """
    Tenant.objects.select_for_update().filter(pk=tenant.pk).first()

    year = timezone.now().year
    stem = f'{prefix}-{year}-'
    pattern = re.compile(rf'^{re.escape(stem)}(\d+)$')

    highest = 0
    existing = model.objects.filter(tenant=tenant, **{f'{field}__startswith': stem}).values_list(field, flat=True)
    for number in existing:
        match = pattern.match(number)
        if match:
            highest = max(highest, int(match.group(1)))

    return f'{stem}{highest + 1:03d}'


def round_half_up(value, digits=0):
    """Round halves away from zero; ints when digits is 0"""
    rounded = Decimal(str(value)).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def parse_bool(value):
    """Interpret 'true'/'false' style query params; None when absent"""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes')


def paginated_response(request, queryset, serializer_class, default_limit=50, context=None):
    """Paginate a queryset with page/limit query params"""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(max(int(request.query_params.get('limit', default_limit)), 1), 500)
    except (TypeError, ValueError):
        limit = default_limit

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })


def diff_changes(before, after):
    """Field-level diff between two serialized representations"""
    changes = {}
    for key, new_value in after.items():
        old_value = before.get(key)
        if old_value != new_value:
            changes[key] = {'old': old_value, 'new': new_value}
    return changes
