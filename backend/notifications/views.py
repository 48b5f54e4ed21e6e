import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.permissions import TenantIsolation
from backend.core.utils import paginated_response, parse_bool
from .models import Notification
from .serializers import NotificationSerializer

logger = logging.getLogger('backend.notifications')


def own_notifications(request):
    return Notification.objects.filter(user=request.user, tenant_id=request.user.tenant_id)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def notification_list(request):
    """List the current user's notifications"""
    notifications = own_notifications(request)
    is_read = parse_bool(request.query_params.get('is_read'))
    if is_read is not None:
        notifications = notifications.filter(is_read=is_read)
    return paginated_response(request, notifications, NotificationSerializer, default_limit=20)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def unread_notifications(request):
    notifications = own_notifications(request).filter(is_read=False)
    return Response(NotificationSerializer(notifications, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, TenantIsolation])
def unread_count(request):
    return Response({'count': own_notifications(request).filter(is_read=False).count()})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation])
def mark_read(request, pk):
    """Mark one notification as read"""
    notification = get_object_or_404(own_notifications(request), pk=pk)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=['is_read', 'read_at'])
    return Response(NotificationSerializer(notification).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, TenantIsolation])
def mark_all_read(request):
    """Mark every unread notification of the current user as read"""
    updated = own_notifications(request).filter(is_read=False).update(is_read=True, read_at=timezone.now())
    logger.info(f"{updated} notifications marked read for {request.user.email}")
    return Response({'updated': updated})
