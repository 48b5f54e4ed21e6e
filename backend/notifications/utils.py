"""Creating notifications and dispatching their emails"""
import logging
from django.db import transaction
from django.utils import timezone
from .emails import send_template_email
from .models import Notification

logger = logging.getLogger('backend.notifications')


def pharmacy_name_for(user):
    from django.conf import settings
    tenant = getattr(user, 'tenant', None)
    return tenant.name if tenant else settings.PHARMACY_NAME


def deliver_notification_email(notification_id, to, template_name, context):
    """Send the email for a stored notification and record the outcome"""
    if send_template_email(to, template_name, context):
        Notification.objects.filter(pk=notification_id).update(email_sent=True, email_sent_at=timezone.now())
        return True
    return False


def create_notification(user, notification_type, title, message, link='', related_type='',
                        related_id=None, email_template=None, email_context=None):
    """
    Store a notification for a user. When an email template is given and the
    user accepts email notifications, the email goes out once the current
    transaction commits.
    """
    notification = Notification.objects.create(
        tenant_id=user.tenant_id,
        user=user,
        notification_type=notification_type,
        title=title,
        message=message,
        link=link,
        related_type=related_type,
        related_id=str(related_id) if related_id is not None else '',
    )
    logger.debug(f"Notification '{title}' created for {user.email}")

    if email_template and user.email_notifications and user.email:
        context = {
            'user_name': user.get_full_name() or user.email,
            'pharmacy_name': pharmacy_name_for(user),
            **(email_context or {}),
        }
        to = user.email
        notification_id = notification.id
        transaction.on_commit(lambda: deliver_notification_email(notification_id, to, email_template, context))

    return notification


def format_email_date(value):
    """Human readable date for email bodies"""
    if not value:
        return ''
    if hasattr(value, 'tzinfo') and value.tzinfo is not None:
        value = timezone.localtime(value)
    return value.strftime('%B %d, %Y')
