"""
Email delivery for notifications.

Sending is best effort: an unconfigured SMTP transport or a failed send is
logged and reported as False, never raised.
"""
import logging
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.defaultfilters import pluralize
from django.template.loader import render_to_string

logger = logging.getLogger('backend.notifications')

SMTP_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'

EMAIL_SUBJECTS = {
    'training_assigned': 'New Training Assigned: {training_title}',
    'training_reminder': 'Reminder: Training Due in {days_left} Day{days_suffix} - {training_title}',
    'training_overdue': 'Training Overdue: {training_title}',
    'certificate_issued': 'Certificate Issued: {training_title}',
    'exam_available': 'Exam Available: {exam_title}',
}


def email_configured():
    """SMTP needs a host; other backends (console, locmem) are always usable"""
    if settings.EMAIL_BACKEND != SMTP_BACKEND:
        return True
    return bool(getattr(settings, 'SMTP_HOST', ''))


def render_email(template_name, context):
    """Render (subject, html, text) for one of the notification email templates"""
    if template_name not in EMAIL_SUBJECTS:
        raise ValueError(f'Unknown email template: {template_name}')
    context = {'pharmacy_name': settings.PHARMACY_NAME, **context}
    if 'days_left' in context:
        context.setdefault('days_suffix', pluralize(context['days_left']))
    subject = EMAIL_SUBJECTS[template_name].format(**context)
    html = render_to_string(f'notifications/email/{template_name}.html', context)
    text = render_to_string(f'notifications/email/{template_name}.txt', context).strip()
    return subject, html, text


def send_email(to, subject, html, text=None):
    """Send one email; returns True on success"""
    if not email_configured():
        logger.warning(f"Email not configured; skipping '{subject}' to {to}")
        return False
    try:
        message = EmailMultiAlternatives(subject, text or '', settings.DEFAULT_FROM_EMAIL, [to])
        message.attach_alternative(html, 'text/html')
        message.send()
        logger.info(f"Email sent to {to}: {subject}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to}: {str(e)}", exc_info=True)
        return False


def send_template_email(to, template_name, context):
    try:
        subject, html, text = render_email(template_name, context)
    except Exception as e:
        logger.error(f"Failed to render email '{template_name}' for {to}: {str(e)}", exc_info=True)
        return False
    return send_email(to, subject, html, text)
