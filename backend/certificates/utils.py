"""Certificate issuance"""
import calendar
import logging
import uuid
from django.utils import timezone
from backend.core.utils import create_audit_log
from backend.notifications.utils import create_notification, format_email_date
from .models import Certificate

logger = logging.getLogger('backend.certificates')


def add_months(value, months):
    """Shift a datetime by whole months, clamping the day to the target month's length"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def generate_certificate_number(issued_at=None):
    """CERT-YYYY-XXXXXXXX with eight upper-case hex characters"""
    issued_at = issued_at or timezone.now()
    while True:
        number = f'CERT-{issued_at.year}-{uuid.uuid4().hex[:8].upper()}'
        if not Certificate.objects.filter(certificate_number=number).exists():
            return number


def certificate_expiry(training, issued_at):
    """Recurring trainings expire at the next due date, or after the validity period"""
    if not training.is_recurring:
        return None
    if training.next_due_date:
        return training.next_due_date
    return add_months(issued_at, training.certificate_validity_months)


def issue_certificate(assignment, exam_score=None, issued_by=None):
    """
    Issue the certificate for a completed assignment.
    Returns None when the training has certificates disabled.
    """
    training = assignment.training
    if not training.certificate_enabled:
        logger.info(f"Certificates disabled for {training.training_number}; none issued for assignment {assignment.id}")
        return None

    user = assignment.user
    now = timezone.now()
    certificate = Certificate.objects.create(
        tenant=assignment.tenant,
        user=user,
        training=training,
        assignment=assignment,
        certificate_number=generate_certificate_number(now),
        training_title=training.title,
        user_name=user.get_full_name() or user.email,
        issue_date=now,
        expiry_date=certificate_expiry(training, now),
        completion_date=assignment.completed_at or now,
        exam_score=exam_score,
    )
    assignment.certificate_issued_at = now
    assignment.save(update_fields=['certificate_issued_at', 'updated_at'])

    create_notification(
        user,
        'certificate_issued',
        'Certificate Issued',
        f'Your certificate for "{training.title}" is ready',
        link=f'/certificates/{certificate.id}',
        related_type='Certificate',
        related_id=certificate.id,
        email_template='certificate_issued',
        email_context={
            'training_title': training.title,
            'certificate_number': certificate.certificate_number,
            'issue_date': format_email_date(certificate.issue_date),
            'expiry_date': format_email_date(certificate.expiry_date),
        },
    )
    create_audit_log(user=issued_by or user, action='certificate_issue', model_name='Certificate',
                     object_id=certificate.id, object_reference=certificate.certificate_number,
                     tenant=assignment.tenant)
    logger.info(f"Certificate {certificate.certificate_number} issued to {user.email} for {training.training_number}")
    return certificate
