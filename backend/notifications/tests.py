"""
Comprehensive test suite for Notifications module
Tests: In-app notifications, read state, email delivery and templates
"""
from django.core import mail
from django.test import TestCase, override_settings
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.emails import render_email, send_email, email_configured
from backend.notifications.models import Notification
from backend.notifications.utils import create_notification


class NotificationAPITests(TestCase):
    """Test notification endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.tenant = TestDataFactory.create_tenant()
        self.user = TestDataFactory.create_user(self.tenant)
        self.first = create_notification(self.user, 'general', 'Welcome', 'Welcome to the QMS')
        self.second = create_notification(self.user, 'training_assigned', 'New Training Assigned', 'Cold chain')
        self.client.authenticate_user(self.user)

    def test_list(self):
        """Test listing notifications"""
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['page_size'], 20)
        self.assertEqual({n['type'] for n in response.data['results']}, {'general', 'training_assigned'})

    def test_only_own_notifications(self):
        """Test users never see other users' notifications"""
        other = TestDataFactory.create_user(self.tenant)
        create_notification(other, 'general', 'Private', 'Not yours')
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.data['count'], 2)

        response = self.client.patch(f'/api/v1/notifications/{other.notifications.get().id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mark_read(self):
        """Test marking one notification read"""
        response = self.client.patch(f'/api/v1/notifications/{self.first.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_read'])
        self.assertIsNotNone(response.data['read_at'])

        response = self.client.get('/api/v1/notifications/unread/count/')
        self.assertEqual(response.data, {'count': 1})
        response = self.client.get('/api/v1/notifications/', {'is_read': 'true'})
        self.assertEqual(response.data['count'], 1)

    def test_mark_all_read(self):
        """Test marking everything read"""
        response = self.client.patch('/api/v1/notifications/read-all/')
        self.assertEqual(response.data, {'updated': 2})
        response = self.client.get('/api/v1/notifications/unread/')
        self.assertEqual(response.data, [])


class NotificationEmailTests(TestCase):
    """Test email delivery of notifications"""

    def setUp(self):
        self.tenant = TestDataFactory.create_tenant(name='Harbour Pharmacy')
        self.user = TestDataFactory.create_user(self.tenant, first_name='Grace')

    def test_email_sent_after_commit(self):
        """Test templated notifications are emailed once the transaction commits"""
        with self.captureOnCommitCallbacks(execute=True):
            notification = create_notification(
                self.user, 'certificate_issued', 'Certificate Issued', 'Ready',
                email_template='certificate_issued',
                email_context={'training_title': 'Cold chain', 'certificate_number': 'CERT-2026-ABCDEF12',
                               'issue_date': 'January 01, 2026', 'expiry_date': ''},
            )
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, [self.user.email])
        self.assertEqual(message.subject, 'Certificate Issued: Cold chain')
        self.assertIn('CERT-2026-ABCDEF12', message.body)
        self.assertEqual(message.alternatives[0][1], 'text/html')

        notification.refresh_from_db()
        self.assertTrue(notification.email_sent)
        self.assertIsNotNone(notification.email_sent_at)

    def test_no_email_without_template(self):
        """Test plain notifications are in-app only"""
        with self.captureOnCommitCallbacks(execute=True):
            create_notification(self.user, 'general', 'Hello', 'In-app only')
        self.assertEqual(len(mail.outbox), 0)

    def test_opted_out_user(self):
        """Test users with email notifications off get no email"""
        self.user.email_notifications = False
        self.user.save()
        with self.captureOnCommitCallbacks(execute=True):
            notification = create_notification(self.user, 'training_overdue', 'Overdue', 'Late',
                                               email_template='training_overdue',
                                               email_context={'training_title': 'GMP'})
        self.assertEqual(len(mail.outbox), 0)
        self.assertFalse(Notification.objects.get(pk=notification.pk).email_sent)

    def test_render_email(self):
        """Test templates render a subject, HTML and text body"""
        subject, html, text = render_email('exam_available', {
            'exam_title': 'GMP exam', 'training_title': 'GMP', 'passing_score': 80, 'user_name': 'Grace',
            'pharmacy_name': 'Harbour Pharmacy',
        })
        self.assertEqual(subject, 'Exam Available: GMP exam')
        self.assertIn('GMP exam', html)
        self.assertTrue(text)

    def test_reminder_subject_pluralises_days(self):
        """Test the reminder subject reads Day for one day and Days otherwise"""
        context = {'training_title': 'GMP', 'due_date': 'March 3, 2025', 'user_name': 'Grace'}
        subject, _, text = render_email('training_reminder', {**context, 'days_left': 1})
        self.assertEqual(subject, 'Reminder: Training Due in 1 Day - GMP')
        self.assertIn('due in 1 day:', text)
        subject, _, _ = render_email('training_reminder', {**context, 'days_left': 3})
        self.assertEqual(subject, 'Reminder: Training Due in 3 Days - GMP')

    @override_settings(EMAIL_BACKEND='django.core.mail.backends.smtp.EmailBackend', SMTP_HOST='')
    def test_unconfigured_smtp_skips(self):
        """Test sending is skipped when SMTP has no host"""
        self.assertFalse(email_configured())
        self.assertFalse(send_email(self.user.email, 'Subject', '<p>Body</p>'))
