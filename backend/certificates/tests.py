"""
Comprehensive test suite for Certificates module
Tests: Issuance and expiry rules, public verification, visibility,
downloads, PDF rendering, revocation and statistics
"""
import uuid
from datetime import datetime, timedelta
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.certificates.models import Certificate
from backend.certificates.utils import add_months, certificate_expiry, issue_certificate
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.models import Notification


class CertificateTestCase(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.tenant = TestDataFactory.create_tenant(name='Riverside Pharmacy')
        self.manager = TestDataFactory.create_user(self.tenant, role='qa_manager')
        self.trainee = TestDataFactory.create_user(self.tenant, role='trainee', first_name='Ada', last_name='Byron')
        self.training = TestDataFactory.create_training(self.tenant, self.manager, title='Cold chain')

    def issue(self, user=None, **assignment_fields):
        user = user or self.trainee
        assignment = TestDataFactory.create_assignment(self.training, user, status='completed')
        for field, value in assignment_fields.items():
            setattr(assignment, field, value)
        assignment.completed_at = timezone.now()
        assignment.save()
        return issue_certificate(assignment, exam_score=90)


class CertificateIssueTests(CertificateTestCase):
    """Test certificate issuance and expiry"""

    def test_issue_certificate(self):
        """Test issuing snapshots names, stamps the assignment and notifies"""
        certificate = self.issue()
        self.assertRegex(certificate.certificate_number, rf'^CERT-{timezone.now().year}-[0-9A-F]{{8}}$')
        self.assertEqual(certificate.user_name, 'Ada Byron')
        self.assertEqual(certificate.training_title, 'Cold chain')
        self.assertEqual(certificate.exam_score, 90)
        self.assertIsNone(certificate.expiry_date)
        self.assertIsNotNone(certificate.assignment.certificate_issued_at)
        self.assertTrue(Notification.objects.filter(user=self.trainee, notification_type='certificate_issued').exists())

    def test_disabled_issues_nothing(self):
        """Test nothing is issued when the training has certificates disabled"""
        self.training.certificate_enabled = False
        self.training.save()
        self.assertIsNone(self.issue())
        self.assertFalse(Certificate.objects.exists())

    def test_recurring_expiry_uses_validity(self):
        """Test recurring trainings expire after the validity period"""
        self.training.is_recurring = True
        self.training.recurrence_interval = 'Annual'
        self.training.certificate_validity_months = 6
        issued = timezone.make_aware(datetime(2026, 1, 15, 10, 0))
        self.assertEqual(certificate_expiry(self.training, issued), timezone.make_aware(datetime(2026, 7, 15, 10, 0)))

    def test_recurring_expiry_prefers_next_due(self):
        """Test the next due date wins over the validity period"""
        self.training.is_recurring = True
        self.training.next_due_date = timezone.now() + timedelta(days=90)
        self.assertEqual(certificate_expiry(self.training, timezone.now()), self.training.next_due_date)

    def test_add_months_clamps_day(self):
        """Test month arithmetic clamps to the end of shorter months"""
        self.assertEqual(add_months(datetime(2026, 1, 31), 1), datetime(2026, 2, 28))
        self.assertEqual(add_months(datetime(2026, 11, 30), 3), datetime(2027, 2, 28))


class CertificateAPITests(CertificateTestCase):
    """Test certificate endpoints"""

    def setUp(self):
        super().setUp()
        self.certificate = self.issue()

    def test_verify_public(self):
        """Test verification works without authentication"""
        response = self.client.get(f'/api/v1/certificates/verify/{self.certificate.verification_code}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['valid'])
        self.assertEqual(response.data['organization'], 'Riverside Pharmacy')
        self.assertEqual(response.data['user_name'], 'Ada Byron')

    def test_verify_unknown_code(self):
        """Test unknown or malformed codes are not found"""
        response = self.client.get(f'/api/v1/certificates/verify/{uuid.uuid4()}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['valid'])
        response = self.client.get('/api/v1/certificates/verify/not-a-code/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_verify_expired(self):
        """Test expired certificates verify as invalid"""
        self.certificate.expiry_date = timezone.now() - timedelta(days=1)
        self.certificate.save()
        response = self.client.get(f'/api/v1/certificates/verify/{self.certificate.verification_code}/')
        self.assertFalse(response.data['valid'])
        self.assertTrue(response.data['is_expired'])

    def test_my_certificates(self):
        """Test users list their own valid certificates"""
        self.client.authenticate_user(self.trainee)
        response = self.client.get('/api/v1/certificates/my/')
        self.assertEqual([c['id'] for c in response.data], [self.certificate.id])

    def test_detail_visibility(self):
        """Test other trainees cannot see a certificate but managers can"""
        other = TestDataFactory.create_user(self.tenant, role='trainee')
        self.client.authenticate_user(other)
        response = self.client.get(f'/api/v1/certificates/{self.certificate.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        self.client.authenticate_user(self.manager)
        response = self.client.get(f'/api/v1/certificates/{self.certificate.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_download_counts(self):
        """Test downloads return the template and bump the counter"""
        self.client.authenticate_user(self.trainee)
        response = self.client.get(f'/api/v1/certificates/{self.certificate.id}/download/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['certificate']['download_count'], 1)
        self.assertEqual(response.data['template']['border_color'], '#0066cc')
        self.assertEqual(response.data['organization']['name'], 'Riverside Pharmacy')

    def test_pdf(self):
        """Test the PDF rendering endpoint"""
        self.client.authenticate_user(self.trainee)
        response = self.client.get(f'/api/v1/certificates/{self.certificate.id}/pdf/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))
        self.certificate.refresh_from_db()
        self.assertEqual(self.certificate.download_count, 1)

    def test_revoke(self):
        """Test revoking a certificate, and revoking it again"""
        self.client.authenticate_user(self.manager)
        response = self.client.patch(f'/api/v1/certificates/{self.certificate.id}/revoke/',
                                     {'reason': 'Issued in error'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_valid'])
        self.assertEqual(response.data['revoked_by']['id'], self.manager.id)

        response = self.client.patch(f'/api/v1/certificates/{self.certificate.id}/revoke/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Certificate is already revoked')

        self.client.authenticate_user(self.trainee)
        self.assertEqual(self.client.get('/api/v1/certificates/my/').data, [])

    def test_trainee_cannot_revoke(self):
        """Test revoking needs can_issue_certificates"""
        self.client.authenticate_user(self.trainee)
        response = self.client.patch(f'/api/v1/certificates/{self.certificate.id}/revoke/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_filters(self):
        """Test listing certificates filtered by user"""
        self.issue(user=TestDataFactory.create_user(self.tenant))
        self.client.authenticate_user(self.manager)
        response = self.client.get('/api/v1/certificates/')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/certificates/', {'user': self.trainee.id})
        self.assertEqual(response.data['count'], 1)

    def test_stats(self):
        """Test certificate statistics"""
        expiring = self.issue(user=TestDataFactory.create_user(self.tenant))
        expiring.expiry_date = timezone.now() + timedelta(days=10)
        expiring.save()
        self.certificate.is_valid = False
        self.certificate.save()

        self.client.authenticate_user(self.manager)
        response = self.client.get('/api/v1/certificates/stats/')
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['valid'], 1)
        self.assertEqual(response.data['revoked'], 1)
        self.assertEqual(response.data['expiring_soon'], 1)
        self.assertEqual(response.data['by_training'][0]['count'], 2)
