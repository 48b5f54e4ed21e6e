"""
Comprehensive test suite for Quality module
Tests: Change controls, deviations, CAPAs and audits: numbering, defaults,
status-driven stamps, CAPA to deviation linking and tenant scoping
"""
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.quality.models import ChangeControl, Deviation, CAPA, Audit


class QualityAPITestCase(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.tenant = TestDataFactory.create_tenant()
        self.user = TestDataFactory.create_user(self.tenant, role='qa_manager')
        self.client.authenticate_user(self.user)
        self.year = timezone.now().year


class ChangeControlAPITests(QualityAPITestCase):
    """Test change control endpoints"""

    def test_create_numbers_and_defaults_requestor(self):
        """Test the first change control gets CC-YYYY-001 and the creator as requestor"""
        response = self.client.post('/api/v1/change-controls/', {
            'title': 'New label printer',
            'description': 'Replace dispensing label printer',
            'change_type': 'Equipment',
            'affected_systems': ['Dispensing'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['change_number'], f'CC-{self.year}-001')
        self.assertEqual(response.data['requestor'], self.user.id)
        self.assertEqual(response.data['status'], 'initiated')

    def test_numbers_increment(self):
        """Test consecutive creates get consecutive numbers"""
        for _ in range(2):
            response = self.client.post('/api/v1/change-controls/', {
                'title': 'Change', 'description': 'd', 'change_type': 'Process'
            }, format='json')
        self.assertEqual(response.data['change_number'], f'CC-{self.year}-002')

    def test_completion_stamps_date(self):
        """Test reaching completed stamps completion_date"""
        change = TestDataFactory.create_change_control(self.tenant, self.user)
        response = self.client.patch(f'/api/v1/change-controls/{change.id}/', {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        change.refresh_from_db()
        self.assertEqual(change.completion_date, timezone.now().date())

    def test_filter_by_status(self):
        """Test status filter"""
        TestDataFactory.create_change_control(self.tenant, self.user, status='approved')
        TestDataFactory.create_change_control(self.tenant, self.user)
        response = self.client.get('/api/v1/change-controls/', {'status': 'approved'})
        self.assertEqual(response.data['count'], 1)

    def test_requestor_from_other_tenant_rejected(self):
        """Test related users must belong to the tenant"""
        outsider = TestDataFactory.create_user(TestDataFactory.create_tenant())
        response = self.client.post('/api/v1/change-controls/', {
            'title': 'Change', 'description': 'd', 'change_type': 'Process', 'requestor': outsider.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('requestor', response.data)


class DeviationAPITests(QualityAPITestCase):
    """Test deviation endpoints"""

    def test_create_is_always_open(self):
        """Test new deviations are open and detected by the creator"""
        response = self.client.post('/api/v1/deviations/', {
            'title': 'Fridge excursion',
            'description': 'Vaccine fridge reached 11C',
            'severity': 'Major',
            'category': 'Storage',
            'occurrence_date': timezone.now().isoformat(),
            'status': 'closed',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'open')
        self.assertEqual(response.data['deviation_number'], f'DEV-{self.year}-001')
        self.assertEqual(response.data['detected_by']['id'], self.user.id)

    def test_closing_stamps_closure_date(self):
        """Test reaching closed stamps closure_date"""
        deviation = TestDataFactory.create_deviation(self.tenant, self.user)
        self.client.patch(f'/api/v1/deviations/{deviation.id}/', {'status': 'closed'}, format='json')
        deviation.refresh_from_db()
        self.assertIsNotNone(deviation.closure_date)

    def test_delete_deviation(self):
        """Test deleting a deviation"""
        deviation = TestDataFactory.create_deviation(self.tenant, self.user)
        response = self.client.delete(f'/api/v1/deviations/{deviation.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Deviation.objects.filter(pk=deviation.id).exists())


class CAPAAPITests(QualityAPITestCase):
    """Test CAPA endpoints"""

    def test_capa_links_deviation(self):
        """Test a CAPA raised from a deviation links back and moves it on"""
        deviation = TestDataFactory.create_deviation(self.tenant, self.user, status='capa_required')
        response = self.client.post('/api/v1/capas/', {
            'title': 'Replace fridge sensor',
            'description': 'Sensor drifted',
            'capa_type': 'Corrective',
            'source': 'deviation',
            'deviation': deviation.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['capa_number'], f'CAPA-{self.year}-001')
        deviation.refresh_from_db()
        self.assertEqual(deviation.capa_id, response.data['id'])
        self.assertEqual(deviation.status, 'capa_in_progress')

    def test_closed_deviation_keeps_status(self):
        """Test a deviation past the CAPA stage keeps its status when linked"""
        deviation = TestDataFactory.create_deviation(self.tenant, self.user, status='pending_closure')
        self.client.post('/api/v1/capas/', {
            'title': 'CAPA', 'description': 'd', 'capa_type': 'Both', 'source': 'deviation',
            'deviation': deviation.id,
        }, format='json')
        deviation.refresh_from_db()
        self.assertEqual(deviation.status, 'pending_closure')
        self.assertIsNotNone(deviation.capa)

    def test_filter_by_type(self):
        """Test the type filter maps to capa_type"""
        TestDataFactory.create_capa(self.tenant, self.user, capa_type='Preventive')
        TestDataFactory.create_capa(self.tenant, self.user)
        response = self.client.get('/api/v1/capas/', {'type': 'Preventive'})
        self.assertEqual(response.data['count'], 1)

    def test_completion_stamps_date(self):
        """Test reaching completed stamps completion_date"""
        capa = TestDataFactory.create_capa(self.tenant, self.user)
        self.client.patch(f'/api/v1/capas/{capa.id}/', {'status': 'completed'}, format='json')
        capa.refresh_from_db()
        self.assertIsNotNone(capa.completion_date)


class AuditAPITests(QualityAPITestCase):
    """Test audit endpoints"""

    def test_create_audit_with_team(self):
        """Test scheduling an audit with a team"""
        auditor = TestDataFactory.create_user(self.tenant, role='pharmacist')
        response = self.client.post('/api/v1/audits/', {
            'title': 'GDP self inspection',
            'description': 'Annual',
            'audit_type': 'Self-Inspection',
            'scope': 'Warehouse',
            'scheduled_date': timezone.now().date().isoformat(),
            'lead_auditor': self.user.id,
            'audit_team': [auditor.id],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['audit_number'], f'AUD-{self.year}-001')
        audit = Audit.objects.get(pk=response.data['id'])
        self.assertEqual(list(audit.audit_team.all()), [auditor])
        self.assertEqual(audit.findings_count['major'], 0)

    def test_findings_count_validated(self):
        """Test negative finding counts are rejected"""
        audit = TestDataFactory.create_audit(self.tenant, self.user)
        response = self.client.patch(f'/api/v1/audits/{audit.id}/', {
            'findings_count': {'critical': -1}
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_closed_stamps_completion(self):
        """Test closing an audit stamps completion_date"""
        audit = TestDataFactory.create_audit(self.tenant, self.user)
        self.client.patch(f'/api/v1/audits/{audit.id}/', {'status': 'closed'}, format='json')
        audit.refresh_from_db()
        self.assertIsNotNone(audit.completion_date)

    def test_other_tenant_audit_not_found(self):
        """Test audits of another tenant are 404"""
        audit = TestDataFactory.create_audit(TestDataFactory.create_tenant())
        response = self.client.get(f'/api/v1/audits/{audit.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_paginates(self):
        """Test list responses carry pagination metadata"""
        for _ in range(3):
            TestDataFactory.create_audit(self.tenant, self.user)
        response = self.client.get('/api/v1/audits/', {'limit': 2})
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['next'], 2)
