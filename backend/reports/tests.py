"""
Comprehensive test suite for Reports module
Tests: Dashboard, Compliance summary, Module reports, Report caching
"""
from datetime import timedelta
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ReportsTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.addCleanup(cache.clear)
        self.client = AuthenticatedAPIClient()
        self.tenant = TestDataFactory.create_tenant()
        self.manager = TestDataFactory.create_user(self.tenant, role='qa_manager')
        self.trainee = TestDataFactory.create_user(self.tenant, role='trainee')
        self.client.authenticate_user(self.manager)


class DashboardTests(ReportsTestCase):
    """Test the dashboard report"""

    def test_dashboard_counts(self):
        """Test totals, status breakdown and alerts"""
        TestDataFactory.create_deviation(self.tenant, self.manager)
        TestDataFactory.create_deviation(self.tenant, self.manager, status='closed')
        TestDataFactory.create_capa(self.tenant, self.manager)
        TestDataFactory.create_audit(self.tenant, self.manager, status='planned')
        TestDataFactory.create_deviation(TestDataFactory.create_tenant())

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deviations']['total'], 2)
        self.assertEqual(response.data['deviations']['by_status'], {'open': 1, 'closed': 1})
        self.assertEqual(response.data['alerts']['open_deviations'], 1)
        self.assertEqual(response.data['alerts']['open_capas'], 1)
        self.assertEqual(response.data['alerts']['upcoming_audits'], 1)

    def test_dashboard_open_to_all_users(self):
        """Test any tenant user can read the dashboard"""
        self.client.authenticate_user(self.trainee)
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_dashboard_cache_invalidated(self):
        """Test a record change drops the cached dashboard"""
        self.client.get('/api/v1/reports/dashboard/')
        TestDataFactory.create_document(self.tenant, self.manager)
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['documents']['total'], 1)


class ComplianceTests(ReportsTestCase):
    """Test the compliance summary"""

    def test_empty_tenant_fully_compliant(self):
        """Test modules without records count as 100%"""
        response = self.client.get('/api/v1/reports/compliance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['overall_score'], 100)

    def test_rates(self):
        """Test closure and completion rates"""
        TestDataFactory.create_deviation(self.tenant, self.manager, status='closed')
        TestDataFactory.create_deviation(self.tenant, self.manager)
        TestDataFactory.create_capa(self.tenant, self.manager, status='completed')
        response = self.client.get('/api/v1/reports/compliance/')
        self.assertEqual(response.data['deviation_closure_rate'], 50)
        self.assertEqual(response.data['capa_completion_rate'], 100)
        self.assertEqual(response.data['totals']['deviations'], 2)
        self.assertEqual(response.data['overall_score'], 88)

    def test_overall_score_rounds_half_up(self):
        """Test a 62.5 average scores 63 and rates keep one decimal"""
        TestDataFactory.create_deviation(self.tenant, self.manager, status='closed')
        TestDataFactory.create_deviation(self.tenant, self.manager)
        TestDataFactory.create_capa(self.tenant, self.manager, status='completed')
        TestDataFactory.create_capa(self.tenant, self.manager)
        TestDataFactory.create_training(self.tenant, self.manager, status='completed')
        TestDataFactory.create_training(self.tenant, self.manager)
        TestDataFactory.create_training(self.tenant, self.manager)
        TestDataFactory.create_training(self.tenant, self.manager, status='completed')
        response = self.client.get('/api/v1/reports/compliance/')
        self.assertEqual(response.data['training_completion_rate'], 50)
        self.assertEqual(response.data['audit_completion_rate'], 100)
        self.assertEqual(response.data['overall_score'], 63)

    def test_rate_keeps_one_decimal(self):
        """Test one of three closed deviations reports 33.3"""
        TestDataFactory.create_deviation(self.tenant, self.manager, status='closed')
        TestDataFactory.create_deviation(self.tenant, self.manager)
        TestDataFactory.create_deviation(self.tenant, self.manager)
        response = self.client.get('/api/v1/reports/compliance/')
        self.assertEqual(response.data['deviation_closure_rate'], 33.3)
        self.assertEqual(response.data['overall_score'], 83)

    def test_requires_report_permission(self):
        """Test compliance needs can_view_reports"""
        self.client.authenticate_user(self.trainee)
        response = self.client.get('/api/v1/reports/compliance/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ModuleReportTests(ReportsTestCase):
    """Test per-module reports"""

    def test_invalid_module(self):
        """Test unknown modules are rejected"""
        response = self.client.get('/api/v1/reports/modules/sales/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid module specified')

    def test_deviation_report(self):
        """Test a module report with status and monthly breakdowns"""
        TestDataFactory.create_deviation(self.tenant, self.manager)
        TestDataFactory.create_deviation(self.tenant, self.manager, status='investigation')
        response = self.client.get('/api/v1/reports/modules/deviations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_count'], 2)
        self.assertEqual(response.data['by_status']['investigation'], 1)
        self.assertEqual(sum(row['count'] for row in response.data['by_month']), 2)
        self.assertEqual(len(response.data['recent_items']), 2)

    def test_date_filters_use_occurrence_date(self):
        """Test deviation date filters apply to when the deviation occurred"""
        TestDataFactory.create_deviation(self.tenant, self.manager,
                                         occurrence_date=timezone.now() - timedelta(days=60))
        TestDataFactory.create_deviation(self.tenant, self.manager)
        since = (timezone.now() - timedelta(days=7)).date().isoformat()
        response = self.client.get('/api/v1/reports/modules/deviations/', {'start_date': since})
        self.assertEqual(response.data['total_count'], 1)

    def test_audit_report_by_scheduled_date(self):
        """Test audit reports date records by their scheduled date"""
        TestDataFactory.create_audit(self.tenant, self.manager,
                                     scheduled_date=(timezone.now() - timedelta(days=30)).date())
        until = (timezone.now() - timedelta(days=7)).date().isoformat()
        response = self.client.get('/api/v1/reports/modules/audits/', {'end_date': until})
        self.assertEqual(response.data['total_count'], 1)

    def test_bad_date(self):
        """Test malformed dates are rejected"""
        response = self.client.get('/api/v1/reports/modules/capas/', {'start_date': '31/01/2026'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_report_permission(self):
        """Test module reports need can_view_reports"""
        self.client.authenticate_user(self.trainee)
        response = self.client.get('/api/v1/reports/modules/deviations/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
