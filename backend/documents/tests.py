"""
Comprehensive test suite for Documents module
Tests: Document CRUD, permission gating, approval stamping, filters and tenant scoping
"""
from django.test import TestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.documents.models import Document


class DocumentAPITests(TestCase):
    """Test document endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.tenant = TestDataFactory.create_tenant()
        self.pharmacist = TestDataFactory.create_user(self.tenant, role='pharmacist')
        self.trainee = TestDataFactory.create_user(self.tenant, role='trainee')

    def test_create_document(self):
        """Test creating a document with tags"""
        self.client.authenticate_user(self.pharmacist)
        response = self.client.post('/api/v1/documents/', {
            'title': 'Cold chain SOP',
            'document_type': 'SOP',
            'content': 'Keep between 2 and 8 degrees',
            'tags': ['cold-chain', 'storage'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['version'], '1.0')
        self.assertEqual(response.data['created_by']['id'], self.pharmacist.id)
        document = Document.objects.get(pk=response.data['id'])
        self.assertEqual(document.tenant, self.tenant)
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Document').exists())

    def test_create_requires_title_and_type(self):
        """Test missing title or type is rejected"""
        self.client.authenticate_user(self.pharmacist)
        response = self.client.post('/api/v1/documents/', {'title': 'No type'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Title and document type are required')

    def test_trainee_cannot_create(self):
        """Test writes need can_manage_documents"""
        self.client.authenticate_user(self.trainee)
        response = self.client.post('/api/v1/documents/', {'title': 'X', 'document_type': 'SOP'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_trainee_can_read(self):
        """Test any tenant user can list documents"""
        TestDataFactory.create_document(self.tenant, self.pharmacist)
        self.client.authenticate_user(self.trainee)
        response = self.client.get('/api/v1/documents/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_list_filters(self):
        """Test status, type and search filters"""
        TestDataFactory.create_document(self.tenant, self.pharmacist, title='Cleaning SOP', status='approved')
        TestDataFactory.create_document(self.tenant, self.pharmacist, title='Returns policy', document_type='Policy')
        self.client.authenticate_user(self.pharmacist)

        response = self.client.get('/api/v1/documents/', {'status': 'approved'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/documents/', {'type': 'Policy'})
        self.assertEqual(response.data['results'][0]['title'], 'Returns policy')
        response = self.client.get('/api/v1/documents/', {'search': 'clean'})
        self.assertEqual(response.data['count'], 1)

    def test_approval_stamps_approver(self):
        """Test moving to approved records who approved it"""
        document = TestDataFactory.create_document(self.tenant, self.pharmacist)
        self.client.authenticate_user(self.pharmacist)
        response = self.client.patch(f'/api/v1/documents/{document.id}/', {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        document.refresh_from_db()
        self.assertEqual(document.approved_by, self.pharmacist)
        self.assertIsNotNone(document.approved_at)

    def test_update_records_changes(self):
        """Test updates write a field diff to the audit trail"""
        document = TestDataFactory.create_document(self.tenant, self.pharmacist, title='Old title')
        self.client.authenticate_user(self.pharmacist)
        self.client.patch(f'/api/v1/documents/{document.id}/', {'title': 'New title'}, format='json')
        log = AuditLog.objects.get(action='update', model_name='Document')
        self.assertEqual(log.changes['title'], {'old': 'Old title', 'new': 'New title'})

    def test_delete_document(self):
        """Test deleting a document"""
        document = TestDataFactory.create_document(self.tenant, self.pharmacist)
        self.client.authenticate_user(self.pharmacist)
        response = self.client.delete(f'/api/v1/documents/{document.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Document deleted successfully')
        self.assertFalse(Document.objects.filter(pk=document.id).exists())

    def test_other_tenant_document_not_found(self):
        """Test documents of another tenant are 404"""
        other = TestDataFactory.create_tenant()
        document = TestDataFactory.create_document(other)
        self.client.authenticate_user(self.pharmacist)
        response = self.client.get(f'/api/v1/documents/{document.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_attachment_rejected(self):
        """Test attachments need a file name and URL"""
        self.client.authenticate_user(self.pharmacist)
        response = self.client.post('/api/v1/documents/', {
            'title': 'With file', 'document_type': 'Form', 'attachments': [{'file_name': 'a.pdf'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
