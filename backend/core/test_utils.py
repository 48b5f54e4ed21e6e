"""
Test utilities and factories for creating test data
"""
from datetime import timedelta
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient
from backend.core.models import Tenant
from backend.documents.models import Document
from backend.quality.models import ChangeControl, Deviation, CAPA, Audit
from backend.training.models import Training, TrainingContent, TrainingAssignment
from backend.training.workflow import build_content_progress
from backend.exams.models import Exam, ExamQuestion
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def create_tenant(name=None, subdomain=None, is_active=True):
        """Create a test tenant"""
        if not subdomain:
            subdomain = f'pharmacy-{TestDataFactory.random_string(6)}'
        return Tenant.objects.create(
            name=name or f'Pharmacy {subdomain}',
            subdomain=subdomain,
            is_active=is_active,
        )

    @staticmethod
    def create_user(tenant=None, role='trainee', email=None, password='testpass123', **extra):
        """Create a test user; permission flags follow the role"""
        if tenant is None:
            tenant = TestDataFactory.create_tenant()
        if not email:
            email = f'{role}_{TestDataFactory.random_string(6)}@test.com'
        extra.setdefault('first_name', role.replace('_', ' ').title())
        extra.setdefault('last_name', 'Tester')
        return User.objects.create_user(email=email, password=password, tenant=tenant, role=role, **extra)

    @staticmethod
    def create_document(tenant, user=None, title=None, **extra):
        """Create a test document"""
        extra.setdefault('document_type', 'SOP')
        return Document.objects.create(
            tenant=tenant,
            title=title or f'SOP {TestDataFactory.random_string(6)}',
            created_by=user,
            **extra
        )

    @staticmethod
    def create_change_control(tenant, user=None, number=None, **extra):
        extra.setdefault('change_type', 'Process')
        return ChangeControl.objects.create(
            tenant=tenant,
            change_number=number or f'CC-{timezone.now().year}-T{TestDataFactory.random_string(5)}',
            title=extra.pop('title', 'Change request'),
            description=extra.pop('description', 'Test change'),
            created_by=user,
            **extra
        )

    @staticmethod
    def create_deviation(tenant, user=None, number=None, **extra):
        extra.setdefault('severity', 'Minor')
        extra.setdefault('category', 'Storage')
        extra.setdefault('occurrence_date', timezone.now())
        return Deviation.objects.create(
            tenant=tenant,
            deviation_number=number or f'DEV-{timezone.now().year}-T{TestDataFactory.random_string(5)}',
            title=extra.pop('title', 'Temperature excursion'),
            description=extra.pop('description', 'Fridge above 8C'),
            created_by=user,
            detected_by=user,
            **extra
        )

    @staticmethod
    def create_capa(tenant, user=None, number=None, **extra):
        extra.setdefault('capa_type', 'Corrective')
        extra.setdefault('source', 'deviation')
        return CAPA.objects.create(
            tenant=tenant,
            capa_number=number or f'CAPA-{timezone.now().year}-T{TestDataFactory.random_string(5)}',
            title=extra.pop('title', 'Fix fridge monitoring'),
            description=extra.pop('description', 'Replace sensor'),
            created_by=user,
            **extra
        )

    @staticmethod
    def create_audit(tenant, user=None, number=None, **extra):
        extra.setdefault('audit_type', 'Internal')
        extra.setdefault('scope', 'Dispensing')
        extra.setdefault('scheduled_date', (timezone.now() + timedelta(days=7)).date())
        return Audit.objects.create(
            tenant=tenant,
            audit_number=number or f'AUD-{timezone.now().year}-T{TestDataFactory.random_string(5)}',
            title=extra.pop('title', 'Quarterly self inspection'),
            description=extra.pop('description', 'Routine audit'),
            created_by=user,
            **extra
        )

    @staticmethod
    def create_training(tenant, user=None, number=None, **extra):
        """Create a test training"""
        extra.setdefault('training_type', 'Initial')
        extra.setdefault('category', 'SOP')
        extra.setdefault('status', 'published')
        return Training.objects.create(
            tenant=tenant,
            training_number=number or f'TRN-{timezone.now().year}-T{TestDataFactory.random_string(4)}',
            title=extra.pop('title', f'GMP Basics {TestDataFactory.random_string(4)}'),
            description=extra.pop('description', 'Good manufacturing practice'),
            created_by=user,
            **extra
        )

    @staticmethod
    def create_content(training, title=None, order=None, is_required=True, content_type='link'):
        """Create a content item at the end of the training"""
        if order is None:
            order = training.contents.count()
        return TrainingContent.objects.create(
            tenant=training.tenant,
            training=training,
            title=title or f'Lesson {order + 1}',
            content_type=content_type,
            content_url=f'https://example.com/lesson-{order + 1}',
            order=order,
            is_required=is_required,
        )

    @staticmethod
    def create_assignment(training, user, assigned_by=None, status='assigned', due_date=None):
        """Create an assignment with progress rows for the training's content"""
        assignment = TrainingAssignment.objects.create(
            tenant=training.tenant,
            training=training,
            user=user,
            assigned_by=assigned_by,
            status=status,
            due_date=due_date,
        )
        build_content_progress(assignment)
        training.assigned_to.add(user)
        return assignment

    @staticmethod
    def create_exam(training, user=None, passing_score=80, max_attempts=3, questions=None, **extra):
        """
        Create an active exam. Questions default to two single-answer
        questions worth 1 point each with option 0 correct.
        """
        exam = Exam.objects.create(
            tenant=training.tenant,
            training=training,
            title=extra.pop('title', f'{training.title} exam'),
            passing_score=passing_score,
            max_attempts=max_attempts,
            created_by=user,
            **extra
        )
        if questions is None:
            questions = [
                {'question_text': 'Q1', 'options': ['right', 'wrong'], 'correct_answers': [0]},
                {'question_text': 'Q2', 'options': ['right', 'wrong'], 'correct_answers': [0]},
            ]
        for order, question in enumerate(questions):
            ExamQuestion.objects.create(exam=exam, order=order, **question)
        exam.recalculate_total_points()
        exam.save()
        training.assessment_required = True
        training.passing_score = passing_score
        training.save()
        return exam


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user, tenant_header=True):
        """Authenticate the client with a user's token (with tenant claims)"""
        from backend.core.views import QMSTokenObtainPairSerializer

        refresh = QMSTokenObtainPairSerializer.get_token(user)
        credentials = {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}
        if tenant_header and user.tenant_id:
            credentials['HTTP_X_TENANT_ID'] = str(user.tenant_id)
        self.credentials(**credentials)
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
