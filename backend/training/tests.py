"""
Comprehensive test suite for Training module
Tests: Training CRUD, content management, assignment, the assignment
workflow (start, content completion, exam hand-over, completion), reset,
statistics and due-date reminders
"""
import shutil
import tempfile
from datetime import timedelta
from io import StringIO
from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from backend.certificates.models import Certificate
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.exams.models import ExamAttempt
from backend.notifications.models import Notification
from backend.training.models import Training, TrainingContent, TrainingAssignment, ContentProgress
from backend.training.workflow import send_due_reminders, assignment_stats


class TrainingTestCase(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.tenant = TestDataFactory.create_tenant()
        self.manager = TestDataFactory.create_user(self.tenant, role='qa_manager')
        self.trainee = TestDataFactory.create_user(self.tenant, role='trainee')
        self.training = TestDataFactory.create_training(self.tenant, self.manager)


class TrainingAPITests(TrainingTestCase):
    """Test training endpoints"""

    def test_create_training(self):
        """Test creating a training numbers it TRN-YYYY-NNN"""
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/trainings/', {
            'title': 'Controlled drugs handling',
            'description': 'Register and storage',
            'training_type': 'Initial',
            'category': 'Compliance',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['training_number'], f'TRN-{timezone.now().year}-001')
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['certificate_template']['border_color'], '#0066cc')

    def test_trainee_cannot_create(self):
        """Test writes need can_manage_trainings"""
        self.client.authenticate_user(self.trainee)
        response = self.client.post('/api/v1/trainings/', {
            'title': 'X', 'description': 'X', 'training_type': 'Initial', 'category': 'SOP'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_recurring_requires_interval(self):
        """Test recurring trainings need a recurrence interval"""
        self.client.authenticate_user(self.manager)
        response = self.client.patch(f'/api/v1/trainings/{self.training.id}/', {'is_recurring': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('recurrence_interval', response.data)

    def test_invalid_certificate_colour(self):
        """Test certificate template colours must be hex"""
        self.client.authenticate_user(self.manager)
        response = self.client.patch(f'/api/v1/trainings/{self.training.id}/', {
            'certificate_template': {'border_color': 'blue'}
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail_includes_contents(self):
        """Test the detail view lists content in order"""
        TestDataFactory.create_content(self.training, title='First')
        TestDataFactory.create_content(self.training, title='Second')
        self.client.authenticate_user(self.trainee)
        response = self.client.get(f'/api/v1/trainings/{self.training.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['title'] for c in response.data['contents']], ['First', 'Second'])
        self.assertEqual(response.data['content_count'], 2)

    def test_list_filters(self):
        """Test category and search filters"""
        TestDataFactory.create_training(self.tenant, self.manager, title='Fire safety', category='Safety')
        self.client.authenticate_user(self.trainee)
        response = self.client.get('/api/v1/trainings/', {'category': 'Safety'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/trainings/', {'search': 'fire'})
        self.assertEqual(response.data['results'][0]['title'], 'Fire safety')

    def test_delete_training(self):
        """Test deleting a training"""
        self.client.authenticate_user(self.manager)
        response = self.client.delete(f'/api/v1/trainings/{self.training.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Training.objects.filter(pk=self.training.id).exists())

    def test_other_tenant_training_not_found(self):
        """Test trainings of another tenant are 404"""
        other = TestDataFactory.create_training(TestDataFactory.create_tenant())
        self.client.authenticate_user(self.manager)
        response = self.client.get(f'/api/v1/trainings/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TrainingContentAPITests(TrainingTestCase):
    """Test training content endpoints"""

    def setUp(self):
        super().setUp()
        self.client.authenticate_user(self.manager)
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)

    def test_add_link(self):
        """Test adding a link appends it at the end"""
        TestDataFactory.create_content(self.training)
        response = self.client.post(f'/api/v1/training-content/training/{self.training.id}/link/', {
            'content_url': 'https://example.com/video', 'title': 'Intro video'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['content_type'], 'link')
        self.assertEqual(response.data['order'], 1)

    def test_link_requires_url(self):
        """Test links need a URL"""
        response = self.client.post(f'/api/v1/training-content/training/{self.training.id}/link/',
                                    {'title': 'No url'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Content URL is required')

    def test_new_content_joins_open_assignments(self):
        """Test new content adds progress rows to unfinished assignments only"""
        open_assignment = TestDataFactory.create_assignment(self.training, self.trainee)
        done_user = TestDataFactory.create_user(self.tenant)
        done_assignment = TestDataFactory.create_assignment(self.training, done_user, status='completed')

        self.client.post(f'/api/v1/training-content/training/{self.training.id}/link/', {
            'content_url': 'https://example.com/new'
        }, format='json')
        self.assertEqual(open_assignment.content_progress.count(), 1)
        self.assertEqual(done_assignment.content_progress.count(), 0)

    def test_upload_pdf(self):
        """Test uploading a PDF stores it and infers the type"""
        upload = SimpleUploadedFile('handbook.pdf', b'%PDF-1.4 test', content_type='application/pdf')
        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.post(f'/api/v1/training-content/training/{self.training.id}/upload/',
                                        {'file': upload, 'duration': '15'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['content_type'], 'pdf')
        self.assertEqual(response.data['title'], 'handbook')
        self.assertEqual(response.data['duration'], 15)
        self.assertEqual(response.data['file_name'], 'handbook.pdf')

    def test_upload_rejects_mime_type(self):
        """Test disallowed file types are rejected"""
        upload = SimpleUploadedFile('run.sh', b'echo hi', content_type='application/x-sh')
        response = self.client.post(f'/api/v1/training-content/training/{self.training.id}/upload/',
                                    {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'File type application/x-sh is not allowed')

    def test_upload_over_size_limit(self):
        """Test files larger than the configured limit are rejected"""
        upload = SimpleUploadedFile('handbook.pdf', b'%PDF-1.4 test', content_type='application/pdf')
        with override_settings(MEDIA_ROOT=self.media_root, CONTENT_MAX_UPLOAD_MB=0):
            response = self.client.post(f'/api/v1/training-content/training/{self.training.id}/upload/',
                                        {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'File exceeds the 0 MB upload limit')
        self.assertFalse(self.training.contents.exists())

    def test_upload_requires_file(self):
        """Test an upload without a file is rejected"""
        response = self.client.post(f'/api/v1/training-content/training/{self.training.id}/upload/',
                                    {'title': 'Nothing'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reorder(self):
        """Test content can be reordered"""
        first = TestDataFactory.create_content(self.training)
        second = TestDataFactory.create_content(self.training)
        response = self.client.put(f'/api/v1/training-content/training/{self.training.id}/reorder/', {
            'content_ids': [second.id, first.id]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['id'] for c in response.data], [second.id, first.id])

    def test_reorder_requires_list(self):
        """Test reordering rejects content_ids that are not a list"""
        content = TestDataFactory.create_content(self.training)
        response = self.client.patch(f'/api/v1/training-content/training/{self.training.id}/reorder/', {
            'content_ids': content.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'content_ids must be a list')

    def test_delete_renumbers(self):
        """Test deleting content closes the gap in the ordering"""
        first = TestDataFactory.create_content(self.training)
        TestDataFactory.create_content(self.training)
        third = TestDataFactory.create_content(self.training)
        response = self.client.delete(f'/api/v1/training-content/{first.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        third.refresh_from_db()
        self.assertEqual(third.order, 1)
        self.assertEqual(list(self.training.contents.values_list('order', flat=True)), [0, 1])

    def test_slides_set_count(self):
        """Test saving slides records the slide count"""
        content = TestDataFactory.create_content(self.training)
        response = self.client.patch(f'/api/v1/training-content/{content.id}/', {
            'slides': ['/slides/1.png', '/slides/2.png']
        }, format='json')
        self.assertEqual(response.data['slide_count'], 2)

    def test_trainee_cannot_manage_content(self):
        """Test content management needs can_manage_trainings"""
        self.client.authenticate_user(self.trainee)
        response = self.client.get(f'/api/v1/training-content/training/{self.training.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AssignTrainingTests(TrainingTestCase):
    """Test assigning trainings"""

    def test_assign_users(self):
        """Test assigning creates assignments, progress and notifications"""
        TestDataFactory.create_content(self.training)
        self.client.authenticate_user(self.manager)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post('/api/v1/training-assignments/assign/', {
                'training_id': self.training.id, 'user_ids': [self.trainee.id, 999999]
            }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['assigned']), 1)
        self.assertEqual(response.data['errors'], [{'user_id': 999999, 'error': 'User not found'}])

        assignment = TrainingAssignment.objects.get(training=self.training, user=self.trainee)
        self.assertEqual(assignment.content_progress.count(), 1)
        self.assertIn(self.trainee, self.training.assigned_to.all())
        notification = Notification.objects.get(user=self.trainee, notification_type='training_assigned')
        self.assertTrue(notification.email_sent)
        self.assertEqual(mail.outbox[0].subject, f'New Training Assigned: {self.training.title}')

    def test_assign_twice_reports_error(self):
        """Test users already assigned are reported, not duplicated"""
        TestDataFactory.create_assignment(self.training, self.trainee)
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/training-assignments/assign/', {
            'training_id': self.training.id, 'user_ids': [self.trainee.id]
        }, format='json')
        self.assertEqual(response.data['assigned'], [])
        self.assertEqual(response.data['errors'][0]['error'], 'Already assigned')
        self.assertEqual(TrainingAssignment.objects.filter(user=self.trainee).count(), 1)

    def test_assign_by_role(self):
        """Test role_filter assigns every active user with the role"""
        second = TestDataFactory.create_user(self.tenant, role='trainee')
        TestDataFactory.create_user(self.tenant, role='trainee', is_active=False)
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/training-assignments/assign/', {
            'training_id': self.training.id, 'role_filter': ['trainee']
        }, format='json')
        assigned_ids = {a['user']['id'] for a in response.data['assigned']}
        self.assertEqual(assigned_ids, {self.trainee.id, second.id})

    def test_assign_needs_targets(self):
        """Test assigning without users or roles is rejected"""
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/training-assignments/assign/', {
            'training_id': self.training.id
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Please specify users or roles to assign')

    def test_assign_other_tenant_user(self):
        """Test users of another tenant are reported as not found"""
        outsider = TestDataFactory.create_user(TestDataFactory.create_tenant())
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/training-assignments/assign/', {
            'training_id': self.training.id, 'user_ids': [outsider.id]
        }, format='json')
        self.assertEqual(response.data['errors'][0]['error'], 'User not found')
        self.assertFalse(TrainingAssignment.objects.filter(user=outsider).exists())

    def test_assign_unknown_training(self):
        """Test assigning a missing training is 404"""
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/training-assignments/assign/', {
            'training_id': 999999, 'user_ids': [self.trainee.id]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_trainee_cannot_assign(self):
        """Test assigning needs can_assign_trainings"""
        self.client.authenticate_user(self.trainee)
        response = self.client.post('/api/v1/training-assignments/assign/', {
            'training_id': self.training.id, 'user_ids': [self.trainee.id]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AssignmentWorkflowTests(TrainingTestCase):
    """Test the assignment lifecycle driven by the assignee"""

    def setUp(self):
        super().setUp()
        self.lesson = TestDataFactory.create_content(self.training)
        self.optional = TestDataFactory.create_content(self.training, is_required=False)
        self.assignment = TestDataFactory.create_assignment(self.training, self.trainee, assigned_by=self.manager)
        self.client.authenticate_user(self.trainee)

    def complete(self, content):
        return self.client.patch(
            f'/api/v1/training-assignments/my/{self.assignment.id}/content/{content.id}/complete/',
            {'time_spent': 120}, format='json'
        )

    def test_my_assignments(self):
        """Test users see only their own assignments"""
        other = TestDataFactory.create_user(self.tenant)
        TestDataFactory.create_assignment(self.training, other)
        response = self.client.get('/api/v1/training-assignments/my/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['id'], self.assignment.id)

    def test_detail_includes_progress(self):
        """Test the detail view lists content progress"""
        response = self.client.get(f'/api/v1/training-assignments/my/{self.assignment.id}/')
        self.assertEqual(len(response.data['content_progress']), 2)
        self.assertEqual(response.data['progress_percent'], 0)

    def test_start(self):
        """Test starting moves assigned to in_progress"""
        response = self.client.patch(f'/api/v1/training-assignments/my/{self.assignment.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'in_progress')
        self.assertIsNotNone(response.data['started_at'])

    def test_start_twice(self):
        """Test an assignment can only be started once"""
        self.client.patch(f'/api/v1/training-assignments/my/{self.assignment.id}/start/')
        response = self.client.patch(f'/api/v1/training-assignments/my/{self.assignment.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Assignment not found or already started')

    def test_start_without_required_content_completes(self):
        """Test a training with nothing required completes when started"""
        training = TestDataFactory.create_training(self.tenant, self.manager)
        assignment = TestDataFactory.create_assignment(training, self.trainee)
        response = self.client.patch(f'/api/v1/training-assignments/my/{assignment.id}/start/')
        self.assertEqual(response.data['status'], 'completed')
        self.assertTrue(Certificate.objects.filter(assignment=assignment).exists())

    def test_complete_required_content_completes_assignment(self):
        """Test finishing required content without an exam completes and certifies"""
        response = self.complete(self.lesson)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertIsNotNone(response.data['certificate_id'])
        self.assertEqual(response.data['total_time_spent'], 120)

        self.training.refresh_from_db()
        self.assertEqual(self.training.attendance_count, 1)
        self.assertIn(self.trainee, self.training.completed_by.all())
        self.assertTrue(Notification.objects.filter(user=self.trainee, notification_type='certificate_issued').exists())

    def test_optional_content_does_not_gate(self):
        """Test completing optional content alone leaves the assignment in progress"""
        response = self.complete(self.optional)
        self.assertEqual(response.data['status'], 'in_progress')
        self.assertIsNone(response.data['content_completed_at'])

    def test_exam_required_moves_to_exam_pending(self):
        """Test finishing content of an assessed training waits for the exam"""
        TestDataFactory.create_exam(self.training, self.manager)
        response = self.complete(self.lesson)
        self.assertEqual(response.data['status'], 'exam_pending')
        self.assertIsNotNone(response.data['content_completed_at'])
        self.assertTrue(Notification.objects.filter(user=self.trainee, notification_type='exam_available').exists())
        self.assertFalse(Certificate.objects.filter(assignment=self.assignment).exists())

    def test_no_certificate_when_disabled(self):
        """Test completion issues no certificate when certificates are disabled"""
        self.training.certificate_enabled = False
        self.training.save()
        response = self.complete(self.lesson)
        self.assertEqual(response.data['status'], 'completed')
        self.assertIsNone(response.data['certificate_id'])

    def test_complete_unknown_content(self):
        """Test completing content outside the assignment is 404"""
        other = TestDataFactory.create_content(TestDataFactory.create_training(self.tenant))
        response = self.complete(other)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Content not found in assignment')

    def test_overdue_assignment_can_finish(self):
        """Test an overdue assignment still completes once its content is done"""
        self.assignment.status = 'overdue'
        self.assignment.due_date = timezone.now() - timedelta(days=1)
        self.assignment.save()
        response = self.complete(self.lesson)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertIsNotNone(response.data['certificate_id'])

    def test_overdue_sweep_keeps_exam_stage(self):
        """Test content finished after the due date is not flipped back to overdue"""
        TestDataFactory.create_exam(self.training, self.manager)
        self.assignment.status = 'overdue'
        self.assignment.due_date = timezone.now() - timedelta(days=1)
        self.assignment.save()
        self.complete(self.lesson)

        _, overdue = send_due_reminders()
        self.assertEqual(overdue, 0)
        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.status, 'exam_pending')

    def test_other_users_assignment_not_found(self):
        """Test users cannot act on someone else's assignment"""
        other = TestDataFactory.create_user(self.tenant)
        self.client.authenticate_user(other)
        response = self.complete(self.lesson)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class AssignmentManagementTests(TrainingTestCase):
    """Test manager-side assignment endpoints"""

    def setUp(self):
        super().setUp()
        self.lesson = TestDataFactory.create_content(self.training)
        self.assignment = TestDataFactory.create_assignment(self.training, self.trainee, assigned_by=self.manager)
        self.client.authenticate_user(self.manager)

    def test_assignment_list_filters(self):
        """Test listing assignments filtered by status"""
        other = TestDataFactory.create_user(self.tenant)
        TestDataFactory.create_assignment(self.training, other, status='completed')
        response = self.client.get('/api/v1/training-assignments/', {'status': 'completed'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/training-assignments/', {'training': self.training.id})
        self.assertEqual(response.data['count'], 2)

    def test_stats(self):
        """Test statistics count by status and overdue"""
        late_user = TestDataFactory.create_user(self.tenant)
        TestDataFactory.create_assignment(self.training, late_user, due_date=timezone.now() - timedelta(days=1))
        self.client.authenticate_user(self.trainee)
        response = self.client.get('/api/v1/training-assignments/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['by_status']['assigned'], 2)
        self.assertEqual(response.data['overdue'], 1)

    def test_stats_filtered_by_training(self):
        """Test statistics for one training and a non-numeric training filter"""
        other_training = TestDataFactory.create_training(self.tenant, self.manager)
        TestDataFactory.create_assignment(other_training, self.trainee)
        response = self.client.get('/api/v1/training-assignments/stats/', {'training': self.training.id})
        self.assertEqual(response.data['total'], 1)

        response = self.client.get('/api/v1/training-assignments/stats/', {'training': 'abc'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'training must be a numeric id')

    def test_stats_helper_ignores_completed(self):
        """Test completed assignments past due are not overdue"""
        self.assignment.status = 'completed'
        self.assignment.due_date = timezone.now() - timedelta(days=2)
        self.assignment.save()
        stats = assignment_stats(TrainingAssignment.objects.filter(tenant=self.tenant))
        self.assertEqual(stats['overdue'], 0)

    def test_reset(self):
        """Test reset returns the assignment to the start"""
        exam = TestDataFactory.create_exam(self.training, self.manager)
        self.client.authenticate_user(self.trainee)
        self.client.patch(
            f'/api/v1/training-assignments/my/{self.assignment.id}/content/{self.lesson.id}/complete/', {}, format='json'
        )
        ExamAttempt.objects.create(tenant=self.tenant, exam=exam, assignment=self.assignment, user=self.trainee,
                                   attempt_number=1)
        certificate = Certificate.objects.create(
            tenant=self.tenant, user=self.trainee, training=self.training, assignment=self.assignment,
            certificate_number='CERT-2026-AAAAAAAA', training_title=self.training.title,
            user_name='Trainee', issue_date=timezone.now(), completion_date=timezone.now(),
        )

        self.client.authenticate_user(self.manager)
        response = self.client.patch(f'/api/v1/training-assignments/{self.assignment.id}/reset/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'assigned')

        self.assignment.refresh_from_db()
        self.assertIsNone(self.assignment.content_completed_at)
        self.assertFalse(ContentProgress.objects.filter(assignment=self.assignment, completed=True).exists())
        self.assertEqual(self.assignment.content_progress.count(), 1)
        certificate.refresh_from_db()
        self.assertIsNone(certificate.assignment)
        self.assertEqual(ExamAttempt.objects.get(assignment=self.assignment).status, 'abandoned')
        self.assertTrue(Notification.objects.filter(user=self.trainee, title='Training Reset').exists())

    def test_issue_certificate_requires_completion(self):
        """Test certificates can only be issued for completed assignments"""
        response = self.client.post(f'/api/v1/training-assignments/{self.assignment.id}/issue-certificate/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Assignment is not completed yet')

    def test_issue_certificate_for_completed(self):
        """Test issuing a certificate for a completed assignment without one"""
        self.assignment.status = 'completed'
        self.assignment.completed_at = timezone.now()
        self.assignment.save()
        response = self.client.post(f'/api/v1/training-assignments/{self.assignment.id}/issue-certificate/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['certificate_number'].startswith(f'CERT-{timezone.now().year}-'))

        response = self.client.post(f'/api/v1/training-assignments/{self.assignment.id}/issue-certificate/')
        self.assertEqual(response.data['error'], 'Certificate already issued for this assignment')

    def test_issue_certificate_disabled(self):
        """Test issuing is refused when the training has certificates disabled"""
        self.training.certificate_enabled = False
        self.training.save()
        self.assignment.status = 'completed'
        self.assignment.save()
        response = self.client.post(f'/api/v1/training-assignments/{self.assignment.id}/issue-certificate/')
        self.assertEqual(response.data['error'], 'Certificates are disabled for this training')


class TrainingReminderTests(TrainingTestCase):
    """Test due-date reminders and overdue flagging"""

    def test_reminds_due_soon_once_a_day(self):
        """Test assignments due soon get one reminder per day"""
        assignment = TestDataFactory.create_assignment(self.training, self.trainee,
                                                       due_date=timezone.now() + timedelta(days=2))
        with self.captureOnCommitCallbacks(execute=True):
            reminded, overdue = send_due_reminders(days=3)
        self.assertEqual((reminded, overdue), (1, 0))
        assignment.refresh_from_db()
        self.assertIsNotNone(assignment.last_reminder_at)
        self.assertIn('Reminder: Training Due in 1 Day - ', mail.outbox[0].subject)

        reminded, _ = send_due_reminders(days=3)
        self.assertEqual(reminded, 0)

    def test_marks_past_due_overdue(self):
        """Test unfinished past-due assignments become overdue"""
        late = TestDataFactory.create_assignment(self.training, self.trainee,
                                                 due_date=timezone.now() - timedelta(days=1))
        done_user = TestDataFactory.create_user(self.tenant)
        done = TestDataFactory.create_assignment(self.training, done_user, status='completed',
                                                 due_date=timezone.now() - timedelta(days=1))
        _, overdue = send_due_reminders()
        self.assertEqual(overdue, 1)
        late.refresh_from_db()
        done.refresh_from_db()
        self.assertEqual(late.status, 'overdue')
        self.assertEqual(done.status, 'completed')
        self.assertTrue(Notification.objects.filter(user=self.trainee, notification_type='training_overdue').exists())

    def test_no_email_when_user_opted_out(self):
        """Test users with email notifications off get only in-app notifications"""
        self.trainee.email_notifications = False
        self.trainee.save()
        TestDataFactory.create_assignment(self.training, self.trainee, due_date=timezone.now() + timedelta(days=1))
        with self.captureOnCommitCallbacks(execute=True):
            send_due_reminders()
        self.assertEqual(len(mail.outbox), 0)
        self.assertTrue(Notification.objects.filter(user=self.trainee, notification_type='training_reminder').exists())

    def test_command(self):
        """Test the management command reports what it did"""
        TestDataFactory.create_assignment(self.training, self.trainee, due_date=timezone.now() + timedelta(days=1))
        out = StringIO()
        call_command('send_training_reminders', '--days', '2', stdout=out)
        self.assertIn('Sent 1 reminders, marked 0 assignments overdue', out.getvalue())
