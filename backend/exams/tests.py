"""
Comprehensive test suite for Exams module
Tests: Exam authoring, taking an exam without answers, attempts and limits,
grading, pass/fail transitions and per-training results
"""
import random
from datetime import timedelta
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.exams.grading import grade_answers, score_percentage, questions_for_taking
from backend.exams.models import Exam, ExamAttempt
from backend.training.models import Training
from backend.training.workflow import send_due_reminders


class ExamTestCase(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.tenant = TestDataFactory.create_tenant()
        self.manager = TestDataFactory.create_user(self.tenant, role='qa_manager')
        self.trainee = TestDataFactory.create_user(self.tenant, role='trainee')
        self.training = TestDataFactory.create_training(self.tenant, self.manager)


class ExamAuthoringTests(ExamTestCase):
    """Test exam create/update endpoints"""

    def setUp(self):
        super().setUp()
        self.client.authenticate_user(self.manager)

    def exam_payload(self, **overrides):
        payload = {
            'training': self.training.id,
            'title': 'Dispensing exam',
            'passing_score': 70,
            'questions': [
                {'question_text': 'Max fridge temperature?', 'options': ['8C', '15C'], 'correct_answers': [0],
                 'points': 2},
                {'question_text': 'Pick the controlled drugs', 'question_type': 'multiple_select',
                 'options': ['Morphine', 'Paracetamol', 'Oxycodone'], 'correct_answers': [0, 2], 'points': 3},
            ],
        }
        payload.update(overrides)
        return payload

    def test_create_exam(self):
        """Test creating an exam totals points and flags the training"""
        response = self.client.post('/api/v1/exams/', self.exam_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_points'], 5)
        self.assertEqual(response.data['question_count'], 2)

        self.training.refresh_from_db()
        self.assertTrue(self.training.assessment_required)
        self.assertEqual(self.training.passing_score, 70)

    def test_new_active_exam_deactivates_previous(self):
        """Test a training keeps a single active exam"""
        old = TestDataFactory.create_exam(self.training, self.manager)
        response = self.client.post('/api/v1/exams/', self.exam_payload(), format='json')
        old.refresh_from_db()
        self.assertFalse(old.is_active)
        self.assertTrue(Exam.objects.get(pk=response.data['id']).is_active)

    def test_create_requires_questions(self):
        """Test an exam needs at least one question"""
        response = self.client.post('/api/v1/exams/', self.exam_payload(questions=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('questions', response.data)

    def test_invalid_answer_index(self):
        """Test correct answers must point at existing options"""
        payload = self.exam_payload(questions=[
            {'question_text': 'Q', 'options': ['a', 'b'], 'correct_answers': [5]}
        ])
        response = self.client.post('/api/v1/exams/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_single_answer_question_rejects_multiple(self):
        """Test multiple choice questions take exactly one correct answer"""
        payload = self.exam_payload(questions=[
            {'question_text': 'Q', 'options': ['a', 'b'], 'correct_answers': [0, 1]}
        ])
        response = self.client.post('/api/v1/exams/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_training(self):
        """Test exams for a training of another tenant are 404"""
        other = TestDataFactory.create_training(TestDataFactory.create_tenant())
        response = self.client.post('/api/v1/exams/', self.exam_payload(training=other.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Training not found')

    def test_update_replaces_questions(self):
        """Test updating questions replaces them and re-totals points"""
        exam = TestDataFactory.create_exam(self.training, self.manager)
        response = self.client.patch(f'/api/v1/exams/{exam.id}/', {
            'passing_score': 60,
            'questions': [{'question_text': 'Only one', 'options': ['a', 'b'], 'correct_answers': [1], 'points': 4}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_points'], 4)
        self.assertEqual(exam.questions.count(), 1)
        self.assertEqual(Training.objects.get(pk=self.training.pk).passing_score, 60)

    def test_list_by_training(self):
        """Test listing exams of a training"""
        TestDataFactory.create_exam(self.training, self.manager)
        TestDataFactory.create_exam(TestDataFactory.create_training(self.tenant), self.manager)
        response = self.client.get('/api/v1/exams/', {'training': self.training.id})
        self.assertEqual(len(response.data), 1)

    def test_trainee_cannot_author(self):
        """Test exam authoring needs can_create_exams"""
        self.client.authenticate_user(self.trainee)
        response = self.client.post('/api/v1/exams/', self.exam_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ExamTakingTests(ExamTestCase):
    """Test taking and submitting exams"""

    def setUp(self):
        super().setUp()
        self.exam = TestDataFactory.create_exam(self.training, self.manager, passing_score=80, max_attempts=2)
        self.questions = list(self.exam.questions.all())
        self.assignment = TestDataFactory.create_assignment(self.training, self.trainee, status='exam_pending')
        self.client.authenticate_user(self.trainee)

    def start(self):
        return self.client.post(f'/api/v1/exams/take/{self.assignment.id}/start/')

    def submit(self, attempt_id, correct=True):
        answer = 0 if correct else 1
        return self.client.post(f'/api/v1/exams/attempts/{attempt_id}/submit/', {
            'answers': [{'question_id': q.id, 'selected_answers': [answer]} for q in self.questions],
            'time_spent': 300,
        }, format='json')

    def test_take_hides_answers(self):
        """Test questions are served without correct answers"""
        response = self.client.get(f'/api/v1/exams/take/{self.assignment.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['attempt_number'], 1)
        question = response.data['questions'][0]
        self.assertNotIn('correct_answers', question)
        self.assertEqual(question['options'][0], {'index': 0, 'text': 'right'})

    def test_take_requires_exam_stage(self):
        """Test the exam is unavailable before content is finished"""
        self.assignment.status = 'in_progress'
        self.assignment.save()
        response = self.client.get(f'/api/v1/exams/take/{self.assignment.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_start_reuses_open_attempt(self):
        """Test starting twice returns the attempt in progress"""
        first = self.start()
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        second = self.start()
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data['id'], second.data['id'])

    def test_pass_completes_assignment(self):
        """Test a passing submission completes the assignment and issues a certificate"""
        attempt_id = self.start().data['id']
        response = self.submit(attempt_id)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['score'], 100)
        self.assertTrue(response.data['passed'])
        self.assertIsNotNone(response.data['certificate_id'])
        self.assertIn('answers', response.data)

        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.status, 'completed')
        self.assertEqual(self.assignment.exam_attempts, 1)
        self.assertIsNotNone(self.assignment.exam_passed_at)
        self.training.refresh_from_db()
        self.assertEqual(self.training.passed_count, 1)
        self.assertEqual(self.training.average_score, 100)

    def test_fail_marks_exam_failed(self):
        """Test a failing submission leaves room for another attempt"""
        attempt_id = self.start().data['id']
        response = self.submit(attempt_id, correct=False)
        self.assertFalse(response.data['passed'])
        self.assertEqual(response.data['score'], 0)
        self.assertIsNone(response.data['certificate_id'])
        self.assertNotIn('correct_answers', response.data)

        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.status, 'exam_failed')
        response = self.client.get(f'/api/v1/exams/take/{self.assignment.id}/')
        self.assertEqual(response.data['attempt_number'], 2)

    def test_max_attempts(self):
        """Test no attempts are allowed past the limit"""
        for _ in range(2):
            self.submit(self.start().data['id'], correct=False)
        response = self.start()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Maximum attempts reached')

    def test_submit_twice(self):
        """Test an attempt can only be submitted once"""
        attempt_id = self.start().data['id']
        self.submit(attempt_id, correct=False)
        response = self.submit(attempt_id)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Attempt not found or already submitted')

    def test_correct_answers_shown_after_pass(self):
        """Test correct answers are revealed on a pass when the exam allows it"""
        self.exam.show_correct_answers = True
        self.exam.save()
        response = self.submit(self.start().data['id'])
        self.assertEqual(len(response.data['correct_answers']), 2)

    def test_half_point_score_rounds_up(self):
        """Test 5 of 8 points scores 63 and meets a 63 pass mark"""
        Exam.objects.filter(pk=self.exam.pk).update(is_active=False)
        exam = TestDataFactory.create_exam(self.training, self.manager, passing_score=63, questions=[
            {'question_text': f'Q{number}', 'options': ['right', 'wrong'], 'correct_answers': [0]}
            for number in range(8)
        ])
        answers = [
            {'question_id': question.id, 'selected_answers': [0 if position < 5 else 1]}
            for position, question in enumerate(exam.questions.all())
        ]
        attempt_id = self.start().data['id']
        response = self.client.post(f'/api/v1/exams/attempts/{attempt_id}/submit/',
                                    {'answers': answers, 'time_spent': 120}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['score'], 63)
        self.assertTrue(response.data['passed'])
        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.status, 'completed')

    def test_past_due_exam_stays_available(self):
        """Test the overdue sweep leaves a waiting exam takeable"""
        self.assignment.due_date = timezone.now() - timedelta(days=1)
        self.assignment.content_completed_at = timezone.now() - timedelta(days=2)
        self.assignment.save()
        send_due_reminders(days=3)

        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.status, 'exam_pending')
        response = self.client.get(f'/api/v1/exams/take/{self.assignment.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_overdue_after_content_can_pass(self):
        """Test an overdue assignment with finished content can still take and pass the exam"""
        self.assignment.status = 'overdue'
        self.assignment.content_completed_at = timezone.now()
        self.assignment.save()
        response = self.client.get(f'/api/v1/exams/take/{self.assignment.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.submit(self.start().data['id'])
        self.assertTrue(response.data['passed'])
        self.assignment.refresh_from_db()
        self.assertEqual(self.assignment.status, 'completed')

    def test_overdue_before_content_has_no_exam(self):
        """Test an overdue assignment still in the content stage cannot take the exam"""
        self.assignment.status = 'overdue'
        self.assignment.save()
        response = self.client.get(f'/api/v1/exams/take/{self.assignment.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_results(self):
        """Test per-training results and statistics"""
        self.submit(self.start().data['id'], correct=False)
        self.submit(self.start().data['id'])
        self.client.authenticate_user(self.manager)
        response = self.client.get(f'/api/v1/exams/training/{self.training.id}/results/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stats = response.data['statistics']
        self.assertEqual(stats['total_attempts'], 2)
        self.assertEqual(stats['passed_count'], 1)
        self.assertEqual(stats['average_score'], 50)
        self.assertEqual(stats['highest_score'], 100)
        self.assertEqual(stats['lowest_score'], 0)
        self.assertEqual(ExamAttempt.objects.filter(assignment=self.assignment).count(), 2)


class GradingTests(ExamTestCase):
    """Test grading helpers"""

    def setUp(self):
        super().setUp()
        self.exam = TestDataFactory.create_exam(self.training, questions=[
            {'question_text': 'Single', 'options': ['a', 'b'], 'correct_answers': [1], 'points': 1},
            {'question_text': 'Multi', 'question_type': 'multiple_select', 'options': ['a', 'b', 'c'],
             'correct_answers': [0, 2], 'points': 3},
        ])
        self.single, self.multi = list(self.exam.questions.all())

    def test_exact_match_required(self):
        """Test partially correct multi-select answers earn nothing"""
        graded, earned, total = grade_answers([self.single, self.multi], [
            {'question_id': self.single.id, 'selected_answers': [1]},
            {'question_id': self.multi.id, 'selected_answers': [0]},
        ])
        self.assertEqual((earned, total), (1, 4))
        self.assertTrue(graded[0]['is_correct'])
        self.assertFalse(graded[1]['is_correct'])

    def test_answer_order_ignored(self):
        """Test multi-select answers match regardless of order"""
        _, earned, _ = grade_answers([self.multi], [{'question_id': self.multi.id, 'selected_answers': [2, 0]}])
        self.assertEqual(earned, 3)

    def test_unknown_and_duplicate_answers(self):
        """Test unknown questions earn nothing and duplicates count once"""
        graded, earned, _ = grade_answers([self.single], [
            {'question_id': 999999, 'selected_answers': [0]},
            {'question_id': self.single.id, 'selected_answers': [1]},
            {'question_id': self.single.id, 'selected_answers': [1]},
        ])
        self.assertEqual(earned, 1)
        self.assertEqual(len(graded), 2)

    def test_score_percentage(self):
        """Test percentages round halves up and tolerate empty exams"""
        self.assertEqual(score_percentage(1, 3), 33)
        self.assertEqual(score_percentage(5, 8), 63)
        self.assertEqual(score_percentage(1, 8), 13)
        self.assertEqual(score_percentage(0, 0), 0)

    def test_shuffled_options_keep_indices(self):
        """Test shuffling options keeps each option's stored index"""
        self.exam.shuffle_options = True
        questions = questions_for_taking(self.exam, rng=random.Random(1))
        for question in questions:
            stored = Exam.objects.get(pk=self.exam.pk).questions.get(pk=question['id']).options
            for option in question['options']:
                self.assertEqual(stored[option['index']], option['text'])
