from django.urls import path
from . import views

urlpatterns = [
    path('exams/', views.exam_list_create, name='exam-list-create'),
    path('exams/<int:pk>/', views.exam_detail, name='exam-detail'),
    path('exams/training/<int:training_id>/results/', views.training_results, name='exam-training-results'),
    path('exams/take/<int:assignment_id>/', views.take_exam, name='exam-take'),
    path('exams/take/<int:assignment_id>/start/', views.start_exam, name='exam-start'),
    path('exams/attempts/<int:attempt_id>/submit/', views.submit_exam, name='exam-submit'),
]
