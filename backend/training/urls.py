from django.urls import path
from . import views

urlpatterns = [
    path('trainings/', views.training_list_create, name='training-list-create'),
    path('trainings/<int:pk>/', views.training_detail, name='training-detail'),

    path('training-content/training/<int:training_id>/', views.content_list, name='training-content-list'),
    path('training-content/training/<int:training_id>/upload/', views.content_upload, name='training-content-upload'),
    path('training-content/training/<int:training_id>/link/', views.content_link, name='training-content-link'),
    path('training-content/training/<int:training_id>/reorder/', views.content_reorder, name='training-content-reorder'),
    path('training-content/<int:pk>/', views.content_detail, name='training-content-detail'),

    path('training-assignments/', views.assignment_list, name='training-assignment-list'),
    path('training-assignments/assign/', views.assign, name='training-assign'),
    path('training-assignments/stats/', views.assignment_statistics, name='training-assignment-stats'),
    path('training-assignments/my/', views.my_assignments, name='my-assignments'),
    path('training-assignments/my/<int:pk>/', views.my_assignment_detail, name='my-assignment-detail'),
    path('training-assignments/my/<int:pk>/start/', views.start_my_assignment, name='my-assignment-start'),
    path('training-assignments/my/<int:pk>/content/<int:content_id>/complete/', views.complete_my_content,
         name='my-assignment-content-complete'),
    path('training-assignments/<int:pk>/reset/', views.reset, name='training-assignment-reset'),
    path('training-assignments/<int:pk>/issue-certificate/', views.issue_assignment_certificate,
         name='training-assignment-issue-certificate'),
]
