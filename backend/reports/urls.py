from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard, name='reports-dashboard'),
    path('reports/compliance/', views.compliance, name='reports-compliance'),
    path('reports/modules/<str:module>/', views.module_report, name='reports-module'),
]
