from django.urls import path
from . import views

urlpatterns = [
    path('certificates/', views.certificate_list, name='certificate-list'),
    path('certificates/my/', views.my_certificates, name='certificate-my'),
    path('certificates/stats/', views.certificate_stats, name='certificate-stats'),
    path('certificates/verify/<str:code>/', views.verify_certificate, name='certificate-verify'),
    path('certificates/<int:pk>/', views.certificate_detail, name='certificate-detail'),
    path('certificates/<int:pk>/download/', views.certificate_download, name='certificate-download'),
    path('certificates/<int:pk>/pdf/', views.certificate_pdf, name='certificate-pdf'),
    path('certificates/<int:pk>/revoke/', views.revoke_certificate, name='certificate-revoke'),
]
