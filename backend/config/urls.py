"""
URL configuration for the QMS backend.

Every app contributes its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve
from backend.core.views import health

admin.site.site_header = "QMS Pharmacy Admin Panel"
admin.site.site_title = "QMS Pharmacy Admin Portal"
admin.site.index_title = "Quality Management System Administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health, name='health'),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.documents.urls')),
    path('api/v1/', include('backend.quality.urls')),
    path('api/v1/', include('backend.training.urls')),
    path('api/v1/', include('backend.exams.urls')),
    path('api/v1/', include('backend.certificates.urls')),
    path('api/v1/', include('backend.notifications.urls')),
    path('api/v1/', include('backend.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
