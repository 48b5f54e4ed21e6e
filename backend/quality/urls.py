from django.urls import path
from .views import (
    change_control_list_create, change_control_detail,
    deviation_list_create, deviation_detail,
    capa_list_create, capa_detail,
    audit_list_create, audit_detail
)

urlpatterns = [
    path('change-controls/', change_control_list_create, name='change-control-list-create'),
    path('change-controls/<int:pk>/', change_control_detail, name='change-control-detail'),
    path('deviations/', deviation_list_create, name='deviation-list-create'),
    path('deviations/<int:pk>/', deviation_detail, name='deviation-detail'),
    path('capas/', capa_list_create, name='capa-list-create'),
    path('capas/<int:pk>/', capa_detail, name='capa-detail'),
    path('audits/', audit_list_create, name='audit-list-create'),
    path('audits/<int:pk>/', audit_detail, name='audit-detail'),
]
