from django.urls import path
from .views import (
    login, logout, CustomTokenRefreshView, user_me,
    user_list_create, user_detail, user_change_password,
    user_profile, profile_change_password, users_by_role,
    audit_log_list
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', login, name='login'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token-refresh'),
    path('auth/logout/', logout, name='logout'),
    path('auth/me/', user_me, name='user-me'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/profile/', user_profile, name='user-profile'),
    path('users/profile/password/', profile_change_password, name='user-profile-password'),
    path('users/by-role/', users_by_role, name='users-by-role'),
    path('users/<int:pk>/', user_detail, name='user-detail'),
    path('users/<int:pk>/password/', user_change_password, name='user-change-password'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
]
