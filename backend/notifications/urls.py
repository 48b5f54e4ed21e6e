from django.urls import path
from .views import notification_list, unread_notifications, unread_count, mark_read, mark_all_read

urlpatterns = [
    path('notifications/', notification_list, name='notification-list'),
    path('notifications/unread/', unread_notifications, name='notification-unread'),
    path('notifications/unread/count/', unread_count, name='notification-unread-count'),
    path('notifications/read-all/', mark_all_read, name='notification-read-all'),
    path('notifications/<int:pk>/read/', mark_read, name='notification-read'),
]
