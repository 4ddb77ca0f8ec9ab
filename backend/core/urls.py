from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, register, user_me,
    user_list_create, user_detail, user_toggle_status, user_permissions,
    activity_log_list, activity_log_detail,
    global_search
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # User endpoints (admin only)
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),
    path('users/<int:pk>/toggle-status/', user_toggle_status, name='user-toggle-status'),
    path('users/<int:pk>/permissions/', user_permissions, name='user-permissions'),

    # ActivityLog endpoints
    path('activity-logs/', activity_log_list, name='activity-log-list'),
    path('activity-logs/<int:pk>/', activity_log_detail, name='activity-log-detail'),

    # Global search endpoint
    path('search/', global_search, name='global-search'),
]
