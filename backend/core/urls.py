from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, logout, user_me,
    user_list_create, user_detail, user_role, user_reset_password, approver_list,
    setting_list, setting_detail,
    supervisor_list_create, supervisor_detail,
    audit_log_list, audit_log_detail,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', logout, name='logout'),
    path('auth/me/', user_me, name='user-me'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/approvers/', approver_list, name='user-approvers'),
    path('users/<int:pk>/', user_detail, name='user-detail'),
    path('users/<int:pk>/role/', user_role, name='user-role'),
    path('users/<int:pk>/reset-password/', user_reset_password, name='user-reset-password'),

    # Setting endpoints
    path('settings/', setting_list, name='setting-list'),
    path('settings/<str:key>/', setting_detail, name='setting-detail'),

    # Supervisor endpoints
    path('supervisors/', supervisor_list_create, name='supervisor-list-create'),
    path('supervisors/<int:pk>/', supervisor_detail, name='supervisor-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),
]
