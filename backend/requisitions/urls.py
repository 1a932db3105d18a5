from django.urls import path
from .views import request_list_create, request_detail, request_approve, request_reject, request_finalize

urlpatterns = [
    path('requests/', request_list_create, name='request-list-create'),
    path('requests/<int:pk>/', request_detail, name='request-detail'),
    path('requests/<int:pk>/approve/', request_approve, name='request-approve'),
    path('requests/<int:pk>/reject/', request_reject, name='request-reject'),
    path('requests/<int:pk>/finalize/', request_finalize, name='request-finalize'),
]
