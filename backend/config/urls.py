"""
URL configuration for the inventory backend.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Inventory Management Admin Panel"
admin.site.site_title = "Inventory Management Admin Portal"
admin.site.index_title = "Welcome to the Inventory Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.inventory.urls')),
    path('api/v1/', include('backend.requisitions.urls')),
    path('api/v1/', include('backend.reports.urls')),
    path('api/v1/', include('backend.assistant.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
