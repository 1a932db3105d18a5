from django.urls import path
from . import views

urlpatterns = [
    path('dashboard-stats/', views.dashboard_stats, name='dashboard-stats'),
    path('reports/usage/', views.usage_report, name='usage-report'),
    path('reports/export/pdf/', views.export_pdf, name='export-pdf'),
    path('reports/export/excel/', views.export_excel, name='export-excel'),
]
