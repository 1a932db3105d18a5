from django.urls import path
from .views import items_out_list_create, send_low_stock_alert_view

urlpatterns = [
    path('items-out/', items_out_list_create, name='items-out-list-create'),
    path('send-low-stock-alert/', send_low_stock_alert_view, name='send-low-stock-alert'),
]
