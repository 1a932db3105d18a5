from django.urls import path
from .views import (
    category_list_create, category_detail,
    vendor_list_create,
    item_list_create, item_detail, low_stock_list,
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),

    # Vendor endpoints
    path('vendors/', vendor_list_create, name='vendor-list-create'),

    # Item endpoints
    path('items/', item_list_create, name='item-list-create'),
    path('items/<int:pk>/', item_detail, name='item-detail'),
    path('low-stock/', low_stock_list, name='low-stock-list'),
]
