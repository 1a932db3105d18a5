from django.contrib import admin
from .models import Category, Vendor, Item


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'description', 'created_at']
    list_filter = ['created_at']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact_info', 'created_at']
    search_fields = ['name']
    ordering = ['name']


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'quantity', 'low_stock_threshold', 'unit_price', 'created_at']
    list_filter = ['category', 'created_at']
    search_fields = ['name', 'description', 'vendor_name']
    ordering = ['name']
    readonly_fields = ['receipt_images', 'update_reasons', 'created_at', 'updated_at']
