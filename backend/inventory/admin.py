from django.contrib import admin
from .models import ItemOut


@admin.register(ItemOut)
class ItemOutAdmin(admin.ModelAdmin):
    list_display = ['person_name', 'item', 'quantity', 'issued_by', 'date_time']
    list_filter = ['date_time']
    search_fields = ['person_name', 'item__name']
    ordering = ['-date_time']
    readonly_fields = ['date_time']
