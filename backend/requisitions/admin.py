from django.contrib import admin
from .models import Request, RequestItem, Approval, Rejection


class RequestItemInline(admin.TabularInline):
    model = RequestItem
    extra = 0


class ApprovalInline(admin.TabularInline):
    model = Approval
    extra = 0


class RejectionInline(admin.TabularInline):
    model = Rejection
    extra = 0


@admin.register(Request)
class RequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'type', 'status', 'created_by', 'project_name', 'selected_approver', 'created_at']
    list_filter = ['status', 'type', 'created_at']
    search_fields = ['created_by', 'project_name', 'team_leader_name', 'location']
    ordering = ['-created_at']
    inlines = [RequestItemInline, ApprovalInline, RejectionInline]
