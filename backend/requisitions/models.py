from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from backend.catalog.models import Item


class Request(models.Model):
    """Material request or item return moving through pending -> approved -> completed/rejected"""
    TYPE_MATERIAL_REQUEST = 'material_request'
    TYPE_ITEM_RETURN = 'item_return'
    TYPE_CHOICES = [
        (TYPE_MATERIAL_REQUEST, 'Material Request'),
        (TYPE_ITEM_RETURN, 'Item Return'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_COMPLETED = 'completed'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_REJECTED, 'Rejected'),
    ]
    REJECTABLE_STATUSES = (STATUS_PENDING, STATUS_APPROVED)

    created_by = models.CharField(max_length=255)
    requester = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='requests_created')
    team_leader_name = models.CharField(max_length=255, blank=True)
    team_leader_phone = models.CharField(max_length=50, blank=True)
    project_name = models.CharField(max_length=255, blank=True)
    isp_name = models.CharField(max_length=255, blank=True, null=True)
    location = models.TextField(blank=True)
    deployment_type = models.CharField(max_length=100, blank=True, null=True)
    release_by = models.CharField(max_length=255, blank=True, null=True)
    received_by = models.CharField(max_length=255, blank=True, null=True)
    selected_approver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='requests_to_approve')
    type = models.CharField(max_length=50, choices=TYPE_CHOICES, default=TYPE_MATERIAL_REQUEST)
    reason = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=50, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Request #{self.id} ({self.status})"

    @property
    def reference(self):
        return f"REQ-{self.id:05d}"

    class Meta:
        db_table = 'requests'
        ordering = ['-created_at', '-id']


class RequestItem(models.Model):
    request = models.ForeignKey(Request, on_delete=models.CASCADE, related_name='items')
    item = models.ForeignKey(Item, on_delete=models.SET_NULL, null=True, related_name='request_items')
    quantity_requested = models.IntegerField(validators=[MinValueValidator(1)])
    quantity_received = models.IntegerField(null=True, blank=True)
    quantity_returned = models.IntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.quantity_requested} x {self.item}"

    class Meta:
        db_table = 'request_items'
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity_requested__gt=0), name='request_items_quantity_positive'),
        ]


class Approval(models.Model):
    request = models.ForeignKey(Request, on_delete=models.CASCADE, related_name='approvals')
    approver_name = models.CharField(max_length=255)
    signature = models.TextField(blank=True, null=True)
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='approvals')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'approvals'
        ordering = ['-created_at', '-id']


class Rejection(models.Model):
    request = models.ForeignKey(Request, on_delete=models.CASCADE, related_name='rejections')
    rejector_name = models.CharField(max_length=255)
    reason = models.TextField()
    rejected_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='rejections')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'rejections'
        ordering = ['-created_at', '-id']
