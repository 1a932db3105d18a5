from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Application user with a single workflow role"""
    ROLE_REQUESTER = 'requester'
    ROLE_APPROVER = 'approver'
    ROLE_ISSUER = 'issuer'
    ROLE_SUPERADMIN = 'superadmin'

    ROLE_CHOICES = [
        (ROLE_REQUESTER, 'Requester'),
        (ROLE_APPROVER, 'Approver'),
        (ROLE_ISSUER, 'Issuer'),
        (ROLE_SUPERADMIN, 'Super Admin'),
    ]
    MANAGER_ROLES = (ROLE_SUPERADMIN, ROLE_ISSUER, ROLE_APPROVER)

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=50, choices=ROLE_CHOICES, default=ROLE_REQUESTER, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_superadmin(self):
        return self.role == self.ROLE_SUPERADMIN

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']


class Setting(models.Model):
    """Runtime-editable system settings (e.g. alert sender)"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    @classmethod
    def get_value(cls, key, default=None):
        setting = cls.objects.filter(key=key).first()
        return setting.value if setting else default

    class Meta:
        db_table = 'settings'
        ordering = ['key']


class Supervisor(models.Model):
    """Recipients of low stock alert e-mails"""
    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} <{self.email}>"

    class Meta:
        db_table = 'supervisors'
        ordering = ['name']


class AuditLog(models.Model):
    """Audit log for user, catalog, stock and workflow operations"""
    ACTION_CHOICES = [
        ('login', 'Login'),
        ('logout', 'Logout'),
        ('create_user', 'User Created'),
        ('update_user', 'User Updated'),
        ('update_user_role', 'User Role Changed'),
        ('reset_password', 'Password Reset'),
        ('delete_user', 'User Deleted'),
        ('create_supervisor', 'Supervisor Created'),
        ('update_supervisor', 'Supervisor Updated'),
        ('delete_supervisor', 'Supervisor Deleted'),
        ('update_setting', 'Setting Updated'),
        ('create_category', 'Category Created'),
        ('update_category', 'Category Updated'),
        ('delete_category', 'Category Deleted'),
        ('create_item', 'Item Created'),
        ('update_item', 'Item Updated'),
        ('delete_item', 'Item Deleted'),
        ('issue_item', 'Item Issued'),
        ('low_stock_alert', 'Low Stock Alert Sent'),
        ('create_request', 'Request Created'),
        ('update_request', 'Request Updated'),
        ('approve_request', 'Request Approved'),
        ('reject_request', 'Request Rejected'),
        ('finalize_request', 'Request Finalized'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., item name, username)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., request number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_2a0f5c_idx'),
            models.Index(fields=['action'], name='audit_logs_action_7b1e44_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_3c9d21_idx'),
        ]
