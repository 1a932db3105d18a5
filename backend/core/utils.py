"""Utility functions for audit logging and account provisioning"""
import logging
import re
import secrets

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.response import Response

from .models import AuditLog

User = get_user_model()

logger = logging.getLogger('backend.core')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create_item, issue_item, approve_request, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of details about the operation
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., item name, username)
        object_reference: Reference identifier (e.g., request number)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or object_id in (None, ''):
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def generate_password():
    """Six upper-case hex characters, mailed to the user on creation/reset"""
    return secrets.token_hex(3).upper()


def generate_unique_username(last_name):
    """
    Build a username from the last name: lower-cased with whitespace removed,
    suffixed with 1, 2, ... until no other user has it.
    """
    base_username = re.sub(r'\s+', '', (last_name or '').strip().lower()) or 'user'
    username = base_username
    counter = 1
    while User.objects.filter(username=username).exists():
        username = f"{base_username}{counter}"
        counter += 1
    return username


def error_response(message, status_code=status.HTTP_400_BAD_REQUEST):
    return Response({'error': message}, status=status_code)


def first_error(errors):
    """Flatten serializer errors to the first human readable message"""
    if isinstance(errors, dict):
        errors = list(errors.values())
    if isinstance(errors, (list, tuple)):
        for value in errors:
            message = first_error(value)
            if message:
                return message
        return ''
    return str(errors)
