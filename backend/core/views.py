import logging
from smtplib import SMTPException

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.shortcuts import get_object_or_404

from .emails import send_user_credentials, send_reset_password
from .filters import AuditLogFilter
from .models import Setting, Supervisor, AuditLog
from .permissions import IsSuperAdmin
from .serializers import (
    UserSerializer, UserCreateSerializer, UserUpdateSerializer, UserRoleSerializer,
    ApproverSerializer, SettingSerializer, SettingValueSerializer,
    SupervisorSerializer, AuditLogSerializer
)
from .utils import create_audit_log, error_response, first_error, generate_password, generate_unique_username

User = get_user_model()

logger = logging.getLogger('backend.core')


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        data['token'] = data['access']
        data['user'] = {
            'id': self.user.id,
            'username': self.user.username,
            'role': self.user.role,
            'first_name': self.user.first_name,
            'last_name': self.user.last_name,
            'full_name': self.user.full_name,
        }
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    """Login endpoint; successful logins are written to the audit log"""
    serializer_class = CustomTokenObtainPairSerializer

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        if response.status_code == status.HTTP_200_OK:
            user = User.objects.filter(pk=response.data['user']['id']).first()
            create_audit_log(
                request=request,
                user=user,
                action='login',
                model_name='User',
                object_id=user.id if user else None,
                object_name=user.username if user else None,
                changes={'user_agent': request.META.get('HTTP_USER_AGENT', '')},
            )
        return response


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Record a logout; tokens are discarded client side"""
    create_audit_log(
        request=request,
        action='logout',
        model_name='User',
        object_id=request.user.id,
        object_name=request.user.username,
        changes={'user_agent': request.META.get('HTTP_USER_AGENT', '')},
    )
    return Response({'message': 'Logged out successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with role-derived permissions"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['is_admin'] = user.role == User.ROLE_SUPERADMIN
    user_data['can_manage_users'] = user.role == User.ROLE_SUPERADMIN
    user_data['can_approve'] = user.role in User.MANAGER_ROLES
    user_data['can_finalize'] = user.role in (User.ROLE_SUPERADMIN, User.ROLE_ISSUER)
    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsSuperAdmin])
def user_list_create(request):
    """List all users or create a new user with a generated username and password"""
    if request.method == 'GET':
        users = User.objects.all().order_by('-created_at')
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)

    serializer = UserCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))

    data = serializer.validated_data
    password = generate_password()
    try:
        with transaction.atomic():
            user = User(
                first_name=data['first_name'],
                last_name=data['last_name'],
                email=data['email'],
                role=data['role'],
                username=generate_unique_username(data['last_name']),
            )
            user.set_password(password)
            user.save()
            create_audit_log(
                request=request,
                action='create_user',
                model_name='User',
                object_id=user.id,
                object_name=user.username,
                changes={'username': user.username, 'role': user.role},
            )
            send_user_credentials(user.email, user.username, password)
    except (SMTPException, OSError) as e:
        logger.error(f"Error creating user {data['email']}: {str(e)}")
        return error_response(f'Failed to send credentials email: {str(e)}')

    logger.info(f"User {user.username} created with role {user.role}")
    return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsSuperAdmin])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = UserUpdateSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return error_response(first_error(serializer.errors))
        changes = dict(serializer.validated_data)
        user = serializer.save()
        create_audit_log(
            request=request,
            action='update_user',
            model_name='User',
            object_id=user.id,
            object_name=user.username,
            changes={'user_id': user.id, 'changes': changes},
        )
        return Response(UserSerializer(user).data)

    # DELETE
    if user.pk == request.user.pk:
        return error_response('Cannot delete your own account')
    deleted_user = {'first_name': user.first_name, 'last_name': user.last_name, 'email': user.email}
    user_id = user.id
    user.delete()
    create_audit_log(
        request=request,
        action='delete_user',
        model_name='User',
        object_id=user_id,
        object_name=deleted_user['email'],
        changes={'user_id': user_id, 'deleted_user': deleted_user},
    )
    return Response({'message': 'User deleted successfully'})


@api_view(['PUT'])
@permission_classes([IsSuperAdmin])
def user_role(request, pk):
    """Change a user's role"""
    user = get_object_or_404(User, pk=pk)
    serializer = UserRoleSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))
    user.role = serializer.validated_data['role']
    user.save(update_fields=['role', 'updated_at'])
    create_audit_log(
        request=request,
        action='update_user_role',
        model_name='User',
        object_id=user.id,
        object_name=user.username,
        changes={'user_id': user.id, 'new_role': user.role},
    )
    return Response(UserSerializer(user).data)


@api_view(['POST'])
@permission_classes([IsSuperAdmin])
def user_reset_password(request, pk):
    """Generate a new password and e-mail it to the user"""
    user = get_object_or_404(User, pk=pk)
    password = generate_password()
    try:
        with transaction.atomic():
            user.set_password(password)
            user.save(update_fields=['password', 'updated_at'])
            create_audit_log(
                request=request,
                action='reset_password',
                model_name='User',
                object_id=user.id,
                object_name=user.username,
                changes={'user_id': user.id},
            )
            send_reset_password(user.email, user.username, password)
    except (SMTPException, OSError) as e:
        logger.error(f"Error resetting password for user {user.id}: {str(e)}")
        return error_response(f'Failed to send reset email: {str(e)}')
    return Response({'message': 'Password reset and email sent'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def approver_list(request):
    """Users that can be selected as approver on a new request"""
    approvers = User.objects.filter(role=User.ROLE_APPROVER, is_active=True).order_by('first_name', 'last_name')
    return Response(ApproverSerializer(approvers, many=True).data)


# Setting views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def setting_list(request):
    """All settings as a key/value map plus the raw rows under ``all``"""
    settings_qs = Setting.objects.all().order_by('key')
    data = {setting.key: setting.value for setting in settings_qs}
    data['all'] = SettingSerializer(settings_qs, many=True).data
    return Response(data)


@api_view(['GET', 'POST', 'PUT'])
@permission_classes([IsAuthenticated])
def setting_detail(request, key):
    """Retrieve or upsert a setting by key"""
    if request.method == 'GET':
        setting = get_object_or_404(Setting, key=key)
        return Response(SettingSerializer(setting).data)

    serializer = SettingValueSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))
    value = serializer.validated_data['value']
    setting, created = Setting.objects.update_or_create(key=key, defaults={'value': value})
    create_audit_log(
        request=request,
        action='update_setting',
        model_name='Setting',
        object_id=setting.id,
        object_name=key,
        changes={'key': key, 'value': value, 'created': created},
    )
    return Response({'key': key, 'value': value})


# Supervisor views
@api_view(['GET', 'POST'])
@permission_classes([IsSuperAdmin])
def supervisor_list_create(request):
    """List all supervisors or add one"""
    if request.method == 'GET':
        supervisors = Supervisor.objects.all().order_by('name')
        return Response(SupervisorSerializer(supervisors, many=True).data)

    serializer = SupervisorSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(first_error(serializer.errors))
    supervisor = serializer.save()
    create_audit_log(
        request=request,
        action='create_supervisor',
        model_name='Supervisor',
        object_id=supervisor.id,
        object_name=supervisor.email,
    )
    return Response(SupervisorSerializer(supervisor).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsSuperAdmin])
def supervisor_detail(request, pk):
    """Retrieve, update or delete a supervisor"""
    supervisor = Supervisor.objects.filter(pk=pk).first()
    if supervisor is None:
        return error_response('Supervisor not found', status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(SupervisorSerializer(supervisor).data)

    if request.method == 'PUT':
        serializer = SupervisorSerializer(supervisor, data=request.data)
        if not serializer.is_valid():
            return error_response(first_error(serializer.errors))
        supervisor = serializer.save()
        create_audit_log(
            request=request,
            action='update_supervisor',
            model_name='Supervisor',
            object_id=supervisor.id,
            object_name=supervisor.email,
        )
        return Response(SupervisorSerializer(supervisor).data)

    supervisor_id = supervisor.id
    email = supervisor.email
    supervisor.delete()
    create_audit_log(
        request=request,
        action='delete_supervisor',
        model_name='Supervisor',
        object_id=supervisor_id,
        object_name=email,
    )
    return Response({'message': 'Supervisor deleted'})


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs for any signed-in user, newest first"""
    queryset = AuditLog.objects.select_related('user').all()

    queryset = AuditLogFilter(request.query_params, queryset=queryset).qs
    queryset = queryset.order_by('-created_at', '-id')
    serializer = AuditLogSerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)
    return Response(AuditLogSerializer(audit_log).data)
