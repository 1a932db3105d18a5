from rest_framework import serializers
from .models import User, Setting, Supervisor, AuditLog


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'full_name', 'role', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['username', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    """Create a user from name, e-mail and role; username and password are generated"""
    first_name = serializers.CharField(max_length=150)
    last_name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, error_messages={'invalid_choice': 'Invalid role'})

    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'email', 'role']

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError('Email already exists')
        return value

    def validate_first_name(self, value):
        return value.strip()

    def validate_last_name(self, value):
        return value.strip()


class UserUpdateSerializer(serializers.ModelSerializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, error_messages={'invalid_choice': 'Invalid role'})

    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'email', 'role', 'is_active']

    def validate_email(self, value):
        value = value.strip().lower()
        queryset = User.objects.filter(email=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('Email already exists')
        return value


class UserRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, error_messages={'invalid_choice': 'Invalid role'})


class ApproverSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'first_name', 'last_name', 'full_name']


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class SettingValueSerializer(serializers.Serializer):
    value = serializers.CharField(allow_blank=True)


class SupervisorSerializer(serializers.ModelSerializer):
    name = serializers.CharField(max_length=255, error_messages={'required': 'Name and email are required', 'blank': 'Name and email are required'})
    email = serializers.EmailField(error_messages={'required': 'Name and email are required', 'blank': 'Name and email are required'})

    class Meta:
        model = Supervisor
        fields = ['id', 'name', 'email', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        return value.strip()

    def validate_email(self, value):
        value = value.strip().lower()
        queryset = Supervisor.objects.filter(email=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('Email already exists')
        return value


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.SerializerMethodField()
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'full_name', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']

    def get_username(self, obj):
        return obj.user.username if obj.user else None

    def get_full_name(self, obj):
        return obj.user.full_name if obj.user else ''


class AliasedFieldsMixin:
    """Accept alternative (camelCase) input keys, e.g. {'personName': 'person_name'}"""
    field_aliases = {}

    def to_internal_value(self, data):
        if hasattr(data, 'items'):
            data = dict(data.items())
            for alias, field_name in self.field_aliases.items():
                if alias in data and field_name not in data:
                    data[field_name] = data.pop(alias)
        return super().to_internal_value(data)
