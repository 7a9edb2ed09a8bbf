from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, AuditLog
from .utils import is_valid_whatsapp_number, normalize_whatsapp_number


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'is_active', 'is_staff', 'is_superuser', 'created_at', 'updated_at']
        read_only_fields = ['is_staff', 'is_superuser', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone']

    def validate_phone(self, value):
        """Sellers register with the number buyers reach them on; stored as +27XXXXXXXXX"""
        if not value:
            return value
        if not is_valid_whatsapp_number(value):
            raise serializers.ValidationError("Enter a South African mobile number, e.g. 071 234 5678")
        return normalize_whatsapp_number(value)

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)
    action_display = serializers.CharField(source='get_action_display', read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'action', 'action_display', 'model_name', 'object_id',
                  'object_name', 'shop_slug', 'changes', 'ip_address', 'created_at']
