from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, ActivityLog
from .permissions import PAGES, get_user_pages


class UserSerializer(serializers.ModelSerializer):
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'name', 'phone', 'role', 'custom_permissions', 'permissions',
                  'is_active', 'is_superuser', 'created_at', 'updated_at']
        read_only_fields = ['is_superuser', 'created_at', 'updated_at']

    def get_permissions(self, obj):
        return get_user_pages(obj)

    def validate_email(self, value):
        return value.lower()

    def validate_custom_permissions(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Expected a list of page names.")
        invalid = [page for page in value if page not in PAGES]
        if invalid:
            raise serializers.ValidationError(f"Unknown pages: {', '.join(invalid)}")
        return value


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True, required=False)

    class Meta:
        model = User
        fields = ['email', 'name', 'password', 'password_confirm', 'phone', 'role', 'custom_permissions']

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value

    def validate(self, attrs):
        confirm = attrs.get('password_confirm')
        if confirm is not None and attrs['password'] != confirm:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm', None)
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, is_active=True, **validated_data)


class UserPermissionsSerializer(serializers.Serializer):
    custom_permissions = serializers.ListField(child=serializers.ChoiceField(choices=PAGES), allow_empty=True)


class ActivityLogSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.name', read_only=True, default=None)

    class Meta:
        model = ActivityLog
        fields = ['id', 'user', 'user_name', 'action', 'model_name', 'object_id', 'object_name',
                  'description', 'previous_status', 'new_status', 'previous_location',
                  'new_location', 'changes', 'ip_address', 'created_at']
