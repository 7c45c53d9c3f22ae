from rest_framework import serializers
from .models import User, AuditLog


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'role', 'phone', 'address', 'is_account_verified', 'created_at', 'updated_at']
        read_only_fields = fields


class UserProfileUpdateSerializer(serializers.ModelSerializer):
    """Partial profile update; blank values leave the field unchanged"""

    class Meta:
        model = User
        fields = ['name', 'email', 'phone', 'address']
        extra_kwargs = {
            'name': {'required': False, 'allow_blank': True},
            'email': {'required': False, 'allow_blank': True, 'validators': []},
            'phone': {'required': False, 'allow_blank': True},
            'address': {'required': False, 'allow_blank': True},
        }

    def validate_email(self, value):
        if value and User.objects.filter(email__iexact=value).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError("Email is already in use")
        return value

    def update(self, instance, validated_data):
        for field, value in validated_data.items():
            if value:
                setattr(instance, field, value)
        if validated_data.get('email'):
            instance.username = validated_data['email']
        instance.save()
        return instance


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']
