"""
Serializers for user accounts and authentication.
"""
from django.contrib.auth import authenticate
from rest_framework import serializers

from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Public representation of a user; never exposes the password."""

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'role', 'date_joined']
        read_only_fields = ['id', 'date_joined']

    def validate_email(self, value):
        value = value.lower()
        queryset = User.objects.filter(email=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("Email already used")
        return value


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for nested user representation."""
    class Meta:
        model = User
        fields = ['id', 'name', 'email']


class RegisterSerializer(serializers.Serializer):
    """
    Serializer for POST /auth/register/

    Request format:
    {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "password": "at-least-8-chars"
    }
    """
    name = serializers.CharField(min_length=2, max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, write_only=True, trim_whitespace=False)

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already used")
        return value

    def create(self, validated_data):
        return User.objects.create_user(
            email=validated_data['email'],
            password=validated_data['password'],
            name=validated_data['name'],
            role=User.Role.CLIENT,
        )


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate(self, attrs):
        user = authenticate(
            request=self.context.get('request'),
            email=attrs['email'].lower(),
            password=attrs['password'],
        )
        if user is None:
            raise serializers.ValidationError("Invalid credentials")
        attrs['user'] = user
        return attrs
