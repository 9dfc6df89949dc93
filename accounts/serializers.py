from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import CustomUser as User


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for User model - used for user profile display.
    """
    full_name = serializers.CharField(source='get_full_name', read_only=True)
    display_name = serializers.CharField(source='get_display_name', read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'first_name',
            'last_name',
            'full_name',
            'display_name',
            'phone',
            'company_name',
            'company_address',
            'pic_name',
            'pic_position',
            'role',
            'date_joined',
        ]
        read_only_fields = ['id', 'email', 'role', 'date_joined']


class UserProfileUpdateSerializer(serializers.ModelSerializer):
    """
    Fields an account holder may change on their own profile.
    """

    class Meta:
        model = User
        fields = [
            'first_name',
            'last_name',
            'phone',
            'company_name',
            'company_address',
            'pic_name',
            'pic_position',
        ]


class PortalTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['id'] = user.id
        token['role'] = user.role
        token['first_name'] = user.first_name
        return token
