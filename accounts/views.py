import logging

from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from .serializers import (
    PortalTokenObtainPairSerializer,
    UserProfileUpdateSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


class PortalTokenObtainPairView(TokenObtainPairView):
    serializer_class = PortalTokenObtainPairSerializer


class UserProfileView(APIView):
    """
    Get and update user profile.
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Get User Profile",
        operation_description="Retrieves the authenticated user's profile details.",
        responses={
            200: UserSerializer,
            401: "Authentication required"
        },
        tags=['User Profile']
    )
    def get(self, request):
        """Get current user profile"""
        serializer = UserSerializer(request.user)
        return Response(serializer.data)

    @swagger_auto_schema(
        operation_summary="Update User Profile",
        operation_description="Updates the authenticated user's profile. Supports partial updates.",
        request_body=UserProfileUpdateSerializer,
        responses={
            200: UserSerializer,
            400: "Invalid input data"
        },
        tags=['User Profile']
    )
    def patch(self, request):
        """Update user profile"""
        serializer = UserProfileUpdateSerializer(
            request.user,
            data=request.data,
            partial=True
        )
        if serializer.is_valid():
            serializer.save()
            logger.info(f"[UserProfile] Profile updated for user {request.user.pk}")
            return Response(
                {
                    "status": "success",
                    "message": "Profile updated successfully",
                    "user": UserSerializer(request.user).data,
                },
                status=status.HTTP_200_OK
            )
        return Response(
            {
                "status": "error",
                "message": "Invalid input data",
                "details": serializer.errors,
            },
            status=status.HTTP_400_BAD_REQUEST
        )
