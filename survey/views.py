import logging

from django.conf import settings
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    GateStateSerializer,
    SurveyCompleteRequestSerializer,
    SurveyCompletionSerializer,
)
from .services import GateSessionStore, can_record_completion, check_completion, record_completion

logger = logging.getLogger(__name__)


# ========================================
# SURVEY COMPLETION
# ========================================

class SurveyCheckView(APIView):
    """
    Check whether the satisfaction survey is completed for an application.
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Check Survey Completion",
        responses={
            200: openapi.Schema(
                type=openapi.TYPE_OBJECT,
                properties={
                    'has_completed': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                    'survey_url': openapi.Schema(type=openapi.TYPE_STRING),
                }
            )
        },
        tags=['Survey']
    )
    def get(self, request, application_type, application_id):
        return Response({
            "has_completed": check_completion(application_type, application_id),
            "survey_url": getattr(settings, 'SURVEY_PUBLIC_URL', ''),
        })


class SurveyCompleteView(APIView):
    """
    Record that the survey was completed. Calling it again is harmless.
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Record Survey Completion",
        request_body=SurveyCompleteRequestSerializer,
        responses={200: SurveyCompletionSerializer, 201: SurveyCompletionSerializer, 403: "Not your application"},
        tags=['Survey']
    )
    def post(self, request, application_type, application_id):
        if not can_record_completion(request.user, application_type, application_id):
            logger.warning(
                f"[SurveyAPI] User {request.user.pk} refused completion for {application_type}#{application_id}"
            )
            return Response(
                {"status": "error", "message": "You can only complete the survey for your own application"},
                status=status.HTTP_403_FORBIDDEN
            )

        serializer = SurveyCompleteRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"status": "error", "message": "Invalid input data", "details": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )
        try:
            completion, created = record_completion(
                application_type,
                application_id,
                certificate_type=serializer.validated_data.get('certificate_type') or None,
                user=request.user,
            )
        except Exception as e:
            logger.exception(f"[SurveyAPI] Failed to record completion: {str(e)}")
            return Response(
                {"status": "error", "message": "Failed to record survey completion"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        # The recorded completion supersedes any dwell session.
        store = GateSessionStore()
        store.cancel(request.user, application_type, application_id)

        return Response(
            {
                "status": "success",
                "message": "Survey completion recorded",
                "data": SurveyCompletionSerializer(completion).data,
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )


# ========================================
# DOWNLOAD GATE
# ========================================

class SurveyGateView(APIView):
    """
    Server-side survey gate for certificate downloads.

    POST opens (or re-opens) the gate, GET reports its state, PATCH records
    that the survey link was visited, DELETE cancels it.
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Open Survey Gate",
        responses={200: GateStateSerializer},
        tags=['Survey']
    )
    def post(self, request, application_type, application_id):
        gate = GateSessionStore().open(request.user, application_type, application_id)
        return Response(GateStateSerializer(gate).data)

    @swagger_auto_schema(
        operation_summary="Survey Gate State",
        responses={200: GateStateSerializer},
        tags=['Survey']
    )
    def get(self, request, application_type, application_id):
        gate = GateSessionStore().current(request.user, application_type, application_id)
        return Response(GateStateSerializer(gate).data)

    @swagger_auto_schema(
        operation_summary="Mark Survey Visited",
        responses={200: GateStateSerializer},
        tags=['Survey']
    )
    def patch(self, request, application_type, application_id):
        gate = GateSessionStore().mark_visited(request.user, application_type, application_id)
        return Response(GateStateSerializer(gate).data)

    @swagger_auto_schema(
        operation_summary="Cancel Survey Gate",
        responses={204: "Gate closed"},
        tags=['Survey']
    )
    def delete(self, request, application_type, application_id):
        GateSessionStore().cancel(request.user, application_type, application_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
