import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db.models import Q
from django.http import FileResponse, Http404
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.pagination import PageNumberPagination
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsApplicant, IsOwnerOrPortalAdmin, IsPortalAdmin

from . import audit, documents, lifecycle, reimbursements
from .exceptions import GuardViolation, LifecycleError, NotFound, StorageFault
from .models import Application
from .serializers import (
    ApplicationDetailSerializer,
    ApplicationDocumentSerializer,
    ApplicationListSerializer,
    ApplicationSubmitSerializer,
    DocumentHistorySerializer,
    DocumentUploadSerializer,
    IssueSerializer,
    NoteSerializer,
    OptionalNoteSerializer,
    ReimbursementSerializer,
    ReimbursementSubmitSerializer,
    StatusLogSerializer,
)

logger = logging.getLogger(__name__)


# ============= Pagination Settings===============

class ApplicationPagination(PageNumberPagination):
    """Pagination for application listings"""
    page_size = 10
    page_size_query_param = 'page_size'
    max_page_size = 100


# ========================================
# BASE VIEW
# ========================================

ERROR_STATUS = {
    GuardViolation: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    StorageFault: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def lifecycle_error_response(exc):
    http_status = next(
        (code for klass, code in ERROR_STATUS.items() if isinstance(exc, klass)),
        status.HTTP_400_BAD_REQUEST,
    )
    if isinstance(exc, StorageFault):
        logger.error(f"[ApplicationAPI] Storage fault: {exc.message}")
    else:
        logger.info(f"[ApplicationAPI] {exc.__class__.__name__} ({exc.rule}): {exc.message}")
    return Response(exc.to_dict(), status=http_status)


def invalid_input_response(serializer):
    return Response(
        {"status": "error", "message": "Invalid input data", "details": serializer.errors},
        status=status.HTTP_400_BAD_REQUEST
    )


class ApplicationAPIView(APIView):
    """
    Base view for endpoints scoped to one application.
    Applicants reach only their own applications; administrators reach all.
    """
    permission_classes = [IsAuthenticated, IsOwnerOrPortalAdmin]

    def get_application(self, request, pk):
        try:
            application = Application.objects.get(pk=pk)
        except Application.DoesNotExist:
            raise NotFound("Application not found", rule="application_not_found")
        self.check_object_permissions(request, application)
        return application

    def handle_exception(self, exc):
        if isinstance(exc, LifecycleError):
            return lifecycle_error_response(exc)
        if isinstance(exc, (APIException, Http404, DjangoPermissionDenied)):
            return super().handle_exception(exc)
        logger.exception(f"[ApplicationAPI] Unexpected error: {str(exc)}")
        return Response(
            {"status": "error", "message": "An unexpected error occurred"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    def success(self, message, application, http_status=status.HTTP_200_OK):
        return Response(
            {
                "status": "success",
                "message": message,
                "data": ApplicationDetailSerializer(application).data,
            },
            status=http_status
        )


class AdminActionView(ApplicationAPIView):
    permission_classes = [IsAuthenticated, IsPortalAdmin]


# ========================================
# APPLICATIONS
# ========================================

class ApplicationListCreateView(ApplicationAPIView):
    """
    List applications (applicants: own, administrators: all) and submit a
    new one.
    """
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]
    pagination_class = ApplicationPagination

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsApplicant()]
        return [IsAuthenticated()]

    @swagger_auto_schema(
        operation_summary="List applications",
        manual_parameters=[
            openapi.Parameter('kind', openapi.IN_QUERY, description='Application kind', type=openapi.TYPE_STRING),
            openapi.Parameter('status', openapi.IN_QUERY, description='Status token', type=openapi.TYPE_STRING),
            openapi.Parameter(
                'search', openapi.IN_QUERY,
                description='Application number, issued number, applicant name or email',
                type=openapi.TYPE_STRING
            ),
            openapi.Parameter('archived', openapi.IN_QUERY, description='Include archived', type=openapi.TYPE_BOOLEAN),
            openapi.Parameter('page', openapi.IN_QUERY, description='Page number', type=openapi.TYPE_INTEGER),
        ],
        responses={200: ApplicationListSerializer(many=True)},
        tags=['Applications']
    )
    def get(self, request):
        queryset = Application.objects.all().order_by('-created_at', '-id')
        if not request.user.is_admin_user():
            queryset = queryset.filter(applicant=request.user)

        kind = request.query_params.get('kind', '').strip()
        if kind:
            queryset = queryset.filter(kind=kind)

        status_filter = request.query_params.get('status', '').strip().lower()
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        if request.query_params.get('archived', '').lower() not in ('1', 'true', 'yes'):
            queryset = queryset.filter(is_archived=False)

        search_query = request.query_params.get('search', '').strip()
        if search_query:
            queryset = queryset.filter(
                Q(application_number__icontains=search_query) |
                Q(issued_number__icontains=search_query) |
                Q(applicant_name__icontains=search_query) |
                Q(applicant_email__icontains=search_query)
            )

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(queryset, request, view=self)
        serializer = ApplicationListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    @swagger_auto_schema(
        operation_summary="Submit application",
        operation_description="Creates an application in its initial status with the application form attached.",
        request_body=ApplicationSubmitSerializer,
        responses={
            201: ApplicationDetailSerializer,
            400: "Validation error or guard violation",
            403: "Applicants only",
        },
        tags=['Applications']
    )
    def post(self, request):
        serializer = ApplicationSubmitSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer)

        application = lifecycle.submit(
            serializer.validated_data['kind'],
            request.user,
            application_form=serializer.validated_data['application_form'],
            requirements_archive=serializer.validated_data.get('requirements_archive'),
        )
        return self.success("Application submitted successfully", application, status.HTTP_201_CREATED)


class ApplicationDetailView(ApplicationAPIView):

    @swagger_auto_schema(
        operation_summary="Application detail",
        responses={200: ApplicationDetailSerializer, 404: "Application not found"},
        tags=['Applications']
    )
    def get(self, request, pk):
        application = self.get_application(request, pk)
        return Response(ApplicationDetailSerializer(application).data)


class ApplicationStatusLogView(ApplicationAPIView):

    @swagger_auto_schema(
        operation_summary="Status history",
        responses={200: StatusLogSerializer(many=True)},
        tags=['Applications']
    )
    def get(self, request, pk):
        application = self.get_application(request, pk)
        entries = audit.list_for(application).select_related('application')
        return Response(StatusLogSerializer(entries, many=True).data)


class DocumentHistoryView(ApplicationAPIView):

    @swagger_auto_schema(
        operation_summary="Document upload history",
        responses={200: DocumentHistorySerializer(many=True)},
        tags=['Documents']
    )
    def get(self, request, pk):
        application = self.get_application(request, pk)
        return Response(DocumentHistorySerializer(documents.history_for(application), many=True).data)


# ========================================
# ADMIN ACTIONS
# ========================================

class RequestCorrectionView(AdminActionView):

    @swagger_auto_schema(
        operation_summary="Request correction",
        request_body=NoteSerializer,
        responses={200: ApplicationDetailSerializer, 400: "Guard violation"},
        tags=['Application Actions']
    )
    def post(self, request, pk):
        application = self.get_application(request, pk)
        serializer = NoteSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer)
        application = lifecycle.request_correction(application, request.user, serializer.validated_data['note'])
        return self.success("Correction requested", application)


class AdvanceView(AdminActionView):

    @swagger_auto_schema(
        operation_summary="Advance to the next status",
        request_body=OptionalNoteSerializer,
        responses={200: ApplicationDetailSerializer, 400: "Guard violation"},
        tags=['Application Actions']
    )
    def post(self, request, pk):
        application = self.get_application(request, pk)
        serializer = OptionalNoteSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer)
        application = lifecycle.advance(application, request.user, note=serializer.validated_data.get('note') or None)
        return self.success(f"Status changed to {application.status_label()}", application)


class IssueView(AdminActionView):
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    @swagger_auto_schema(
        operation_summary="Issue the IIN",
        request_body=IssueSerializer,
        responses={200: ApplicationDetailSerializer, 400: "Guard violation"},
        tags=['Application Actions']
    )
    def post(self, request, pk):
        application = self.get_application(request, pk)
        serializer = IssueSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer)
        application = lifecycle.issue(
            application,
            request.user,
            serializer.validated_data['issued_number'],
            note=serializer.validated_data.get('note') or None,
            certificate=serializer.validated_data.get('certificate'),
        )
        return self.success("Application issued", application)


class RejectView(AdminActionView):

    @swagger_auto_schema(
        operation_summary="Reject application",
        request_body=NoteSerializer,
        responses={200: ApplicationDetailSerializer, 400: "Guard violation"},
        tags=['Application Actions']
    )
    def post(self, request, pk):
        application = self.get_application(request, pk)
        serializer = NoteSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer)
        application = lifecycle.reject(application, request.user, serializer.validated_data['note'])
        return self.success("Application rejected", application)


class NoteView(AdminActionView):

    @swagger_auto_schema(
        operation_summary="Add admin note",
        request_body=NoteSerializer,
        responses={200: ApplicationDetailSerializer},
        tags=['Application Actions']
    )
    def post(self, request, pk):
        application = self.get_application(request, pk)
        serializer = NoteSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer)
        application = lifecycle.set_note(application, request.user, serializer.validated_data['note'])
        return self.success("Note saved", application)


class CompleteFieldVerificationView(AdminActionView):

    @swagger_auto_schema(
        operation_summary="Complete field verification",
        request_body=OptionalNoteSerializer,
        responses={200: ApplicationDetailSerializer, 400: "Guard violation"},
        tags=['Application Actions']
    )
    def post(self, request, pk):
        application = self.get_application(request, pk)
        serializer = OptionalNoteSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer)
        application = lifecycle.complete_field_verification(
            application, request.user, note=serializer.validated_data.get('note') or None
        )
        return self.success("Field verification completed", application)


class ArchiveView(AdminActionView):

    @swagger_auto_schema(
        operation_summary="Archive application",
        responses={200: ApplicationDetailSerializer},
        tags=['Application Actions']
    )
    def post(self, request, pk):
        application = lifecycle.archive(self.get_application(request, pk), request.user)
        return self.success("Application archived", application)


# ========================================
# DOCUMENTS
# ========================================

class DocumentSlotView(ApplicationAPIView):
    """
    Upload to and list one document slot of an application.
    """
    parser_classes = [MultiPartParser, FormParser]

    @swagger_auto_schema(
        operation_summary="List slot documents",
        manual_parameters=[
            openapi.Parameter('stage', openapi.IN_QUERY, description='Payment stage (1 or 2)', type=openapi.TYPE_INTEGER),
        ],
        responses={200: ApplicationDocumentSerializer(many=True)},
        tags=['Documents']
    )
    def get(self, request, pk, slot):
        application = self.get_application(request, pk)
        items = documents.list_for(application, slot, stage=request.query_params.get('stage'))
        return Response(ApplicationDocumentSerializer(items, many=True).data)

    @swagger_auto_schema(
        operation_summary="Upload documents",
        operation_description="""
        Attach one or more files to a slot. Single-file slots replace the
        current file. Re-uploading the application form or requirements
        archive during correction resubmits the application.
        """,
        request_body=DocumentUploadSerializer,
        responses={201: ApplicationDetailSerializer, 400: "Guard violation", 503: "Storage failure"},
        tags=['Documents']
    )
    def post(self, request, pk, slot):
        application = self.get_application(request, pk)
        serializer = DocumentUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer)
        application, created = documents.attach(
            application,
            slot,
            serializer.validated_data['files'],
            request.user,
            stage=serializer.validated_data.get('stage'),
        )
        return self.success(f"{len(created)} document(s) uploaded", application, status.HTTP_201_CREATED)


class DocumentDownloadView(ApplicationAPIView):

    @swagger_auto_schema(
        operation_summary="Download document",
        operation_description="Certificates and issuance documents require the survey gate to be open.",
        responses={200: "File", 400: "Survey gate closed", 404: "Document not found"},
        tags=['Documents']
    )
    def get(self, request, pk, document_id):
        application = self.get_application(request, pk)
        document, handle = documents.open_document(application, document_id, request.user)
        return FileResponse(handle, as_attachment=True, filename=document.original_name)


# ========================================
# REIMBURSEMENT
# ========================================

class ReimbursementView(ApplicationAPIView):
    parser_classes = [MultiPartParser, FormParser]

    @swagger_auto_schema(
        operation_summary="Reimbursement record",
        responses={200: ReimbursementSerializer, 404: "No reimbursement"},
        tags=['Reimbursement']
    )
    def get(self, request, pk):
        application = self.get_application(request, pk)
        return Response(ReimbursementSerializer(reimbursements.get_for(application)).data)

    @swagger_auto_schema(
        operation_summary="Submit reimbursement",
        request_body=ReimbursementSubmitSerializer,
        responses={201: ReimbursementSerializer, 400: "Guard violation"},
        tags=['Reimbursement']
    )
    def post(self, request, pk):
        application = self.get_application(request, pk)
        serializer = ReimbursementSubmitSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer)
        data = dict(serializer.validated_data)
        proof = data.pop('proof')
        record = reimbursements.submit_reimbursement(application, request.user, data, proof)
        return Response(
            {
                "status": "success",
                "message": "Reimbursement submitted",
                "data": ReimbursementSerializer(record).data,
            },
            status=status.HTTP_201_CREATED
        )


class ReimbursementVerifyView(AdminActionView):

    @swagger_auto_schema(
        operation_summary="Verify reimbursement",
        responses={200: ReimbursementSerializer, 400: "Already verified", 404: "No reimbursement"},
        tags=['Reimbursement']
    )
    def post(self, request, pk):
        application = self.get_application(request, pk)
        record = reimbursements.verify_reimbursement(application, request.user)
        return Response(
            {
                "status": "success",
                "message": "Reimbursement verified",
                "data": ReimbursementSerializer(record).data,
            }
        )


class ReimbursementProofView(ApplicationAPIView):

    @swagger_auto_schema(
        operation_summary="Download reimbursement proof",
        responses={200: "File", 404: "No reimbursement"},
        tags=['Reimbursement']
    )
    def get(self, request, pk):
        application = self.get_application(request, pk)
        record, handle = reimbursements.open_reimbursement_proof(application, request.user)
        return FileResponse(handle, as_attachment=True, filename=record.proof_original_name)
