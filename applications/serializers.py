from django.conf import settings
from rest_framework import serializers

from .documents import slot_listing
from .models import Application, ApplicationDocument, DocumentHistory, ReimbursementRecord, StatusLog
from .workflows import KIND_CHOICES


def validate_upload_size(uploaded_file):
    max_mb = getattr(settings, 'APPLICATION_UPLOAD_MAX_MB', 50)
    if uploaded_file.size > max_mb * 1024 * 1024:
        raise serializers.ValidationError(f"File {uploaded_file.name} exceeds {max_mb} MB")
    return uploaded_file


# ------------------------------
# Documents
# ------------------------------
class ApplicationDocumentSerializer(serializers.ModelSerializer):
    uploaded_by_name = serializers.SerializerMethodField()

    class Meta:
        model = ApplicationDocument
        fields = [
            'id',
            'slot',
            'stage',
            'original_name',
            'uploaded_at',
            'uploaded_by',
            'uploaded_by_name',
            'upload_batch',
        ]
        read_only_fields = fields

    def get_uploaded_by_name(self, obj):
        return obj.uploaded_by.get_full_name() if obj.uploaded_by else None


class DocumentHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = DocumentHistory
        fields = [
            'id',
            'slot',
            'stage',
            'action',
            'actor',
            'file_names',
            'file_count',
            'status_at_upload',
            'created_at',
        ]
        read_only_fields = fields


class DocumentUploadSerializer(serializers.Serializer):
    files = serializers.ListField(
        child=serializers.FileField(validators=[validate_upload_size]),
        allow_empty=False,
    )
    stage = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=2)


# ------------------------------
# Status log
# ------------------------------
class StatusLogSerializer(serializers.ModelSerializer):
    status_from_label = serializers.SerializerMethodField()
    status_to_label = serializers.SerializerMethodField()
    is_reaffirmation = serializers.BooleanField(read_only=True)

    class Meta:
        model = StatusLog
        fields = [
            'id',
            'status_from',
            'status_from_label',
            'status_to',
            'status_to_label',
            'changed_by',
            'changed_by_name',
            'notes',
            'is_reaffirmation',
            'created_at',
        ]
        read_only_fields = fields

    def get_status_from_label(self, obj):
        if obj.status_from is None:
            return None
        return obj.application.workflow.catalog.label(obj.status_from)

    def get_status_to_label(self, obj):
        return obj.application.workflow.catalog.label(obj.status_to)


# ------------------------------
# Applications
# ------------------------------
class ApplicationListSerializer(serializers.ModelSerializer):
    kind_label = serializers.CharField(source='get_kind_display', read_only=True)
    status_label = serializers.SerializerMethodField()
    status_label_detailed = serializers.SerializerMethodField()
    severity = serializers.SerializerMethodField()

    class Meta:
        model = Application
        fields = [
            'id',
            'kind',
            'kind_label',
            'application_number',
            'status',
            'status_label',
            'status_label_detailed',
            'severity',
            'issued_number',
            'applicant_name',
            'applicant_email',
            'assigned_admin_name',
            'is_archived',
            'created_at',
            'submitted_at',
        ]
        read_only_fields = fields

    def get_status_label(self, obj):
        return obj.status_label()

    def get_status_label_detailed(self, obj):
        return obj.status_label(detailed=True)

    def get_severity(self, obj):
        return obj.status_severity.value


class ApplicationDetailSerializer(ApplicationListSerializer):
    documents = serializers.SerializerMethodField()
    has_reimbursement = serializers.SerializerMethodField()

    class Meta(ApplicationListSerializer.Meta):
        fields = ApplicationListSerializer.Meta.fields + [
            'notes',
            'payment_verified_at',
            'field_verification_at',
            'payment_verified_at_stage_2',
            'issued_at',
            'rejected_at',
            'archived_at',
            'documents',
            'has_reimbursement',
        ]
        read_only_fields = fields

    def get_documents(self, obj):
        return {
            key: ApplicationDocumentSerializer(items, many=True).data
            for key, items in slot_listing(obj).items()
        }

    def get_has_reimbursement(self, obj):
        return ReimbursementRecord.objects.filter(application=obj).exists()


class ApplicationSubmitSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=KIND_CHOICES)
    application_form = serializers.FileField(validators=[validate_upload_size])
    requirements_archive = serializers.FileField(required=False, validators=[validate_upload_size])


# ------------------------------
# Admin actions
# ------------------------------
class NoteSerializer(serializers.Serializer):
    note = serializers.CharField()


class OptionalNoteSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class IssueSerializer(serializers.Serializer):
    issued_number = serializers.CharField(max_length=20)
    note = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    certificate = serializers.FileField(required=False, validators=[validate_upload_size])


# ------------------------------
# Reimbursement
# ------------------------------
class ReimbursementSerializer(serializers.ModelSerializer):
    total_amount = serializers.IntegerField(read_only=True)
    is_verified = serializers.BooleanField(read_only=True)

    class Meta:
        model = ReimbursementRecord
        fields = [
            'id',
            'company_name',
            'pic_name',
            'pic_contact',
            'verification_date',
            'is_acknowledged',
            'chief_verificator_amount',
            'member_verificator_amount',
            'total_amount',
            'proof_original_name',
            'submitted_by',
            'submitted_at',
            'verified_by',
            'verified_at',
            'is_verified',
        ]
        read_only_fields = fields


class ReimbursementSubmitSerializer(serializers.Serializer):
    company_name = serializers.CharField(max_length=255)
    pic_name = serializers.CharField(max_length=255)
    pic_contact = serializers.CharField(max_length=100)
    verification_date = serializers.DateField()
    is_acknowledged = serializers.BooleanField(default=False)
    chief_verificator_amount = serializers.IntegerField(min_value=0, default=0)
    member_verificator_amount = serializers.IntegerField(min_value=0, default=0)
    proof = serializers.FileField(validators=[validate_upload_size])
