from django.contrib import admin

from .models import (
    Application,
    ApplicationDocument,
    ApplicationNumberCounter,
    DocumentHistory,
    ReimbursementRecord,
    StatusLog,
)


class ApplicationDocumentInline(admin.TabularInline):
    model = ApplicationDocument
    extra = 0
    can_delete = False
    fields = ['slot', 'stage', 'original_name', 'uploaded_at', 'uploaded_by', 'is_current']
    readonly_fields = fields


class StatusLogInline(admin.TabularInline):
    model = StatusLog
    extra = 0
    can_delete = False
    fields = ['status_from', 'status_to', 'changed_by_name', 'notes', 'created_at']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    """
    Status and timestamps are read-only here; status changes go through
    the API so that every change is logged.
    """
    list_display = [
        'application_number',
        'kind',
        'status',
        'applicant_name',
        'issued_number',
        'is_archived',
        'created_at',
    ]
    list_filter = ['kind', 'status', 'is_archived', 'created_at']
    search_fields = ['application_number', 'issued_number', 'applicant_name', 'applicant_email']
    readonly_fields = [
        'kind',
        'application_number',
        'status',
        'issued_number',
        'applicant',
        'assigned_admin',
        'created_at',
        'submitted_at',
        'payment_verified_at',
        'field_verification_at',
        'payment_verified_at_stage_2',
        'issued_at',
        'rejected_at',
        'archived_at',
    ]
    inlines = [ApplicationDocumentInline, StatusLogInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StatusLog)
class StatusLogAdmin(admin.ModelAdmin):
    list_display = ['application', 'status_from', 'status_to', 'changed_by_name', 'created_at']
    list_filter = ['status_to', 'created_at']
    search_fields = ['application__application_number', 'changed_by_name', 'notes']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(DocumentHistory)
class DocumentHistoryAdmin(admin.ModelAdmin):
    list_display = ['application', 'slot', 'stage', 'action', 'file_count', 'status_at_upload', 'created_at']
    list_filter = ['slot', 'action']
    search_fields = ['application__application_number']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ReimbursementRecord)
class ReimbursementRecordAdmin(admin.ModelAdmin):
    list_display = ['application', 'company_name', 'pic_name', 'verification_date', 'submitted_at', 'verified_at']
    search_fields = ['application__application_number', 'company_name', 'pic_name']
    readonly_fields = ['proof_path', 'submitted_by', 'submitted_at', 'verified_by', 'verified_at']


admin.site.register(ApplicationNumberCounter)
