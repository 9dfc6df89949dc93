from django.conf import settings
from django.db import models, transaction
from django.utils import timezone

from .status_catalog import ALL_STATUS_CHOICES
from .workflows import KIND_CHOICES, SLOT_CHOICES, get_workflow


# ========================================
# APPLICATION NUMBER COUNTER
# ========================================

class ApplicationNumberCounter(models.Model):
    """
    Per kind, per day sequence used to build application numbers.
    Rows are locked with ``select_for_update`` while a number is taken.
    """
    kind = models.CharField(max_length=40, choices=KIND_CHOICES)
    day = models.DateField()
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'application_number_counters'
        unique_together = ['kind', 'day']

    def __str__(self):
        return f"{self.kind} {self.day:%Y%m%d} -> {self.last_value}"

    @classmethod
    def next_number(cls, kind, when=None):
        """
        Take the next application number for ``kind``.
        Format: <PREFIX>-<YYYYMMDD>-<NNNN>
        """
        workflow = get_workflow(kind)
        day = timezone.localdate(when) if when else timezone.localdate()
        with transaction.atomic():
            cls.objects.get_or_create(kind=kind, day=day)
            counter = cls.objects.select_for_update().get(kind=kind, day=day)
            counter.last_value += 1
            counter.save(update_fields=['last_value'])
        return f"{workflow.number_prefix}-{day:%Y%m%d}-{counter.last_value:04d}"


# ========================================
# APPLICATION MODEL
# ========================================

class Application(models.Model):
    """
    One IIN or supervisory (pengawasan) application.

    ``status`` holds a raw token of the kind's catalog and is changed only
    through ``applications.lifecycle``.
    """
    kind = models.CharField(max_length=40, choices=KIND_CHOICES, db_index=True)
    application_number = models.CharField(max_length=50, unique=True, editable=False)
    status = models.CharField(max_length=40, choices=ALL_STATUS_CHOICES, db_index=True)
    issued_number = models.CharField(max_length=20, null=True, blank=True)
    notes = models.TextField(null=True, blank=True, help_text="Latest remark from the administrator")

    # Weak references with cached display values
    applicant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='iin_applications'
    )
    applicant_name = models.CharField(max_length=255, blank=True)
    applicant_email = models.EmailField(max_length=255, blank=True)
    assigned_admin = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_iin_applications'
    )
    assigned_admin_name = models.CharField(max_length=255, blank=True)

    # Lifecycle timestamps, each stamped once
    created_at = models.DateTimeField(auto_now_add=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    payment_verified_at = models.DateTimeField(null=True, blank=True)
    field_verification_at = models.DateTimeField(null=True, blank=True)
    payment_verified_at_stage_2 = models.DateTimeField(null=True, blank=True)
    issued_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    is_archived = models.BooleanField(default=False)
    archived_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'iin_applications'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['kind', 'status'], name='iin_app_kind_status_idx'),
            models.Index(fields=['applicant', '-created_at'], name='iin_app_applicant_idx'),
        ]

    def __str__(self):
        return f"{self.application_number} ({self.status})"

    @property
    def workflow(self):
        return get_workflow(self.kind)

    @property
    def current_status(self):
        return self.workflow.catalog.normalize(self.status)

    def status_label(self, detailed=False):
        return self.workflow.catalog.label(self.status, detailed=detailed)

    @property
    def status_severity(self):
        return self.workflow.catalog.severity(self.status)

    @property
    def is_issued(self):
        return self.workflow.token(self.status) == self.workflow.issued_state

    @property
    def stage_1_verified(self):
        return self.payment_verified_at is not None


# ========================================
# DOCUMENTS
# ========================================

class ApplicationDocument(models.Model):
    """
    One stored file attached to a slot of an application.
    Files uploaded in one request share ``uploaded_at`` and ``upload_batch``.
    """
    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='documents')
    slot = models.CharField(max_length=40, choices=SLOT_CHOICES)
    stage = models.PositiveSmallIntegerField(null=True, blank=True)
    original_name = models.CharField(max_length=255)
    stored_path = models.CharField(max_length=500)
    uploaded_at = models.DateTimeField()
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='uploaded_iin_documents'
    )
    upload_batch = models.UUIDField(db_index=True)
    is_current = models.BooleanField(default=True)

    class Meta:
        db_table = 'iin_application_documents'
        ordering = ['uploaded_at', 'id']
        indexes = [
            models.Index(fields=['application', 'slot', 'stage'], name='iin_doc_slot_idx'),
        ]

    def __str__(self):
        return f"{self.slot} - {self.original_name}"


class DocumentHistory(models.Model):
    """
    Append-only ledger of attach events, one row per upload request.
    """
    ACTION_UPLOADED = 'uploaded'
    ACTION_REPLACED = 'replaced'
    ACTION_CHOICES = [
        (ACTION_UPLOADED, 'Uploaded'),
        (ACTION_REPLACED, 'Replaced'),
    ]

    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='document_history')
    slot = models.CharField(max_length=40)
    stage = models.PositiveSmallIntegerField(null=True, blank=True)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES, default=ACTION_UPLOADED)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='+'
    )
    file_names = models.JSONField(default=list)
    file_count = models.PositiveIntegerField(default=0)
    status_at_upload = models.CharField(max_length=40)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'iin_document_history'
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.slot} x{self.file_count} at {self.status_at_upload}"


# ========================================
# STATUS LOG MODEL
# ========================================

class StatusLog(models.Model):
    """
    Immutable record of one status change or re-affirmation.
    ``status_from`` is empty for the creation entry.
    """
    application = models.ForeignKey(Application, on_delete=models.CASCADE, related_name='status_logs')
    status_from = models.CharField(max_length=40, null=True, blank=True)
    status_to = models.CharField(max_length=40)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='+'
    )
    changed_by_name = models.CharField(max_length=255, blank=True)
    notes = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'iin_status_logs'
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.application_id}: {self.status_from or '-'} -> {self.status_to}"

    @property
    def is_reaffirmation(self):
        return self.status_from == self.status_to

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Status log entries cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Status log entries cannot be deleted")


# ========================================
# REIMBURSEMENT MODEL
# ========================================

class ReimbursementRecord(models.Model):
    """
    Transport and per-diem proof submitted by the applicant for the field
    verification team.
    """
    application = models.OneToOneField(Application, on_delete=models.CASCADE, related_name='reimbursement')
    company_name = models.CharField(max_length=255)
    pic_name = models.CharField(max_length=255)
    pic_contact = models.CharField(max_length=100)
    verification_date = models.DateField()
    is_acknowledged = models.BooleanField(default=False)
    chief_verificator_amount = models.PositiveIntegerField(default=0)
    member_verificator_amount = models.PositiveIntegerField(default=0)
    proof_original_name = models.CharField(max_length=255)
    proof_path = models.CharField(max_length=500)

    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='+'
    )
    submitted_at = models.DateTimeField(default=timezone.now)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    verified_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'iin_reimbursements'

    def __str__(self):
        return f"Reimbursement {self.application.application_number}"

    @property
    def total_amount(self):
        return self.chief_verificator_amount + self.member_verificator_amount

    @property
    def is_verified(self):
        return self.verified_at is not None
